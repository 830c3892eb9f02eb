"""AI module for optional contributor suggestions.

Suggestions come from a local or remote Ollama server and are advisory only.
"""

from .prompts import ContributorPrompt
from .suggester import ConcurrencyLimiter, NameSuggester, OllamaNameSuggester

__all__ = ["ConcurrencyLimiter", "ContributorPrompt", "NameSuggester", "OllamaNameSuggester"]
