"""Prompt templates for LLM-assisted contributor suggestions.

Prompts are versioned so a changed prompt can be told apart in logs.
"""

from __future__ import annotations

from dataclasses import dataclass

PROMPT_VERSION = "v1.0"


@dataclass
class ContributorPrompt:
    """Prompt template for picking the contributor behind a bank line.

    Attributes:
        version: Prompt version.
        system_prompt: System message setting LLM behavior.
        user_template: Template for user message with placeholders.
    """

    version: str = PROMPT_VERSION

    system_prompt: str = """You help a church treasurer reconcile bank statements.
Given one bank transaction and a list of contributor names expected by the
churches, pick the contributor who most likely made the transaction.

Rules:
1. Only answer with a name from the provided list, copied exactly
2. Bank descriptions are abbreviated and may drop accents or middle names
3. If no contributor is a plausible match, answer with an empty name
4. Include a confidence score from 0.0 to 1.0

Respond in JSON format:
{
    "name": "Contributor Name",
    "confidence": 0.85
}"""

    user_template: str = """Identify the contributor of this transaction:

Transaction Details:
- Date: {date}
- Amount: {amount}
- Description: {description}

Expected Contributors:
{names}

Provide your answer in JSON format."""

    def format_user_message(
        self,
        date: str,
        amount: float,
        description: str,
        names: list[str],
    ) -> str:
        """Format the user message with transaction details.

        Args:
            date: Transaction date (ISO).
            amount: Transaction amount.
            description: Bank description.
            names: Candidate contributor names.

        Returns:
            Formatted user message.
        """
        return self.user_template.format(
            date=date or "Unknown",
            amount=f"{amount:.2f}",
            description=description or "No description",
            names="\n".join(f"- {name}" for name in names),
        )
