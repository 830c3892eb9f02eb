"""Name suggestions for unidentified transactions.

The suggester is an optional collaborator of the reconciliation service.
It only ever proposes: a suggestion is attached to a MatchResult and never
changes its status.

Privacy Constraints:
- Never log prompts or transaction descriptions at INFO level
- Remote Ollama: auth header support, no names in logs
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from ..matching.text import normalize_description
from .prompts import ContributorPrompt

if TYPE_CHECKING:
    from ..config import LLMConfig
    from ..matching.models import Transaction

logger = logging.getLogger(__name__)


@runtime_checkable
class NameSuggester(Protocol):
    """Anything that can pick a candidate name for a transaction."""

    def suggest(self, transaction: Transaction, candidate_names: Sequence[str]) -> str | None:
        """Return one of candidate_names, or None."""
        ...


class ConcurrencyLimiter:
    """Semaphore-based concurrency limiter for LLM requests.

    Prevents overwhelming the Ollama server with too many concurrent requests.
    Thread-safe for synchronous usage.
    """

    def __init__(self, max_concurrent: int = 2) -> None:
        self._semaphore = threading.Semaphore(max_concurrent)
        self._active_count = 0
        self._lock = threading.Lock()

    def acquire(self, timeout: float | None = None) -> bool:
        """Acquire a slot for an LLM request.

        Args:
            timeout: Maximum time to wait (None = blocking)

        Returns:
            True if acquired, False if timeout
        """
        acquired = self._semaphore.acquire(blocking=True, timeout=timeout)
        if acquired:
            with self._lock:
                self._active_count += 1
        return acquired

    def release(self) -> None:
        """Release a slot after request completes."""
        with self._lock:
            self._active_count -= 1
        self._semaphore.release()

    @property
    def active_requests(self) -> int:
        """Current number of active LLM requests."""
        with self._lock:
            return self._active_count


class OllamaNameSuggester:
    """Contributor suggestions from an Ollama chat model."""

    def __init__(self, llm_config: LLMConfig) -> None:
        """Initialize the suggester.

        Args:
            llm_config: LLM section of the application configuration.
        """
        self.llm_config = llm_config

        # Support formats: "Bearer token" or "Custom-Header: value"
        headers = {}
        if llm_config.auth_header:
            if ":" in llm_config.auth_header:
                key, value = llm_config.auth_header.split(":", 1)
                headers[key.strip()] = value.strip()
            else:
                headers["Authorization"] = llm_config.auth_header

        self._client = httpx.Client(
            timeout=httpx.Timeout(
                connect=10.0,
                read=float(llm_config.timeout_seconds),
                write=30.0,
                pool=10.0,
            ),
            headers=headers,
        )
        self._prompt = ContributorPrompt()
        self._limiter = ConcurrencyLimiter(max_concurrent=llm_config.max_concurrent)

    @property
    def active_requests(self) -> int:
        return self._limiter.active_requests

    def suggest(self, transaction: Transaction, candidate_names: Sequence[str]) -> str | None:
        """Ask the model which candidate made the transaction.

        Returns:
            The chosen name exactly as it appears in candidate_names, or None
            when the model fails, declines, or names someone not in the list.
        """
        if not candidate_names:
            return None

        user_message = self._prompt.format_user_message(
            date=transaction.date,
            amount=transaction.amount,
            description=transaction.description,
            names=list(candidate_names),
        )
        content = self._call_ollama(self._prompt.system_prompt, user_message)
        if content is None:
            return None

        try:
            data = self._parse_json_response(content)
        except json.JSONDecodeError:
            logger.warning("Ollama returned unparseable JSON for transaction %s", transaction.id)
            return None

        raw_name = data.get("name") if isinstance(data, dict) else None
        if not raw_name or not isinstance(raw_name, str):
            return None
        return self._match_candidate(raw_name, candidate_names)

    @staticmethod
    def _match_candidate(raw_name: str, candidate_names: Sequence[str]) -> str | None:
        """Map the model's answer back onto the list, ignoring case and accents."""
        wanted = normalize_description(raw_name)
        for name in candidate_names:
            if normalize_description(name) == wanted:
                return name
        logger.debug("Suggested name is not one of %d candidates", len(candidate_names))
        return None

    def _call_ollama(self, system_prompt: str, user_message: str) -> str | None:
        """Call the Ollama chat API with concurrency limiting.

        Returns:
            The message content, or None on failure.
        """
        if not self._limiter.acquire(timeout=self.llm_config.timeout_seconds):
            logger.warning(
                "LLM request timed out waiting for concurrency slot (max=%d, active=%d)",
                self.llm_config.max_concurrent,
                self._limiter.active_requests,
            )
            return None

        try:
            url = f"{self.llm_config.ollama_url}/api/chat"
            payload = {
                "model": self.llm_config.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                "stream": False,
                "format": "json",
            }
            logger.debug("Calling Ollama model %s at %s", self.llm_config.model, self.llm_config.ollama_url)

            response = self._client.post(url, json=payload)
            response.raise_for_status()
            content = response.json().get("message", {}).get("content", "")
            logger.debug("Ollama returned %d chars", len(content))
            return content

        except httpx.TimeoutException:
            logger.warning("Ollama request timed out after %ds", self.llm_config.timeout_seconds)
            return None
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Ollama API error %s for model '%s'",
                e.response.status_code,
                self.llm_config.model,
            )
            return None
        except httpx.RequestError as e:
            logger.warning("Ollama request failed: %s (URL: %s)", e, self.llm_config.ollama_url)
            return None
        except json.JSONDecodeError:
            logger.warning("Ollama returned a non-JSON response body")
            return None
        finally:
            self._limiter.release()

    @staticmethod
    def _parse_json_response(content: str) -> dict:
        """Parse JSON from an LLM reply, tolerating code fences and extra text.

        Raises:
            json.JSONDecodeError: If no JSON object can be recovered.
        """
        if not content:
            raise json.JSONDecodeError("Empty response", "", 0)

        content = content.strip()
        if content.startswith("```json"):
            content = content[7:]
        elif content.startswith("```"):
            content = content[3:]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()

        try:
            return json.loads(content)
        except json.JSONDecodeError:
            pass

        match = re.search(r"\{[^{}]*\}", content, re.DOTALL)
        if match:
            return json.loads(match.group())
        raise json.JSONDecodeError(f"Could not parse JSON from response: {content[:200]}", content, 0)

    def close(self) -> None:
        """Close HTTP client."""
        self._client.close()

    def __enter__(self) -> OllamaNameSuggester:
        """Enter context manager."""
        return self

    def __exit__(self, *args) -> None:
        """Exit context manager."""
        self.close()
