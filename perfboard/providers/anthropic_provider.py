"""Anthropic (Claude) provider used for the executive summary."""
from __future__ import annotations

import logging
import os
import random
import time
from typing import Optional

import anthropic
from dotenv import load_dotenv

from perfboard.config import RetryConfig
from perfboard.providers.base import BaseProvider

logger = logging.getLogger(__name__)

# Rate limits, overload and transient server errors
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 529})


class AnthropicProvider(BaseProvider):
    """Messages API client that retries transient failures.

    Rate-limit and 5xx replies honour ``Retry-After`` when the server sends
    one and otherwise back off exponentially with jitter. Anything else, or
    the last failed attempt, propagates to the caller; the summary layer
    turns it into the fallback summary.
    """

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        temperature: float = 0.3,
        max_tokens: int = 1024,
        retry_cfg: Optional[RetryConfig] = None,
    ):
        load_dotenv()
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY not found. Copy .env.example to .env and add your key."
            )
        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.retry = retry_cfg or RetryConfig()

    def generate(self, prompt: str, system: str = "", max_tokens: int = 0) -> str:
        request = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request["system"] = system
        attempts = self.retry.max_api_retries + 1
        for attempt in range(attempts):
            try:
                message = self.client.messages.create(**request)
                return message.content[0].text
            except anthropic.APIStatusError as exc:
                if exc.status_code not in RETRYABLE_STATUS_CODES or attempt == attempts - 1:
                    raise
                wait = self.retry_after(exc)
                if wait is None:
                    wait = self.backoff(attempt)
                logger.warning(
                    "Summary request got HTTP %s, retrying in %.1fs", exc.status_code, wait
                )
            except (anthropic.APIConnectionError, anthropic.APITimeoutError):
                if attempt == attempts - 1:
                    raise
                wait = self.backoff(attempt)
                logger.warning("Summary request could not connect, retrying in %.1fs", wait)
            time.sleep(wait)
        raise ValueError(f"max_api_retries must be >= 0, got {self.retry.max_api_retries}")

    @staticmethod
    def retry_after(exc: anthropic.APIStatusError) -> Optional[float]:
        """Seconds from the ``Retry-After`` header, if present and numeric."""
        response = getattr(exc, "response", None)
        value = response.headers.get("retry-after") if response is not None else None
        try:
            return max(0.0, float(value)) if value else None
        except ValueError:
            return None

    def backoff(self, attempt: int) -> float:
        delay = self.retry.backoff_base_seconds * (2 ** attempt) + random.uniform(0.0, 1.0)
        return min(delay, self.retry.backoff_max_seconds)
