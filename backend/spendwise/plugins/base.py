from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from spendwise.classifier.errors import TransportError
from spendwise.config import Settings

# Provider envelope as returned by the vendor, before any text extraction
RawProviderResponse = dict[str, Any] | list[Any]


class LLMProviderPlugin(ABC):
    name: str = ""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent with every request."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when a credential for this provider is available."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> RawProviderResponse:
        """Send one prompt and return the provider's raw response envelope.

        Raises ``TransportError`` for HTTP, timeout and network failures.
        """

    def _temperature(self, value: float | None) -> float:
        return self.settings.LLM_TEMPERATURE if value is None else value

    def _max_tokens(self, value: int | None) -> int:
        return self.settings.LLM_MAX_OUTPUT_TOKENS if value is None else value

    async def generate_within(
        self, timeout: float, prompt: str, **kwargs: Any
    ) -> RawProviderResponse:
        """``generate`` raced against a deadline.

        Missing the deadline is reported as a retryable ``TransportError``,
        the same way a network timeout is.
        """
        try:
            return await asyncio.wait_for(self.generate(prompt, **kwargs), timeout=timeout)
        except TimeoutError as exc:
            raise TransportError(
                f"{self.name} gave no response within {timeout:g}s", retryable=True
            ) from exc
