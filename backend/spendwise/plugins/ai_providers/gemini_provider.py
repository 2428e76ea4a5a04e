from __future__ import annotations

import logging
from typing import Any

import httpx

from spendwise.classifier.errors import TransportError
from spendwise.config import Settings
from spendwise.plugins import registry
from spendwise.plugins.base import LLMProviderPlugin, RawProviderResponse

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProviderPlugin):
    """Google Gemini over its REST API.

    With ``stream=True`` the ``streamGenerateContent`` endpoint is used; it
    answers with a JSON array of partial envelopes which the extractor
    stitches back together.
    """

    name = "gemini"

    def __init__(
        self,
        settings: Settings,
        *,
        stream: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(settings)
        self._stream = settings.GEMINI_USE_STREAM if stream is None else stream
        self._transport = transport

    @property
    def model(self) -> str:
        return self.settings.GEMINI_MODEL

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.GEMINI_API_KEY)

    def _url(self) -> str:
        method = "streamGenerateContent" if self._stream else "generateContent"
        base = self.settings.GEMINI_BASE_URL.rstrip("/")
        return f"{base}/models/{self.model}:{method}"

    def _client(self) -> httpx.AsyncClient:
        # The service enforces its own deadline; this is only a backstop
        timeout = httpx.Timeout(self.settings.LLM_TIMEOUT_SECONDS * 2, connect=5.0)
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> RawProviderResponse:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature(temperature),
                "maxOutputTokens": self._max_tokens(max_output_tokens),
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        logger.debug("Gemini request to %s (%d prompt chars)", self._url(), len(prompt))
        try:
            async with self._client() as client:
                response = await client.post(
                    self._url(),
                    json=payload,
                    headers={"x-goog-api-key": self.settings.GEMINI_API_KEY},
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:200]
            raise TransportError.from_status(exc.response.status_code, detail) from exc
        except httpx.TimeoutException as exc:
            raise TransportError("Gemini request timed out", retryable=True) from exc
        except httpx.TransportError as exc:
            raise TransportError(
                f"Gemini network error: {exc!r}", retryable=True
            ) from exc
        except ValueError as exc:
            raise TransportError(f"Gemini returned invalid JSON: {exc}") from exc


def register_plugin() -> None:
    registry.register(GeminiProvider)
