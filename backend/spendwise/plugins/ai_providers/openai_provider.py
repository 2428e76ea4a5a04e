from __future__ import annotations

import openai

from spendwise.classifier.errors import TransportError
from spendwise.plugins import registry
from spendwise.plugins.base import LLMProviderPlugin, RawProviderResponse


class OpenAIProvider(LLMProviderPlugin):
    name = "openai"

    @property
    def model(self) -> str:
        return self.settings.OPENAI_MODEL

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.OPENAI_API_KEY)

    def _client(self) -> openai.AsyncOpenAI:
        # Retries are handled by the classification service
        return openai.AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY, max_retries=0)

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> RawProviderResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            client = self._client()
            response = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self._temperature(temperature),
                max_tokens=self._max_tokens(max_output_tokens),
            )
        except openai.APITimeoutError as exc:
            raise TransportError("OpenAI request timed out", retryable=True) from exc
        except openai.APIConnectionError as exc:
            raise TransportError(
                f"OpenAI network error: {exc}", retryable=True
            ) from exc
        except openai.APIStatusError as exc:
            raise TransportError.from_status(exc.status_code, exc.message) from exc
        return response.model_dump()


def register_plugin() -> None:
    registry.register(OpenAIProvider)
