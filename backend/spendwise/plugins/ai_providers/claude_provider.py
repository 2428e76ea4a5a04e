from __future__ import annotations

import anthropic

from spendwise.classifier.errors import TransportError
from spendwise.plugins import registry
from spendwise.plugins.base import LLMProviderPlugin, RawProviderResponse


class ClaudeProvider(LLMProviderPlugin):
    name = "claude"

    @property
    def model(self) -> str:
        return self.settings.ANTHROPIC_MODEL

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.ANTHROPIC_API_KEY)

    def _client(self) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=self.settings.ANTHROPIC_API_KEY, max_retries=0
        )

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> RawProviderResponse:
        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            client = self._client()
            message = await client.messages.create(
                model=self.model,
                max_tokens=self._max_tokens(max_output_tokens),
                temperature=self._temperature(temperature),
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except anthropic.APITimeoutError as exc:
            raise TransportError("Claude request timed out", retryable=True) from exc
        except anthropic.APIConnectionError as exc:
            raise TransportError(
                f"Claude network error: {exc}", retryable=True
            ) from exc
        except anthropic.APIStatusError as exc:
            raise TransportError.from_status(exc.status_code, exc.message) from exc
        return message.model_dump()


def register_plugin() -> None:
    registry.register(ClaudeProvider)
