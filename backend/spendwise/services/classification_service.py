from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import Literal

from spendwise.classifier.errors import (
    ClassificationCancelled,
    ClassifierError,
    TransportError,
)
from spendwise.classifier.extractor import parse_provider_response
from spendwise.classifier.fallback import classify_with_keywords, default_result
from spendwise.classifier.prompt_builder import (
    SYSTEM_PROMPT,
    build_classification_prompt,
)
from spendwise.classifier.validator import validate_classification
from spendwise.config import Settings
from spendwise.plugins import registry
from spendwise.plugins.base import LLMProviderPlugin, RawProviderResponse
from spendwise.schemas.category import CategoryTaxonomy
from spendwise.schemas.classification import (
    ClassificationMetadata,
    ClassificationRequest,
    ClassificationResult,
)
from spendwise.services.retry import RetryConfig, retry_with_backoff

logger = logging.getLogger(__name__)

BatchMode = Literal["concurrent", "sequential"]


class ClassificationService:
    """Classify transaction descriptions through an LLM provider.

    The service owns the provider and tuning parameters for its lifetime;
    the taxonomy is passed per call and treated as a read-only snapshot.
    Whatever goes wrong on the LLM path, callers always get a result: the
    keyword classifier answers instead and ``error_message`` says why.
    """

    def __init__(
        self,
        provider: LLMProviderPlugin | None,
        settings: Settings,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.retry_config = retry_config or RetryConfig.from_settings(settings)

    async def classify(
        self,
        request: ClassificationRequest | str,
        taxonomy: CategoryTaxonomy,
        cancel_event: asyncio.Event | None = None,
    ) -> ClassificationResult:
        started = time.perf_counter()
        request = _as_request(request)

        if request.is_empty:
            result = default_result(taxonomy, confidence=0, explanation="未提供描述")
            return self._finish(result, started, used_fallback=False, attempts=0)

        if self.provider is None or not self.provider.is_configured:
            return self._fallback(
                request, taxonomy, "No LLM provider credential configured", started, 0
            )
        if not taxonomy:
            return self._fallback(request, taxonomy, "No categories available", started, 0)

        attempts = 0

        def count_attempt(n: int) -> None:
            nonlocal attempts
            attempts = n

        prompt = build_classification_prompt(request, taxonomy)
        try:
            envelope = await self._call_provider(prompt, cancel_event, count_attempt)
            raw = parse_provider_response(envelope)
            result = validate_classification(raw, taxonomy)
        except TransportError as exc:
            logger.warning("LLM request failed after %d attempt(s): %s", attempts, exc)
            reason = f"LLM request failed: {exc}"
        except ClassifierError as exc:
            logger.info("LLM answer unusable (%s): %s", type(exc).__name__, exc)
            reason = str(exc)
        except Exception as exc:
            logger.exception("Unexpected failure while classifying with %s", self.provider.name)
            reason = f"Unexpected classification error: {exc}"
        else:
            return self._finish(result, started, used_fallback=False, attempts=attempts)

        return self._fallback(request, taxonomy, reason, started, attempts)

    async def classify_batch(
        self,
        descriptions: Sequence[ClassificationRequest | str],
        taxonomy: CategoryTaxonomy,
        mode: BatchMode = "concurrent",
    ) -> list[ClassificationResult]:
        """Classify many descriptions; result ``i`` belongs to input ``i``."""
        requests = [_as_request(d) for d in descriptions]

        if mode == "sequential":
            results: list[ClassificationResult] = []
            for i, req in enumerate(requests):
                if i and self.settings.CLASSIFY_BATCH_DELAY_SECONDS > 0:
                    await asyncio.sleep(self.settings.CLASSIFY_BATCH_DELAY_SECONDS)
                results.append(await self.classify(req, taxonomy))
            return results

        if mode != "concurrent":
            raise ValueError(f"Unknown batch mode '{mode}'")

        window = asyncio.Semaphore(max(1, self.settings.CLASSIFY_BATCH_CONCURRENCY))

        async def run(req: ClassificationRequest) -> ClassificationResult:
            async with window:
                return await self.classify(req, taxonomy)

        return list(await asyncio.gather(*(run(r) for r in requests)))

    async def _call_provider(
        self,
        prompt: str,
        cancel_event: asyncio.Event | None,
        on_attempt: Callable[[int], None],
    ) -> RawProviderResponse:
        call = retry_with_backoff(
            lambda: self.provider.generate_within(
                self.settings.LLM_TIMEOUT_SECONDS,
                prompt,
                system_prompt=SYSTEM_PROMPT,
                temperature=self.settings.LLM_TEMPERATURE,
                max_output_tokens=self.settings.LLM_MAX_OUTPUT_TOKENS,
            ),
            self.retry_config,
            on_attempt,
        )
        if cancel_event is None:
            return await call
        if cancel_event.is_set():
            call.close()
            raise ClassificationCancelled("Classification cancelled before the request")

        call_task = asyncio.ensure_future(call)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _pending = await asyncio.wait(
                {call_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (call_task, cancel_task):
                if not task.done():
                    task.cancel()

        if call_task in done:
            return call_task.result()
        # Let the cancelled request unwind before answering
        await asyncio.gather(call_task, return_exceptions=True)
        raise ClassificationCancelled("Classification cancelled by caller")

    def _fallback(
        self,
        request: ClassificationRequest,
        taxonomy: CategoryTaxonomy,
        reason: str,
        started: float,
        attempts: int,
    ) -> ClassificationResult:
        logger.info("Using keyword fallback: %s", reason)
        result = classify_with_keywords(request.description, taxonomy, reason=reason)
        return self._finish(result, started, used_fallback=True, attempts=attempts)

    def _finish(
        self,
        result: ClassificationResult,
        started: float,
        *,
        used_fallback: bool,
        attempts: int,
    ) -> ClassificationResult:
        metadata = ClassificationMetadata(
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
            used_fallback=used_fallback,
            provider=self.provider.name if self.provider else None,
            model=self.provider.model if self.provider else None,
            attempts=attempts,
        )
        return result.model_copy(update={"metadata": metadata})


def _as_request(value: ClassificationRequest | str) -> ClassificationRequest:
    if isinstance(value, ClassificationRequest):
        return value
    return ClassificationRequest(description=value)


def build_classification_service(
    settings: Settings, provider_name: str | None = None
) -> ClassificationService:
    if not registry.get_all():
        registry.discover()
    provider = registry.create(provider_name or settings.DEFAULT_AI_PROVIDER, settings)
    return ClassificationService(provider, settings)
