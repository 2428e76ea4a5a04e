from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from spendwise.api.ai import get_settings
from spendwise.config import Settings
from spendwise.main import app
from spendwise.plugins.base import LLMProviderPlugin, RawProviderResponse
from spendwise.schemas.category import Category, CategoryTaxonomy


class FakeProvider(LLMProviderPlugin):
    name = "fake"

    def __init__(self, settings: Settings, configured: bool = True):
        super().__init__(settings)
        self._configured = configured
        self.generate = AsyncMock()

    @property
    def model(self) -> str:
        return "fake-model"

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def generate(self, prompt: str, **kwargs: Any) -> RawProviderResponse:
        raise NotImplementedError


def gemini_envelope(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture()
def settings() -> Settings:
    """Settings with a credential and no backoff delays."""
    return Settings(
        _env_file=None,
        GEMINI_API_KEY="test-key",
        OPENAI_API_KEY="",
        ANTHROPIC_API_KEY="",
        LLM_BACKOFF_BASE_SECONDS=0,
        LLM_BACKOFF_MAX_SECONDS=0,
        CLASSIFY_BATCH_DELAY_SECONDS=0,
    )


@pytest.fixture()
def offline_settings() -> Settings:
    return Settings(
        _env_file=None,
        GEMINI_API_KEY="",
        OPENAI_API_KEY="",
        ANTHROPIC_API_KEY="",
        CLASSIFY_BATCH_DELAY_SECONDS=0,
    )


@pytest.fixture()
def taxonomy() -> CategoryTaxonomy:
    return CategoryTaxonomy(
        [
            Category(id="food", name="飲食", direction="expense"),
            Category(id="transport", name="交通", direction="expense"),
            Category(id="shopping", name="購物", direction="expense"),
            Category(id="entertainment", name="娛樂", direction="expense"),
            Category(id="salary", name="薪資", direction="income"),
            Category(id="bonus", name="獎金", direction="income"),
        ]
    )


@pytest.fixture()
def fake_provider(settings: Settings) -> FakeProvider:
    return FakeProvider(settings)


@pytest.fixture()
def envelope() -> Callable[[Any], dict]:
    """Wrap a JSON-able answer (or raw text) in a Gemini envelope."""

    def _make(answer: Any) -> dict:
        text = answer if isinstance(answer, str) else json.dumps(answer, ensure_ascii=False)
        return gemini_envelope(text)

    return _make


@pytest.fixture()
async def client(offline_settings: Settings) -> AsyncGenerator[httpx.AsyncClient]:
    app.dependency_overrides[get_settings] = lambda: offline_settings

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
