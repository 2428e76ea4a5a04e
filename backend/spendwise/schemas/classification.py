from __future__ import annotations

import re

from pydantic import ConfigDict, Field, field_validator, model_validator

from spendwise.schemas.common import CamelModel, Direction

MAX_DESCRIPTION_LENGTH = 200
MAX_CATEGORY_IDS = 3

_WHITESPACE = re.compile(r"\s+")


def normalize_description(text: str | None) -> str:
    """Collapse whitespace, trim and cap at MAX_DESCRIPTION_LENGTH characters."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()[:MAX_DESCRIPTION_LENGTH]


class _FrozenCamelModel(CamelModel):
    model_config = ConfigDict(frozen=True)


class ClassificationRequest(_FrozenCamelModel):
    description: str = ""
    # Optional candidate category ids the caller considers likely
    income_hints: tuple[str, ...] = ()
    expense_hints: tuple[str, ...] = ()

    @field_validator("description", mode="before")
    @classmethod
    def _normalize(cls, v: object) -> str:
        return normalize_description(v if isinstance(v, str) else None)

    @property
    def is_empty(self) -> bool:
        return not self.description


class ClassificationMetadata(_FrozenCamelModel):
    processing_time_ms: float = 0.0
    used_fallback: bool = False
    provider: str | None = None
    model: str | None = None
    attempts: int = 0


class ClassificationResult(_FrozenCamelModel):
    type: Direction
    category_id: str
    category_ids: tuple[str, ...] = Field(min_length=1, max_length=MAX_CATEGORY_IDS)
    confidence: int = Field(ge=0, le=100)
    description: str = ""
    explanation: str = ""
    confidences: tuple[int, ...] | None = None
    error_message: str | None = None
    metadata: ClassificationMetadata | None = None

    @model_validator(mode="after")
    def _primary_matches_list(self) -> ClassificationResult:
        if self.category_ids[0] != self.category_id:
            raise ValueError("category_id must equal category_ids[0]")
        return self

    @property
    def used_fallback(self) -> bool:
        return self.error_message is not None
