from __future__ import annotations

import datetime as dt

from pydantic import Field

from spendwise.schemas.category import Category
from spendwise.schemas.classification import ClassificationResult
from spendwise.schemas.common import CamelModel
from spendwise.schemas.summary import TransactionRecord


class ClassifyRequest(CamelModel):
    description: str
    income_hints: list[str] = []
    expense_hints: list[str] = []
    # Caller's category list; the default taxonomy is used when omitted
    categories: list[Category] | None = None
    provider: str | None = None


class ClassifyBatchRequest(CamelModel):
    descriptions: list[str] = Field(min_length=1)
    categories: list[Category] | None = None
    mode: str = "concurrent"
    provider: str | None = None


class ClassifyBatchResponse(CamelModel):
    results: list[ClassificationResult]


class SummaryRequest(CamelModel):
    transactions: list[TransactionRecord] = []
    start_date: dt.date
    end_date: dt.date
    question: str | None = None
    categories: list[Category] | None = None
    provider: str | None = None


class QueryRequest(SummaryRequest):
    question: str = Field(min_length=1)


class ProviderInfo(CamelModel):
    name: str
    model: str
    configured: bool
    default: bool = False
