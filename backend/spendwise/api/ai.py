from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from spendwise.config import Settings, settings
from spendwise.default_categories import default_taxonomy
from spendwise.plugins import registry
from spendwise.schemas.ai import (
    ClassifyBatchRequest,
    ClassifyBatchResponse,
    ClassifyRequest,
    ProviderInfo,
    QueryRequest,
    SummaryRequest,
)
from spendwise.schemas.category import Category, CategoryTaxonomy
from spendwise.schemas.classification import ClassificationRequest
from spendwise.services.classification_service import build_classification_service
from spendwise.services.summary_service import build_summary_service

router = APIRouter(prefix="/ai", tags=["ai"])


def get_settings() -> Settings:
    return settings


def _taxonomy(categories: list[Category] | None) -> CategoryTaxonomy:
    if categories is None:
        return default_taxonomy()
    return CategoryTaxonomy(categories)


@router.post("/classify")
async def classify_transaction(
    body: ClassifyRequest,
    cfg: Settings = Depends(get_settings),
) -> dict:
    try:
        service = build_classification_service(cfg, body.provider)
        request = ClassificationRequest(
            description=body.description,
            income_hints=tuple(body.income_hints),
            expense_hints=tuple(body.expense_hints),
        )
        result = await service.classify(request, _taxonomy(body.categories))
        return {"data": result}
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Classification failed: {exc}")


@router.post("/classify/batch")
async def classify_transactions(
    body: ClassifyBatchRequest,
    cfg: Settings = Depends(get_settings),
) -> dict:
    try:
        service = build_classification_service(cfg, body.provider)
        results = await service.classify_batch(
            body.descriptions, _taxonomy(body.categories), mode=body.mode
        )
        return {"data": ClassifyBatchResponse(results=results)}
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Classification failed: {exc}")


@router.post("/summary")
async def summarize_finances(
    body: SummaryRequest,
    cfg: Settings = Depends(get_settings),
) -> dict:
    try:
        service = build_summary_service(cfg, body.provider)
        taxonomy = _taxonomy(body.categories)
        report = await service.analyze(
            body.transactions, body.start_date, body.end_date, body.question, taxonomy
        )
        return {"data": report}
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Summary failed: {exc}")


@router.post("/query")
async def query_finances(
    body: QueryRequest,
    cfg: Settings = Depends(get_settings),
) -> dict:
    try:
        service = build_summary_service(cfg, body.provider)
        answer = await service.ask(
            body.question,
            body.transactions,
            body.start_date,
            body.end_date,
            _taxonomy(body.categories),
        )
        return {"data": answer}
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Query failed: {exc}")


@router.get("/providers")
async def list_providers(cfg: Settings = Depends(get_settings)) -> dict:
    if not registry.get_all():
        registry.discover()
    providers = []
    for name in sorted(registry.get_all()):
        provider = registry.create(name, cfg)
        providers.append(
            ProviderInfo(
                name=name,
                model=provider.model,
                configured=provider.is_configured,
                default=name == cfg.DEFAULT_AI_PROVIDER,
            )
        )
    return {"data": providers}
