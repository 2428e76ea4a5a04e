from __future__ import annotations

import json
import logging
import math
from typing import Any

from spendwise.classifier.errors import ValidationError
from spendwise.schemas.category import CategoryTaxonomy
from spendwise.schemas.classification import (
    MAX_CATEGORY_IDS,
    ClassificationResult,
)
from spendwise.schemas.common import DIRECTIONS

logger = logging.getLogger(__name__)


def coerce_number(value: Any) -> Any:
    """Turn numeric-looking strings into floats; leave anything else alone.

    Models often answer ``"85"`` where ``85`` was asked for. A value that
    does not parse is returned unchanged so the range check rejects it.
    """
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return value
    return value


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    # Python ints are exact; only floats can be inf or nan
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def round_half_up(value: float) -> int:
    if isinstance(value, int):
        return value
    return int(math.floor(value + 0.5))


def _first_present(raw: dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if raw.get(k) is not None:
            return raw[k]
    return None


def resolve_category_ids(
    raw: dict[str, Any], direction: str | None, taxonomy: CategoryTaxonomy
) -> list[str]:
    """Resolve up to three category ids valid for ``direction``.

    The plural list is authoritative: duplicates and ids outside the
    direction are dropped, order is kept. The singular field is only used
    when nothing in the list survives.
    """
    resolved: list[str] = []
    plural = _first_present(raw, "categoryIds", "category_ids")
    if isinstance(plural, list):
        for cid in plural:
            if cid in resolved:
                continue
            if direction is not None and taxonomy.contains(cid, direction):
                resolved.append(cid)
            if len(resolved) == MAX_CATEGORY_IDS:
                break

    if not resolved:
        single = _first_present(raw, "categoryId", "category_id")
        if direction is not None and taxonomy.contains(single, direction):
            resolved.append(single)
    return resolved


def validate_classification(
    raw: Any, taxonomy: CategoryTaxonomy
) -> ClassificationResult:
    """Check a parsed model answer and build the canonical result.

    Every rule is evaluated before failing so that the raised
    ``ValidationError`` lists all of them.
    """
    payload = json.dumps(raw, ensure_ascii=False, default=str)
    if not isinstance(raw, dict):
        raise ValidationError(
            [f"payload must be a JSON object, got {type(raw).__name__}"], payload
        )

    violations: list[str] = []

    direction = raw.get("type")
    if direction not in DIRECTIONS:
        violations.append(f"type must be 'income' or 'expense', got {direction!r}")
        direction = None

    category_ids = resolve_category_ids(raw, direction, taxonomy)
    if not category_ids:
        violations.append("category id invalid for the predicted type")

    confidence = coerce_number(raw.get("confidence"))
    if not is_number(confidence) or not 0 <= confidence <= 100:
        violations.append(
            f"confidence must be a number in [0, 100], got {raw.get('confidence')!r}"
        )

    description = raw.get("description")
    if not isinstance(description, str) or not description.strip():
        violations.append("description must be a non-empty string")

    if violations:
        logger.info("Classification rejected: %s", "; ".join(violations))
        raise ValidationError(violations, payload)

    confidences = None
    raw_confidences = raw.get("confidences")
    if isinstance(raw_confidences, list):
        numbers = [coerce_number(c) for c in raw_confidences]
        confidences = tuple(
            round_half_up(c) for c in numbers if is_number(c)
        )[: len(category_ids)] or None

    explanation = raw.get("explanation")
    return ClassificationResult(
        type=direction,
        category_id=category_ids[0],
        category_ids=tuple(category_ids),
        confidence=round_half_up(confidence),
        description=description.strip(),
        explanation=explanation.strip() if isinstance(explanation, str) else "",
        confidences=confidences,
    )
