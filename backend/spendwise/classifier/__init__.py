from __future__ import annotations

from spendwise.classifier.errors import (
    ClassifierError,
    ExtractionError,
    ParseError,
    TransportError,
    ValidationError,
)
from spendwise.classifier.extractor import (
    extract_text,
    parse_json_from_text,
    parse_provider_response,
)
from spendwise.classifier.fallback import classify_with_keywords
from spendwise.classifier.prompt_builder import build_classification_prompt
from spendwise.classifier.validator import validate_classification

__all__ = [
    "ClassifierError",
    "ExtractionError",
    "ParseError",
    "TransportError",
    "ValidationError",
    "build_classification_prompt",
    "classify_with_keywords",
    "extract_text",
    "parse_json_from_text",
    "parse_provider_response",
    "validate_classification",
]
