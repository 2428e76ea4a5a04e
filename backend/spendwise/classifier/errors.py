"""Failure signals raised inside the classification pipeline.

Extraction, parse and validation failures are always recoverable: the
classification service absorbs them and answers with the keyword
classifier instead. ``TransportError`` is raised by the provider plugins.
"""

from __future__ import annotations

PREVIEW_LENGTH = 200


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class ClassifierError(Exception):
    """Base class for pipeline failures."""


class ExtractionError(ClassifierError):
    """The provider envelope did not yield any text."""


class ParseError(ClassifierError):
    """Text was obtained but no strategy produced valid JSON."""

    def __init__(self, text: str) -> None:
        self.preview = preview(text)
        super().__init__(f"Unable to parse JSON from model output: {self.preview}")


class ValidationError(ClassifierError):
    """Parsed JSON broke one or more business rules.

    ``violations`` lists every rule that failed, not just the first one.
    """

    def __init__(self, violations: list[str], payload: str) -> None:
        self.violations = list(violations)
        self.payload = preview(payload)
        super().__init__(
            "Invalid classification: " + "; ".join(self.violations)
        )


class ClassificationCancelled(ClassifierError):
    """The caller cancelled the in-flight provider call."""


class TransportError(ClassifierError):
    """The network call to the LLM provider failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable

    @classmethod
    def from_status(cls, status_code: int, message: str) -> TransportError:
        return cls(
            f"HTTP {status_code}: {message}",
            status_code=status_code,
            retryable=is_retryable_status(status_code),
        )


def is_retryable_status(status_code: int) -> bool:
    """429 and 5xx are transient; every other status is final."""
    return status_code == 429 or 500 <= status_code < 600
