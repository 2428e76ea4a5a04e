"""Pull a JSON payload out of an LLM provider response.

Providers wrap the model text in an envelope whose shape depends on the
vendor, and models themselves wrap JSON in prose, markdown fences or
trailing commentary. Extraction therefore runs in two steps: navigate the
envelope to a text payload, then try a fixed list of JSON strategies from
strictest to most forgiving and keep the first one that works.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from spendwise.classifier.errors import ExtractionError, ParseError

logger = logging.getLogger(__name__)


# -- Envelope navigation -----------------------------------------------------


@dataclass(frozen=True)
class Found:
    value: Any


@dataclass(frozen=True)
class Missing:
    reason: str


Step = Callable[[Any], "Found | Missing"]


def key(name: str) -> Step:
    def step(node: Any) -> Found | Missing:
        if isinstance(node, dict) and node.get(name) is not None:
            return Found(node[name])
        return Missing(f"missing '{name}'")

    return step


def non_empty_list(label: str) -> Step:
    def step(node: Any) -> Found | Missing:
        if isinstance(node, list) and node:
            return Found(node)
        if isinstance(node, list):
            return Missing(f"'{label}' is empty")
        return Missing(f"'{label}' is not a list")

    return step


def first(label: str) -> Step:
    def step(node: Any) -> Found | Missing:
        if isinstance(node, list) and node and node[0] is not None:
            return Found(node[0])
        return Missing(f"missing first {label}")

    return step


def joined_text(node: Any) -> Found | Missing:
    """Concatenate the ``text`` of every fragment, in order, no separator."""
    if isinstance(node, str):
        return Found(node)
    if not isinstance(node, list):
        return Missing("text fragments are not a list")
    pieces = []
    for part in node:
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            pieces.append(part["text"])
    return Found("".join(pieces))


def walk(node: Any, steps: Sequence[Step]) -> Found | Missing:
    current: Found | Missing = Found(node)
    for step in steps:
        if isinstance(current, Missing):
            break
        current = step(current.value)
    return current


# candidates[0].content.parts[*].text
GEMINI_PATH: tuple[Step, ...] = (
    key("candidates"),
    non_empty_list("candidates"),
    first("candidate"),
    key("content"),
    key("parts"),
    non_empty_list("parts"),
    joined_text,
)

# choices[0].message.content
OPENAI_PATH: tuple[Step, ...] = (
    key("choices"),
    non_empty_list("choices"),
    first("choice"),
    key("message"),
    key("content"),
    joined_text,
)

# content[*].text
ANTHROPIC_PATH: tuple[Step, ...] = (
    key("content"),
    non_empty_list("content"),
    joined_text,
)


def _envelope_text(envelope: dict[str, Any]) -> Found | Missing:
    if "candidates" in envelope:
        return walk(envelope, GEMINI_PATH)
    if "choices" in envelope:
        return walk(envelope, OPENAI_PATH)
    if isinstance(envelope.get("content"), list):
        return walk(envelope, ANTHROPIC_PATH)
    return Missing("missing 'candidates'")


def extract_text(envelope: Any) -> str:
    """Return the trimmed text payload carried by a provider envelope.

    A list envelope is a streamed response: the text of every chunk is
    concatenated in order.
    """
    if envelope is None:
        raise ExtractionError("Provider response is empty")

    if isinstance(envelope, list):
        if not envelope:
            raise ExtractionError("Provider stream contained no chunks")
        pieces = []
        for chunk in envelope:
            found = _envelope_text(chunk) if isinstance(chunk, dict) else None
            if isinstance(found, Found):
                pieces.append(found.value)
        text = "".join(pieces).strip()
    elif isinstance(envelope, dict):
        found = _envelope_text(envelope)
        if isinstance(found, Missing):
            logger.debug("Unrecognised envelope: %s", json.dumps(envelope, default=str)[:500])
            raise ExtractionError(f"Invalid response structure: {found.reason}")
        text = found.value.strip()
    else:
        raise ExtractionError(
            f"Invalid response structure: unexpected {type(envelope).__name__}"
        )

    if not text:
        raise ExtractionError("Provider response text is empty")
    return text


# -- JSON strategies ---------------------------------------------------------


class _NoCandidate(ValueError):
    """The strategy found nothing it could try to parse."""


_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_SPACES = re.compile(r"\s+")


def parse_direct(text: str) -> Any:
    return json.loads(text)


def parse_fenced_block(text: str) -> Any:
    match = _FENCE.search(text)
    if match is None:
        raise _NoCandidate("no fenced block")
    return json.loads(match.group(1).strip())


def parse_first_brace_pair(text: str) -> Any:
    """Shortest ``{...}`` from the first ``{`` that parses, else first-to-last."""
    start = text.find("{")
    if start == -1:
        raise _NoCandidate("no opening brace")
    end = text.find("}", start)
    while end != -1:
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            end = text.find("}", end + 1)
    last = text.rfind("}")
    if last <= start:
        raise _NoCandidate("no closing brace")
    return json.loads(text[start : last + 1])


def parse_balanced_lines(text: str) -> Any:
    """Scan line by line for the first top-level balanced ``{...}`` block."""
    lines = text.split("\n")
    start_line = -1
    depth = 0
    for i, line in enumerate(lines):
        if start_line == -1:
            if "{" not in line:
                continue
            start_line = i
        depth += line.count("{") - line.count("}")
        if depth <= 0:
            block = "\n".join(lines[start_line : i + 1])
            begin = block.find("{")
            finish = block.rfind("}")
            if finish <= begin:
                raise _NoCandidate("unbalanced block")
            return json.loads(block[begin : finish + 1])
    raise _NoCandidate("no balanced block")


def parse_repaired(text: str) -> Any:
    """Cut to the outermost brackets, patch common defects and parse."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise _NoCandidate("no opening bracket")
    start = min(starts)
    end = max(text.rfind("}"), text.rfind("]"))
    if end <= start:
        raise _NoCandidate("no closing bracket")

    fixed = text[start : end + 1]
    fixed = _TRAILING_COMMA.sub(r"\1", fixed)
    fixed = fixed.replace("'", '"')
    fixed = fixed.replace("\n", " ").replace("\t", " ")
    fixed = _SPACES.sub(" ", fixed)
    return json.loads(fixed)


STRATEGIES: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("direct", parse_direct),
    ("fenced", parse_fenced_block),
    ("brace_pair", parse_first_brace_pair),
    ("balanced_lines", parse_balanced_lines),
    ("repaired", parse_repaired),
)


def parse_json_from_text(text: str) -> Any:
    """Return the first JSON value any strategy can recover from ``text``."""
    if not isinstance(text, str) or not text.strip():
        raise ParseError(text if isinstance(text, str) else "")

    clean = text.strip()
    for name, strategy in STRATEGIES:
        try:
            value = strategy(clean)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError too
            logger.debug("JSON strategy %s failed: %s", name, exc)
            continue
        logger.debug("JSON strategy %s succeeded", name)
        return value

    logger.warning("All JSON strategies failed for text of length %d", len(clean))
    raise ParseError(clean)


def parse_provider_response(envelope: Any) -> Any:
    return parse_json_from_text(extract_text(envelope))
