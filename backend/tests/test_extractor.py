from __future__ import annotations

import pytest

from spendwise.classifier.errors import ExtractionError, ParseError
from spendwise.classifier.extractor import (
    extract_text,
    parse_balanced_lines,
    parse_direct,
    parse_first_brace_pair,
    parse_json_from_text,
    parse_provider_response,
    parse_repaired,
)

ANSWER = {"type": "expense", "categoryId": "food", "confidence": 85, "description": "咖啡"}


def test_clean_json_parses_directly():
    text = '{"type": "expense", "categoryId": "food", "confidence": 85, "description": "咖啡"}'
    assert parse_json_from_text(text) == ANSWER


def test_fenced_block_with_trailing_prose():
    text = (
        "Here is the result:\n```json\n"
        '{"type":"expense","categoryId":"food","confidence":85,"description":"咖啡"}\n'
        "```\nLet me know if you need more."
    )
    assert parse_json_from_text(text) == ANSWER


def test_fence_without_language_tag():
    text = '```\n{"a": 1}\n```'
    assert parse_json_from_text(text) == {"a": 1}


def test_object_embedded_in_prose():
    text = 'Sure! {"type": "income", "confidence": 60} hope that helps'
    assert parse_json_from_text(text) == {"type": "income", "confidence": 60}


def test_first_brace_pair_expands_over_nested_objects():
    text = 'x {"outer": {"inner": 1}, "n": 2} y'
    assert parse_first_brace_pair(text) == {"outer": {"inner": 1}, "n": 2}


def test_balanced_lines_finds_multiline_block():
    text = 'intro line\n{\n  "a": 1,\n  "b": {"c": 2}\n}\noutro'
    assert parse_balanced_lines(text) == {"a": 1, "b": {"c": 2}}


def test_trailing_comma_is_repaired():
    text = '{"type":"expense","categoryId":"food","confidence":85,"description":"咖啡",}'
    assert parse_json_from_text(text) == ANSWER


def test_single_quotes_are_repaired():
    text = "{'type': 'income', 'confidence': 70}"
    assert parse_json_from_text(text) == {"type": "income", "confidence": 70}


def test_unparseable_text_raises_parse_error_with_preview():
    text = "I could not decide on a category " * 20
    with pytest.raises(ParseError) as exc_info:
        parse_json_from_text(text)
    assert len(exc_info.value.preview) <= 203
    assert exc_info.value.preview.endswith("...")


def test_blank_text_raises_parse_error():
    with pytest.raises(ParseError):
        parse_json_from_text("   ")


def test_gemini_parts_are_concatenated():
    envelope = {
        "candidates": [
            {"content": {"parts": [{"text": '{"a": '}, {"text": "1}"}]}}
        ]
    }
    assert extract_text(envelope) == '{"a": 1}'


def test_openai_envelope():
    envelope = {"choices": [{"message": {"role": "assistant", "content": ' {"a": 1} '}}]}
    assert extract_text(envelope) == '{"a": 1}'


def test_anthropic_envelope():
    envelope = {"content": [{"type": "text", "text": '{"a": 1}'}], "role": "assistant"}
    assert parse_provider_response(envelope) == {"a": 1}


def test_stream_chunks_are_joined_in_order():
    chunks = [
        {"candidates": [{"content": {"parts": [{"text": '{"type": "exp'}]}}]},
        {"candidates": [{"content": {"parts": [{"text": 'ense"}'}]}}]},
    ]
    assert parse_provider_response(chunks) == {"type": "expense"}


@pytest.mark.parametrize(
    "envelope, reason",
    [
        ({}, "candidates"),
        ({"candidates": []}, "empty"),
        ({"candidates": [{}]}, "content"),
        ({"candidates": [{"content": {"parts": []}}]}, "parts"),
    ],
)
def test_malformed_envelope_names_the_missing_field(envelope, reason):
    with pytest.raises(ExtractionError, match=reason):
        extract_text(envelope)


def test_none_envelope():
    with pytest.raises(ExtractionError):
        extract_text(None)


def test_empty_text_is_an_extraction_error():
    with pytest.raises(ExtractionError, match="empty"):
        extract_text({"candidates": [{"content": {"parts": [{"text": "  "}]}}]})


def test_empty_stream():
    with pytest.raises(ExtractionError):
        extract_text([])


def test_trailing_comma_in_short_answer():
    text = '{"type": "expense", "categoryId": "food",}'
    assert parse_json_from_text(text) == {"type": "expense", "categoryId": "food"}


@pytest.mark.parametrize(
    "strategy", [parse_direct, parse_first_brace_pair, parse_balanced_lines, parse_repaired]
)
def test_strategies_agree_on_clean_json(strategy):
    text = '{"type": "expense", "categoryId": "food", "confidence": 85, "description": "咖啡"}'
    assert strategy(text) == ANSWER


def test_fenced_block_wins_over_json_in_commentary():
    text = (
        "```json\n"
        '{"type":"expense","categoryId":"food","confidence":85,"description":"咖啡"}\n'
        "```\n"
        'If this were a salary it would be {"type":"income"} instead.'
    )
    assert parse_json_from_text(text) == ANSWER
