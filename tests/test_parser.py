"""Tests for auditai.parser: recovering JSON objects from raw model output."""

import pytest

from auditai.parser import ModelOutputError, extract_json_object, parse_model_output, strip_code_fences


def test_plain_json():
    assert parse_model_output('{"findings": []}') == {"findings": []}


def test_fenced_json_block():
    raw = 'Here you go:\n```json\n{"findings": [], "summary": {"file": "a.ts"}}\n```\nThanks.'
    assert parse_model_output(raw)["summary"]["file"] == "a.ts"


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_prose_around_object():
    raw = 'Analysis complete. {"findings": [{"id": "XSS"}]} Let me know.'
    assert extract_json_object(raw) == {"findings": [{"id": "XSS"}]}


def test_trailing_commas_removed():
    raw = 'Noise {"a": "}", "b": [1,2,],} tail'
    assert extract_json_object(raw) == {"a": "}", "b": [1, 2]}


def test_top_level_array_is_not_an_object():
    assert extract_json_object("[1, 2, 3]") is None


def test_empty_output():
    assert extract_json_object("") is None
    assert extract_json_object("   ") is None


def test_invalid_output_raises():
    with pytest.raises(ModelOutputError) as exc:
        parse_model_output("I could not find any vulnerabilities.")
    assert exc.value.raw == "I could not find any vulnerabilities."
    assert "valid JSON" in str(exc.value)
