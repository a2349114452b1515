import pytest

from app.core.exceptions import InvalidModelResponse
from app.integrations.openai.json_extraction import (
    extract_json_object,
    find_object_span,
    strip_wrappers,
)


def test_plain_json():
    assert extract_json_object('{"clusters": []}') == {"clusters": []}


def test_code_fenced_json():
    text = '```json\n{"clusters": [{"theme": "ads"}]}\n```'
    assert extract_json_object(text) == {"clusters": [{"theme": "ads"}]}


def test_json_wrapped_in_prose():
    text = 'Sure! Here is the analysis:\n{"insights": [], "recommendations": []}\nHope it helps {really}.'
    assert extract_json_object(text) == {"insights": [], "recommendations": []}


def test_braces_inside_strings_do_not_end_the_object():
    text = 'prefix {"summary": "users want {dark mode} and \\"fast\\" sync", "n": 1} suffix'
    assert extract_json_object(text) == {
        "summary": 'users want {dark mode} and "fast" sync',
        "n": 1,
    }


def test_strip_wrappers_removes_fences_only():
    assert strip_wrappers("```\n{}\n```") == "{}"
    assert strip_wrappers("  {} ") == "{}"


def test_unclosed_object_has_no_span():
    assert find_object_span('{"a": 1') is None
    assert find_object_span("no json here") is None


def test_garbage_raises_invalid_model_response():
    with pytest.raises(InvalidModelResponse):
        extract_json_object("I could not analyze these reviews.")


def test_top_level_array_is_rejected():
    with pytest.raises(InvalidModelResponse):
        extract_json_object("[1, 2, 3]")
