# tests/test_response_parser.py
import pytest
from petcare.errors import UpstreamParseError
from petcare.services.response_parser import parse_model_output


def test_plain_json_object():
    assert parse_model_output('{"urgencyLevel": "low"}') == {"urgencyLevel": "low"}


def test_object_embedded_in_prose():
    raw = 'Here is the result: {"urgencyLevel": "high", "conditions": [{"name": "A"}]} Thanks!'
    assert parse_model_output(raw) == {"urgencyLevel": "high", "conditions": [{"name": "A"}]}


def test_object_inside_markdown_fence():
    raw = '```json\n{"urgencyLevel": "medium", "summary": "x"}\n```'
    assert parse_model_output(raw)["summary"] == "x"


def test_nested_braces_use_outermost_span():
    raw = 'Sure. {"a": {"b": {"c": 1}}} done'
    assert parse_model_output(raw) == {"a": {"b": {"c": 1}}}


@pytest.mark.parametrize("raw", [
    "The dog seems unwell, please see a vet.",
    "",
    None,
    '{"urgencyLevel": "high", "conditions": [',
    "} backwards {",
    "[1, 2, 3]",
    "Result: {not json at all}",
])
def test_unparsable_output_raises(raw):
    with pytest.raises(UpstreamParseError) as exc:
        parse_model_output(raw)
    assert exc.value.raw_text == raw


def test_top_level_array_with_embedded_object_recovers_object():
    raw = '[{"urgencyLevel": "low"}]'
    assert parse_model_output(raw) == {"urgencyLevel": "low"}
