import json
import sys

import pytest

from examprep.errors import ExtractionError, MalformedResponse
from examprep.pipeline.extractor import PayloadShape, extract_payload, locate_json_span, strip_code_fences


PAYLOAD = [{"question": "Q?", "options": ["a", "b", "c", "d"], "correct_answer": "a"}]


@pytest.mark.parametrize(
	"wrapped",
	[
		"```json\n{body}\n```",
		"```JSON\n{body}\n```",
		"``` json \n{body}\n```",
		"```\n{body}\n```",
		"  \n```json{body}```\n ",
	],
)
def test_fenced_array_matches_bare_array(wrapped):
	body = json.dumps(PAYLOAD)
	assert extract_payload(wrapped.format(body=body)) == extract_payload(body) == PAYLOAD


def test_prose_around_array_is_ignored():
	text = "Sure! Here are your questions:\n" + json.dumps(PAYLOAD) + "\nGood luck."
	assert extract_payload(text) == PAYLOAD


def test_strip_code_fences_leaves_plain_text():
	assert strip_code_fences("  [1, 2]  ") == "[1, 2]"


def test_no_array_raises_extraction_error():
	with pytest.raises(ExtractionError) as info:
		extract_payload("I cannot help with that.")
	assert info.value.stage == "extracting"
	assert "cannot help" in info.value.excerpt


def test_reversed_brackets_are_not_a_span():
	with pytest.raises(ExtractionError):
		locate_json_span("] nothing [", PayloadShape.ARRAY)


def test_invalid_json_is_malformed():
	with pytest.raises(MalformedResponse):
		extract_payload("[{'question': 'single quotes'}]")


def test_object_mode_extracts_object():
	text = 'Result: {"confidenceScore": 72, "progressStatus": "Stable"} done'
	assert extract_payload(text, PayloadShape.OBJECT) == {"confidenceScore": 72, "progressStatus": "Stable"}


def test_object_found_when_array_required_fails():
	with pytest.raises(ExtractionError):
		extract_payload('{"questions": "none"}', PayloadShape.ARRAY)


def test_two_objects_are_not_one_payload():
	with pytest.raises(MalformedResponse):
		extract_payload('{"a": 1}, {"b": 2}', PayloadShape.OBJECT)


def test_deeply_nested_array_is_malformed():
	text = "[" * 100000 + "]" * 100000
	with pytest.raises(MalformedResponse) as info:
		extract_payload(text)
	assert info.value.stage == "extracting"
	assert len(info.value.excerpt) < len(text)


@pytest.mark.skipif(
	not hasattr(sys, "get_int_max_str_digits") or sys.get_int_max_str_digits() == 0,
	reason="interpreter has no integer digit limit",
)
def test_oversized_integer_literal_is_malformed():
	with pytest.raises(MalformedResponse) as info:
		extract_payload("[" + "9" * 5000 + "]")
	assert info.value.stage == "extracting"
