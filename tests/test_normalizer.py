import pytest

from examprep.errors import SchemaViolation
from examprep.pipeline.normalizer import (
	clean_options,
	normalize_items,
	normalize_question_set,
	parse_candidate,
	resolve_candidate,
	resolve_correct_answer,
)

OPTIONS = ["London", "Paris", "Berlin", "Madrid"]


def test_numeric_string_is_an_index():
	assert resolve_correct_answer("2", OPTIONS) == "Berlin"


def test_integer_is_an_index():
	assert resolve_correct_answer(0, OPTIONS) == "London"


def test_text_match_ignores_case_and_whitespace():
	assert resolve_correct_answer(" paris ", OPTIONS) == "Paris"
	assert resolve_correct_answer(" Paris ", OPTIONS) == "Paris"


def test_out_of_range_index_falls_back_to_text_match():
	assert resolve_correct_answer("7", OPTIONS) is None
	assert resolve_correct_answer("1989", ["1066", "1492", "1776", "1989"]) == "1989"


def test_long_digit_string_is_matched_as_text():
	assert resolve_correct_answer("1" * 5000, OPTIONS) is None
	digits = "7" * 40
	assert resolve_correct_answer(digits, ["1", "2", digits, "4"]) == digits


def test_unmatched_text_is_unresolved():
	assert resolve_correct_answer("Rome", OPTIONS) is None
	assert resolve_correct_answer(None, OPTIONS) is None


def test_parse_candidate_accepts_alternate_keys():
	cand = parse_candidate({"questionText": "Capital?", "options": OPTIONS, "correctAnswer": 1.0})
	assert cand.question_text == "Capital?"
	assert cand.correct_ref == 1


def test_parse_candidate_ignores_boolean_answer():
	assert parse_candidate({"question": "Q", "options": OPTIONS, "correct_answer": True}).correct_ref is None


def test_parse_candidate_of_non_dict_is_empty():
	cand = parse_candidate("just a string")
	assert cand.question_text is None and cand.options is None


def test_clean_options_coerces_and_dedupes():
	assert clean_options(["  a ", "A", 3, None, "", "b  c", {"x": 1}]) == ["a", "3", "b c"]


def test_resolve_candidate_defaults_tags(gen_request):
	draft, reason = resolve_candidate(parse_candidate({"question": "Q?", "options": OPTIONS, "answer": "Madrid"}), gen_request)
	assert reason == ""
	assert draft.correct_answer == "Madrid"
	assert draft.explanation == ""
	assert draft.topic == "Thermodynamics"
	assert draft.difficulty == "Medium"


@pytest.mark.parametrize(
	"raw, reason",
	[
		({"options": OPTIONS, "correct_answer": "Paris"}, "missing question text"),
		({"question": "Q?", "options": "London, Paris", "correct_answer": "Paris"}, "options is not an array"),
		({"question": "Q?", "options": ["only"], "correct_answer": "only"}, "only 1 usable option(s)"),
		({"question": "Q?", "options": ["a", "b", "c"], "correct_answer": "a"}, "expected 4 distinct options, got 3"),
	],
)
def test_invalid_items_are_rejected(gen_request, raw, reason):
	draft, why = resolve_candidate(parse_candidate(raw), gen_request)
	assert draft is None
	assert why == reason


def test_unresolved_answer_is_kept_but_flagged(gen_request, items):
	payload = items(5)
	payload[3]["correct_answer"] = "None of these"
	report = normalize_items(payload, gen_request)
	assert len(report.drafts) == 5
	assert report.unresolved == [3]
	assert report.drafts[3].correct_answer is None


def test_full_set_normalizes(gen_request, items):
	drafts = normalize_question_set(items(5), gen_request)
	assert [d.correct_answer for d in drafts] == [f"Option {i}-B" for i in range(5)]


def test_short_set_is_a_schema_violation(gen_request, items):
	with pytest.raises(SchemaViolation) as info:
		normalize_question_set(items(3), gen_request)
	assert info.value.stage == "normalizing"


def test_one_invalid_item_fails_whole_set(gen_request, items):
	payload = items(5)
	payload[0]["options"] = ["same", "Same", "SAME", "same "]
	with pytest.raises(SchemaViolation):
		normalize_question_set(payload, gen_request)


def test_extra_items_fail_the_set(gen_request, items):
	with pytest.raises(SchemaViolation):
		normalize_question_set(items(6), gen_request)
