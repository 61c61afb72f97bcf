from __future__ import annotations

import pytest

from aptis_scoring.response_parser import (
	JsonStrategy,
	RegexStrategy,
	ResponseParser,
	clean_response,
	looks_like_scorable,
	repair_truncated_json,
)


@pytest.fixture
def parser() -> ResponseParser:
	return ResponseParser()


def test_clean_json_with_fences_and_prose(parser) -> None:
	raw = 'Here you go:\n```json\n{"cefr_level": "C2", "comment": "Superb", "suggestions": "Keep it up"}\n```\nThanks!'
	result = parser.parse(raw, 6, "SPEAKING_DISCUSSION")
	assert result.parse_error is None
	assert result.score == 6.0
	assert result.cefr_level == "C2"
	assert result.comment == "Superb"
	assert result.suggestions == "Keep it up"
	assert result.strengths == "N/A"
	assert "```" not in result.raw_response


def test_c2_on_six_point_scale_without_task_type(parser) -> None:
	result = parser.parse('{"cefr_level": "C2", "comment": "x"}', 6, "UNMAPPED")
	assert result.score == 6.0


def test_repaired_truncation_is_not_degraded(parser) -> None:
	result = parser.parse('{"cefr_level": "A2.2", "comment": "ok"', 5, "SPEAKING_INTRO")
	assert result.parse_error is None
	assert result.cefr_level == "A2.2"
	assert result.comment == "ok"
	assert result.score == 4.0


def test_truncation_inside_string_falls_back_to_regex(parser) -> None:
	complete = parser.parse('{"cefr_level": "B1.2", "comment": "Good response overall"}', 6, "SPEAKING_DISCUSSION")
	truncated = parser.parse('{"cefr_level": "B1.2", "comment": "Good resp', 6, "SPEAKING_DISCUSSION")
	assert truncated.cefr_level == "B1.2"
	assert truncated.parse_error is not None
	assert truncated.score == complete.score
	assert truncated.comment == "Good resp"


def test_free_text_below_a2(parser) -> None:
	result = parser.parse("The candidate performs below A2 level throughout.", 6, "SPEAKING_DISCUSSION")
	assert result.score == 0.0
	assert "A2" in result.cefr_level
	assert result.parse_error is not None


def test_free_text_a1_a2_band(parser) -> None:
	result = parser.parse("Overall this sits at A1/A2.", 6, "SPEAKING_DISCUSSION")
	assert result.cefr_level == "A1/A2"
	assert result.score == 0.0


def test_empty_text_gets_default_mid_scale(parser) -> None:
	for raw in ("", "   ", None):
		result = parser.parse(raw, 5, "SPEAKING_INTRO")
		assert result.score == 2.5
		assert result.cefr_level
		assert result.parse_error is not None
		assert result.comment == "No comment provided"


def test_garbage_without_label_gets_default(parser) -> None:
	result = parser.parse("I cannot help with that.", 10, None)
	assert result.score == 5.0
	assert result.cefr_level == "B1"
	assert result.parse_error is not None


def test_regex_handles_single_quotes_and_arrays(parser) -> None:
	raw = "{'cefr_level': 'B2.1', 'comment': 'Clear', \"suggestions\": [\"Use linkers\", \"Vary tenses\"], oops"
	result = parser.parse(raw, 6, "SPEAKING_DISCUSSION")
	assert result.parse_error is not None
	assert result.cefr_level == "B2.1"
	assert result.score == 3.0
	assert result.comment == "Clear"
	assert result.suggestions == "Use linkers\nVary tenses"


def test_list_suggestions_in_json_are_joined(parser) -> None:
	raw = '{"cefr_level": "B1", "comment": "Fine", "suggestions": ["One", "Two"]}'
	result = parser.parse(raw, 5, "WRITING_ESSAY")
	assert result.suggestions == "One\nTwo"


def test_field_aliases(parser) -> None:
	raw = '{"cefrLevel": "B1.1", "feedback": "Decent", "recommendations": "Practise"}'
	result = parser.parse(raw, 5, "SPEAKING_DESCRIPTION")
	assert result.cefr_level == "B1.1"
	assert result.comment == "Decent"
	assert result.suggestions == "Practise"
	assert result.score == 3.0


def test_generic_task_uses_model_score_clamped(parser) -> None:
	result = parser.parse('{"score": 12, "cefr_level": "B2", "comment": "x"}', 10, "LISTENING_SUMMARY")
	assert result.score == 10.0
	result = parser.parse('{"score": -2, "cefr_level": "B2", "comment": "x"}', 10, "LISTENING_SUMMARY")
	assert result.score == 0.0
	result = parser.parse('{"score": "7.5", "cefr_level": "B2", "comment": "x"}', 10, "LISTENING_SUMMARY")
	assert result.score == 7.5


def test_rubric_task_prefers_band_over_model_score(parser) -> None:
	result = parser.parse('{"score": 1, "cefr_level": "A2.2", "comment": "x"}', 5, "WRITING_FORM")
	assert result.score == 4.0


def test_rubric_task_off_scale_label_uses_converter(parser) -> None:
	# C1 is not a Part 1 band; the A2-target mapping gives 5
	result = parser.parse('{"cefr_level": "C1", "comment": "x"}', 5, "SPEAKING_INTRO")
	assert result.score == 5.0


def test_json_without_label_is_flagged(parser) -> None:
	result = parser.parse('{"comment": "no level here", "score": 3}', 10, "LISTENING_SUMMARY")
	assert result.parse_error is not None
	assert result.cefr_level == "B1"
	assert result.score == 3.0


def test_non_object_json_falls_back(parser) -> None:
	result = parser.parse("[1, 2, 3]", 5, None)
	assert result.parse_error is not None
	assert 0 <= result.score <= 5


def test_parser_never_throws_on_odd_input(parser) -> None:
	samples = [
		"{", "}", "{}", "{{{{", '{"cefr_level": }', '{"cefr_level": null, "comment": null}',
		'{"score": NaN, "cefr_level": "B1"}', "\x00\x01", "```", "```json```", '"cefr_level": "C2"',
		"{" * 500, '{"score": 1e999, "cefr_level": "B1"}',
	]
	for raw in samples:
		result = parser.parse(raw, 5, "SPEAKING_INTRO")
		assert 0 <= result.score <= 5
		assert result.cefr_level


def test_repair_truncated_json() -> None:
	assert repair_truncated_json('{"a": "b"') == '{"a": "b"\n}'
	assert repair_truncated_json('{"a": 1, "b": 2,') == '{"a": 1, "b": 2\n}'
	assert repair_truncated_json('{"a": 1,}') == '{"a": 1}'
	assert repair_truncated_json("{") is None


def test_regex_does_not_read_score_from_longer_keys(parser) -> None:
	raw = "{'pronunciation_score': 90, 'cefr_level': 'B1', 'comment': 'ok'}"
	extraction = RegexStrategy().extract(raw)
	assert "score" not in extraction.fields
	# No model score, so the label is converted: B1 is 3 on the default scale
	result = parser.parse(raw, 10, "LISTENING_SUMMARY")
	assert result.parse_error is not None
	assert result.score == 3.0


def test_strategies_share_interface() -> None:
	assert JsonStrategy().extract("no braces") is None
	extraction = RegexStrategy().extract("level: B2 maybe")
	assert extraction is not None
	assert extraction.degraded


def test_clean_response() -> None:
	assert clean_response('```json\n{"a": 1}\n```') == '{"a": 1}'
	assert clean_response(None) == ""


def test_looks_like_scorable() -> None:
	assert looks_like_scorable('{"cefr_level": "B1", "comment": "ok"}')
	assert not looks_like_scorable('{"cefr_level": "B1"}')
	assert not looks_like_scorable("cefr_level comment")
	assert not looks_like_scorable(None)
