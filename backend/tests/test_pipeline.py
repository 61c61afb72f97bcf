from __future__ import annotations

import asyncio
from typing import Dict, List

import pytest

from aptis_scoring.ai_client import AiClient, AiUnavailableError
from aptis_scoring.models import AudioAnalysis, Criterion, ScoringRequest
from aptis_scoring.pipeline import ScoringService


class RoutedModel:
	"""Answers by looking for a marker in the prompt; a marker mapped to an
	Exception raises it instead."""

	def __init__(self, routes: Dict[str, object], delay: float = 0.0) -> None:
		self.routes = routes
		self.delay = delay
		self.calls = 0
		self.active = 0
		self.peak = 0

	async def __call__(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
		self.calls += 1
		self.active += 1
		self.peak = max(self.peak, self.active)
		try:
			if self.delay:
				await asyncio.sleep(self.delay)
			for marker, outcome in self.routes.items():
				if marker in prompt:
					if isinstance(outcome, Exception):
						raise outcome
					return outcome  # type: ignore[return-value]
			raise AssertionError("no route for prompt")
		finally:
			self.active -= 1


async def no_sleep(seconds: float) -> None:
	return None


def make_service(model: RoutedModel, **kwargs) -> ScoringService:
	client = AiClient(model, max_retries=2, retry_delay=0.0, sleep=no_sleep)
	return ScoringService(client, **kwargs)


def request(answer: str, code: str = "SPEAKING_DISCUSSION", max_score: float = 6, **kwargs) -> ScoringRequest:
	criteria = kwargs.pop("criteria", [Criterion(name="Overall")])
	return ScoringRequest(
		question_id=answer,
		task_type_code=code,
		max_score=max_score,
		answer_text=answer,
		criteria=criteria,
		**kwargs,
	)


def test_score_happy_path() -> None:
	model = RoutedModel({"ANSWER": '{"cefr_level": "C1", "comment": "Very articulate", "suggestions": "Keep going"}'})
	result = asyncio.run(make_service(model).score(request("ANSWER")))

	# C1 is band 5 of 6 on the discussion scale
	assert result.score == 5.0
	assert result.cefr_level == "C1"
	assert result.comment == "Very articulate"
	assert result.criteria_used == ["Overall"]
	assert not result.audio_adjusted
	assert result.cefr_consistent
	assert not result.needs_review
	assert result.overall_feedback.startswith("Overall Performance: Very Good (83%).")


def test_truncated_reply_still_scores_by_band() -> None:
	model = RoutedModel({"ANSWER": '{"cefr_level": "A2.2", "comment": "ok"'})
	result = asyncio.run(make_service(model).score(request("ANSWER", "SPEAKING_INTRO", 5)))
	assert result.score == 4.0
	assert result.parse_error is None


def test_audio_adjusts_score_with_first_criterion() -> None:
	model = RoutedModel({"ANSWER": '{"cefr_level": "B2.1", "comment": "Fine"}'})
	req = request(
		"ANSWER",
		criteria=[Criterion(name="Pronunciation"), Criterion(name="Fluency")],
		audio_analysis=AudioAnalysis(pronunciation_score=80),
	)
	result = asyncio.run(make_service(model).score(req))

	assert result.audio_adjusted
	assert result.score == 3.54
	assert result.criteria_used == ["Pronunciation", "Fluency"]
	assert "Technical analysis" in result.overall_feedback


def test_audio_without_criteria_is_not_applied() -> None:
	model = RoutedModel({"ANSWER": '{"cefr_level": "B2.1", "comment": "Fine"}'})
	req = request("ANSWER", criteria=[], audio_analysis=AudioAnalysis(pronunciation_score=100))
	result = asyncio.run(make_service(model).score(req))
	assert not result.audio_adjusted
	assert result.score == 3.0


def test_adjusted_score_is_clamped() -> None:
	model = RoutedModel({"ANSWER": '{"cefr_level": "C2", "comment": "Superb"}'})
	req = request(
		"ANSWER",
		criteria=[Criterion(name="Pronunciation")],
		audio_analysis=AudioAnalysis(pronunciation_score=100, confidence=1.0),
	)
	result = asyncio.run(make_service(model).score(req))
	assert result.score == 6.0


def test_inconsistent_label_is_flagged_not_rewritten(caplog) -> None:
	model = RoutedModel({"ANSWER": '{"score": 9, "cefr_level": "A1", "comment": "Odd"}'})
	with caplog.at_level("WARNING"):
		result = asyncio.run(make_service(model).score(request("ANSWER", "WRITING_ESSAY", 10)))

	assert result.score == 9.0
	assert result.cefr_level == "A1"
	assert not result.cefr_consistent
	assert result.parse_error is None
	assert result.needs_review
	assert "CEFR level inconsistent with score" in caplog.text


def test_unparseable_reply_degrades_to_default() -> None:
	model = RoutedModel({"ANSWER": "I am unable to grade this."})
	result = asyncio.run(make_service(model).score(request("ANSWER", "SPEAKING_INTRO", 5)))
	assert result.score == 2.5
	assert result.cefr_level == "B1"
	assert result.parse_error is not None
	assert result.needs_review


def test_exhausted_retries_propagate() -> None:
	model = RoutedModel({"ANSWER": RuntimeError("quota exceeded")})
	with pytest.raises(AiUnavailableError) as excinfo:
		asyncio.run(make_service(model).score(request("ANSWER")))
	assert excinfo.value.attempts == 2
	assert "quota exceeded" in str(excinfo.value)
	assert model.calls == 2


def test_score_many_preserves_order_and_isolates_failures() -> None:
	model = RoutedModel(
		{
			"marker-one": '{"cefr_level": "C2", "comment": "a"}',
			"marker-two": RuntimeError("service down"),
			"marker-three": '{"cefr_level": "B1.2", "comment": "c"}',
		},
		delay=0.01,
	)
	service = make_service(model, concurrency=2)
	requests = [request("marker-one"), request("marker-two"), request("marker-three")]

	results = asyncio.run(service.score_many(requests))

	assert len(results) == 3
	assert results[0].cefr_level == "C2"
	assert isinstance(results[1], AiUnavailableError)
	assert results[2].cefr_level == "B1.2"
	assert model.peak <= 2


def test_score_many_propagates_unexpected_errors() -> None:
	class ExplodingBuilder:
		def build_for_task(self, task, audio=None):
			raise ValueError("bad template")

	model = RoutedModel({})
	service = make_service(model, prompt_builder=ExplodingBuilder())
	with pytest.raises(ValueError):
		asyncio.run(service.score_many([request("ANSWER")]))


def test_score_many_empty() -> None:
	results: List[object] = asyncio.run(make_service(RoutedModel({})).score_many([]))
	assert results == []


@pytest.mark.parametrize(
	"code,max_score,label,expected",
	[
		("SPEAKING_DESCRIPTION", 5, "B2+", 5.0),
		("SPEAKING_INTRO", 5, "B1+", 5.0),
		("SPEAKING_INTRO", 5, "A0", 0.0),
		("SPEAKING_DESCRIPTION", 5, "Below A2", 0.0),
		("WRITING_SHORT", 3, "above A1", 3.0),
		("SPEAKING_INTRO", 5, "A2.2", 4.0),
	],
)
def test_rubric_band_labels_are_consistent(code, max_score, label, expected, caplog) -> None:
	model = RoutedModel({"ANSWER": f'{{"cefr_level": "{label}", "comment": "ok"}}'})
	with caplog.at_level("WARNING"):
		result = asyncio.run(make_service(model).score(request("ANSWER", code, max_score)))

	assert result.score == expected
	assert result.cefr_consistent
	assert not result.needs_review
	assert "CEFR level inconsistent with score" not in caplog.text
