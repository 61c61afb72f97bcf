from __future__ import annotations

import asyncio
from typing import List

import pytest

from aptis_scoring.ai_client import SYSTEM_INSTRUCTION, AiClient, AiUnavailableError


class FakeModel:
	"""Replays scripted outcomes; an Exception instance is raised, a string returned."""

	def __init__(self, outcomes: List[object]) -> None:
		self.outcomes = list(outcomes)
		self.calls: List[dict] = []

	async def __call__(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
		self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
		outcome = self.outcomes.pop(0)
		if isinstance(outcome, Exception):
			raise outcome
		if outcome == "HANG":
			await asyncio.sleep(10)
		return outcome  # type: ignore[return-value]


def make_client(model: FakeModel, sleeps: List[float], **kwargs) -> AiClient:
	async def fake_sleep(seconds: float) -> None:
		sleeps.append(seconds)

	return AiClient(model, sleep=fake_sleep, **kwargs)


def test_first_success_returns_text_with_system_prefix() -> None:
	model = FakeModel(['{"cefr_level": "B1"}'])
	sleeps: List[float] = []
	client = make_client(model, sleeps, temperature=0.3, max_tokens=512)

	text = asyncio.run(client.call_with_retry("Score this."))

	assert text == '{"cefr_level": "B1"}'
	assert model.calls[0]["prompt"] == f"{SYSTEM_INSTRUCTION}\n\nScore this."
	assert model.calls[0]["temperature"] == 0.3
	assert model.calls[0]["max_tokens"] == 512
	assert sleeps == []


def test_retries_with_linear_backoff_then_succeeds() -> None:
	model = FakeModel([RuntimeError("503"), "   ", "ok"])
	sleeps: List[float] = []
	client = make_client(model, sleeps, retry_delay=2.0)

	assert asyncio.run(client.call_with_retry("p")) == "ok"
	assert len(model.calls) == 3
	assert sleeps == [2.0, 4.0]


def test_exhaustion_raises_with_last_error() -> None:
	model = FakeModel([RuntimeError("first"), RuntimeError("second"), RuntimeError("third")])
	sleeps: List[float] = []
	client = make_client(model, sleeps, retry_delay=1.0)

	with pytest.raises(AiUnavailableError) as excinfo:
		asyncio.run(client.call_with_retry("p"))

	err = excinfo.value
	assert err.attempts == 3
	assert err.last_error == "third"
	assert str(err) == "AI scoring failed after 3 attempts: third"
	# No wait after the final attempt
	assert sleeps == [1.0, 2.0]


def test_empty_responses_count_as_failures() -> None:
	model = FakeModel(["", "\n\t "])
	client = make_client(model, [], max_retries=2)

	with pytest.raises(AiUnavailableError) as excinfo:
		asyncio.run(client.call_with_retry("p"))
	assert "Empty response" in excinfo.value.last_error


def test_max_retries_argument_overrides_default() -> None:
	model = FakeModel([RuntimeError("boom")])
	client = make_client(model, [], max_retries=5)

	with pytest.raises(AiUnavailableError) as excinfo:
		asyncio.run(client.call_with_retry("p", max_retries=1))
	assert excinfo.value.attempts == 1
	assert len(model.calls) == 1


def test_timeout_counts_as_failed_attempt() -> None:
	model = FakeModel(["HANG", "fine"])
	client = make_client(model, [], timeout=0.01)

	assert asyncio.run(client.call_with_retry("p")) == "fine"
	assert len(model.calls) == 2


def test_invalid_max_retries_rejected() -> None:
	with pytest.raises(ValueError):
		AiClient(FakeModel([]), max_retries=0)


def test_status_reports_configuration() -> None:
	client = AiClient(FakeModel([]), provider="ai_studio", model="gemini-2.5-flash", retry_delay=0.5)
	status = client.status()
	assert status["provider"] == "ai_studio"
	assert status["model"] == "gemini-2.5-flash"
	assert status["max_retries"] == 3
	assert status["retry_delay"] == 0.5
	assert status["temperature"] == 1.0
	assert status["max_tokens"] == 2048
