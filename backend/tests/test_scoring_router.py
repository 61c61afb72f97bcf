from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from aptis_scoring.ai_client import AiClient
from aptis_scoring.main import app
from aptis_scoring.pipeline import ScoringService
from aptis_scoring.routers.scoring import get_scoring_service


class KeywordModel:
	def __init__(self, replies: dict) -> None:
		self.replies = replies

	async def __call__(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
		for keyword, reply in self.replies.items():
			if keyword in prompt:
				if isinstance(reply, Exception):
					raise reply
				return reply
		raise RuntimeError("unexpected prompt")


async def no_sleep(seconds: float) -> None:
	return None


@pytest.fixture
def client_for():
	def make(replies: dict) -> TestClient:
		ai = AiClient(KeywordModel(replies), max_retries=1, sleep=no_sleep, provider="ai_studio", model="fake-model")
		service = ScoringService(ai)
		app.dependency_overrides[get_scoring_service] = lambda: service
		return TestClient(app)

	yield make
	app.dependency_overrides.clear()


def payload(answer: str, **overrides) -> dict:
	body = {
		"question_id": answer,
		"task_type_code": "SPEAKING_INTRO",
		"max_score": 5,
		"answer_text": answer,
		"criteria": [{"name": "Overall"}],
		"question": {"content": "Tell me about your hometown."},
	}
	body.update(overrides)
	return body


def test_score_endpoint(client_for) -> None:
	client = client_for({"alpha-answer": '{"cefr_level": "A2.1", "comment": "Clear enough"}'})
	response = client.post("/scoring/score", json=payload("alpha-answer"))

	assert response.status_code == 200
	data = response.json()
	assert data["score"] == 3.0
	assert data["max_score"] == 5
	assert data["cefr_level"] == "A2.1"
	assert data["comment"] == "Clear enough"
	assert data["criteria_used"] == ["Overall"]
	assert "needs_review" in data


def test_score_endpoint_accepts_camel_case_audio(client_for) -> None:
	client = client_for({"alpha-answer": '{"cefr_level": "A2.1", "comment": "ok"}'})
	body = payload(
		"alpha-answer",
		criteria=[{"name": "Pronunciation"}],
		audio_analysis={"pronunciationScore": 80, "emotionalTone": "neutral"},
	)
	response = client.post("/scoring/score", json=body)
	assert response.status_code == 200
	data = response.json()
	assert data["audio_adjusted"] is True
	# 3 + (0.8 - 0.5) * 0.3 * 5
	assert data["score"] == 3.45


def test_score_endpoint_returns_503_when_ai_unavailable(client_for) -> None:
	client = client_for({"alpha-answer": RuntimeError("quota exceeded")})
	response = client.post("/scoring/score", json=payload("alpha-answer"))
	assert response.status_code == 503
	assert response.json()["detail"] == "AI scoring failed after 1 attempts: quota exceeded"


def test_score_endpoint_validates_input(client_for) -> None:
	client = client_for({})
	response = client.post("/scoring/score", json=payload("alpha-answer", max_score=0))
	assert response.status_code == 422


def test_batch_endpoint_reports_per_item_errors(client_for) -> None:
	client = client_for({
		"alpha-answer": '{"cefr_level": "B1", "comment": "Good"}',
		"beta-answer": RuntimeError("service down"),
	})
	response = client.post(
		"/scoring/batch",
		json={"requests": [payload("alpha-answer"), payload("beta-answer")]},
	)

	assert response.status_code == 200
	items = response.json()["items"]
	assert [item["question_id"] for item in items] == ["alpha-answer", "beta-answer"]
	assert items[0]["result"]["score"] == 5.0
	assert items[0]["error"] is None
	assert items[1]["result"] is None
	assert "service down" in items[1]["error"]


def test_status_endpoint(client_for) -> None:
	client = client_for({})
	response = client.get("/scoring/status")
	assert response.status_code == 200
	data = response.json()
	assert data["provider"] == "ai_studio"
	assert data["model"] == "fake-model"
	assert data["max_retries"] == 1


def test_info_endpoint() -> None:
	response = TestClient(app).get("/info")
	assert response.status_code == 200
	assert response.json()["name"] == "aptis-scoring"
