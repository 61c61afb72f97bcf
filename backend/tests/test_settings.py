from __future__ import annotations

import pytest
from pydantic import ValidationError

from aptis_scoring.settings import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
	for name in (
		"GEMINI_API_KEY", "GEMINI_PROVIDER", "OPENROUTER_API_KEY",
		"SCORING_MAX_RETRIES", "SCORING_RETRY_DELAY_SECONDS", "SCORING_TEMPERATURE", "LOG_LEVEL",
	):
		monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
	s = Settings(_env_file=None)
	assert s.gemini_provider == "ai_studio"
	assert s.scoring_max_retries == 3
	assert s.scoring_retry_delay_seconds == 1.0
	assert s.scoring_timeout_seconds == 30.0
	assert s.scoring_temperature == 1.0
	assert s.scoring_max_tokens == 2048
	assert s.scoring_concurrency == 4
	assert s.log_level == "INFO"
	assert s.openrouter_api_key is None


def test_environment_overrides(monkeypatch) -> None:
	monkeypatch.setenv("SCORING_MAX_RETRIES", "5")
	monkeypatch.setenv("SCORING_RETRY_DELAY_SECONDS", "0.25")
	monkeypatch.setenv("GEMINI_PROVIDER", "vertex")
	monkeypatch.setenv("LOG_LEVEL", "DEBUG")
	s = Settings(_env_file=None)
	assert s.scoring_max_retries == 5
	assert s.scoring_retry_delay_seconds == 0.25
	assert s.gemini_provider == "vertex"
	assert s.log_level == "DEBUG"


def test_rejects_zero_retries(monkeypatch) -> None:
	monkeypatch.setenv("SCORING_MAX_RETRIES", "0")
	with pytest.raises(ValidationError):
		Settings(_env_file=None)
