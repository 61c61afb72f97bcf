from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	"""Environment-driven defaults; components still take explicit arguments."""

	# Model invocation
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# "ai_studio" sends the key as a query parameter, "vertex" as a header
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# Secondary provider, used only when its key is set
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="APTIS Scoring Engine", validation_alias="OPENROUTER_TITLE")

	# Scoring behaviour
	scoring_max_retries: int = Field(default=3, ge=1, validation_alias="SCORING_MAX_RETRIES")
	# Linear backoff: attempt N waits N * delay before the next try
	scoring_retry_delay_seconds: float = Field(default=1.0, ge=0, validation_alias="SCORING_RETRY_DELAY_SECONDS")
	# Per-attempt timeout; a timed out attempt counts as a failed attempt
	scoring_timeout_seconds: float = Field(default=30.0, gt=0, validation_alias="SCORING_TIMEOUT_SECONDS")
	scoring_temperature: float = Field(default=1.0, ge=0, le=2, validation_alias="SCORING_TEMPERATURE")
	scoring_max_tokens: int = Field(default=2048, gt=0, validation_alias="SCORING_MAX_TOKENS")
	# Upper bound on concurrently running scoring requests in a batch
	scoring_concurrency: int = Field(default=4, ge=1, validation_alias="SCORING_CONCURRENCY")
	scoring_http_timeout_seconds: float = Field(default=60.0, gt=0, validation_alias="SCORING_HTTP_TIMEOUT_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Unknown variables in .env belong to other services
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
