from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional, Tuple
from .settings import settings

logger = logging.getLogger(__name__)

AI_STUDIO_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
VERTEX_URL = (
	"https://{region}-aiplatform.googleapis.com/v1/projects/{project}"
	"/locations/{region}/publishers/google/models/{model}:generateContent"
)


def _endpoint(provider: str, model: str) -> Tuple[str, bool]:
	"""Default URL for ``model`` and whether the API key goes in the query string."""
	if provider == "vertex":
		project = settings.vertex_project or "placeholder-project"
		return VERTEX_URL.format(region=settings.vertex_region, project=project, model=model), False
	return AI_STUDIO_URL.format(model=model), True


def _generation_payload(prompt: str, temperature: Optional[float], max_tokens: Optional[int]) -> Dict[str, Any]:
	payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
	config: Dict[str, Any] = {}
	if temperature is not None:
		config["temperature"] = temperature
	if max_tokens is not None:
		config["maxOutputTokens"] = max_tokens
	if config:
		payload["generationConfig"] = config
	return payload


class GeminiClient:
	"""Model-invocation primitive: one prompt in, response text out.

	Gemini (AI Studio or Vertex) is the primary provider; when an OpenRouter
	key is configured, a failed primary call is retried once through it.
	Retrying and timeouts per attempt belong to ``AiClient``.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.provider = settings.gemini_provider
		self.model = model or settings.gemini_model
		default_url, self._auth_in_query = _endpoint(self.provider, self.model)
		self.base_url = base_url or default_url

		http_timeout = timeout or settings.scoring_http_timeout_seconds
		self._client = httpx.AsyncClient(timeout=http_timeout, transport=transport)
		self._openrouter_api_key = settings.openrouter_api_key
		self._fallback_client: Optional[httpx.AsyncClient] = None
		if self._openrouter_api_key:
			self._fallback_client = httpx.AsyncClient(timeout=http_timeout, transport=transport)

	async def generate(
		self,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		max_tokens: Optional[int] = None,
	) -> str:
		payload = _generation_payload(prompt, temperature, max_tokens)
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key

		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except (httpx.HTTPStatusError, httpx.RequestError) as err:
			primary_error: Exception = err
		else:
			try:
				return r.json()["candidates"][0]["content"]["parts"][0]["text"]
			except (ValueError, KeyError, IndexError, TypeError):
				primary_error = RuntimeError(f"Unexpected Gemini response: {r.text}")

		if self._fallback_client is None:
			raise primary_error
		logger.warning("Gemini call failed, falling back to OpenRouter", extra={"error": str(primary_error)})
		return await self._fallback_generate(prompt, primary_error, temperature=temperature, max_tokens=max_tokens)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(
		self,
		prompt: str,
		primary_error: Optional[Exception],
		*,
		temperature: Optional[float] = None,
		max_tokens: Optional[int] = None,
	) -> str:
		if self._fallback_client is None:
			raise primary_error or RuntimeError("Fallback requested but OpenRouter is not configured")
		headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload: Dict[str, Any] = {
			"model": settings.openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		if temperature is not None:
			payload["temperature"] = temperature
		if max_tokens is not None:
			payload["max_tokens"] = max_tokens
		try:
			r = await self._fallback_client.post(
				settings.openrouter_base_url,
				headers={k: v for k, v in headers.items() if v},
				json=payload,
			)
			r.raise_for_status()
			return r.json()["choices"][0]["message"]["content"]
		except Exception as fallback_err:
			raise RuntimeError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err
