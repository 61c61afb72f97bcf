from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = "Expert APTIS English assessor. Respond JSON only. Be precise with CEFR levels."


class ModelInvoker(Protocol):
	def __call__(self, prompt: str, *, temperature: float, max_tokens: int) -> Awaitable[str]:
		"""Send one prompt to the language model and return its text."""


@dataclass
class AiUnavailableError(Exception):
	attempts: int
	last_error: str
	message: str

	def __str__(self) -> str:
		return self.message


class EmptyResponseError(RuntimeError):
	pass


class AiClient:
	"""Bounded, strictly sequential retries around a model invoker.

	Attempt ``n`` that fails waits ``retry_delay * n`` seconds before attempt
	``n + 1``; there is no wait after the last attempt. Timeouts and empty
	replies count as failed attempts.
	"""

	def __init__(
		self,
		invoke_model: ModelInvoker,
		*,
		max_retries: int = 3,
		retry_delay: float = 1.0,
		timeout: float = 30.0,
		temperature: float = 1.0,
		max_tokens: int = 2048,
		provider: str = "gemini",
		model: str = "",
		sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
	) -> None:
		if max_retries < 1:
			raise ValueError("max_retries must be at least 1")
		self._invoke_model = invoke_model
		self.max_retries = max_retries
		self.retry_delay = retry_delay
		self.timeout = timeout
		self.temperature = temperature
		self.max_tokens = max_tokens
		self.provider = provider
		self.model = model
		self._sleep = sleep

	async def call_with_retry(self, prompt: str, max_retries: Optional[int] = None) -> str:
		attempts = max_retries or self.max_retries
		full_prompt = f"{SYSTEM_INSTRUCTION}\n\n{prompt}"
		last_error = "no attempts made"

		for attempt in range(1, attempts + 1):
			try:
				text = await asyncio.wait_for(
					self._invoke_model(full_prompt, temperature=self.temperature, max_tokens=self.max_tokens),
					timeout=self.timeout,
				)
				if not text or not text.strip():
					raise EmptyResponseError("Empty response from AI service")
				logger.info("AI scoring attempt succeeded", extra={"attempt": attempt, "response_chars": len(text)})
				return text
			except asyncio.CancelledError:
				raise
			except asyncio.TimeoutError:
				last_error = f"AI request timed out after {self.timeout}s"
			except Exception as exc:
				last_error = str(exc) or exc.__class__.__name__

			logger.warning(
				"AI scoring attempt failed",
				extra={"attempt": attempt, "max_retries": attempts, "error": last_error},
			)
			if attempt < attempts:
				await self._sleep(self.retry_delay * attempt)

		raise AiUnavailableError(
			attempts=attempts,
			last_error=last_error,
			message=f"AI scoring failed after {attempts} attempts: {last_error}",
		)

	def status(self) -> Dict[str, Any]:
		return {
			"provider": self.provider,
			"model": self.model,
			"max_retries": self.max_retries,
			"retry_delay": self.retry_delay,
			"timeout": self.timeout,
			"temperature": self.temperature,
			"max_tokens": self.max_tokens,
		}
