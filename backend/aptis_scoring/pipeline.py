"""
End-to-end scoring of one answer:

	prompt -> model (with retries) -> parse -> audio adjust -> clamp -> feedback

Only ``AiUnavailableError`` escapes ``ScoringService.score``; everything after
a successful model call degrades into a flagged ``ScoreResult`` instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Union

from .ai_client import AiClient, AiUnavailableError
from .audio import AudioAdjuster
from .cefr import is_consistent, round_half_up
from .feedback import FeedbackGenerator
from .models import ScoreResult, ScoringRequest
from .prompt_builder import PromptBuilder
from .response_parser import ResponseParser
from .task_types import rubric_band_score

logger = logging.getLogger(__name__)

BatchItem = Union[ScoreResult, AiUnavailableError]


class ScoringService:
	def __init__(
		self,
		ai_client: AiClient,
		*,
		prompt_builder: Optional[PromptBuilder] = None,
		parser: Optional[ResponseParser] = None,
		adjuster: Optional[AudioAdjuster] = None,
		feedback: Optional[FeedbackGenerator] = None,
		concurrency: int = 4,
	) -> None:
		self.ai_client = ai_client
		self.prompt_builder = prompt_builder or PromptBuilder()
		self.parser = parser or ResponseParser()
		self.adjuster = adjuster or AudioAdjuster()
		self.feedback = feedback or FeedbackGenerator()
		self.concurrency = max(1, concurrency)

	async def score(self, request: ScoringRequest) -> ScoreResult:
		task = request.to_task()
		audio = request.audio_analysis
		prompt = self.prompt_builder.build_for_task(task, audio)

		raw = await self.ai_client.call_with_retry(prompt)
		result = self.parser.parse(raw, task.max_score, task.task_type_code)

		score = result.score
		criteria_names = [c.name for c in task.criteria]
		audio_adjusted = False
		if audio is not None and criteria_names:
			score = self.adjuster.adjust(score, criteria_names[0], audio, task.max_score)
			audio_adjusted = True
		score = min(max(score, 0.0), task.max_score)

		consistent = self._is_consistent(result.cefr_level, score, task.max_score, task.task_type_code)
		if not consistent:
			logger.warning(
				"CEFR level inconsistent with score",
				extra={
					"question_id": request.question_id,
					"cefr_level": result.cefr_level,
					"score": score,
					"max_score": task.max_score,
				},
			)

		result = result.model_copy(update={
			"score": round_half_up(score, 2),
			"criteria_used": criteria_names,
			"audio_adjusted": audio_adjusted,
			"cefr_consistent": consistent,
		})
		overall = self.feedback.summarize([result], audio)
		result = result.model_copy(update={"overall_feedback": overall})

		logger.info(
			"Scored answer",
			extra={
				"question_id": request.question_id,
				"task_type_code": task.task_type_code,
				"score": result.score,
				"max_score": result.max_score,
				"cefr_level": result.cefr_level,
				"degraded": result.parse_error is not None,
			},
		)
		return result

	@staticmethod
	def _is_consistent(cefr_level: str, score: float, max_score: float, task_type_code: str) -> bool:
		# A label on the task's own rubric scale fixes the points; the percentage bands do not apply
		if rubric_band_score(cefr_level, task_type_code, max_score) is not None:
			return True
		return is_consistent(cefr_level, score, max_score)

	async def score_many(self, requests: Sequence[ScoringRequest]) -> List[BatchItem]:
		"""Score independent requests concurrently, preserving input order.

		A request whose model calls are exhausted yields its
		``AiUnavailableError`` in place; any other exception propagates.
		"""
		semaphore = asyncio.Semaphore(self.concurrency)

		async def run(request: ScoringRequest) -> ScoreResult:
			async with semaphore:
				return await self.score(request)

		outcomes = await asyncio.gather(*(run(r) for r in requests), return_exceptions=True)
		results: List[BatchItem] = []
		for outcome in outcomes:
			if isinstance(outcome, (ScoreResult, AiUnavailableError)):
				results.append(outcome)
			else:
				raise outcome
		return results
