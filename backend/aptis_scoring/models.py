from __future__ import annotations
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class Criterion(BaseModel):
	"""A named rubric dimension. Most tasks use a single holistic criterion."""
	model_config = ConfigDict(frozen=True)

	name: str
	description: str = ""
	rubric_prompt: str = ""


class ImageRef(BaseModel):
	model_config = ConfigDict(frozen=True)

	description: str
	# Child questions inherit images from their parent question
	source: Literal["question", "parent_question"] = "question"
	url: Optional[str] = None


class QuestionContext(BaseModel):
	model_config = ConfigDict(frozen=True)

	content: str = ""
	sample_answer: Optional[str] = None
	key_points: List[str] = Field(default_factory=list)
	images: List[ImageRef] = Field(default_factory=list)


class ScoringTask(BaseModel):
	"""Immutable input to a single scoring pass."""
	model_config = ConfigDict(frozen=True)

	task_type_code: str
	max_score: float = Field(gt=0)
	criteria: List[Criterion] = Field(default_factory=list)
	answer_text: str = ""
	question: QuestionContext = Field(default_factory=QuestionContext)


# ============================================================================
# AUDIO ANALYSIS (produced upstream, consumed read-only)
# ============================================================================

class _AudioModel(BaseModel):
	# The analysis stage emits camelCase keys; accept both spellings
	model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ErrorAnalysis(_AudioModel):
	severity: Optional[str] = None
	error_rate: Optional[float] = None
	total_errors: Optional[int] = None


class SpeechRate(_AudioModel):
	rate_assessment: Optional[str] = None
	words_per_minute: Optional[float] = None


class AudioQualityMetrics(_AudioModel):
	speech_rate: Optional[SpeechRate] = None
	voice_activity_ratio: Optional[float] = None


class AccentAnalysis(_AudioModel):
	strength: Optional[str] = None
	confidence: Optional[float] = None


class AudioAnalysis(_AudioModel):
	"""Objective speech metrics. Scores are on a 0-100 scale, confidence on 0-1."""
	pronunciation_score: Optional[float] = None
	fluency_score: Optional[float] = None
	accuracy_score: Optional[float] = None
	prosody_score: Optional[float] = None
	completeness_score: Optional[float] = None
	confidence: Optional[float] = None
	emotional_tone: Optional[str] = None
	error_analysis: Optional[ErrorAnalysis] = None
	audio_quality_metrics: Optional[AudioQualityMetrics] = None
	accent_analysis: Optional[AccentAnalysis] = None


# ============================================================================
# RESULTS
# ============================================================================

class ScoreResult(BaseModel):
	"""Unit of truth handed back to callers.

	``parse_error`` marks a degraded result; the shape never changes and the
	score is always inside ``[0, max_score]``.
	"""
	model_config = ConfigDict(frozen=True)

	score: float
	max_score: float
	cefr_level: str
	comment: str = "No comment provided"
	strengths: str = "N/A"
	weaknesses: str = "N/A"
	suggestions: str = "N/A"
	raw_response: str = ""
	parse_error: Optional[str] = None
	criteria_used: List[str] = Field(default_factory=list)
	overall_feedback: Optional[str] = None
	audio_adjusted: bool = False
	cefr_consistent: bool = True

	@computed_field  # type: ignore[prop-decorator]
	@property
	def needs_review(self) -> bool:
		return self.parse_error is not None or not self.cefr_consistent


class ScoringRequest(BaseModel):
	"""Inbound request from the exam layer."""
	question_id: Optional[str] = None
	task_type_code: str
	criteria: List[Criterion] = Field(default_factory=list)
	max_score: float = Field(gt=0)
	answer_text: str = ""
	question: QuestionContext = Field(default_factory=QuestionContext)
	audio_analysis: Optional[AudioAnalysis] = None

	def to_task(self) -> ScoringTask:
		return ScoringTask(
			task_type_code=self.task_type_code,
			max_score=self.max_score,
			criteria=self.criteria,
			answer_text=self.answer_text,
			question=self.question,
		)


class CriterionFeedback(BaseModel):
	criterion: str
	score: float
	max_score: float
	percentage: int
	feedback: str


class FeedbackSummary(BaseModel):
	"""Derived, human-readable view; never persisted as a source of truth."""
	overall_feedback: str
	criteria_breakdown: List[CriterionFeedback] = Field(default_factory=list)
	audio_enhanced: bool = False
	total_score: float = 0.0
	max_possible_score: float = 0.0
	audio_metrics: Optional[dict] = None
