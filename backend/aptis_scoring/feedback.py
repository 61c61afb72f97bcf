from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .cefr import round_half_up
from .models import AudioAnalysis, CriterionFeedback, FeedbackSummary, ScoreResult

NO_DATA = "No scoring data available for feedback generation."

# (minimum percentage, level, description), highest first
PERFORMANCE_BANDS: Tuple[Tuple[float, str, str], ...] = (
	(90, "Excellent", "Outstanding performance demonstrating mastery of the required skills"),
	(80, "Very Good", "Strong performance with only minor areas for improvement"),
	(70, "Good", "Solid performance meeting most requirements effectively"),
	(60, "Satisfactory", "Acceptable performance but with room for notable improvement"),
	(50, "Below Average", "Performance below expected standards requiring focused improvement"),
)
LOWEST_BAND = ("Needs Improvement", "The answer needs significant improvement in multiple areas")


def _percentage(score: float, max_score: float) -> float:
	return score / max_score * 100 if max_score > 0 else 0.0


def performance_band(percentage: float) -> Tuple[str, str]:
	for minimum, level, description in PERFORMANCE_BANDS:
		if percentage >= minimum:
			return level, description
	return LOWEST_BAND


def _criterion_label(result: ScoreResult) -> str:
	return ", ".join(result.criteria_used) or "Overall"


class FeedbackGenerator:
	"""Human-readable text derived from score results; holds no state."""

	def summarize(self, score_results: Sequence[ScoreResult], audio_analysis: Optional[AudioAnalysis] = None) -> str:
		if not score_results:
			return NO_DATA
		total = sum(r.score for r in score_results)
		total_max = sum(r.max_score for r in score_results)
		percentage = _percentage(total, total_max)
		level, description = performance_band(percentage)
		feedback = f"Overall Performance: {level} ({int(round_half_up(percentage))}%). {description}."
		if audio_analysis is None:
			return feedback
		return feedback + self._technical_clause(audio_analysis) + self._recommendation(audio_analysis)

	def _technical_clause(self, audio: AudioAnalysis) -> str:
		scores = (audio.pronunciation_score, audio.fluency_score, audio.accuracy_score, audio.prosody_score)
		average = sum(s or 0 for s in scores) / 4
		if average >= 80:
			return " Technical analysis shows strong overall audio quality."
		if average >= 60:
			return " Technical analysis indicates good audio performance with some areas for improvement."
		return " Technical analysis suggests significant opportunities for improvement in speech delivery."

	def _recommendation(self, audio: AudioAnalysis) -> str:
		metrics = [
			("pronunciation", audio.pronunciation_score),
			("fluency", audio.fluency_score),
			("accuracy", audio.accuracy_score),
			("prosody", audio.prosody_score),
		]
		# Zero and missing metrics carry no signal
		present = [(name, score) for name, score in metrics if score]
		if not present:
			return ""
		name, score = min(present, key=lambda item: item[1])
		if score < 70:
			return f" Focus particularly on improving {name} skills."
		return ""

	def per_criterion(
		self,
		name: str,
		score: float,
		max_score: float,
		audio_analysis: Optional[AudioAnalysis] = None,
	) -> str:
		percentage = _percentage(score, max_score)
		lower = name.lower()
		if percentage >= 90:
			feedback = f"Excellent {lower} performance."
		elif percentage >= 80:
			feedback = f"Very good {lower} with minor areas for refinement."
		elif percentage >= 70:
			feedback = f"Good {lower} meeting most requirements."
		elif percentage >= 60:
			feedback = f"Satisfactory {lower} with room for improvement."
		else:
			feedback = f"{name} needs significant improvement."

		if audio_analysis is not None:
			insight = audio_insight(name, audio_analysis)
			if insight:
				feedback += f" {insight}"
		return feedback

	def performance_summary(
		self,
		score_results: Sequence[ScoreResult],
		audio_analysis: Optional[AudioAnalysis] = None,
	) -> FeedbackSummary:
		breakdown: List[CriterionFeedback] = []
		for result in score_results:
			label = _criterion_label(result)
			breakdown.append(CriterionFeedback(
				criterion=label,
				score=result.score,
				max_score=result.max_score,
				percentage=int(round_half_up(_percentage(result.score, result.max_score))),
				feedback=self.per_criterion(label, result.score, result.max_score, audio_analysis),
			))

		audio_metrics = None
		if audio_analysis is not None:
			audio_metrics = audio_analysis.model_dump(
				include={"pronunciation_score", "fluency_score", "accuracy_score", "confidence", "emotional_tone"},
			)

		return FeedbackSummary(
			overall_feedback=self.summarize(score_results, audio_analysis),
			criteria_breakdown=breakdown,
			audio_enhanced=audio_analysis is not None,
			total_score=sum(r.score for r in score_results),
			max_possible_score=sum(r.max_score for r in score_results),
			audio_metrics=audio_metrics,
		)


def audio_insight(criterion_name: str, audio: AudioAnalysis) -> Optional[str]:
	name = criterion_name.lower()
	if "pronunciation" in name:
		score = audio.pronunciation_score or 0
		if score >= 85:
			return "Audio analysis confirms clear pronunciation."
		if score < 60:
			return "Audio analysis suggests pronunciation practice needed."
	if "fluency" in name:
		score = audio.fluency_score or 0
		if score >= 85:
			return "Speech flow shows good natural rhythm."
		if score < 60:
			return "Consider working on speech flow and pacing."
	if "accuracy" in name:
		error_rate = (audio.error_analysis.error_rate if audio.error_analysis else None) or 0
		if error_rate < 0.1:
			return "Audio shows consistent accuracy."
		if error_rate > 0.3:
			return "Multiple pronunciation errors detected."
	return None
