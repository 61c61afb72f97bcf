from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Tuple

from .models import AudioAnalysis, ErrorAnalysis, SpeechRate

logger = logging.getLogger(__name__)


SEVERITY_FACTORS: Mapping[str, float] = MappingProxyType({
	"minimal": 0.0,
	"low": 0.1,
	"moderate": 0.3,
	"high": 0.5,
})
UNKNOWN_SEVERITY_FACTOR = 0.2

TONE_FACTORS: Mapping[str, float] = MappingProxyType({
	"confident": 0.15,
	"engaged": 0.10,
	"neutral": 0.0,
	"hesitant": -0.1,
	"nervous": -0.15,
})

SPEECH_RATE_FACTORS: Mapping[str, float] = MappingProxyType({
	"very_slow": -0.2,
	"slow": -0.1,
	"normal": 0.1,
	"fast": 0.0,
	"very_fast": -0.1,
})

CONFIDENCE_WEIGHT = 0.1
STRONG_ACCENT_PENALTY = 0.05
REQUIRED_METRICS = ("pronunciation_score", "accuracy_score", "fluency_score", "confidence")


def error_severity_factor(errors: Optional[ErrorAnalysis]) -> float:
	if errors is None:
		return 0.0
	return SEVERITY_FACTORS.get((errors.severity or "").lower(), UNKNOWN_SEVERITY_FACTOR)


def emotional_tone_factor(tone: Optional[str]) -> float:
	return TONE_FACTORS.get((tone or "").lower(), 0.0)


def speech_rate_factor(rate: Optional[SpeechRate]) -> float:
	if rate is None:
		return 0.0
	return SPEECH_RATE_FACTORS.get((rate.rate_assessment or "").lower(), 0.0)


def _severity_modifier(audio: AudioAnalysis) -> float:
	return -error_severity_factor(audio.error_analysis) * 0.1


def _tone_modifier(audio: AudioAnalysis) -> float:
	return emotional_tone_factor(audio.emotional_tone) * 0.1


def _rate_modifier(audio: AudioAnalysis) -> float:
	quality = audio.audio_quality_metrics
	return speech_rate_factor(quality.speech_rate if quality else None) * 0.1


@dataclass(frozen=True)
class CategoryRule:
	keywords: Tuple[str, ...]
	metric: str
	weight: float
	modifier: Optional[Callable[[AudioAnalysis], float]] = None

	def matches(self, criterion_name: str) -> bool:
		return any(keyword in criterion_name for keyword in self.keywords)

	def delta(self, audio: AudioAnalysis) -> float:
		value = getattr(audio, self.metric)
		# A missing metric sits at the 50/100 midpoint and contributes nothing
		centered = 0.0 if value is None else value / 100 - 0.5
		result = centered * self.weight
		if self.modifier is not None:
			result += self.modifier(audio)
		return result


# Fixed order; when a name matches several categories the last one applies
CATEGORY_RULES: Tuple[CategoryRule, ...] = (
	CategoryRule(("pronunciation", "phonology"), "pronunciation_score", 0.30),
	CategoryRule(("fluency", "flow"), "fluency_score", 0.25),
	CategoryRule(("accuracy", "intelligibility"), "accuracy_score", 0.20, _severity_modifier),
	CategoryRule(("prosody", "intonation", "stress"), "prosody_score", 0.20, _tone_modifier),
	CategoryRule(("range", "completeness", "content"), "completeness_score", 0.15, _rate_modifier),
)


class AudioAdjuster:
	"""Nudges an AI score with objective audio metrics.

	The adjustment is a fraction of ``max_score``: one category delta picked
	by the criterion name, plus a global confidence term and a strong-accent
	penalty. The result is clamped to ``[0, max_score]``.
	"""

	def adjustment(self, criterion_name: str, audio: AudioAnalysis) -> float:
		"""Fractional adjustment before scaling by ``max_score``."""
		name = (criterion_name or "").lower()
		total = 0.0
		for rule in CATEGORY_RULES:
			if rule.matches(name):
				total = rule.delta(audio)

		confidence = 0.5 if audio.confidence is None else audio.confidence
		total += (confidence - 0.5) * CONFIDENCE_WEIGHT

		accent = audio.accent_analysis
		if accent is not None and (accent.strength or "").lower() == "strong":
			total -= STRONG_ACCENT_PENALTY
		return total

	def adjust(
		self,
		base_score: float,
		criterion_name: str,
		audio_analysis: Optional[AudioAnalysis],
		max_score: float,
	) -> float:
		if audio_analysis is None:
			return base_score
		points = self.adjustment(criterion_name, audio_analysis) * max_score
		adjusted = min(max(base_score + points, 0.0), max_score)
		logger.debug(
			"Audio adjustment %s: %.2f %+.2f -> %.2f", criterion_name, base_score, points, adjusted,
		)
		return adjusted


def has_core_metrics(audio: Optional[AudioAnalysis]) -> bool:
	if audio is None:
		return False
	return all(getattr(audio, metric) is not None for metric in REQUIRED_METRICS)


def describe(audio: Optional[AudioAnalysis]) -> str:
	if audio is None:
		return "No audio analysis available"

	def fmt(value: Optional[float]) -> str:
		return "N/A" if value is None else f"{value:g}"

	summary = [
		f"Pronunciation: {fmt(audio.pronunciation_score)}/100",
		f"Fluency: {fmt(audio.fluency_score)}/100",
		f"Accuracy: {fmt(audio.accuracy_score)}/100",
	]
	if audio.emotional_tone:
		summary.append(f"Tone: {audio.emotional_tone}")
	if audio.error_analysis and audio.error_analysis.severity:
		summary.append(f"Error Severity: {audio.error_analysis.severity}")
	quality = audio.audio_quality_metrics
	if quality and quality.speech_rate and quality.speech_rate.rate_assessment:
		summary.append(f"Speech Rate: {quality.speech_rate.rate_assessment}")
	return ", ".join(summary)
