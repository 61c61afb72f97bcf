from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .cefr import round_half_up
from .models import AudioAnalysis, Criterion, ImageRef, ScoringTask
from .rubrics import (
	AUDIO_GUIDANCE,
	GENERIC_CEFR_GUIDANCE,
	JSON_ONLY,
	LANGUAGE_VALIDATION,
	RUBRICS,
	WRITING_CORRECTIONS,
	Rubric,
)
from .task_types import Skill, TaskType, skill_for_code

logger = logging.getLogger(__name__)


def _fmt(value: float) -> str:
	"""4.0 -> "4", 2.5 -> "2.5"."""
	return f"{value:g}"


def _pct(value: Optional[float]) -> str:
	return f"{int(round_half_up((value or 0) * 100))}%"


def _na(value: object) -> str:
	if value is None or value == "":
		return "N/A"
	if isinstance(value, float):
		return _fmt(value)
	return str(value)


def count_words(text: str) -> int:
	return len((text or "").split())


def count_responses(text: str) -> int:
	return len([line for line in (text or "").splitlines() if line.strip()])


def describe_visual_context(images: Sequence[ImageRef]) -> str:
	"""Numbered image list plus a describe/compare note; empty when no images."""
	if not images:
		return ""
	lines = ["", "", "VISUAL CONTEXT (Images provided to student):"]
	for idx, image in enumerate(images, start=1):
		source = " [From main question]" if image.source == "parent_question" else ""
		lines.append(f"{idx}. {image.description}{source}")
	if len(images) == 1:
		lines += ["", "ASSESSMENT NOTE: Student should describe/discuss this image as part of their response."]
	elif len(images) == 2:
		lines += ["", "ASSESSMENT NOTE: Student should compare these two images, identifying similarities and differences."]
	return "\n".join(lines)


def describe_audio_analysis(audio: Optional[AudioAnalysis]) -> str:
	if audio is None:
		return ""
	quality = audio.audio_quality_metrics
	rate = quality.speech_rate if quality else None
	accent = audio.accent_analysis
	errors = audio.error_analysis
	return "\n".join([
		"AUDIO ANALYSIS DATA (objective metrics):",
		f"- Pronunciation Score: {_na(audio.pronunciation_score)}/100",
		f"- Accuracy Score: {_na(audio.accuracy_score)}/100",
		f"- Fluency Score: {_na(audio.fluency_score)}/100",
		f"- Prosody Score: {_na(audio.prosody_score)}/100",
		f"- Overall Confidence: {_pct(audio.confidence)}",
		f"- Speech Rate: {_na(rate.words_per_minute if rate else None)} WPM ({_na(rate.rate_assessment if rate else None)})",
		f"- Voice Activity Ratio: {_pct(quality.voice_activity_ratio if quality else None)}",
		f"- Emotional Tone: {audio.emotional_tone or 'neutral'}",
		f"- Accent Strength: {_na(accent.strength if accent else None)} (confidence: {_pct(accent.confidence if accent else None)})",
		f"- Error Analysis: {(errors.total_errors if errors else None) or 0} total errors, {_na(errors.severity if errors else None)} severity",
		"",
		AUDIO_GUIDANCE,
	])


class PromptBuilder:
	"""Renders the rubric-embedded prompt for one answer.

	Known task types get their APTIS rubric with the band-to-points table for
	the caller's ``max_score``; anything else gets the generic criteria prompt.
	The model is always asked for a single JSON object.
	"""

	def build(
		self,
		task_type_code: str,
		question_content: str,
		criteria: Sequence[Criterion],
		max_score: float,
		visual_context: Sequence[ImageRef] = (),
		*,
		answer_text: str = "",
		sample_answer: Optional[str] = None,
		key_points: Sequence[str] = (),
		audio_analysis: Optional[AudioAnalysis] = None,
	) -> str:
		task_type = TaskType.from_code(task_type_code)
		rubric = RUBRICS.get(task_type)
		if rubric is None:
			logger.debug("No rubric for task type %r, using generic prompt", task_type_code)
			return self._build_generic(
				task_type_code, question_content, criteria, max_score, visual_context,
				answer_text, sample_answer, key_points, audio_analysis,
			)
		return self._build_rubric(rubric, question_content, criteria, max_score, visual_context, answer_text, audio_analysis)

	def build_for_task(self, task: ScoringTask, audio_analysis: Optional[AudioAnalysis] = None) -> str:
		question = task.question
		return self.build(
			task.task_type_code,
			question.content,
			task.criteria,
			task.max_score,
			question.images,
			answer_text=task.answer_text,
			sample_answer=question.sample_answer,
			key_points=question.key_points,
			audio_analysis=audio_analysis,
		)

	# ------------------------------------------------------------------
	# Rubric prompts
	# ------------------------------------------------------------------

	def _band_mapping(self, rubric: Rubric, max_score: float) -> List[str]:
		lines = []
		scale = rubric.band_scale
		for band, level in enumerate(rubric.levels):
			if band == 0:
				lines.append(f"  * {level} = 0 points")
			elif band == scale:
				lines.append(f"  * {level} = {_fmt(max_score)} points (100% of max)")
			else:
				points = max_score * band / scale
				percent = int(round_half_up(100 * band / scale))
				lines.append(f"  * {level} = {points:.2f} points ({percent}% of max, {band}/{scale} scale)")
		return lines

	def _build_rubric(
		self,
		rubric: Rubric,
		question_content: str,
		criteria: Sequence[Criterion],
		max_score: float,
		images: Sequence[ImageRef],
		answer_text: str,
		audio: Optional[AudioAnalysis],
	) -> str:
		speaking = rubric.skill is Skill.SPEAKING
		choices = ", ".join(rubric.levels[:-1]) + f", or {rubric.levels[-1]}"
		# A caller-supplied rubric prompt refines the built-in band descriptions
		extra_rubric = "\n".join(c.rubric_prompt for c in criteria if c.rubric_prompt)

		parts: List[str] = []
		if speaking:
			parts.append(f"You are an official APTIS Speaking assessor scoring {rubric.title}.")
		else:
			parts.append(f"You are an official APTIS assessor scoring {rubric.title}.")
		parts += [
			"",
			"OFFICIAL APTIS RUBRIC:",
			f"Maximum Score: {_fmt(max_score)} points (CEFR-based conversion)",
			"",
			f"CEFR SCALE (0-{rubric.band_scale} internal rubric, will be converted to {_fmt(max_score)} points):",
			rubric.scale,
		]
		if extra_rubric:
			parts += ["", "ADDITIONAL RUBRIC GUIDANCE:", extra_rubric]
		if rubric.areas:
			parts += ["", "ASSESSMENT AREAS:"] + [f"- {area}" for area in rubric.areas]
		if rubric.requirements:
			parts += ["", "TASK REQUIREMENTS:"] + [f"- {line}" for line in rubric.requirements]
			if rubric.answer_metric == "words":
				parts.append(f"- Student wrote: {count_words(answer_text)} words")
			elif rubric.answer_metric == "responses":
				parts.append(f"- Student provided: {count_responses(answer_text)} responses")

		parts += ["", f"QUESTION: {question_content}{describe_visual_context(images)}", ""]
		if speaking:
			parts.append(f"STUDENT'S TRANSCRIBED SPEECH: {answer_text}")
		else:
			parts.append(f"STUDENT RESPONSE: {answer_text}")

		if rubric.notes:
			parts += ["", "IMPORTANT ASSESSMENT NOTES:"] + [f"- {note}" for note in rubric.notes]
		if audio is not None:
			parts += ["", describe_audio_analysis(audio)]

		parts += [
			"",
			"SCORING INSTRUCTIONS:",
			f"- First, assess the CEFR level ({choices}) based on the APTIS rubric above",
			f"- The CEFR level is converted to points using this mapping for {_fmt(max_score)} max points:",
		]
		parts += self._band_mapping(rubric, max_score)
		parts += [f"- {check}" for check in rubric.checks]
		if speaking:
			parts += [
				"- DO NOT calculate a numerical score - only determine the CEFR level",
				f"- The system will automatically convert the CEFR level to 0-{_fmt(max_score)} points",
			]

		parts += ["", "Return assessment in JSON format:", "{"]
		if not speaking:
			parts.append(f'  "score": [0-{_fmt(max_score)} matching the CEFR mapping above],')
		parts += [
			f'  "cefr_level": "[{choices} - must match rubric exactly]",',
			f'  "comment": "[{rubric.comment_hint}]",',
			f'  "suggestions": "[{rubric.suggestions_hint}]"',
			"}",
			JSON_ONLY,
		]
		return "\n".join(parts)

	# ------------------------------------------------------------------
	# Generic prompt
	# ------------------------------------------------------------------

	def _build_generic(
		self,
		task_type_code: str,
		question_content: str,
		criteria: Sequence[Criterion],
		max_score: float,
		images: Sequence[ImageRef],
		answer_text: str,
		sample_answer: Optional[str],
		key_points: Sequence[str],
		audio: Optional[AudioAnalysis],
	) -> str:
		skill = skill_for_code(task_type_code)
		criteria_lines = [f"- {c.name}: {c.description or c.rubric_prompt}" for c in criteria]
		if not criteria_lines:
			criteria_lines = ["- Overall performance: task fulfilment, grammar, vocabulary and coherence"]
		label = task_type_code or "language"

		parts: List[str] = [
			f"You are an expert APTIS English language examiner. Score this {label} response holistically using ALL the following criteria:",
			"",
		]
		parts += criteria_lines
		parts += ["", LANGUAGE_VALIDATION, ""]
		parts.append(f"Question: {question_content}{describe_visual_context(images)}")
		if sample_answer:
			parts.append(f"Sample Answer: {sample_answer}")
		if key_points:
			parts.append(f"Key Points Expected: {', '.join(key_points)}")
		parts.append(f"Student Response: {answer_text}")
		if skill is Skill.WRITING:
			parts += ["", WRITING_CORRECTIONS]
		if audio is not None:
			parts += ["", describe_audio_analysis(audio)]

		parts += [
			"",
			"IMPORTANT SCORING GUIDELINES:",
			f"- Maximum possible score is {_fmt(max_score)} points",
			"- Be consistent between numerical score and CEFR level:",
		]
		for low, high, level in GENERIC_CEFR_GUIDANCE:
			low_pts = _fmt(round_half_up(max_score * low))
			high_pts = _fmt(max_score) if high >= 1.0 else _fmt(round_half_up(max_score * high))
			parts.append(f"  * {int(low * 100)}-{int(high * 100)}% ({low_pts}-{high_pts}): {level}")

		if skill is Skill.SPEAKING:
			suggestions = "Pronunciation, fluency and language tips for speaking"
		else:
			suggestions = "Specific text corrections using 'Change X to Y' format"
		parts += [
			"",
			"Return your response in this exact JSON format:",
			"{",
			f'  "score": [numerical score out of {_fmt(max_score)} - consistent with CEFR level],',
			'  "cefr_level": "[CEFR level: A1, A2, B1, B2, C1, or C2 - must match score percentage]",',
			'  "comment": "[overall assessment combining all criteria]",',
			f'  "suggestions": "[{suggestions}]"',
			"}",
			JSON_ONLY,
		]
		return "\n".join(parts)
