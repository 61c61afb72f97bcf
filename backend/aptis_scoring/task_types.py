"""
APTIS task types and their scoring profiles.

Task-type codes arrive from the exam layer as free strings. They are resolved
once, through an explicit alias table, into the closed ``TaskType`` enum; any
code not in the table becomes ``TaskType.UNKNOWN`` and is routed to the
generic rubric. Everything that depends on the task type (rubric band scale,
CEFR target profile, skill) is looked up from the read-only tables below
rather than decided inline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class Skill(str, Enum):
	SPEAKING = "SPEAKING"
	WRITING = "WRITING"
	OTHER = "OTHER"


class TargetProfile(str, Enum):
	"""The CEFR range a task is designed to discriminate."""
	A2_TARGET = "A2_TARGET"
	B1_TARGET = "B1_TARGET"
	B2_TARGET = "B2_TARGET"


class TaskType(str, Enum):
	SPEAKING_INTRO = "SPEAKING_INTRO"
	SPEAKING_DESCRIPTION = "SPEAKING_DESCRIPTION"
	SPEAKING_COMPARISON = "SPEAKING_COMPARISON"
	SPEAKING_DISCUSSION = "SPEAKING_DISCUSSION"
	WRITING_SHORT = "WRITING_SHORT"
	WRITING_FORM = "WRITING_FORM"
	WRITING_LONG = "WRITING_LONG"
	WRITING_EMAIL = "WRITING_EMAIL"
	UNKNOWN = "UNKNOWN"

	@classmethod
	def from_code(cls, code: Optional[str]) -> "TaskType":
		key = (code or "").strip().upper()
		return _CODE_ALIASES.get(key, cls.UNKNOWN)


_CODE_ALIASES: Mapping[str, TaskType] = MappingProxyType({
	"SPEAKING_INTRO": TaskType.SPEAKING_INTRO,
	"SPEAKING_PERSONAL": TaskType.SPEAKING_INTRO,
	"SPEAKING_PART1": TaskType.SPEAKING_INTRO,
	"PART1": TaskType.SPEAKING_INTRO,
	"SPEAKING_DESCRIPTION": TaskType.SPEAKING_DESCRIPTION,
	"SPEAKING_DESCRIBE": TaskType.SPEAKING_DESCRIPTION,
	"SPEAKING_PART2": TaskType.SPEAKING_DESCRIPTION,
	"PART2": TaskType.SPEAKING_DESCRIPTION,
	"SPEAKING_COMPARISON": TaskType.SPEAKING_COMPARISON,
	"SPEAKING_COMPARE": TaskType.SPEAKING_COMPARISON,
	"SPEAKING_PART3": TaskType.SPEAKING_COMPARISON,
	"PART3": TaskType.SPEAKING_COMPARISON,
	"SPEAKING_DISCUSSION": TaskType.SPEAKING_DISCUSSION,
	"SPEAKING_DISCUSS": TaskType.SPEAKING_DISCUSSION,
	"SPEAKING_PART4": TaskType.SPEAKING_DISCUSSION,
	"PART4": TaskType.SPEAKING_DISCUSSION,
	"WRITING_SHORT": TaskType.WRITING_SHORT,
	"WRITING_FORM": TaskType.WRITING_FORM,
	"WRITING_LONG": TaskType.WRITING_LONG,
	"WRITING_EMAIL": TaskType.WRITING_EMAIL,
})


@dataclass(frozen=True)
class TaskProfile:
	"""Static scoring data for one task type.

	``bands`` maps a normalized CEFR label (upper case, no whitespace) to the
	rubric's internal band number; ``band_scale`` is the top band. Points are
	``max_score * band / band_scale``.
	"""
	task_type: TaskType
	skill: Skill
	bands: Mapping[str, int] = field(default_factory=dict)
	band_scale: int = 0

	@property
	def cefr_normalized(self) -> bool:
		# The model picks a band; the points are derived here, not by the model
		return bool(self.bands) and self.band_scale > 0


def _bands(**kwargs: int) -> Mapping[str, int]:
	return MappingProxyType(dict(kwargs))


# Band keys that are not valid identifiers are added through dict literals
_PART1_BANDS = MappingProxyType({"A0": 0, "A1.1": 1, "A1.2": 2, "A2.1": 3, "A2.2": 4, "B1+": 5, "B1": 5})
_PART2_3_BANDS = MappingProxyType({"BELOWA2": 0, "A2.1": 1, "A2.2": 2, "B1.1": 3, "B1.2": 4, "B2+": 5, "B2": 5})
_PART4_BANDS = MappingProxyType({
	"A1/A2": 0, "BELOWB1": 0, "BELOWA2": 0, "B1.1": 1, "B1.2": 2, "B2.1": 3, "B2.2": 4, "C1": 5, "C2": 6,
})
_WRITING_SHORT_BANDS = MappingProxyType({"A0": 0, "A1.1": 1, "A1.2": 2, "ABOVEA1": 3})
_WRITING_FORM_BANDS = MappingProxyType({"A0": 0, "A1.1": 1, "A1.2": 2, "A2.1": 3, "A2.2": 4, "B1+": 5})
_WRITING_LONG_BANDS = MappingProxyType({"A0": 0, "A2.1": 1, "A2.2": 2, "B1.1": 3, "B1.2": 4, "B2+": 5})


TASK_PROFILES: Mapping[TaskType, TaskProfile] = MappingProxyType({
	TaskType.SPEAKING_INTRO: TaskProfile(TaskType.SPEAKING_INTRO, Skill.SPEAKING, _PART1_BANDS, 5),
	TaskType.SPEAKING_DESCRIPTION: TaskProfile(TaskType.SPEAKING_DESCRIPTION, Skill.SPEAKING, _PART2_3_BANDS, 5),
	TaskType.SPEAKING_COMPARISON: TaskProfile(TaskType.SPEAKING_COMPARISON, Skill.SPEAKING, _PART2_3_BANDS, 5),
	TaskType.SPEAKING_DISCUSSION: TaskProfile(TaskType.SPEAKING_DISCUSSION, Skill.SPEAKING, _PART4_BANDS, 6),
	TaskType.WRITING_SHORT: TaskProfile(TaskType.WRITING_SHORT, Skill.WRITING, _WRITING_SHORT_BANDS, 3),
	TaskType.WRITING_FORM: TaskProfile(TaskType.WRITING_FORM, Skill.WRITING, _WRITING_FORM_BANDS, 5),
	TaskType.WRITING_LONG: TaskProfile(TaskType.WRITING_LONG, Skill.WRITING, _WRITING_LONG_BANDS, 5),
	TaskType.WRITING_EMAIL: TaskProfile(TaskType.WRITING_EMAIL, Skill.WRITING, _PART4_BANDS, 6),
})


def skill_for_code(code: Optional[str]) -> Skill:
	task_type = TaskType.from_code(code)
	if task_type is not TaskType.UNKNOWN:
		return TASK_PROFILES[task_type].skill
	# Unmapped codes still carry their skill as a prefix (e.g. WRITING_ESSAY)
	key = (code or "").strip().upper()
	for skill in (Skill.SPEAKING, Skill.WRITING):
		if key.startswith(skill.value):
			return skill
	return Skill.OTHER


def task_profile(code: Optional[str]) -> TaskProfile:
	task_type = TaskType.from_code(code)
	profile = TASK_PROFILES.get(task_type)
	if profile is not None:
		return profile
	return TaskProfile(TaskType.UNKNOWN, skill_for_code(code))


# ============================================================================
# TASK-TARGET PROFILE SELECTION
# ============================================================================

# Checked in this order; the first table with an entry wins
TARGET_BY_MAX_SCORE: Mapping[float, TargetProfile] = MappingProxyType({
	6: TargetProfile.B2_TARGET,
})

TARGET_BY_TASK_TYPE: Mapping[TaskType, TargetProfile] = MappingProxyType({
	TaskType.SPEAKING_INTRO: TargetProfile.A2_TARGET,
})

TARGET_BY_SKILL_AND_MAX_SCORE: Mapping[Tuple[Skill, float], TargetProfile] = MappingProxyType({
	(Skill.WRITING, 4): TargetProfile.A2_TARGET,
})

DEFAULT_TARGET = TargetProfile.B1_TARGET

# Points awarded for a bare CEFR band under each target profile
TARGET_MAPPINGS: Mapping[TargetProfile, Mapping[str, int]] = MappingProxyType({
	TargetProfile.A2_TARGET: _bands(A1=1, A2=3, B1=5, B2=5, C1=5, C2=5),
	TargetProfile.B1_TARGET: _bands(A1=0, A2=2, B1=3, B2=5, C1=5, C2=5),
	TargetProfile.B2_TARGET: _bands(A1=0, A2=0, B1=1, B2=3, C1=5, C2=6),
})


def select_target_profile(task_type_code: Optional[str], max_score: float) -> TargetProfile:
	if max_score in TARGET_BY_MAX_SCORE:
		return TARGET_BY_MAX_SCORE[max_score]
	task_type = TaskType.from_code(task_type_code)
	if task_type in TARGET_BY_TASK_TYPE:
		return TARGET_BY_TASK_TYPE[task_type]
	skill_key = (skill_for_code(task_type_code), max_score)
	if skill_key in TARGET_BY_SKILL_AND_MAX_SCORE:
		return TARGET_BY_SKILL_AND_MAX_SCORE[skill_key]
	return DEFAULT_TARGET


def normalize_label(label: Optional[str]) -> str:
	"""Trim, upper-case and drop all whitespace: ``" strong b1 "`` -> ``"STRONGB1"``."""
	return "".join((label or "").split()).upper()


def rubric_band_score(label: Optional[str], task_type_code: Optional[str], max_score: float) -> Optional[float]:
	"""Points for a label on the task's own rubric scale, or None when the
	task has no band scale or the label is not one of its bands."""
	profile = task_profile(task_type_code)
	if not profile.cefr_normalized:
		return None
	band = profile.bands.get(normalize_label(label))
	if band is None:
		return None
	return round(max_score * band / profile.band_scale, 2)
