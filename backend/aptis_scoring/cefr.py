"""
CEFR label to score conversion.

A label reported by the model ("B1.2", "STRONG A2", "below A2", "3") is turned
into points for a task's scale. Resolution order:

1. exact lookup in the table for the task's ``max_score`` bucket
2. qualifier strip (STRONG/WEAK/ABOVE/BELOW/TYPICAL) with a half-point nudge
3. bare band (``[ABC][12]``) through the task-target profile
4. first numeric token, capped at ``max_score``
5. zero, with a warning

Every path returns a value in ``[0, max_score]`` and none of them raise.
"""

from __future__ import annotations

import logging
import math
import re
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .task_types import TARGET_MAPPINGS, normalize_label, select_target_profile

logger = logging.getLogger(__name__)


def _table(pairs: Mapping[str, int]) -> Mapping[str, int]:
	return MappingProxyType(dict(pairs))


SCALE_4 = _table({
	"BELOWA1": 0, "BELOWA2": 0,
	"A1.1": 1, "A1": 1, "WEAKA1": 1,
	"A1.2": 2, "STRONGA1": 2, "ABOVEA1": 2,
	"A2.1": 3, "A2": 3,
	"A2.2": 4, "STRONGA2": 4, "ABOVEA2": 4,
})

SCALE_5 = _table({
	"BELOWA1": 0, "BELOWA2": 0, "A1": 0, "WEAKA1": 0,
	"A1.1": 1, "A1.2": 1, "STRONGA1": 1, "ABOVEA1": 1,
	"A2.1": 2, "A2": 2, "WEAKA2": 2,
	"A2.2": 3, "STRONGA2": 3,
	"ABOVEA2": 4, "B1.1": 4, "B1": 4,
	"B1.2": 5, "STRONGB1": 5, "ABOVEB1": 5,
})

SCALE_6 = _table({
	"BELOWA1": 0, "BELOWA2": 0, "A1": 0, "A1.1": 0, "A1.2": 0, "A2": 0, "A2.1": 0,
	"A2.2": 1, "STRONGA2": 1, "ABOVEA2": 1,
	"B1.1": 2, "B1": 2, "WEAKB1": 2,
	"B1.2": 3, "STRONGB1": 3,
	"ABOVEB1": 4, "B2.1": 4, "B2": 4, "WEAKB2": 4,
	"B2.2": 5, "STRONGB2": 5, "ABOVEB2": 5,
	"C1": 6, "C1.1": 6, "C1.2": 6, "C2": 6,
})

SCALE_DEFAULT = _table({
	"BELOWA1": 0, "BELOWA2": 0,
	"A1": 1, "A1.1": 1, "A1.2": 1,
	"A2": 2, "A2.1": 2, "A2.2": 2,
	"B1": 3, "B1.1": 3, "B1.2": 3,
	"B2": 4, "B2.1": 4, "B2.2": 4,
	"C1": 5, "C1.1": 5, "C1.2": 5, "C2": 5,
})

SCALES: Mapping[float, Mapping[str, int]] = MappingProxyType({4: SCALE_4, 5: SCALE_5, 6: SCALE_6})

# Order matters: the first qualifier found in the label is the one applied
QUALIFIERS: Tuple[Tuple[str, float], ...] = (
	("STRONG", 0.5),
	("WEAK", -0.5),
	("ABOVE", 0.5),
	("BELOW", -0.5),
	("TYPICAL", 0.0),
)

_BAND_RE = re.compile(r"[ABC][12]")
_NUMBER_RE = re.compile(r"\d+\.?\d*")

# Upper bounds of the percentage bands used for consistency checking
PERCENTAGE_BANDS: Tuple[Tuple[float, str], ...] = (
	(30, "A1"),
	(50, "A2"),
	(60, "B1"),
	(70, "B1-B2"),
	(80, "B2"),
	(90, "B2-C1"),
)


def round_half_up(value: float, ndigits: int = 0) -> float:
	"""Round .5 away from zero for non-negative values (``round`` is banker's)."""
	factor = 10 ** ndigits
	return math.floor(value * factor + 0.5) / factor


def scale_for(max_score: float) -> Mapping[str, int]:
	return SCALES.get(max_score, SCALE_DEFAULT)


def _clamp(value: float, max_score: float) -> float:
	return float(min(max(value, 0.0), max_score))


class CefrConverter:
	"""Stateless; every method is a pure function of its arguments."""

	def convert(self, cefr_label: Optional[str], task_type_code: Optional[str], max_score: float) -> float:
		label = normalize_label(cefr_label)
		table = scale_for(max_score)

		if label in table:
			return _clamp(table[label], max_score)

		nudged = self._convert_with_qualifier(label, table, max_score)
		if nudged is not None:
			return nudged

		targeted = self._convert_with_target(label, task_type_code, max_score)
		if targeted is not None:
			return targeted

		match = _NUMBER_RE.search(cefr_label or "")
		if match:
			value = float(match.group(0))
			logger.debug("CEFR label %r resolved numerically to %s", cefr_label, value)
			return _clamp(value, max_score)

		logger.warning(
			"Unknown CEFR label, scoring as zero",
			extra={"cefr_label": cefr_label, "task_type_code": task_type_code, "max_score": max_score},
		)
		return 0.0

	def _convert_with_qualifier(self, label: str, table: Mapping[str, int], max_score: float) -> Optional[float]:
		for qualifier, nudge in QUALIFIERS:
			if qualifier not in label:
				continue
			base = label.replace(qualifier, "", 1)
			if base not in table:
				continue
			value = _clamp(round_half_up(table[base] + nudge), max_score)
			logger.debug("CEFR label %s resolved via qualifier %s to %s", label, qualifier, value)
			return value
		return None

	def _convert_with_target(self, label: str, task_type_code: Optional[str], max_score: float) -> Optional[float]:
		match = _BAND_RE.search(label)
		if not match:
			return None
		profile = select_target_profile(task_type_code, max_score)
		points = TARGET_MAPPINGS[profile].get(match.group(0))
		if points is None:
			return None
		logger.debug("CEFR label %s resolved via %s to %s", label, profile.value, points)
		return _clamp(points, max_score)


def expected_cefr_for_percentage(percentage: float) -> str:
	for upper, level in PERCENTAGE_BANDS:
		if percentage < upper:
			return level
	return "C1-C2"


def is_consistent(cefr_label: Optional[str], score: float, max_score: float) -> bool:
	"""Loose agreement check between a reported label and the score percentage.

	Sub-bands, qualifiers and neighbouring bands in the overlap zones are all
	accepted; only a clear mismatch (e.g. "C1" at 20%) returns False.
	"""
	if max_score <= 0:
		return True
	percentage = score / max_score * 100
	expected = expected_cefr_for_percentage(percentage).upper().replace(".", "")
	reported = "".join((cefr_label or "N/A").upper().replace(".", "").split())

	if reported == expected or reported.startswith(expected):
		return True
	if reported[:2] and reported[:2] in expected:
		return True
	if 50 <= percentage < 80 and reported.startswith("B"):
		return True
	if 30 <= percentage < 60 and reported.startswith("A"):
		return True
	return False
