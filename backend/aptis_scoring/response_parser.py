"""
Turns raw model text into a ``ScoreResult``.

Extraction is tried strategy by strategy: strict JSON, then one repair of a
truncated object, then pattern matching over the raw text. Whatever is
recovered goes through the same score resolution, so a label scores the same
on every path. ``ResponseParser.parse`` never raises.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .cefr import CefrConverter
from .models import ScoreResult
from .task_types import rubric_band_score, task_profile

logger = logging.getLogger(__name__)

DEFAULT_CEFR_LEVEL = "B1"
DEFAULT_COMMENT = "No comment provided"
NOT_AVAILABLE = "N/A"

FIELD_ALIASES: Dict[str, Sequence[str]] = {
	"cefr_level": ("cefr_level", "cefrLevel", "level", "estimated_level", "band"),
	"comment": ("comment", "feedback", "overall_comment"),
	"strengths": ("strengths",),
	"weaknesses": ("weaknesses",),
	"suggestions": ("suggestions", "improvement_advice", "recommendations"),
	"score": ("score",),
}

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


@dataclass
class Extraction:
	fields: Dict[str, Any]
	strategy: str
	repaired: bool = False
	degraded: Optional[str] = None


class ExtractionStrategy(Protocol):
	name: str

	def extract(self, text: str) -> Optional[Extraction]:
		"""Return recovered fields, or None to let the next strategy try."""


def clean_response(raw_text: Optional[str]) -> str:
	if raw_text is None:
		return ""
	return _FENCE_RE.sub("", str(raw_text)).strip()


def repair_truncated_json(fragment: str) -> Optional[str]:
	"""Close an object cut off mid-stream at its last complete field.

	``fragment`` starts at the opening brace. Only one candidate is produced;
	a value truncated inside a string does not become valid JSON here.
	"""
	if "}" in fragment:
		return _TRAILING_COMMA_RE.sub(r"\1", fragment[: fragment.rfind("}") + 1])
	last_quote = fragment.rfind('"')
	last_comma = fragment.rfind(",")
	if last_quote > last_comma:
		return fragment[: last_quote + 1] + "\n}"
	if last_comma > 0:
		return fragment[:last_comma] + "\n}"
	return None


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
	try:
		data = json.loads(text)
	except ValueError:
		return None
	return data if isinstance(data, dict) else None


class JsonStrategy:
	name = "json"

	def extract(self, text: str) -> Optional[Extraction]:
		start = text.find("{")
		if start == -1:
			return None
		end = text.rfind("}")
		if end > start:
			data = _loads_object(text[start : end + 1])
			if data is not None:
				return Extraction(fields=data, strategy=self.name)

		repaired = repair_truncated_json(text[start:])
		if repaired is None:
			return None
		data = _loads_object(repaired)
		if data is None:
			return None
		logger.info("Repaired truncated AI JSON response")
		return Extraction(fields=data, strategy=self.name, repaired=True)


def _unescape(value: str) -> str:
	try:
		return json.loads(f'"{value}"')
	except ValueError:
		return value.replace("\\n", "\n").replace('\\"', '"')


class RegexStrategy:
	"""Last resort: pull fields out of text that is not valid JSON.

	Accepts single or double quotes, string or array values, and values that
	run to the end of a truncated response.
	"""

	name = "regex"
	_ITEM_RE = re.compile(r'"((?:[^"\\]|\\.)*)"|\'([^\']*)\'')
	# Free-text labels, checked in order
	_LABEL_PATTERNS = (
		re.compile(r"\bA1\s*/\s*A2\b", re.IGNORECASE),
		re.compile(r"\b(?:(strong|weak|above|below|typical)\s+)?(A0|[ABC][12](?:\.[12])?)(\+)?", re.IGNORECASE),
	)

	def _field_re(self, key: str) -> "re.Pattern[str]":
		return re.compile(
			r"[\"']?(?<!\w)" + re.escape(key) + r"[\"']?\s*:\s*"
			r"(?:\"((?:[^\"\\]|\\.)*)|'([^']*)|\[([^\]]*)|(-?\d+(?:\.\d+)?))",
			re.DOTALL,
		)

	def _find(self, text: str, keys: Sequence[str]) -> Any:
		for key in keys:
			match = self._field_re(key).search(text)
			if not match:
				continue
			double, single, array, number = match.groups()
			if double is not None:
				return _unescape(double)
			if single is not None:
				return single
			if array is not None:
				return [a if a else b for a, b in self._ITEM_RE.findall(array)]
			return number
		return None

	def _free_text_label(self, text: str) -> Optional[str]:
		for pattern in self._LABEL_PATTERNS:
			match = pattern.search(text)
			if not match:
				continue
			if match.lastindex is None:
				return "A1/A2"
			qualifier, band, plus = match.groups()
			label = band.upper() + (plus or "")
			return f"{qualifier.capitalize()} {label}" if qualifier else label
		return None

	def extract(self, text: str) -> Optional[Extraction]:
		fields: Dict[str, Any] = {}
		for name, keys in FIELD_ALIASES.items():
			value = self._find(text, keys)
			if value is not None:
				fields[name] = value
		if "cefr_level" not in fields:
			label = self._free_text_label(text)
			if label:
				fields["cefr_level"] = label
		return Extraction(
			fields=fields,
			strategy=self.name,
			degraded="Invalid JSON in AI response; fields recovered by pattern matching",
		)


# ============================================================================
# FIELD NORMALIZATION
# ============================================================================

def _as_text(value: Any) -> Optional[str]:
	if value is None:
		return None
	if isinstance(value, (list, tuple)):
		items = [str(item).strip() for item in value if item is not None and str(item).strip()]
		return "\n".join(items) or None
	if isinstance(value, dict):
		return json.dumps(value, ensure_ascii=False)
	text = str(value).strip()
	return text or None


def _as_number(value: Any) -> Optional[float]:
	if isinstance(value, bool) or value is None:
		return None
	if isinstance(value, (int, float)):
		number = float(value)
	else:
		match = _NUMBER_RE.search(str(value))
		if not match:
			return None
		number = float(match.group(0))
	return number if math.isfinite(number) else None


def _pick(data: Dict[str, Any], name: str) -> Any:
	for key in FIELD_ALIASES[name]:
		if data.get(key) is not None:
			return data[key]
	return None


def _clamp(value: float, max_score: float) -> float:
	return min(max(value, 0.0), max_score)


class ResponseParser:
	def __init__(
		self,
		converter: Optional[CefrConverter] = None,
		strategies: Optional[List[ExtractionStrategy]] = None,
	) -> None:
		self.converter = converter or CefrConverter()
		self.strategies: List[ExtractionStrategy] = strategies or [JsonStrategy(), RegexStrategy()]

	def parse(self, raw_text: Optional[str], max_score: float, task_type_code: Optional[str] = None) -> ScoreResult:
		cleaned = clean_response(raw_text)
		try:
			return self._parse(cleaned, max_score, task_type_code)
		except Exception as exc:
			logger.warning("AI response parsing failed", exc_info=True, extra={"task_type_code": task_type_code})
			return self._default_result(cleaned, max_score, f"Unexpected parser failure: {exc}")

	def resolve_score(
		self,
		cefr_level: Optional[str],
		model_score: Optional[float],
		max_score: float,
		task_type_code: Optional[str],
	) -> float:
		"""Points for a recovered label and/or numeric score, always in range."""
		normalized = task_profile(task_type_code).cefr_normalized
		if cefr_level and normalized:
			banded = rubric_band_score(cefr_level, task_type_code, max_score)
			if banded is not None:
				return _clamp(banded, max_score)
		if model_score is not None and not normalized:
			return _clamp(model_score, max_score)
		if cefr_level:
			return _clamp(self.converter.convert(cefr_level, task_type_code, max_score), max_score)
		if model_score is not None:
			return _clamp(model_score, max_score)
		return max_score * 0.5

	def _parse(self, cleaned: str, max_score: float, task_type_code: Optional[str]) -> ScoreResult:
		if not cleaned:
			logger.warning("Empty AI response, using default score", extra={"task_type_code": task_type_code})
			return self._default_result(cleaned, max_score, "Empty AI response")

		extraction: Optional[Extraction] = None
		for strategy in self.strategies:
			extraction = strategy.extract(cleaned)
			if extraction is not None:
				break
		if extraction is None:
			return self._default_result(cleaned, max_score, "No scorable content in AI response")

		data = extraction.fields
		cefr_level = _as_text(_pick(data, "cefr_level"))
		model_score = _as_number(_pick(data, "score"))
		parse_error = extraction.degraded
		if cefr_level is None and parse_error is None:
			parse_error = "AI response has no cefr_level field"

		score = self.resolve_score(cefr_level, model_score, max_score, task_type_code)
		if parse_error:
			logger.warning(
				"Degraded AI response parse",
				extra={"task_type_code": task_type_code, "strategy": extraction.strategy, "parse_error": parse_error},
			)

		return ScoreResult(
			score=score,
			max_score=max_score,
			cefr_level=cefr_level or DEFAULT_CEFR_LEVEL,
			comment=_as_text(_pick(data, "comment")) or DEFAULT_COMMENT,
			strengths=_as_text(_pick(data, "strengths")) or NOT_AVAILABLE,
			weaknesses=_as_text(_pick(data, "weaknesses")) or NOT_AVAILABLE,
			suggestions=_as_text(_pick(data, "suggestions")) or NOT_AVAILABLE,
			raw_response=cleaned,
			parse_error=parse_error,
		)

	def _default_result(self, cleaned: str, max_score: float, reason: str) -> ScoreResult:
		return ScoreResult(
			score=max_score * 0.5,
			max_score=max_score,
			cefr_level=DEFAULT_CEFR_LEVEL,
			raw_response=cleaned,
			parse_error=reason,
		)


def looks_like_scorable(raw_text: Optional[str]) -> bool:
	"""Advisory pre-check: braces and the required field names are present."""
	text = raw_text or ""
	return "{" in text and "}" in text and "cefr_level" in text and "comment" in text
