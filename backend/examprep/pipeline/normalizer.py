"""Map loosely-typed model output onto the internal question contract.

Parsing happens in two steps. `parse_candidate` turns an arbitrary JSON value
into a `CandidateQuestion` whose fields may all be missing. `resolve_candidate`
then either yields a `DraftQuestion` with literal-text options and (when it
can be found) a literal-text correct answer, or returns None for an unusable
item. Nothing untyped leaves this module.
"""
from __future__ import annotations
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import SchemaViolation
from ..schemas import GenerationRequest
from ..settings import settings

logger = logging.getLogger(__name__)

MIN_USABLE_OPTIONS = 2

_QUESTION_KEYS = ("question", "questionText", "question_text", "prompt")
_CORRECT_KEYS = ("correct_answer", "correctAnswer", "answer", "correct", "correct_index", "answer_index")
# Index-sized numbers only; longer digit runs are matched as text
_NUMERIC = re.compile(r"^\s*\d{1,9}\s*$")
_WHITESPACE = re.compile(r"\s+")

CorrectRef = Union[int, str, None]


@dataclass
class CandidateQuestion:
	question_text: Optional[str] = None
	options: Optional[List[Any]] = None
	correct_ref: CorrectRef = None
	explanation: Optional[str] = None
	topic: Optional[str] = None
	difficulty: Optional[str] = None


@dataclass(frozen=True)
class DraftQuestion:
	"""Normalized question before shuffling; `correct_answer` None means unresolved."""
	question_text: str
	options: Tuple[str, ...]
	correct_answer: Optional[str]
	explanation: str = ""
	topic: str = ""
	difficulty: str = ""


@dataclass
class NormalizationReport:
	drafts: List[DraftQuestion] = field(default_factory=list)
	rejected: List[Tuple[int, str]] = field(default_factory=list)
	unresolved: List[int] = field(default_factory=list)


def _first_present(raw: Dict[str, Any], keys: Sequence[str]) -> Any:
	for key in keys:
		value = raw.get(key)
		if value is not None and value != "":
			return value
	return None


def _as_text(value: Any) -> Optional[str]:
	if value is None:
		return None
	if isinstance(value, str):
		return value
	if isinstance(value, (int, float)) and not isinstance(value, bool):
		return str(value)
	return None


def _canonical(text: str) -> str:
	return _WHITESPACE.sub(" ", text).strip().casefold()


def parse_candidate(raw: Any) -> CandidateQuestion:
	if not isinstance(raw, dict):
		return CandidateQuestion()
	options = raw.get("options")
	correct = _first_present(raw, _CORRECT_KEYS)
	if isinstance(correct, bool):
		correct = None
	elif isinstance(correct, float):
		correct = int(correct) if math.isfinite(correct) and correct.is_integer() else str(correct)
	elif not isinstance(correct, (int, str)):
		correct = None
	return CandidateQuestion(
		question_text=_as_text(_first_present(raw, _QUESTION_KEYS)),
		options=options if isinstance(options, list) else None,
		correct_ref=correct,
		explanation=_as_text(raw.get("explanation")),
		topic=_as_text(raw.get("topic")),
		difficulty=_as_text(raw.get("difficulty")),
	)


def clean_options(options: Sequence[Any]) -> List[str]:
	"""Coerce to trimmed strings, dropping empties and case-insensitive duplicates."""
	cleaned: List[str] = []
	seen = set()
	for opt in options:
		text = _as_text(opt)
		if text is None:
			continue
		text = _WHITESPACE.sub(" ", text).strip()
		key = text.casefold()
		if not text or key in seen:
			continue
		seen.add(key)
		cleaned.append(text)
	return cleaned


def resolve_correct_answer(ref: CorrectRef, options: Sequence[str]) -> Optional[str]:
	"""Resolve an index-or-text answer reference to the stored option text.

	A number (or numeric string) is a zero-based index. Anything else, or an
	index out of range, is matched as text ignoring case and spacing.
	"""
	if ref is None:
		return None
	if isinstance(ref, int) or _NUMERIC.match(ref):
		idx = int(ref)
		if 0 <= idx < len(options):
			return options[idx]
	wanted = _canonical(str(ref))
	for opt in options:
		if _canonical(opt) == wanted:
			return opt
	return None


def resolve_candidate(
	candidate: CandidateQuestion,
	request: GenerationRequest,
	*,
	option_count: Optional[int] = None,
) -> Tuple[Optional[DraftQuestion], str]:
	"""Return (draft, reason); draft is None when the item cannot be used."""
	expected = option_count or settings.options_per_question
	text = (candidate.question_text or "").strip()
	if not text:
		return None, "missing question text"
	if candidate.options is None:
		return None, "options is not an array"
	options = clean_options(candidate.options)
	if len(options) < MIN_USABLE_OPTIONS:
		return None, f"only {len(options)} usable option(s)"
	if len(options) != expected:
		return None, f"expected {expected} distinct options, got {len(options)}"
	correct = resolve_correct_answer(candidate.correct_ref, options)
	draft = DraftQuestion(
		question_text=text,
		options=tuple(options),
		correct_answer=correct,
		explanation=(candidate.explanation or "").strip(),
		topic=(candidate.topic or "").strip() or request.topic,
		difficulty=(candidate.difficulty or "").strip() or request.difficulty.value,
	)
	return draft, ""


def normalize_items(payload: Sequence[Any], request: GenerationRequest) -> NormalizationReport:
	report = NormalizationReport()
	for index, raw in enumerate(payload):
		candidate = parse_candidate(raw)
		draft, reason = resolve_candidate(candidate, request)
		if draft is None:
			report.rejected.append((index, reason))
			continue
		if draft.correct_answer is None:
			report.unresolved.append(index)
			logger.info(
				"Item %d: correct answer %r did not match any option; defaulting to first option",
				index,
				candidate.correct_ref,
			)
		report.drafts.append(draft)
	return report


def normalize_question_set(payload: Sequence[Any], request: GenerationRequest) -> List[DraftQuestion]:
	"""Normalize a whole payload; anything but exactly `requested_count` usable items fails."""
	report = normalize_items(payload, request)
	if len(report.drafts) != request.requested_count:
		details = "; ".join(f"#{i}: {reason}" for i, reason in report.rejected) or "no rejected items"
		raise SchemaViolation(
			f"expected {request.requested_count} questions, got {len(report.drafts)} usable of {len(payload)} ({details})",
			stage="normalizing",
		)
	return report.drafts
