from __future__ import annotations
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence

from ..completion_client import CompletionClient, RawCompletion
from ..errors import PipelineError, SchemaViolation, UpstreamUnavailable
from ..schemas import GenerationRequest, LastTestSnapshot, PerformanceReport, PriorSummary, Question
from .extractor import PayloadShape, extract_payload
from .fallback_bank import FallbackBank
from .normalizer import normalize_question_set
from .prompts import build_analysis_prompt, build_question_prompt, build_tutor_system_prompt, needs_user_context
from .redactor import Identity, sanitize_reply
from .shuffler import shuffle_question

logger = logging.getLogger(__name__)

TUTOR_UNAVAILABLE_REPLY = (
	"I'm having trouble reaching the tutor right now. Please try again in a moment."
)
PROGRESS_STATUSES = ("Improving", "Declining", "Stable")
NO_DATA_STATUS = "No data"
# Percentage-point change between latest and earlier scores that counts as a trend
TREND_THRESHOLD = 5.0


class PipelineStage(str, Enum):
	BUILDING = "building"
	CALLING = "calling"
	EXTRACTING = "extracting"
	NORMALIZING = "normalizing"
	SHUFFLING = "shuffling"
	FALLBACK = "fallback"
	DONE = "done"


@dataclass
class GenerationOutcome:
	questions: List[Question]
	source: str
	failure_stage: Optional[str] = None
	failure: Optional[str] = None


class QuestionSource(Protocol):
	name: str

	async def produce(self, request: GenerationRequest, prior: Optional[PriorSummary] = None) -> List[Question]:
		...


def _upstream_error(completion: RawCompletion) -> UpstreamUnavailable:
	kind = completion.error_kind.value if completion.error_kind else None
	return UpstreamUnavailable(
		completion.detail or "completion failed",
		error_kind=kind,
		stage=PipelineStage.CALLING.value,
	)


class LiveModelSource:
	"""Question source backed by the completion service."""

	name = "live"

	def __init__(self, client: CompletionClient, *, rng: Optional[random.Random] = None, timeout: Optional[float] = None) -> None:
		self.client = client
		self.rng = rng
		self.timeout = timeout

	async def produce(self, request: GenerationRequest, prior: Optional[PriorSummary] = None) -> List[Question]:
		prompt = build_question_prompt(request, prior)
		completion = await self.client.complete(prompt, response_format="json", timeout=self.timeout)
		if not completion.succeeded:
			raise _upstream_error(completion)
		payload = extract_payload(completion.text, PayloadShape.ARRAY)
		try:
			drafts = normalize_question_set(payload, request)
		except SchemaViolation as exc:
			exc.excerpt = completion.text[:300]
			raise
		try:
			return [shuffle_question(d, self.rng) for d in drafts]
		except ValueError as exc:
			raise SchemaViolation(str(exc), stage=PipelineStage.SHUFFLING.value, excerpt=completion.text) from exc


class FallbackSource:
	"""Question source backed by the static bank; performs no I/O."""

	name = "fallback"

	def __init__(self, bank: FallbackBank, *, rng: Optional[random.Random] = None) -> None:
		self.bank = bank
		self.rng = rng

	async def produce(self, request: GenerationRequest, prior: Optional[PriorSummary] = None) -> List[Question]:
		return self.bank.draw(request, self.rng)


def estimate_confidence(scores: Sequence[float]) -> PerformanceReport:
	"""Recency-weighted mastery estimate from percentages, most recent first."""
	weights = list(range(len(scores), 0, -1))
	weighted = sum(w * s for w, s in zip(weights, scores)) / sum(weights)
	status = "Stable"
	if len(scores) > 1:
		earlier = sum(scores[1:]) / (len(scores) - 1)
		delta = scores[0] - earlier
		if delta > TREND_THRESHOLD:
			status = "Improving"
		elif delta < -TREND_THRESHOLD:
			status = "Declining"
	if status == "Improving":
		weighted += TREND_THRESHOLD
	elif status == "Declining":
		weighted -= TREND_THRESHOLD
	confidence = int(round(max(0.0, min(100.0, weighted))))
	return PerformanceReport(subject="", confidence_score=confidence, progress_status=status, source="fallback")


def _parse_analysis(data: dict) -> Optional[tuple]:
	raw_score: Any = data.get("confidenceScore", data.get("confidence_score"))
	try:
		score = float(raw_score)
	except (TypeError, ValueError):
		return None
	if score != score:  # NaN
		return None
	status = str(data.get("progressStatus", data.get("progress_status", ""))).strip().capitalize()
	return int(round(max(0.0, min(100.0, score)))), status


class AssessmentPipeline:
	"""Single decision point between the live model and the fallback bank.

	One attempt against the model, no retries: any recoverable failure at the
	calling, extracting or normalizing stage diverts straight to the bank.
	Only `ConfigurationError` (no usable fallback pool) reaches the caller.
	"""

	def __init__(
		self,
		client: CompletionClient,
		bank: FallbackBank,
		*,
		rng: Optional[random.Random] = None,
		timeout: Optional[float] = None,
	) -> None:
		self.client = client
		self.timeout = timeout
		self.live: QuestionSource = LiveModelSource(client, rng=rng, timeout=timeout)
		self.fallback: QuestionSource = FallbackSource(bank, rng=rng)

	async def generate_question_set(
		self,
		request: GenerationRequest,
		prior: Optional[PriorSummary] = None,
	) -> GenerationOutcome:
		try:
			questions = await self.live.produce(request, prior)
			return GenerationOutcome(questions=questions, source=self.live.name)
		except PipelineError as exc:
			if not exc.recoverable:
				raise
			logger.warning(
				"Question generation for %r/%r failed at %s (%s: %s); serving fallback. raw=%r",
				request.course,
				request.topic,
				exc.stage or "unknown",
				type(exc).__name__,
				exc,
				exc.excerpt,
			)
			questions = await self.fallback.produce(request, prior)
			return GenerationOutcome(
				questions=questions,
				source=self.fallback.name,
				failure_stage=exc.stage,
				failure=str(exc),
			)

	async def analyze_performance(self, course: str, scores: Sequence[float]) -> PerformanceReport:
		if not scores:
			return PerformanceReport(subject=course, confidence_score=0, progress_status=NO_DATA_STATUS, source="none")
		local = estimate_confidence(scores)
		completion = await self.client.complete(
			build_analysis_prompt(course, scores),
			response_format="json",
			timeout=self.timeout,
		)
		parsed = None
		if completion.succeeded:
			try:
				parsed = _parse_analysis(extract_payload(completion.text, PayloadShape.OBJECT))
			except PipelineError as exc:
				logger.warning("Performance analysis for %r unparseable: %s raw=%r", course, exc, exc.excerpt)
		else:
			logger.warning("Performance analysis for %r: upstream %s", course, completion.error_kind)
		if parsed is None:
			return local.model_copy(update={"subject": course})
		confidence, status = parsed
		if status not in PROGRESS_STATUSES:
			status = local.progress_status
		return PerformanceReport(subject=course, confidence_score=confidence, progress_status=status, source="live")

	async def tutor_reply(
		self,
		message: str,
		identity: Optional[Identity],
		*,
		course: Optional[str] = None,
		display_name: Optional[str] = None,
		last_test: Optional[LastTestSnapshot] = None,
	) -> str:
		# Personal results go into the prompt only when the student asked for them
		context = last_test if needs_user_context(message) else None
		system = build_tutor_system_prompt(course, display_name=display_name, last_test=context)
		completion = await self.client.complete(message, system=system, timeout=self.timeout)
		if not completion.succeeded:
			logger.warning("Tutor reply unavailable: %s %s", completion.error_kind, completion.detail)
			return TUTOR_UNAVAILABLE_REPLY
		return sanitize_reply(completion.text, identity)
