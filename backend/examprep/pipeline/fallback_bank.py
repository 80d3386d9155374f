from __future__ import annotations
import json
import logging
import random
import re
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import ConfigurationError
from ..schemas import GenerationRequest, Question
from ..settings import settings
from .shuffler import shuffle_question

logger = logging.getLogger(__name__)

DEFAULT_BANK_PATH = Path(__file__).resolve().parent / "data" / "fallback_bank.json"
GENERIC_POOL = "general"


def _key(text: str) -> str:
	return " ".join((text or "").lower().split())


class FallbackBank:
	"""Read-only table of hand-authored questions keyed by subject.

	Built once per process and shared by every request; nothing here mutates
	after construction.
	"""

	def __init__(
		self,
		pools: Mapping[str, Sequence[Question]],
		*,
		aliases: Optional[Mapping[str, Sequence[str]]] = None,
		version: str = "unversioned",
	) -> None:
		self.version = version
		self._pools: Mapping[str, Tuple[Question, ...]] = MappingProxyType(
			{_key(name): tuple(questions) for name, questions in pools.items()}
		)
		alias_map: Dict[str, str] = {}
		for name, names in (aliases or {}).items():
			for alias in names:
				alias_map[_key(alias)] = _key(name)
		self._aliases: Mapping[str, str] = MappingProxyType(alias_map)

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "FallbackBank":
		pools: Dict[str, List[Question]] = {}
		aliases: Dict[str, List[str]] = {}
		for name, pool in (data.get("pools") or {}).items():
			try:
				pools[name] = [Question.model_validate(q) for q in pool.get("questions", [])]
			except ValueError as exc:
				raise ConfigurationError(f"invalid question in fallback pool {name!r}: {exc}") from exc
			aliases[name] = list(pool.get("aliases", []))
		return cls(pools, aliases=aliases, version=str(data.get("version", "unversioned")))

	@classmethod
	def load(cls, path: Union[str, Path, None] = None) -> "FallbackBank":
		source = Path(path or settings.fallback_bank_path or DEFAULT_BANK_PATH)
		try:
			data = json.loads(source.read_text(encoding="utf-8"))
		except (OSError, json.JSONDecodeError) as exc:
			raise ConfigurationError(f"cannot load fallback bank from {source}: {exc}") from exc
		bank = cls.from_dict(data)
		logger.info("Loaded fallback bank %s (%d pools) from %s", bank.version, len(bank.subjects), source)
		return bank

	@property
	def subjects(self) -> Tuple[str, ...]:
		return tuple(self._pools)

	def resolve_subject(self, course: str) -> str:
		course_key = _key(course)
		if course_key in self._pools:
			return course_key
		if course_key in self._aliases:
			return self._aliases[course_key]
		# Whole-word match, e.g. "JEE Physics Mock 4" -> physics
		for name in self._pools:
			if name != GENERIC_POOL and re.search(rf"\b{re.escape(name)}\b", course_key):
				return name
		for alias, name in self._aliases.items():
			if re.search(rf"\b{re.escape(alias)}\b", course_key):
				return name
		if GENERIC_POOL in self._pools:
			return GENERIC_POOL
		raise ConfigurationError(f"no fallback question pool for course {course!r}", stage="fallback")

	def pool_for(self, course: str) -> Tuple[Question, ...]:
		return self._pools[self.resolve_subject(course)]

	def draw(self, request: GenerationRequest, rng: Optional[random.Random] = None) -> List[Question]:
		subject = self.resolve_subject(request.course)
		pool = self._pools[subject]
		if len(pool) < request.requested_count:
			raise ConfigurationError(
				f"fallback pool {subject!r} has {len(pool)} questions, {request.requested_count} requested",
				stage="fallback",
			)
		picked = list(pool)
		(rng or random.SystemRandom()).shuffle(picked)
		logger.info("Serving %d fallback questions from pool %r (bank %s)", request.requested_count, subject, self.version)
		return [shuffle_question(q, rng) for q in picked[: request.requested_count]]
