from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .settings import settings


class Difficulty(str, Enum):
	EASY = "Easy"
	MEDIUM = "Medium"
	HARD = "Hard"

	@classmethod
	def parse(cls, value: Any) -> "Difficulty":
		if isinstance(value, cls):
			return value
		key = str(value or "").strip().lower()
		if key not in _DIFFICULTY_ALIASES:
			raise ValueError(f"difficulty must be one of {[d.value for d in cls]}")
		return _DIFFICULTY_ALIASES[key]


# Recommendation levels ("beginner", ...) map onto the three generation levels
_DIFFICULTY_ALIASES: Dict[str, Difficulty] = {
	"easy": Difficulty.EASY,
	"beginner": Difficulty.EASY,
	"medium": Difficulty.MEDIUM,
	"intermediate": Difficulty.MEDIUM,
	"mixed": Difficulty.MEDIUM,
	"hard": Difficulty.HARD,
	"advanced": Difficulty.HARD,
}


class GenerationRequest(BaseModel):
	model_config = ConfigDict(frozen=True)

	course: str = Field(min_length=1)
	topic: str = Field(min_length=1)
	difficulty: Difficulty
	prior_score: Optional[float] = None
	requested_count: int = Field(default_factory=lambda: settings.questions_per_set, gt=0)

	@field_validator("difficulty", mode="before")
	@classmethod
	def _parse_difficulty(cls, value: Any) -> Difficulty:
		return Difficulty.parse(value)


class PriorSummary(BaseModel):
	"""Most recent stored result for the requested subject."""
	model_config = ConfigDict(frozen=True)

	subject: str
	score: float


class Question(BaseModel):
	"""Validated multiple-choice question.

	Correctness is tracked by value: `correct_answer` is always one of the
	`options` strings, so reordering options never needs index bookkeeping.
	Serialized with the camelCase field names the test store expects.
	"""
	model_config = ConfigDict(frozen=True, populate_by_name=True)

	question_text: str = Field(alias="questionText")
	options: Tuple[str, ...]
	correct_answer: str = Field(alias="correctAnswer")
	explanation: str = ""
	topic: str = ""
	difficulty: str = ""

	@model_validator(mode="after")
	def _check_contract(self) -> "Question":
		if not self.question_text.strip():
			raise ValueError("questionText must not be empty")
		if len(self.options) != settings.options_per_question:
			raise ValueError(f"exactly {settings.options_per_question} options are required")
		if len(set(self.options)) != len(self.options):
			raise ValueError("options must be distinct")
		if self.correct_answer not in self.options:
			raise ValueError("correctAnswer must be one of the options")
		return self

	def to_record(self) -> Dict[str, Any]:
		return self.model_dump(mode="json", by_alias=True)


class LastTestSnapshot(BaseModel):
	subject: str
	score: float
	total: int
	taken_at: Optional[datetime] = None


class PerformanceReport(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	subject: str
	confidence_score: int = Field(alias="confidenceScore", ge=0, le=100)
	progress_status: str = Field(alias="progressStatus")
	source: str = "none"
