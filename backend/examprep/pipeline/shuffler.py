from __future__ import annotations
import random
from typing import List, Optional, Sequence, TypeVar, Union

from ..schemas import Question
from .normalizer import DraftQuestion

T = TypeVar("T")

# OS entropy, no shared seeded state between requests
_default_rng = random.SystemRandom()


def shuffle_options(options: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
	"""Uniform random permutation of a copy of `options`."""
	shuffled = list(options)
	(rng or _default_rng).shuffle(shuffled)
	return shuffled


def shuffle_question(item: Union[DraftQuestion, Question], rng: Optional[random.Random] = None) -> Question:
	options = list(item.options)
	correct = item.correct_answer
	if correct is None and options:
		# Unresolved answer: first option as the model listed it
		correct = options[0]
	return Question(
		question_text=item.question_text,
		options=tuple(shuffle_options(options, rng)),
		correct_answer=correct,
		explanation=item.explanation,
		topic=item.topic,
		difficulty=item.difficulty,
	)
