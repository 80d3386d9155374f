import json
import os
import random
import tempfile

# Settings and the engine are built at import time
_DB_DIR = tempfile.mkdtemp(prefix="examprep-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENROUTER_API_KEY", None)

import pytest

from examprep.completion_client import ErrorKind, RawCompletion
from examprep.pipeline.fallback_bank import FallbackBank
from examprep.schemas import GenerationRequest


class FakeClient:
	"""Stands in for CompletionClient; replays queued replies in order."""

	def __init__(self, *replies):
		self.replies = list(replies)
		self.calls = []

	@property
	def configured(self):
		return True

	async def complete(self, prompt, *, response_format=None, system=None, timeout=None):
		self.calls.append({"prompt": prompt, "response_format": response_format, "system": system})
		if not self.replies:
			return RawCompletion.failure(ErrorKind.NOT_CONFIGURED, "no reply queued")
		reply = self.replies.pop(0)
		if isinstance(reply, RawCompletion):
			return reply
		return RawCompletion(text=reply)

	async def aclose(self):
		pass


def make_items(count=5, **overrides):
	items = []
	for i in range(count):
		item = {
			"question": f"Question {i}?",
			"options": [f"Option {i}-A", f"Option {i}-B", f"Option {i}-C", f"Option {i}-D"],
			"correct_answer": f"Option {i}-B",
			"explanation": f"Because {i}.",
			"topic": "Thermodynamics",
			"difficulty": "Medium",
		}
		item.update(overrides)
		items.append(item)
	return items


@pytest.fixture
def fake_client():
	return FakeClient


@pytest.fixture
def items():
	return make_items


@pytest.fixture
def items_json():
	return lambda count=5, **kw: json.dumps(make_items(count, **kw))


@pytest.fixture
def gen_request():
	return GenerationRequest(course="Physics", topic="Thermodynamics", difficulty="Medium", requested_count=5)


@pytest.fixture
def rng():
	return random.Random(1234)


@pytest.fixture(scope="session")
def bank():
	return FallbackBank.load()


def assert_valid_set(questions, count):
	assert len(questions) == count
	for q in questions:
		assert q.correct_answer in q.options
		assert len(set(q.options)) == len(q.options) == 4
		assert q.question_text.strip()


@pytest.fixture
def check_set():
	return assert_valid_set
