import re
from types import SimpleNamespace

from examprep.pipeline.redactor import SENTINEL, redact, sanitize_reply, shorten

EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
OID = "507f191e810c19729de860ea"


def test_email_and_own_id_are_removed():
	out = redact(f"Contact me at a@b.com or id {OID}", SimpleNamespace(id=OID))
	assert not EMAIL.search(out)
	assert OID not in out
	assert out == f"Contact me at {SENTINEL} or id {SENTINEL}"


def test_any_object_id_is_masked_without_identity():
	assert redact("user 64b7f0c2a1d3e4f5a6b7c8d9 logged in") == f"user {SENTINEL} logged in"


def test_id_field_pattern():
	assert redact("Your record id: abc123, score 8") == f"Your record id: {SENTINEL}, score 8"


def test_phone_numbers_are_masked():
	assert SENTINEL in redact("Call +91 98765 43210 for help")
	assert redact("Call (555) 123-4567.") == f"Call ({SENTINEL}."


def test_short_scores_survive():
	assert redact("You scored 4 out of 5.") == "You scored 4 out of 5."


def test_own_short_identifier_is_ignored():
	text = "the cat sat"
	assert redact(text, SimpleNamespace(id="cat")) == text


def test_own_non_hex_identifier_is_masked():
	assert redact("your handle is student-42-xyz", SimpleNamespace(id="student-42-xyz")) == f"your handle is {SENTINEL}"


def test_shorten_keeps_two_sentences():
	assert shorten("One. Two! Three? Four.", 2, 400) == "One. Two!"


def test_shorten_truncates_long_text():
	out = shorten("x" * 500, 2, 400)
	assert out == "x" * 397 + "..."
	assert len(out) == 400


def test_shorten_honours_explicit_small_limits():
	text = "First point. Second point. Third point."
	assert shorten(text, 0, 400) == ""
	assert shorten(text, 1, 400) == "First point."
	assert shorten(text, 2, 0) == ""
	assert shorten(text, 2, 2) == "Fi"
	assert shorten(text, 2, 10) == "First p..."
	assert len(shorten(text, 3, 20)) <= 20


def test_sanitize_is_deterministic():
	text = f"Hi a@b.com. Ref {OID} noted. Study entropy. Then enthalpy."
	ident = SimpleNamespace(id=OID)
	assert sanitize_reply(text, ident) == sanitize_reply(text, ident)
	assert sanitize_reply(text, ident, max_sentences=2) == f"Hi {SENTINEL}. Ref {SENTINEL} noted."
