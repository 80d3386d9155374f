from __future__ import annotations
import re
from typing import Optional, Protocol

from ..settings import settings

SENTINEL = "[REDACTED]"
ELLIPSIS = "..."

_OBJECT_ID = re.compile(r"\b[0-9a-fA-F]{24}\b")
_ID_FIELD = re.compile(r"\bid:\s*[^\s,;\n)]*", re.IGNORECASE)
_EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE = re.compile(r"\+?\d[\d\s().\-]{6,}\d")
_SENTENCE = re.compile(r"[^.!?]+[.!?]?")

# Shorter ids are too likely to collide with ordinary words
MIN_IDENTITY_LENGTH = 4


class Identity(Protocol):
	id: str


def redact(text: str, identity: Optional[Identity] = None) -> str:
	"""Mask internal ids, emails and phone numbers in model output.

	The tutor prompt already asks the model not to emit identifiers; this runs
	regardless. If the caller's own id appears literally it is removed too.
	"""
	if not text:
		return text or ""
	out = _OBJECT_ID.sub(SENTINEL, text)
	out = _ID_FIELD.sub(f"id: {SENTINEL}", out)
	out = _EMAIL.sub(SENTINEL, out)
	out = _PHONE.sub(SENTINEL, out)
	own_id = str(getattr(identity, "id", "") or "") if identity is not None else ""
	if len(own_id) >= MIN_IDENTITY_LENGTH:
		out = out.replace(own_id, SENTINEL)
	return out


def shorten(text: str, max_sentences: Optional[int] = None, max_chars: Optional[int] = None) -> str:
	if not text:
		return text or ""
	if max_sentences is None:
		max_sentences = settings.tutor_max_sentences
	if max_chars is None:
		max_chars = settings.tutor_max_chars
	parts = _SENTENCE.findall(text) or [text]
	taken = " ".join(p.strip() for p in parts[:max_sentences]).strip()
	if len(taken) > max_chars:
		# The ellipsis counts against the limit
		if max_chars <= len(ELLIPSIS):
			return taken[:max_chars]
		return taken[: max_chars - len(ELLIPSIS)].rstrip() + ELLIPSIS
	return taken


def sanitize_reply(
	text: str,
	identity: Optional[Identity] = None,
	*,
	max_sentences: Optional[int] = None,
	max_chars: Optional[int] = None,
) -> str:
	return shorten(redact(text, identity), max_sentences, max_chars)
