from __future__ import annotations
import json
import re
from enum import Enum
from typing import Any, Dict, List, Union

from ..errors import ExtractionError, MalformedResponse


class PayloadShape(str, Enum):
	ARRAY = "array"
	OBJECT = "object"


_BRACKETS = {
	PayloadShape.ARRAY: ("[", "]"),
	PayloadShape.OBJECT: ("{", "}"),
}

_EXPECTED_TYPE = {
	PayloadShape.ARRAY: list,
	PayloadShape.OBJECT: dict,
}

# ```json / ``` JSON / ```  with optional spacing before the tag
_FENCE_OPEN = re.compile(r"^```[ \t]*(?:json)?[ \t]*\r?\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\r?\n?[ \t]*```$")

Payload = Union[List[Any], Dict[str, Any]]


def strip_code_fences(text: str) -> str:
	cleaned = (text or "").strip()
	cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
	cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
	return cleaned.strip()


def locate_json_span(text: str, shape: PayloadShape) -> str:
	"""Return the text between the first opening and last closing bracket."""
	open_char, close_char = _BRACKETS[shape]
	first = text.find(open_char)
	last = text.rfind(close_char)
	if first == -1 or last == -1 or last <= first:
		raise ExtractionError(f"no JSON {shape.value} found in completion", stage="extracting", excerpt=text)
	return text[first : last + 1]


def extract_payload(text: str, shape: PayloadShape = PayloadShape.ARRAY) -> Payload:
	cleaned = strip_code_fences(text)
	span = locate_json_span(cleaned, shape)
	try:
		data = json.loads(span)
	except json.JSONDecodeError as exc:
		raise MalformedResponse(f"invalid JSON: {exc.msg}", stage="extracting", excerpt=text) from exc
	except (ValueError, RecursionError) as exc:
		# Oversized integer literals and very deep nesting
		raise MalformedResponse(f"unparseable JSON: {type(exc).__name__}", stage="extracting", excerpt=text) from exc
	if not isinstance(data, _EXPECTED_TYPE[shape]):
		raise MalformedResponse(
			f"expected a JSON {shape.value}, got {type(data).__name__}",
			stage="extracting",
			excerpt=text,
		)
	return data
