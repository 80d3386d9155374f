from __future__ import annotations
from typing import Optional


EXCERPT_LIMIT = 300


class PipelineError(Exception):
	"""Base class for failures inside the assessment pipeline.

	`stage` names the pipeline step that failed and `excerpt` keeps a short
	slice of the raw upstream text so prompt drift can be diagnosed from logs.
	"""

	recoverable = True

	def __init__(self, message: str, *, stage: Optional[str] = None, excerpt: Optional[str] = None) -> None:
		super().__init__(message)
		self.stage = stage
		self.excerpt = (excerpt or "")[:EXCERPT_LIMIT]


class UpstreamUnavailable(PipelineError):
	"""The completion service could not be reached or refused the call."""

	def __init__(self, message: str, *, error_kind: Optional[str] = None, **kwargs) -> None:
		super().__init__(message, **kwargs)
		self.error_kind = error_kind


class MalformedResponse(PipelineError):
	"""The completion text did not contain a usable JSON payload."""


class ExtractionError(MalformedResponse):
	"""No JSON span of the requested shape could be located."""


class SchemaViolation(PipelineError):
	"""The parsed payload does not map onto a complete question set."""


class ConfigurationError(PipelineError):
	"""Deployment/data gap, e.g. no fallback pool for a course. Never recovered."""

	recoverable = False
