from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from .settings import settings

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
	TIMEOUT = "timeout"
	NETWORK = "network"
	AUTH = "auth"
	UPSTREAM = "upstream"
	INVALID_RESPONSE = "invalid_response"
	NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class RawCompletion:
	text: str = ""
	succeeded: bool = True
	error_kind: Optional[ErrorKind] = None
	detail: str = ""

	@classmethod
	def failure(cls, kind: ErrorKind, detail: str = "") -> "RawCompletion":
		return cls(text="", succeeded=False, error_kind=kind, detail=detail)


def _kind_for_status(status_code: int) -> ErrorKind:
	if status_code in (401, 403):
		return ErrorKind.AUTH
	return ErrorKind.UPSTREAM


class CompletionClient:
	"""Thin async client for the text-generation service.

	Talks to Gemini `generateContent` and, when an OpenRouter key is set, makes a
	single attempt against OpenRouter if Gemini fails. `complete` never raises
	for upstream problems: every failure comes back as a `RawCompletion` with
	`succeeded=False` and an `error_kind`.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		self.timeout = timeout if timeout is not None else settings.completion_timeout_seconds
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {settings.openrouter_api_key}" if settings.openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}

	@property
	def configured(self) -> bool:
		return bool(self.api_key) or self._fallback_enabled

	async def complete(
		self,
		prompt: str,
		*,
		response_format: Optional[str] = None,
		system: Optional[str] = None,
		timeout: Optional[float] = None,
	) -> RawCompletion:
		call_timeout = timeout if timeout is not None else self.timeout
		if self.api_key:
			primary = await self._complete_gemini(prompt, response_format=response_format, system=system, timeout=call_timeout)
		else:
			primary = RawCompletion.failure(ErrorKind.NOT_CONFIGURED, "GEMINI_API_KEY is not configured")
		if primary.succeeded or not self._fallback_enabled:
			return primary
		logger.warning("Gemini call failed (%s: %s); trying OpenRouter", primary.error_kind.value, primary.detail)
		secondary = await self._complete_openrouter(prompt, response_format=response_format, system=system, timeout=call_timeout)
		return secondary if secondary.succeeded else primary

	async def _complete_gemini(
		self,
		prompt: str,
		*,
		response_format: Optional[str],
		system: Optional[str],
		timeout: float,
	) -> RawCompletion:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if system:
			payload["systemInstruction"] = {"parts": [{"text": system}]}
		if response_format == "json":
			# Best-effort: the model may still wrap or ignore it
			payload["generationConfig"] = {"responseMimeType": "application/json"}
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		return await self._post(
			self.base_url,
			params=params,
			headers=headers,
			payload=payload,
			timeout=timeout,
			read_text=lambda data: data["candidates"][0]["content"]["parts"][0]["text"],
		)

	async def _complete_openrouter(
		self,
		prompt: str,
		*,
		response_format: Optional[str],
		system: Optional[str],
		timeout: float,
	) -> RawCompletion:
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		messages = []
		if system:
			messages.append({"role": "system", "content": system})
		messages.append({"role": "user", "content": prompt})
		payload: Dict[str, Any] = {"model": self._openrouter_model, "messages": messages}
		if response_format == "json":
			payload["response_format"] = {"type": "json_object"}
		return await self._post(
			self._openrouter_base_url,
			params={},
			headers=headers,
			payload=payload,
			timeout=timeout,
			read_text=lambda data: data["choices"][0]["message"]["content"],
		)

	async def _post(
		self,
		url: str,
		*,
		params: Dict[str, Any],
		headers: Dict[str, str],
		payload: Dict[str, Any],
		timeout: float,
		read_text: Callable[[Any], str],
	) -> RawCompletion:
		try:
			r = await self._client.post(url, params=params, headers=headers, json=payload, timeout=timeout)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			status = http_err.response.status_code
			return RawCompletion.failure(_kind_for_status(status), f"HTTP {status}")
		except httpx.TimeoutException as timeout_err:
			return RawCompletion.failure(ErrorKind.TIMEOUT, f"timed out after {timeout}s: {timeout_err!r}")
		except httpx.RequestError as net_err:
			return RawCompletion.failure(ErrorKind.NETWORK, repr(net_err))
		try:
			text = read_text(r.json())
		except (ValueError, KeyError, IndexError, TypeError):
			return RawCompletion.failure(ErrorKind.INVALID_RESPONSE, f"Unexpected response: {r.text[:300]}")
		if not isinstance(text, str):
			return RawCompletion.failure(ErrorKind.INVALID_RESPONSE, "completion text is not a string")
		return RawCompletion(text=text)

	async def aclose(self) -> None:
		await self._client.aclose()
