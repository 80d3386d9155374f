import json

import httpx
import pytest

from examprep.completion_client import CompletionClient, ErrorKind
from examprep.settings import settings


def _gemini_body(text):
	return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _client(handler, **kwargs):
	return CompletionClient(api_key="test-key", transport=httpx.MockTransport(handler), **kwargs)


async def test_successful_completion_and_request_shape():
	seen = {}

	def handler(request):
		seen["url"] = str(request.url)
		seen["body"] = json.loads(request.content)
		return httpx.Response(200, json=_gemini_body("[1, 2]"))

	client = _client(handler)
	try:
		result = await client.complete("hello", response_format="json", system="be brief")
	finally:
		await client.aclose()
	assert result.succeeded and result.text == "[1, 2]"
	assert "key=test-key" in seen["url"]
	assert seen["body"]["generationConfig"] == {"responseMimeType": "application/json"}
	assert seen["body"]["systemInstruction"]["parts"][0]["text"] == "be brief"
	assert seen["body"]["contents"][0]["parts"][0]["text"] == "hello"


@pytest.mark.parametrize(
	"status, kind",
	[(401, ErrorKind.AUTH), (403, ErrorKind.AUTH), (500, ErrorKind.UPSTREAM), (503, ErrorKind.UPSTREAM)],
)
async def test_http_errors_become_failures(status, kind):
	client = _client(lambda request: httpx.Response(status, text="nope"))
	try:
		result = await client.complete("hi")
	finally:
		await client.aclose()
	assert not result.succeeded
	assert result.error_kind is kind


async def test_timeout_becomes_failure():
	def handler(request):
		raise httpx.ReadTimeout("slow", request=request)

	client = _client(handler, timeout=0.5)
	try:
		result = await client.complete("hi")
	finally:
		await client.aclose()
	assert result.error_kind is ErrorKind.TIMEOUT


async def test_connection_error_becomes_failure():
	def handler(request):
		raise httpx.ConnectError("down", request=request)

	client = _client(handler)
	try:
		result = await client.complete("hi")
	finally:
		await client.aclose()
	assert result.error_kind is ErrorKind.NETWORK


async def test_unexpected_body_is_invalid_response():
	client = _client(lambda request: httpx.Response(200, json={"candidates": []}))
	try:
		result = await client.complete("hi")
	finally:
		await client.aclose()
	assert result.error_kind is ErrorKind.INVALID_RESPONSE


async def test_missing_key_is_not_configured(monkeypatch):
	monkeypatch.setattr(settings, "gemini_api_key", None)
	client = CompletionClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=_gemini_body("x"))))
	try:
		result = await client.complete("hi")
	finally:
		await client.aclose()
	assert not client.configured
	assert result.error_kind is ErrorKind.NOT_CONFIGURED


async def test_openrouter_used_when_gemini_fails(monkeypatch):
	monkeypatch.setattr(settings, "openrouter_api_key", "or-key")

	def handler(request):
		if "openrouter" in request.url.host:
			body = json.loads(request.content)
			assert body["response_format"] == {"type": "json_object"}
			assert request.headers["Authorization"] == "Bearer or-key"
			return httpx.Response(200, json={"choices": [{"message": {"content": "{}"}}]})
		return httpx.Response(503)

	client = _client(handler)
	try:
		result = await client.complete("hi", response_format="json")
	finally:
		await client.aclose()
	assert result.succeeded and result.text == "{}"
