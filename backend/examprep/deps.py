from __future__ import annotations
from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends

from .completion_client import CompletionClient
from .pipeline.fallback_bank import FallbackBank
from .pipeline.orchestrator import AssessmentPipeline


@lru_cache(maxsize=1)
def get_fallback_bank() -> FallbackBank:
	return FallbackBank.load()


async def get_completion_client() -> AsyncIterator[CompletionClient]:
	client = CompletionClient()
	try:
		yield client
	finally:
		await client.aclose()


def get_pipeline(
	client: CompletionClient = Depends(get_completion_client),
	bank: FallbackBank = Depends(get_fallback_bank),
) -> AssessmentPipeline:
	return AssessmentPipeline(client, bank)
