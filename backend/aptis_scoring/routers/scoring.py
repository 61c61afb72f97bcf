from __future__ import annotations
from typing import Any, AsyncIterator, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from ..ai_client import AiClient, AiUnavailableError
from ..gemini_client import GeminiClient
from ..models import ScoreResult, ScoringRequest
from ..pipeline import ScoringService
from ..settings import settings


router = APIRouter(prefix="/scoring", tags=["scoring"])


class BatchScoringRequest(BaseModel):
	requests: List[ScoringRequest] = Field(default_factory=list)


class BatchItemResponse(BaseModel):
	question_id: Optional[str] = None
	result: Optional[ScoreResult] = None
	error: Optional[str] = None


class BatchScoringResponse(BaseModel):
	items: List[BatchItemResponse]


def build_ai_client(invoker: GeminiClient) -> AiClient:
	return AiClient(
		invoker.generate,
		max_retries=settings.scoring_max_retries,
		retry_delay=settings.scoring_retry_delay_seconds,
		timeout=settings.scoring_timeout_seconds,
		temperature=settings.scoring_temperature,
		max_tokens=settings.scoring_max_tokens,
		provider=invoker.provider,
		model=invoker.model,
	)


async def get_scoring_service() -> AsyncIterator[ScoringService]:
	try:
		client = GeminiClient()
	except ValueError as e:
		raise HTTPException(status_code=500, detail=str(e))
	try:
		yield ScoringService(build_ai_client(client), concurrency=settings.scoring_concurrency)
	finally:
		await client.aclose()


@router.post("/score", response_model=ScoreResult)
async def score_answer(req: ScoringRequest, service: ScoringService = Depends(get_scoring_service)):
	try:
		return await service.score(req)
	except AiUnavailableError as e:
		raise HTTPException(status_code=503, detail=str(e))


@router.post("/batch", response_model=BatchScoringResponse)
async def score_batch(req: BatchScoringRequest, service: ScoringService = Depends(get_scoring_service)):
	outcomes = await service.score_many(req.requests)
	items: List[BatchItemResponse] = []
	for request, outcome in zip(req.requests, outcomes):
		if isinstance(outcome, AiUnavailableError):
			items.append(BatchItemResponse(question_id=request.question_id, error=str(outcome)))
		else:
			items.append(BatchItemResponse(question_id=request.question_id, result=outcome))
	return BatchScoringResponse(items=items)


@router.get("/status")
async def scoring_status(service: ScoringService = Depends(get_scoring_service)) -> Dict[str, Any]:
	return service.ai_client.status()
