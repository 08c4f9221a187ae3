import asyncio
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException

from ...dependencies import (
    get_app_settings,
    get_current_user_optional,
    get_current_user_required,
    get_orchestrator,
    get_usage_gate,
)
from ....config import Settings
from ....news.schemas.requests import BatchSummarizeRequest, SummarizeRequest
from ....news.schemas.responses import (
    BatchSummarizeResponse,
    DailyLimitResponse,
    SummarizeResponse,
    UsageResponse,
)
from ....news.services.orchestrator import AggregationOrchestrator
from ....repositories.user_store import UserRecord
from ....services.usage_gate import UsageGate

logger = structlog.get_logger(__name__)

router = APIRouter()

QUOTA_RESPONSES = {429: {"model": DailyLimitResponse, "description": "Daily free quota used up"}}


@router.post("/summarize", response_model=SummarizeResponse, responses=QUOTA_RESPONSES)
async def summarize(
    payload: SummarizeRequest,
    user: Optional[UserRecord] = Depends(get_current_user_optional),
    orchestrator: AggregationOrchestrator = Depends(get_orchestrator),
    gate: UsageGate = Depends(get_usage_gate),
    settings: Settings = Depends(get_app_settings)
):
    """Summarize one or more topics for the caller"""
    if user:
        gate.ensure_allowed(user.user_id)

    try:
        result = await asyncio.wait_for(
            orchestrator.run(**payload.to_pipeline_kwargs()),
            timeout=settings.summarize_timeout_seconds
        )
    except asyncio.TimeoutError:
        logger.error("summarize_timed_out", topics=payload.topics, timeout=settings.summarize_timeout_seconds)
        raise HTTPException(status_code=504, detail="Summarization timed out")

    if user:
        gate.record_usage(user.user_id)

    return result.to_dict()


@router.post("/summarize/batch", response_model=BatchSummarizeResponse, responses=QUOTA_RESPONSES)
async def summarize_batch(
    payload: BatchSummarizeRequest,
    user: Optional[UserRecord] = Depends(get_current_user_optional),
    orchestrator: AggregationOrchestrator = Depends(get_orchestrator),
    gate: UsageGate = Depends(get_usage_gate),
    settings: Settings = Depends(get_app_settings)
):
    """Run several summarize requests under a single quota check"""
    if user:
        gate.ensure_allowed(user.user_id)

    try:
        results = await asyncio.wait_for(
            orchestrator.run_batches([batch.to_pipeline_kwargs() for batch in payload.batches]),
            timeout=settings.batch_summarize_timeout_seconds
        )
    except asyncio.TimeoutError:
        logger.error("batch_summarize_timed_out", batch_count=len(payload.batches),
                     timeout=settings.batch_summarize_timeout_seconds)
        raise HTTPException(status_code=504, detail="Batch summarization timed out")

    if user:
        gate.record_usage(user.user_id)

    return {"results": results, "batches": results}


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    user: UserRecord = Depends(get_current_user_required),
    gate: UsageGate = Depends(get_usage_gate)
):
    """Today's usage for the authenticated user"""
    return gate.usage_snapshot(user.user_id)
