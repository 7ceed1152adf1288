"""Admin endpoints for queue observation and management.

These endpoints are intended for ops tooling and manual testing.
In production, keep them on an internal network.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Request

from score_processor.schemas import BeatmapCacheStats, PushResponse, QueueStatusResponse, ScoreItem
from score_processor.services.errors import InvalidState
from score_processor.services.score_statistics import ScoreStatisticsQueueProcessor

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


def _get_processor(request: Request) -> ScoreStatisticsQueueProcessor:
    processor = getattr(request.app.state, "processor", None)
    if processor is None:
        raise HTTPException(status_code=503, detail="Queue processor is not running")
    return processor


@router.get("/queue", response_model=QueueStatusResponse)
async def get_queue_status(request: Request) -> QueueStatusResponse:
    """Get queue size and processing counters."""
    processor = _get_processor(request)
    return QueueStatusResponse(
        state=processor.state.value,
        queue_size=await processor.get_queue_size(),
        in_flight=processor.in_flight,
        total_processed=processor.total_processed,
        total_failed=processor.total_failed,
        max_in_flight=processor.max_in_flight,
        beatmap_cache=BeatmapCacheStats(**asdict(processor.beatmap_store.stats)),
    )


@router.post("/queue", response_model=PushResponse)
async def push_score(request: Request, item: ScoreItem) -> PushResponse:
    """Enqueue a score (e.g. re-enqueueing a score after a failure).

    Returns 409 if the processor runs in single-file mode and is busy.
    """
    processor = _get_processor(request)
    try:
        await processor.push_to_queue(item)
    except InvalidState as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"[admin] pushed score {item.score.id}")
    return PushResponse(
        success=True,
        score_id=item.score.id,
        queue_size=await processor.get_queue_size(),
    )


@router.post("/queue/clear")
async def clear_queue(request: Request) -> dict[str, bool]:
    """Discard the queue backlog. Controlled resets only."""
    processor = _get_processor(request)
    await processor.clear_queue()
    logger.warning("[admin] queue cleared")
    return {"success": True}


@router.post("/beatmaps/{beatmap_id}/invalidate")
async def invalidate_beatmap(request: Request, beatmap_id: int) -> dict[str, bool]:
    """Drop a cached beatmap record so its next use re-reads approval status."""
    processor = _get_processor(request)
    removed = processor.beatmap_store.invalidate_beatmap(beatmap_id)
    return {"success": True, "removed": removed}
