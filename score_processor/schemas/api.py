"""Schemas for the admin API responses and errors."""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response format.

    Format: { "error": { "code": str, "message": str } }
    """

    error: ErrorDetail


class BeatmapCacheStats(BaseModel):
    beatmap_hits: int = 0
    beatmap_queries: int = 0
    attribute_hits: int = 0
    attribute_queries: int = 0
    realtime_calculations: int = 0


class QueueStatusResponse(BaseModel):
    """Polled counters for the score statistics queue."""

    state: str
    queue_size: int = Field(ge=0)
    in_flight: int = Field(ge=0)
    total_processed: int = Field(ge=0)
    total_failed: int = Field(ge=0)
    max_in_flight: int | None = None
    beatmap_cache: BeatmapCacheStats


class PushResponse(BaseModel):
    success: bool
    score_id: int
    queue_size: int
