"""Pydantic schemas for queue items and API responses."""

from score_processor.schemas.api import (
    BeatmapCacheStats,
    ErrorDetail,
    ErrorResponse,
    PushResponse,
    QueueStatusResponse,
)
from score_processor.schemas.score_item import APIMod, ProcessHistory, ScoreItem, SoloScoreInfo

__all__ = [
    "APIMod",
    "BeatmapCacheStats",
    "ErrorDetail",
    "ErrorResponse",
    "ProcessHistory",
    "PushResponse",
    "QueueStatusResponse",
    "ScoreItem",
    "SoloScoreInfo",
]
