"""Queue wire format for submitted scores.

A ScoreItem is what producers push onto the score statistics queue. It is
owned by the processor while being processed and never mutated afterwards.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class APIMod(BaseModel):
    """A single mod as submitted by the client."""

    acronym: str = Field(min_length=1, max_length=4)
    settings: dict[str, Any] = Field(default_factory=dict)


class SoloScoreInfo(BaseModel):
    """Score payload: identity, mods, raw statistics and timestamps."""

    id: int = Field(ge=1)
    user_id: int = Field(ge=1)
    beatmap_id: int = Field(ge=1)
    ruleset_id: int = Field(ge=0, le=3)
    mods: list[APIMod] = Field(default_factory=list)

    # Hit result name -> count
    statistics: dict[str, int] = Field(default_factory=dict)
    maximum_statistics: dict[str, int] = Field(default_factory=dict)

    total_score: int = Field(default=0, ge=0)
    accuracy: float = Field(default=0.0, ge=0.0, le=1.0)
    max_combo: int = Field(default=0, ge=0)
    rank: str = "D"
    passed: bool = False
    ranked: bool = True
    build_id: int | None = None
    pp: float | None = None

    started_at: datetime | None = None
    ended_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ProcessHistory(BaseModel):
    """Outcome of a previous processing run, if any."""

    score_id: int
    processed_version: int
    processed_at: datetime | None = None


class ScoreItem(BaseModel):
    """Item on the score statistics queue."""

    score: SoloScoreInfo
    processed_history: ProcessHistory | None = None

    def __repr__(self) -> str:
        return f"<ScoreItem score_id={self.score.id} user={self.score.user_id} beatmap={self.score.beatmap_id}>"
