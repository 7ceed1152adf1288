"""Score and processing history models.

`scores` holds submitted scores; `score_process_history` is the completion
marker written once a score has been applied to user statistics.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Float, Integer, SmallInteger, String, func
from sqlalchemy.orm import Mapped, mapped_column

from score_processor.stores.postgres import Base


class Score(Base):
    """Submitted score."""

    __tablename__ = "scores"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    ruleset_id: Mapped[int] = mapped_column(SmallInteger)
    beatmap_id: Mapped[int] = mapped_column(Integer, index=True)

    # Mods and hit statistics (JSON object)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    total_score: Mapped[int] = mapped_column(Integer, default=0)
    accuracy: Mapped[float] = mapped_column(Float, default=0)
    max_combo: Mapped[int] = mapped_column(Integer, default=0)
    rank: Mapped[str] = mapped_column(String(2), default="")
    passed: Mapped[bool] = mapped_column(Boolean, default=False)
    ranked: Mapped[bool] = mapped_column(Boolean, default=True)
    pp: Mapped[float | None] = mapped_column(Float)
    build_id: Mapped[int | None] = mapped_column(SmallInteger)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Score {self.id} user={self.user_id} beatmap={self.beatmap_id}>"


class ScoreProcessHistory(Base):
    """Completion marker for a processed score."""

    __tablename__ = "score_process_history"

    score_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    processed_version: Mapped[int] = mapped_column(SmallInteger)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ScoreProcessHistory {self.score_id} v{self.processed_version}>"
