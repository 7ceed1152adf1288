"""Per-ruleset user statistics.

One row per (user, ruleset), created lazily on the user's first processed score.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, Integer, SmallInteger, func
from sqlalchemy.orm import Mapped, mapped_column

from score_processor.stores.postgres import Base


class UserStats(Base):
    """Aggregated statistics for a user in one ruleset."""

    __tablename__ = "osu_user_stats"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    ruleset_id: Mapped[int] = mapped_column(SmallInteger, primary_key=True)

    playcount: Mapped[int] = mapped_column(Integer, default=0)
    total_score: Mapped[int] = mapped_column(BigInteger, default=0)
    ranked_score: Mapped[int] = mapped_column(BigInteger, default=0)
    max_combo: Mapped[int] = mapped_column(Integer, default=0)
    total_hits: Mapped[int] = mapped_column(BigInteger, default=0)

    # Sum of pp awarded on eligible beatmaps
    rank_score: Mapped[float] = mapped_column(Float, default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<UserStats user={self.user_id} ruleset={self.ruleset_id} playcount={self.playcount}>"
