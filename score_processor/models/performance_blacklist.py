"""Performance blacklist model.

Beatmaps listed here never award performance points in the given ruleset,
regardless of approval status.
"""

from sqlalchemy import Integer, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from score_processor.stores.postgres import Base


class PerformanceBlacklistEntry(Base):
    __tablename__ = "osu_beatmap_performance_blacklist"

    beatmap_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    mode: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
