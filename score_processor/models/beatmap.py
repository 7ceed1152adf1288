"""Beatmap model.

Represents a single difficulty of a beatmap set, as stored in `osu_beatmaps`.
Only the columns the processor reads are mapped.
"""

from sqlalchemy import Integer, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from score_processor.services.eligibility import BeatmapOnlineStatus
from score_processor.stores.postgres import Base


class Beatmap(Base):
    """Beatmap difficulty with approval status."""

    __tablename__ = "osu_beatmaps"

    beatmap_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    beatmapset_id: Mapped[int] = mapped_column(Integer, index=True)

    # Native ruleset of the beatmap (other rulesets play it as a convert)
    playmode: Mapped[int] = mapped_column(SmallInteger, default=0)

    # BeatmapOnlineStatus value
    approved: Mapped[int] = mapped_column(SmallInteger, default=int(BeatmapOnlineStatus.PENDING))

    total_length: Mapped[int] = mapped_column(Integer, default=0)
    max_combo: Mapped[int | None] = mapped_column(Integer)

    @property
    def status(self) -> BeatmapOnlineStatus:
        return BeatmapOnlineStatus(self.approved)

    def __repr__(self) -> str:
        return f"<Beatmap {self.beatmap_id} approved={self.approved}>"
