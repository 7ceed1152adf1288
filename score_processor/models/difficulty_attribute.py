"""Stored difficulty attribute rows.

One row per (beatmap, ruleset, legacy mod value, attribute id). Rows are
precomputed by an external difficulty calculator and read-only here.
"""

from sqlalchemy import Float, Integer, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from score_processor.stores.postgres import Base


class BeatmapDifficultyAttribute(Base):
    """A single named difficulty value for a beatmap/ruleset/mods combination."""

    __tablename__ = "osu_beatmap_difficulty_attribs"

    beatmap_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    mode: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    mods: Mapped[int] = mapped_column(Integer, primary_key=True)
    attrib_id: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    value: Mapped[float] = mapped_column(Float)

    def __repr__(self) -> str:
        return f"<BeatmapDifficultyAttribute {self.beatmap_id}/{self.mode}/{self.mods} #{self.attrib_id}={self.value}>"
