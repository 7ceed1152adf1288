"""Beatmap store: beatmap records, difficulty attributes and eligibility.

Resolution of difficulty attributes for (beatmap, ruleset, mods):

- Real-time mode (REALTIME_DIFFICULTY=1): download the beatmap content and
  hand it to a difficulty calculator. Nothing is cached since content may vary.
- Cached mode (default): map mods to a legacy mod value, then look up
  precomputed rows in `osu_beatmap_difficulty_attribs`. Each
  DifficultyAttributeKey is queried at most once per process; empty results
  are cached too so missing attributes are not re-queried.

Caches live on the store instance and are never invalidated mid-run, except
through the explicit `invalidate_beatmap()` hook for beatmap records.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

import httpx
from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from score_processor.models import Beatmap, BeatmapDifficultyAttribute, PerformanceBlacklistEntry
from score_processor.schemas.score_item import APIMod
from score_processor.services.eligibility import (
    BlacklistEntry,
    build_blacklist,
    is_beatmap_valid_for_performance,
)
from score_processor.services.errors import ContentUnavailable, InvalidState, TransientFetchFailure
from score_processor.services.mods import get_legacy_mods_for_attribute_lookup
from score_processor.settings import get_settings

logger = logging.getLogger("uvicorn.error")

# Errors meaning "storage unreachable" rather than "bad query"
_STORAGE_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, OSError)


# ============================================================
# Value types
# ============================================================

# Attribute id -> name, as stored by the legacy difficulty calculator
ATTRIBUTE_NAMES: dict[int, str] = {
    1: "aim",
    3: "speed",
    5: "overall_difficulty",
    7: "approach_rate",
    9: "max_combo",
    11: "star_rating",
    13: "great_hit_window",
    15: "score_multiplier",
    17: "flashlight",
    19: "slider_factor",
    21: "speed_note_count",
}
_ATTRIBUTE_IDS = {name: attrib_id for attrib_id, name in ATTRIBUTE_NAMES.items()}


@dataclass(frozen=True)
class DifficultyAttributeKey:
    beatmap_id: int
    ruleset_id: int
    mod_value: int


@dataclass(frozen=True)
class DifficultyAttributes:
    """Ordered (attribute id, value) pairs for one beatmap/ruleset/mods."""

    ruleset_id: int
    values: tuple[tuple[int, float], ...]

    def get(self, attribute: int | str, default: float | None = None) -> float | None:
        attrib_id = _ATTRIBUTE_IDS.get(attribute) if isinstance(attribute, str) else attribute
        for key, value in self.values:
            if key == attrib_id:
                return value
        return default

    @property
    def star_rating(self) -> float:
        return self.get("star_rating", 0.0) or 0.0

    @property
    def max_combo(self) -> int:
        return int(self.get("max_combo", 0) or 0)

    def as_dict(self) -> dict[str, float]:
        return {ATTRIBUTE_NAMES.get(k, str(k)): v for k, v in self.values}


class DifficultyCalculator(Protocol):
    """Ruleset-specific difficulty calculation over raw beatmap content."""

    def calculate(self, content: bytes, ruleset_id: int, mods: Sequence[APIMod]) -> DifficultyAttributes: ...


@dataclass
class BeatmapStoreStats:
    beatmap_hits: int = 0
    beatmap_queries: int = 0
    attribute_hits: int = 0
    attribute_queries: int = 0
    realtime_calculations: int = 0


# ============================================================
# Store
# ============================================================


class BeatmapStore:
    """Cache-or-fetch access to beatmaps and their difficulty attributes."""

    def __init__(
        self,
        blacklist: Iterable[tuple[int, int]],
        *,
        realtime_difficulty: bool | None = None,
        difficulty_calculator: DifficultyCalculator | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self.realtime_difficulty = (
            settings.realtime_difficulty if realtime_difficulty is None else realtime_difficulty
        )
        if self.realtime_difficulty and difficulty_calculator is None:
            raise InvalidState("Real-time difficulty is enabled but no difficulty calculator was provided")

        self.difficulty_calculator = difficulty_calculator
        self.download_path = settings.beatmap_download_path
        self.download_timeout = settings.beatmap_download_timeout
        self._http_client = http_client

        self._blacklist: frozenset[BlacklistEntry] = build_blacklist(blacklist)
        self._beatmap_cache: dict[int, Beatmap | None] = {}
        self._attribute_cache: dict[DifficultyAttributeKey, tuple[tuple[int, float], ...]] = {}
        # One lock per key, kept for the store's lifetime
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self.stats = BeatmapStoreStats()

    @classmethod
    async def create(cls, session: AsyncSession, **kwargs) -> BeatmapStore:
        """Create a store, loading the performance blacklist.

        Any failure here propagates: the store cannot judge eligibility
        without its blacklist.
        """
        result = await session.execute(
            select(PerformanceBlacklistEntry.beatmap_id, PerformanceBlacklistEntry.mode)
        )
        rows = [(row.beatmap_id, row.mode) for row in result]
        logger.info(f"Beatmap store created with {len(rows)} blacklist entries")
        return cls(rows, **kwargs)

    # ------------------------------------------------------------
    # Beatmaps
    # ------------------------------------------------------------

    async def get_beatmap(self, session: AsyncSession, beatmap_id: int) -> Beatmap | None:
        """Get a beatmap, fetching it at most once per process.

        Returns:
            The beatmap, or None if it does not exist (also cached).
        """
        if beatmap_id in self._beatmap_cache:
            self.stats.beatmap_hits += 1
            return self._beatmap_cache[beatmap_id]

        async with self._lock_for(("beatmap", beatmap_id)):
            if beatmap_id in self._beatmap_cache:
                self.stats.beatmap_hits += 1
                return self._beatmap_cache[beatmap_id]

            beatmap = await _fetch_beatmap(session, beatmap_id)
            self.stats.beatmap_queries += 1
            self._beatmap_cache[beatmap_id] = beatmap
            return beatmap

    def invalidate_beatmap(self, beatmap_id: int) -> bool:
        """Drop a cached beatmap record (e.g. after its approval status changed).

        Returns:
            True if an entry was removed.
        """
        removed = self._beatmap_cache.pop(beatmap_id, _MISSING) is not _MISSING
        if removed:
            logger.info(f"Invalidated cached beatmap {beatmap_id}")
        return removed

    # ------------------------------------------------------------
    # Difficulty attributes
    # ------------------------------------------------------------

    async def get_difficulty_attributes(
        self,
        session: AsyncSession,
        beatmap: Beatmap,
        ruleset_id: int,
        mods: Sequence[APIMod],
    ) -> DifficultyAttributes | None:
        """Resolve difficulty attributes for a score on a beatmap.

        Args:
            session: Database session used on cache miss.
            beatmap: The beatmap.
            ruleset_id: The score's ruleset.
            mods: The score's mods.

        Returns:
            Attributes, or None if no attributes exist (cannot award pp).

        Raises:
            TransientFetchFailure: Storage or download unavailable.
            ContentUnavailable: Downloaded beatmap content was empty.
        """
        if self.realtime_difficulty:
            return await self._calculate_realtime(beatmap, ruleset_id, mods)

        legacy_mods = get_legacy_mods_for_attribute_lookup(beatmap.playmode, ruleset_id, mods)
        key = DifficultyAttributeKey(beatmap.beatmap_id, ruleset_id, int(legacy_mods))

        values = self._attribute_cache.get(key)
        if values is not None:
            self.stats.attribute_hits += 1
        else:
            values = await self._resolve_attribute_rows(session, key)

        if not values:
            return None
        return DifficultyAttributes(ruleset_id=ruleset_id, values=values)

    async def _resolve_attribute_rows(
        self,
        session: AsyncSession,
        key: DifficultyAttributeKey,
    ) -> tuple[tuple[int, float], ...]:
        async with self._lock_for(key):
            values = self._attribute_cache.get(key)
            if values is not None:
                self.stats.attribute_hits += 1
                return values

            values = await _fetch_attribute_rows(session, key)
            self.stats.attribute_queries += 1
            self._attribute_cache[key] = values
            if not values:
                logger.info(f"No difficulty attributes for {key}")
            return values

    async def _calculate_realtime(
        self,
        beatmap: Beatmap,
        ruleset_id: int,
        mods: Sequence[APIMod],
    ) -> DifficultyAttributes:
        content = await self._download_beatmap(beatmap.beatmap_id)
        if not content:
            raise ContentUnavailable(f"Retrieved zero-length beatmap ({beatmap.beatmap_id})!")

        calculator = self.difficulty_calculator
        if calculator is None:
            raise InvalidState("Real-time difficulty requires a difficulty calculator")

        self.stats.realtime_calculations += 1
        # Difficulty calculation is CPU bound; keep the event loop free for producers.
        return await asyncio.to_thread(calculator.calculate, content, ruleset_id, list(mods))

    async def _download_beatmap(self, beatmap_id: int) -> bytes:
        url = self.download_path.format(beatmap_id)
        try:
            if self._http_client is not None:
                resp = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.download_timeout, follow_redirects=True) as client:
                    resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Beatmap download failed for {beatmap_id}: {e}")
            raise TransientFetchFailure(f"Could not download beatmap {beatmap_id}: {e}") from e
        return resp.content

    # ------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------

    def is_valid_for_performance(self, beatmap: Beatmap, ruleset_id: int) -> bool:
        """Whether performance points may be awarded for the beatmap and ruleset."""
        return is_beatmap_valid_for_performance(
            beatmap.beatmap_id,
            beatmap.approved,
            ruleset_id,
            self._blacklist,
        )

    def _lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


_MISSING = object()


# ============================================================
# Queries
# ============================================================


async def _fetch_beatmap(session: AsyncSession, beatmap_id: int) -> Beatmap | None:
    try:
        result = await session.execute(select(Beatmap).where(Beatmap.beatmap_id == beatmap_id))
        beatmap = result.scalar_one_or_none()
    except _STORAGE_UNAVAILABLE_ERRORS as e:
        raise TransientFetchFailure(f"Could not fetch beatmap {beatmap_id}: {e}") from e

    if beatmap is not None:
        # Cached instances outlive the session; detach so they stay read-only.
        session.expunge(beatmap)
    return beatmap


async def _fetch_attribute_rows(
    session: AsyncSession,
    key: DifficultyAttributeKey,
) -> tuple[tuple[int, float], ...]:
    query = (
        select(BeatmapDifficultyAttribute.attrib_id, BeatmapDifficultyAttribute.value)
        .where(
            BeatmapDifficultyAttribute.beatmap_id == key.beatmap_id,
            BeatmapDifficultyAttribute.mode == key.ruleset_id,
            BeatmapDifficultyAttribute.mods == key.mod_value,
        )
        .order_by(BeatmapDifficultyAttribute.attrib_id)
    )
    try:
        result = await session.execute(query)
    except _STORAGE_UNAVAILABLE_ERRORS as e:
        raise TransientFetchFailure(f"Could not fetch difficulty attributes for {key}: {e}") from e
    return tuple((int(row.attrib_id), float(row.value)) for row in result)
