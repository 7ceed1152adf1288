"""Builders and DB seeding helpers shared by the tests."""

from datetime import datetime, timedelta, timezone
from itertools import count

from score_processor.models import Beatmap, BeatmapDifficultyAttribute, PerformanceBlacklistEntry
from score_processor.schemas.score_item import APIMod, ScoreItem, SoloScoreInfo
from score_processor.services.eligibility import BeatmapOnlineStatus
from score_processor.services.queue_processor import QueueProcessor
from score_processor.stores.postgres import get_session

TEST_BEATMAP_ID = 1
TEST_BEATMAP_SET_ID = 1
MAX_COMBO = 1337

_score_ids = count(1)


def make_score_item(
    beatmap_id: int = TEST_BEATMAP_ID,
    ruleset_id: int = 0,
    mods: list[str] | None = None,
    **overrides,
) -> ScoreItem:
    """Build a passed S-rank score on the given beatmap."""
    now = datetime.now(timezone.utc)
    fields = dict(
        id=next(_score_ids),
        user_id=2,
        beatmap_id=beatmap_id,
        ruleset_id=ruleset_id,
        mods=[APIMod(acronym=m) for m in (mods or [])],
        statistics={"perfect": 5, "large_bonus": 0},
        maximum_statistics={"perfect": 5, "large_bonus": 2},
        total_score=100000,
        accuracy=1.0,
        max_combo=MAX_COMBO,
        rank="S",
        passed=True,
        started_at=now - timedelta(seconds=180),
        ended_at=now,
    )
    fields.update(overrides)
    return ScoreItem(score=SoloScoreInfo(**fields))


async def add_beatmap(
    beatmap_id: int = TEST_BEATMAP_ID,
    status: BeatmapOnlineStatus = BeatmapOnlineStatus.RANKED,
    playmode: int = 0,
) -> None:
    async with get_session() as session:
        session.add(
            Beatmap(
                beatmap_id=beatmap_id,
                beatmapset_id=TEST_BEATMAP_SET_ID,
                playmode=playmode,
                approved=int(status),
                max_combo=5,
            )
        )


async def add_beatmap_attributes(
    beatmap_id: int = TEST_BEATMAP_ID,
    mode: int = 0,
    mods: int = 0,
    attributes: dict[int, float] | None = None,
) -> None:
    attributes = attributes or {11: 5.0, 9: 5.0}
    async with get_session() as session:
        for attrib_id, value in attributes.items():
            session.add(
                BeatmapDifficultyAttribute(
                    beatmap_id=beatmap_id,
                    mode=mode,
                    mods=mods,
                    attrib_id=attrib_id,
                    value=value,
                )
            )


async def add_blacklist_entry(beatmap_id: int, mode: int) -> None:
    async with get_session() as session:
        session.add(PerformanceBlacklistEntry(beatmap_id=beatmap_id, mode=mode))


class ErrorRecorder:
    """Error handler collecting (error, item) calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[BaseException, object]] = []

    def __call__(self, error: BaseException, item: object) -> None:
        self.calls.append((error, item))

    @property
    def first_error(self) -> BaseException | None:
        return self.calls[0][0] if self.calls else None


def fake_pp(score: SoloScoreInfo, attributes) -> float:
    """Deterministic stand-in for a performance formula."""
    return attributes.star_rating * 10 * score.accuracy


async def push_and_wait(processor: QueueProcessor, item, timeout: float = 10) -> None:
    """Push a single item and wait until the processed counter moves past it."""
    processed_before = processor.total_processed
    await processor.push_to_queue(item)
    await processor.wait_for_total_processed(processed_before + 1, timeout=timeout)
