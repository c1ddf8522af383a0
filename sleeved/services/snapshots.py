"""
Recorded opponents: seeding, matching, and recording from finished games.
"""

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sleeved.config import settings
from sleeved.db.operations import (
    create_snapshot,
    delete_snapshot,
    get_rating,
    list_snapshots,
    snapshot_to_model,
)
from sleeved.engine.elo import DEFAULT_ELO
from sleeved.engine.snapshots import (
    build_snapshot_from_game,
    select_snapshot,
    validate_snapshot_commits,
)
from sleeved.models.card import CardDefinition, CardSnapshot
from sleeved.models.failure import SnapshotNotFoundError
from sleeved.models.game import Game
from sleeved.models.rules import GameRules
from sleeved.models.snapshot import GameSnapshot, SnapshotCommit

logger = logging.getLogger(__name__)

BOT_PLAYER_PREFIX = "bot:"


def new_snapshot_id() -> str:
    return uuid.uuid4().hex


async def seed_bot_snapshot(
    session: AsyncSession,
    name: str,
    elo: int,
    commits: Sequence[SnapshotCommit],
    rules: GameRules,
    catalog: Iterable[CardDefinition] = (),
) -> GameSnapshot:
    """
    Store a hand-written strategy as a bot opponent.

    Raises:
        InvalidInputError: commits do not cover exactly rules.max_rounds rounds
    """
    validate_snapshot_commits(commits, rules.max_rounds)

    cards = CardSnapshot.from_catalog(catalog)
    active_ids = cards.card_ids()
    if not active_ids:
        active_ids = sorted({card_id for c in commits for card_id in c.card_ids()})

    snapshot_id = new_snapshot_id()
    snapshot = GameSnapshot(
        id=snapshot_id,
        source_player_id=f"{BOT_PLAYER_PREFIX}{snapshot_id}",
        source_player_name=name,
        elo=elo,
        commits=list(commits),
        active_card_ids=active_ids,
        is_bot=True,
        created_at=datetime.now(UTC),
    )
    await create_snapshot(session, snapshot)
    logger.info("Seeded bot snapshot %s (%s, elo %d)", snapshot_id, name, elo)
    return snapshot


async def get_snapshots(
    session: AsyncSession, round_count: int | None = None
) -> list[GameSnapshot]:
    return [snapshot_to_model(row) for row in await list_snapshots(session, round_count)]


async def remove_snapshot(session: AsyncSession, snapshot_id: str) -> None:
    """
    Raises:
        SnapshotNotFoundError: No snapshot with this ID
    """
    if not await delete_snapshot(session, snapshot_id):
        raise SnapshotNotFoundError(snapshot_id)
    logger.info("Deleted snapshot %s", snapshot_id)


async def find_opponent(
    session: AsyncSession,
    player_id: str,
    cards: CardSnapshot,
    rules: GameRules,
    tolerance: int | None = None,
) -> GameSnapshot | None:
    """Choose a recorded opponent near the player's current rating."""
    rating = await get_rating(session, player_id)
    player_elo = rating.elo if rating else DEFAULT_ELO
    candidates = await get_snapshots(session, round_count=rules.max_rounds)
    return select_snapshot(
        candidates,
        player_id=player_id,
        player_elo=player_elo,
        max_rounds=rules.max_rounds,
        cards=cards,
        tolerance=settings.snapshot_match_tolerance if tolerance is None else tolerance,
    )


async def record_snapshot_from_game(
    session_factory: async_sessionmaker[AsyncSession], game: Game
) -> GameSnapshot | None:
    """
    Best-effort: record the live player of a finished async game as a new opponent.

    Skipped when the player did not commit every round (surrender).
    Never raises.
    """
    live = game.live_players()
    if not game.is_async or not live:
        return None
    player_id = live[0]

    try:
        async with session_factory() as session:
            rating = await get_rating(session, player_id)
            snapshot = build_snapshot_from_game(
                game,
                player_id,
                snapshot_id=new_snapshot_id(),
                elo=rating.elo if rating else DEFAULT_ELO,
                now=datetime.now(UTC),
            )
            if snapshot is None:
                logger.info("Game %s has an incomplete history; no snapshot recorded", game.id)
                return None
            await create_snapshot(session, snapshot)
            await session.commit()
    except Exception:
        logger.exception("Could not record snapshot from game %s", game.id)
        return None

    logger.info("Recorded snapshot %s from game %s", snapshot.id, game.id)
    return snapshot
