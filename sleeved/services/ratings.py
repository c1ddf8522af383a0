"""
Post-game rating and record keeping.

Live players' ratings are part of the finishing write: they are applied in
the same transaction that stores the finished game. The recorded opponent's
rating and counters are best-effort and written afterwards in a session of
their own; a failure there is logged and never undoes the game.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sleeved.db.operations import get_or_create_rating, get_snapshot, record_result
from sleeved.engine.elo import (
    SNAPSHOT_ASSUMED_GAMES_PLAYED,
    GameResult,
    RatedSide,
    calculate_elo_change,
    rate_game,
)
from sleeved.models.game import Game

logger = logging.getLogger(__name__)


def result_for(game: Game, player_id: str) -> GameResult:
    """A finished game's result from one side's perspective."""
    if game.is_draw or game.winner is None:
        return GameResult.DRAW
    return GameResult.WIN if game.winner == player_id else GameResult.LOSS


async def apply_live_ratings(session: AsyncSession, game: Game) -> None:
    """
    Update live players' records and, for ranked games, their ratings.

    Both sides are rated from their pre-game ratings. The resulting changes
    are stored on game.elo_changes (including the recorded opponent's,
    which is persisted separately by update_snapshot_record).
    """
    rows = {
        pid: await get_or_create_rating(session, pid, for_update=True)
        for pid in game.live_players()
    }

    if game.ranked:
        sides = []
        for pid in game.players:
            if pid in rows:
                sides.append(RatedSide(pid, rows[pid].elo, rows[pid].games_played))
            elif game.snapshot_state is not None:
                sides.append(RatedSide(pid, game.snapshot_state.elo, SNAPSHOT_ASSUMED_GAMES_PLAYED))
        first, second = sides
        game.elo_changes = rate_game(first, second, game.winner)
        for pid, row in rows.items():
            row.elo = game.elo_changes[pid].new_elo

    for pid, row in rows.items():
        record_result(row, result_for(game, pid))

    await session.flush()
    logger.info(
        "Recorded result of game %s: %s",
        game.id,
        {pid: result_for(game, pid).value for pid in rows},
    )


async def update_snapshot_record(
    session_factory: async_sessionmaker[AsyncSession], game: Game
) -> bool:
    """
    Best-effort: bump the recorded opponent's counters and rating.

    The rating is recomputed from the stored row, locked for the update,
    so games against the same snapshot that overlap each apply their own
    change. The live player's side uses their pre-game rating.

    Returns True if written. Never raises.
    """
    if game.snapshot_state is None:
        return False

    snapshot_id = game.snapshot_state.snapshot_id
    snapshot_player = game.snapshot_state.player_id
    try:
        async with session_factory() as session:
            row = await get_snapshot(session, snapshot_id, for_update=True)
            if row is None:
                logger.info("Snapshot %s was deleted before game %s finished", snapshot_id, game.id)
                return False
            result = result_for(game, snapshot_player)
            record_result(row, result)
            live_change = next(
                (game.elo_changes[pid] for pid in game.live_players() if pid in game.elo_changes),
                None,
            )
            if game.ranked and live_change is not None:
                change = calculate_elo_change(
                    row.elo, live_change.previous_elo, SNAPSHOT_ASSUMED_GAMES_PLAYED, result
                )
                row.elo = change.new_elo
            await session.commit()
    except Exception:
        logger.exception("Could not update snapshot %s after game %s", snapshot_id, game.id)
        return False
    return True
