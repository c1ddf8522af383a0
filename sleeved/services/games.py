"""
Game lifecycle orchestration.

Each public operation is one unit of work against the database:

- create_game / create_async_game: deal and insert a new game.
- commit_round: load the game (row-locked where supported), accept the
  commit, resolve if the round is complete, write back. The games table is
  version-checked, so when two commits race the loser's write fails with
  StaleDataError; the whole unit is then retried in a fresh session, where
  the opponent's commit is visible and the round resolves exactly once.
- surrender: a single write, retried the same way.

Follow-up writes for a finished async game (the recorded opponent's record,
recording the player as a new opponent) happen after the primary commit and
are best-effort.
"""

import logging
import random
import uuid
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from sleeved.config import settings
from sleeved.db.operations import create_game_record, load_game, save_game
from sleeved.engine import coordinator
from sleeved.engine.coordinator import CommitOutcome, RoundCoordinator
from sleeved.models.card import CardDefinition, CardSnapshot
from sleeved.models.failure import NoSnapshotAvailableError, NotAPlayerError
from sleeved.models.game import Game, PlayerGameState
from sleeved.models.rules import GameRules
from sleeved.services.ratings import apply_live_ratings, update_snapshot_record
from sleeved.services.snapshots import find_opponent, record_snapshot_from_game

logger = logging.getLogger(__name__)

T = TypeVar("T")


def new_game_id() -> str:
    return uuid.uuid4().hex


async def create_game(
    session: AsyncSession,
    players: Sequence[str],
    catalog: Iterable[CardDefinition],
    rules: GameRules,
    ranked: bool = True,
    rng: random.Random | None = None,
) -> Game:
    """Create and store a synchronous game between two live players."""
    game, states = coordinator.create_game(
        new_game_id(), players, list(catalog), rules, ranked=ranked, rng=rng
    )
    await create_game_record(session, game, states)
    return game


async def create_async_game(
    session: AsyncSession,
    player_id: str,
    catalog: Iterable[CardDefinition],
    rules: GameRules,
    ranked: bool = True,
    rng: random.Random | None = None,
    tolerance: int | None = None,
) -> Game:
    """
    Match a live player with a recorded opponent and store the game.

    Raises:
        NoSnapshotAvailableError: No recorded opponent is eligible
    """
    catalog = list(catalog)
    cards = CardSnapshot.from_catalog(catalog)
    snapshot = await find_opponent(session, player_id, cards, rules, tolerance=tolerance)
    if snapshot is None:
        raise NoSnapshotAvailableError(player_id)

    game, states = coordinator.create_async_game(
        new_game_id(), player_id, snapshot, catalog, rules, ranked=ranked, rng=rng
    )
    await create_game_record(session, game, states)
    return game


async def get_game(session: AsyncSession, game_id: str) -> Game:
    """
    Raises:
        GameNotFoundError: No game with this ID
    """
    _, game, _ = await load_game(session, game_id)
    return game


async def get_player_state(session: AsyncSession, game_id: str, player_id: str) -> PlayerGameState:
    """
    A live player's private state.

    Raises:
        GameNotFoundError: No game with this ID
        NotAPlayerError: player_id is not a live player of the game
    """
    _, _, states = await load_game(session, game_id)
    if player_id not in states:
        raise NotAPlayerError(player_id, game_id)
    return states[player_id]


async def _write_with_retries(
    session_factory: async_sessionmaker[AsyncSession],
    game_id: str,
    player_id: str,
    action: str,
    unit: Callable[[AsyncSession], Awaitable[T]],
    attempts: int,
) -> T:
    """
    Run one game write per attempt, each in a fresh transaction.

    A lost version check or a racing first rating insert rolls the attempt
    back and reruns the unit, which then sees the other writer's result.
    """
    for attempt in range(1, attempts + 1):
        try:
            async with session_factory() as session, session.begin():
                return await unit(session)
        except (StaleDataError, IntegrityError) as e:
            if attempt >= attempts:
                logger.error(
                    "%s by %s to game %s failed after %d attempts: %s",
                    action,
                    player_id,
                    game_id,
                    attempts,
                    e,
                )
                raise
            logger.info(
                "%s by %s to game %s lost a concurrent update (attempt %d/%d), retrying",
                action,
                player_id,
                game_id,
                attempt,
                attempts,
            )
    raise ValueError(f"attempts must be positive, got {attempts}")


async def commit_round(
    session_factory: async_sessionmaker[AsyncSession],
    game_id: str,
    player_id: str,
    sleeve_id: str,
    animal_id: str,
    equipment_ids: Sequence[str],
    rng: random.Random | None = None,
    attempts: int | None = None,
) -> tuple[CommitOutcome, Game]:
    """
    Accept a commit and resolve the round when it completes.

    Returns:
        The commit outcome and the game document as written

    Raises:
        KnownError subclasses for rejected commits (nothing is written)
        StaleDataError if every attempt lost a concurrent update
    """

    async def unit(session: AsyncSession) -> tuple[CommitOutcome, Game]:
        row, game, states = await load_game(session, game_id, for_update=True)
        outcome = RoundCoordinator(game, states, rng=rng).commit(
            player_id, sleeve_id, animal_id, equipment_ids
        )
        if outcome.game_finished:
            await apply_live_ratings(session, game)
        await save_game(session, row, game, states)
        return outcome, game

    outcome, game = await _write_with_retries(
        session_factory,
        game_id,
        player_id,
        "Commit",
        unit,
        attempts or settings.commit_retry_attempts,
    )
    if outcome.game_finished:
        await _after_game_finished(session_factory, game)
    return outcome, game


async def surrender(
    session_factory: async_sessionmaker[AsyncSession],
    game_id: str,
    player_id: str,
    attempts: int | None = None,
) -> Game:
    """
    End an active game; the opponent wins.

    Retried like commit_round, so a surrender that races the finishing
    commit ends in GameNotActiveError rather than a failed write.

    Raises:
        GameNotFoundError, NotAPlayerError, GameNotActiveError
    """

    async def unit(session: AsyncSession) -> Game:
        row, game, states = await load_game(session, game_id, for_update=True)
        RoundCoordinator(game, states).surrender(player_id)
        await apply_live_ratings(session, game)
        await save_game(session, row, game, states)
        return game

    game = await _write_with_retries(
        session_factory,
        game_id,
        player_id,
        "Surrender",
        unit,
        attempts or settings.commit_retry_attempts,
    )
    await _after_game_finished(session_factory, game)
    return game


async def _after_game_finished(
    session_factory: async_sessionmaker[AsyncSession], game: Game
) -> None:
    if not game.is_async:
        return
    await update_snapshot_record(session_factory, game)
    await record_snapshot_from_game(session_factory, game)
