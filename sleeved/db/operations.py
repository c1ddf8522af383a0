"""
Database CRUD operations.

Provides async functions for games, player ratings, and recorded snapshots,
plus conversions between ORM rows and domain models.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sleeved.engine.elo import DEFAULT_ELO, GameResult
from sleeved.models.db import GameDB, GameSnapshotDB, PlayerRatingDB
from sleeved.models.failure import GameNotFoundError
from sleeved.models.game import Game, GameStatus, PlayerGameState
from sleeved.models.snapshot import GameSnapshot, SnapshotCommit

# --- Game Operations ---


async def get_game(session: AsyncSession, game_id: str, for_update: bool = False) -> GameDB | None:
    """
    Get a game row by ID.

    With for_update, the row is locked until the transaction ends
    (ignored by dialects without row locks, e.g. SQLite).
    """
    stmt = select(GameDB).where(GameDB.id == game_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def load_game(
    session: AsyncSession, game_id: str, for_update: bool = False
) -> tuple[GameDB, Game, dict[str, PlayerGameState]]:
    """
    Load a game row together with its domain models.

    Raises:
        GameNotFoundError: No game with this ID
    """
    row = await get_game(session, game_id, for_update=for_update)
    if row is None:
        raise GameNotFoundError(game_id)
    return row, game_to_model(row), player_states_to_model(row)


async def create_game_record(
    session: AsyncSession, game: Game, player_states: dict[str, PlayerGameState]
) -> GameDB:
    """Insert a new game. The version column starts at 1."""
    row = GameDB(
        id=game.id,
        status=game.status.value,
        is_async=game.is_async,
        snapshot_id=game.snapshot_id,
        state=game.to_dict(),
        player_states={pid: s.to_dict() for pid, s in player_states.items()},
    )
    session.add(row)
    await session.flush()
    return row


async def save_game(
    session: AsyncSession,
    row: GameDB,
    game: Game,
    player_states: dict[str, PlayerGameState],
) -> GameDB:
    """
    Write the game back to its row.

    The JSON columns are replaced wholesale so the change is detected.
    Raises StaleDataError on flush if another writer bumped the version.
    """
    row.status = game.status.value
    row.state = game.to_dict()
    row.player_states = {pid: s.to_dict() for pid, s in player_states.items()}
    await session.flush()
    return row


def game_to_model(row: GameDB) -> Game:
    """Convert a database game to the public game document."""
    return Game.from_dict(row.state)


def player_states_to_model(row: GameDB) -> dict[str, PlayerGameState]:
    """Convert stored player states to domain models."""
    return {pid: PlayerGameState.from_dict(data) for pid, data in row.player_states.items()}


async def count_active_games(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count()).select_from(GameDB).where(GameDB.status == GameStatus.ACTIVE.value)
    )
    return result.scalar_one()


# --- Rating Operations ---


async def get_rating(
    session: AsyncSession, player_id: str, for_update: bool = False
) -> PlayerRatingDB | None:
    """Get a player's rating. Returns None for a player who never finished a game."""
    stmt = select(PlayerRatingDB).where(PlayerRatingDB.player_id == player_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_or_create_rating(
    session: AsyncSession, player_id: str, for_update: bool = False
) -> PlayerRatingDB:
    """Get a player's rating, creating it at the default rating if missing."""
    rating = await get_rating(session, player_id, for_update=for_update)
    if rating:
        return rating

    rating = PlayerRatingDB(
        player_id=player_id,
        elo=DEFAULT_ELO,
        games_played=0,
        wins=0,
        losses=0,
        draws=0,
    )
    session.add(rating)
    await session.flush()
    return rating


async def list_ratings(session: AsyncSession, limit: int = 50) -> list[PlayerRatingDB]:
    """Leaderboard: highest rating first."""
    result = await session.execute(
        select(PlayerRatingDB)
        .order_by(PlayerRatingDB.elo.desc(), PlayerRatingDB.player_id)
        .limit(limit)
    )
    return list(result.scalars().all())


def record_result(row: PlayerRatingDB | GameSnapshotDB, result: GameResult) -> None:
    """Bump games played and the matching win/loss/draw counter."""
    row.games_played += 1
    if result == GameResult.WIN:
        row.wins += 1
    elif result == GameResult.LOSS:
        row.losses += 1
    else:
        row.draws += 1


# --- Snapshot Operations ---


async def get_snapshot(
    session: AsyncSession, snapshot_id: str, for_update: bool = False
) -> GameSnapshotDB | None:
    stmt = select(GameSnapshotDB).where(GameSnapshotDB.id == snapshot_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_snapshots(
    session: AsyncSession, round_count: int | None = None
) -> list[GameSnapshotDB]:
    """List snapshots, optionally only those recorded over round_count rounds."""
    stmt = select(GameSnapshotDB).order_by(GameSnapshotDB.elo.desc(), GameSnapshotDB.id)
    if round_count is not None:
        stmt = stmt.where(GameSnapshotDB.round_count == round_count)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_snapshot(session: AsyncSession, snapshot: GameSnapshot) -> GameSnapshotDB:
    """Insert a recorded strategy."""
    row = GameSnapshotDB(
        id=snapshot.id,
        source_player_id=snapshot.source_player_id,
        source_player_name=snapshot.source_player_name,
        elo=snapshot.elo,
        round_count=snapshot.round_count,
        commits=[c.to_dict() for c in snapshot.commits],
        active_card_ids=list(snapshot.active_card_ids),
        games_played=snapshot.games_played,
        wins=snapshot.wins,
        losses=snapshot.losses,
        draws=snapshot.draws,
        is_bot=snapshot.is_bot,
    )
    if snapshot.created_at is not None:
        row.created_at = snapshot.created_at
    session.add(row)
    await session.flush()
    return row


async def delete_snapshot(session: AsyncSession, snapshot_id: str) -> bool:
    """
    Delete a snapshot.

    Returns True if deleted, False if not found. Games already playing
    against it keep their own copy of its commits.
    """
    result = await session.execute(delete(GameSnapshotDB).where(GameSnapshotDB.id == snapshot_id))
    return result.rowcount > 0


def snapshot_to_model(row: GameSnapshotDB) -> GameSnapshot:
    """Convert a database snapshot to a domain model."""
    return GameSnapshot(
        id=row.id,
        source_player_id=row.source_player_id,
        source_player_name=row.source_player_name,
        elo=row.elo,
        commits=[SnapshotCommit.from_dict(c) for c in row.commits],
        active_card_ids=list(row.active_card_ids or []),
        games_played=row.games_played,
        wins=row.wins,
        losses=row.losses,
        draws=row.draws,
        is_bot=row.is_bot,
        created_at=row.created_at,
    )
