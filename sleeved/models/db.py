"""
SQLAlchemy ORM models for persistent storage.

Games are stored as JSON documents: the public game document and the live
players' private states. The integer version column is the mapper's
version_id_col, so every UPDATE is guarded by the version that was read and
a concurrent writer that lost the race gets StaleDataError.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from sleeved.engine.elo import DEFAULT_ELO


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class GameDB(Base):
    """One game and the private state of its live players."""

    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(16), index=True)
    is_async: Mapped[bool] = mapped_column(Boolean, default=False)
    snapshot_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Game.to_dict()
    state: Mapped[dict[str, Any]] = mapped_column(JSON)
    # player_id -> PlayerGameState.to_dict()
    player_states: Mapped[dict[str, Any]] = mapped_column(JSON)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<GameDB(id={self.id}, status={self.status}, version={self.version})>"


class PlayerRatingDB(Base):
    """Rating and record of a live player."""

    __tablename__ = "player_ratings"

    player_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    elo: Mapped[int] = mapped_column(Integer, default=DEFAULT_ELO, index=True)
    games_played: Mapped[int] = mapped_column(Integer, default=0)
    wins: Mapped[int] = mapped_column(Integer, default=0)
    losses: Mapped[int] = mapped_column(Integer, default=0)
    draws: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<PlayerRatingDB(player_id={self.player_id}, elo={self.elo})>"


class GameSnapshotDB(Base):
    """
    A recorded strategy usable as an asynchronous opponent.

    Stores card IDs per round, never resolved stats.
    """

    __tablename__ = "game_snapshots"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    source_player_id: Mapped[str] = mapped_column(String(255), index=True)
    source_player_name: Mapped[str] = mapped_column(String(255))
    elo: Mapped[int] = mapped_column(Integer, index=True)
    round_count: Mapped[int] = mapped_column(Integer, index=True)
    commits: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    active_card_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    games_played: Mapped[int] = mapped_column(Integer, default=0)
    wins: Mapped[int] = mapped_column(Integer, default=0)
    losses: Mapped[int] = mapped_column(Integer, default=0)
    draws: Mapped[int] = mapped_column(Integer, default=0)
    is_bot: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<GameSnapshotDB(id={self.id}, elo={self.elo}, rounds={self.round_count})>"
