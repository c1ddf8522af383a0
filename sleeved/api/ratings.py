"""
Rating API endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from sleeved.db import get_rating, list_ratings
from sleeved.db.database import get_session
from sleeved.engine.elo import DEFAULT_ELO
from sleeved.models.db import PlayerRatingDB

router = APIRouter(prefix="/ratings", tags=["ratings"])


class RatingResponse(BaseModel):
    player_id: str
    elo: int = DEFAULT_ELO
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @classmethod
    def from_row(cls, row: PlayerRatingDB) -> "RatingResponse":
        return cls(
            player_id=row.player_id,
            elo=row.elo,
            games_played=row.games_played,
            wins=row.wins,
            losses=row.losses,
            draws=row.draws,
        )


class LeaderboardResponse(BaseModel):
    ratings: list[RatingResponse] = Field(default_factory=list)


@router.get("/{player_id}", response_model=RatingResponse)
async def get_player_rating(
    player_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RatingResponse:
    """A player's rating. Players without a finished game report the default."""
    row = await get_rating(session, player_id)
    if row is None:
        return RatingResponse(player_id=player_id)
    return RatingResponse.from_row(row)


@router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    session: Annotated[AsyncSession, Depends(get_session)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> LeaderboardResponse:
    rows = await list_ratings(session, limit=limit)
    return LeaderboardResponse(ratings=[RatingResponse.from_row(r) for r in rows])
