"""
Game API endpoints.

Create games, inspect them, and drive rounds by committing cards.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sleeved.api.schemas import CardIn, CommitIn, GameOut, RulesIn, rules_from
from sleeved.db.database import get_session, get_session_factory
from sleeved.services import games as game_service

router = APIRouter(prefix="/games", tags=["games"])


class CreateGameRequest(BaseModel):
    """Two matched players plus the catalog and rules the game is played with."""

    players: list[str] = Field(..., min_length=2, max_length=2)
    cards: list[CardIn] = Field(..., min_length=1, description="Card catalog")
    rules: RulesIn | None = None
    ranked: bool = True


class CreateAsyncGameRequest(BaseModel):
    """A live player to be matched against a recorded opponent."""

    player_id: str = Field(..., min_length=1)
    cards: list[CardIn] = Field(..., min_length=1, description="Card catalog")
    rules: RulesIn | None = None
    ranked: bool = True


class CommitRequest(CommitIn):
    player_id: str = Field(..., min_length=1)


class SurrenderRequest(BaseModel):
    player_id: str = Field(..., min_length=1)


class CommitResponse(BaseModel):
    """
    Result of a commit.

    round_result is present when this commit completed the round.
    """

    committed: dict[str, Any]
    both_committed: bool
    round_result: dict[str, Any] | None = None
    game_finished: bool = False
    game: GameOut


@router.post("", response_model=GameOut, status_code=status.HTTP_201_CREATED)
async def create_game(
    request: CreateGameRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> GameOut:
    """Start a game between two live players."""
    game = await game_service.create_game(
        session,
        request.players,
        [card.to_domain() for card in request.cards],
        rules_from(request.rules),
        ranked=request.ranked,
    )
    return GameOut.from_document(game.to_dict())


@router.post("/async", response_model=GameOut, status_code=status.HTTP_201_CREATED)
async def create_async_game(
    request: CreateAsyncGameRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> GameOut:
    """
    Start a game against a recorded opponent near the player's rating.

    Returns 404 when no recorded opponent can be replayed with this catalog.
    """
    game = await game_service.create_async_game(
        session,
        request.player_id,
        [card.to_domain() for card in request.cards],
        rules_from(request.rules),
        ranked=request.ranked,
    )
    return GameOut.from_document(game.to_dict())


@router.get("/{game_id}", response_model=GameOut)
async def get_game(
    game_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> GameOut:
    game = await game_service.get_game(session, game_id)
    return GameOut.from_document(game.to_dict())


@router.get("/{game_id}/players/{player_id}")
async def get_player_state(
    game_id: str,
    player_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> dict[str, Any]:
    """A player's private state: hands, decks, sleeves, and modifiers."""
    state = await game_service.get_player_state(session, game_id, player_id)
    return state.to_dict()


@router.post("/{game_id}/commit", response_model=CommitResponse)
async def commit_round(
    game_id: str,
    request: CommitRequest,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> CommitResponse:
    """
    Commit a sleeve, an animal, and equipment for the current round.

    The round resolves once both sides have committed (immediately against
    a recorded opponent).
    """
    outcome, game = await game_service.commit_round(
        session_factory,
        game_id,
        request.player_id,
        request.sleeve_id,
        request.animal_id,
        request.equipment_ids,
    )
    return CommitResponse(
        committed=outcome.commit.to_dict(),
        both_committed=outcome.both_committed,
        round_result=outcome.round_result.to_dict() if outcome.round_result else None,
        game_finished=outcome.game_finished,
        game=GameOut.from_document(game.to_dict()),
    )


@router.post("/{game_id}/surrender", response_model=GameOut)
async def surrender(
    game_id: str,
    request: SurrenderRequest,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> GameOut:
    """Concede an active game. The opponent wins."""
    game = await game_service.surrender(session_factory, game_id, request.player_id)
    return GameOut.from_document(game.to_dict())
