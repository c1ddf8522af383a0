"""
Snapshot API endpoints.

Seed, list, and delete recorded opponents.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from sleeved.api.schemas import CardIn, CommitIn, RulesIn, rules_from
from sleeved.db.database import get_session
from sleeved.engine.elo import DEFAULT_ELO
from sleeved.services import snapshots as snapshot_service

router = APIRouter(prefix="/snapshots", tags=["snapshots"])


class SeedSnapshotRequest(BaseModel):
    """A hand-written strategy: one commit per round."""

    name: str = Field(..., min_length=1)
    elo: int = DEFAULT_ELO
    commits: list[CommitIn] = Field(..., min_length=1)
    rules: RulesIn | None = None
    cards: list[CardIn] = Field(
        default_factory=list,
        description="Current catalog; its active card IDs are recorded with the snapshot",
    )


class SnapshotListResponse(BaseModel):
    snapshots: list[dict[str, Any]] = Field(default_factory=list)
    total: int = 0


class DeleteResponse(BaseModel):
    snapshot_id: str
    deleted: bool


@router.post("", status_code=status.HTTP_201_CREATED)
async def seed_snapshot(
    request: SeedSnapshotRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> dict[str, Any]:
    """Store a bot opponent. Must hold exactly max_rounds commits."""
    snapshot = await snapshot_service.seed_bot_snapshot(
        session,
        request.name,
        request.elo,
        [c.to_snapshot_commit() for c in request.commits],
        rules_from(request.rules),
        [card.to_domain() for card in request.cards],
    )
    return snapshot.to_dict()


@router.get("", response_model=SnapshotListResponse)
async def list_snapshots(
    session: Annotated[AsyncSession, Depends(get_session)],
    round_count: Annotated[int | None, Query(ge=1)] = None,
) -> SnapshotListResponse:
    snapshots = await snapshot_service.get_snapshots(session, round_count)
    return SnapshotListResponse(
        snapshots=[s.to_dict() for s in snapshots],
        total=len(snapshots),
    )


@router.delete("/{snapshot_id}", response_model=DeleteResponse)
async def delete_snapshot(
    snapshot_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """Games already playing against the snapshot are unaffected."""
    await snapshot_service.remove_snapshot(session, snapshot_id)
    return DeleteResponse(snapshot_id=snapshot_id, deleted=True)
