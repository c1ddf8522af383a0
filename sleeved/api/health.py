"""
Liveness and readiness probes.

Readiness queries the games table rather than pinging the connection, so a
database without the schema reports not ready.
"""

from importlib.metadata import version as pkg_version
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sleeved.db.database import get_session
from sleeved.db.operations import count_active_games

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str | None = None
    database: str | None = None
    active_games: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Never touches the database."""
    return HealthResponse(status="healthy", version=pkg_version("sleeved"))


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """Readiness probe. 503 while the game store is unreachable."""
    try:
        active = await count_active_games(session)
    except (SQLAlchemyError, OSError):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database="disconnected")
    return HealthResponse(status="ready", database="connected", active_games=active)
