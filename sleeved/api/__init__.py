from sleeved.api.games import router as games_router
from sleeved.api.health import router as health_router
from sleeved.api.ratings import router as ratings_router
from sleeved.api.resolve import router as resolve_router
from sleeved.api.snapshots import router as snapshots_router

__all__ = [
    "games_router",
    "health_router",
    "ratings_router",
    "resolve_router",
    "snapshots_router",
]
