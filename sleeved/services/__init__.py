from sleeved.services.games import (
    commit_round,
    create_async_game,
    create_game,
    get_game,
    get_player_state,
    surrender,
)
from sleeved.services.ratings import apply_live_ratings, update_snapshot_record
from sleeved.services.snapshots import (
    find_opponent,
    get_snapshots,
    record_snapshot_from_game,
    remove_snapshot,
    seed_bot_snapshot,
)

__all__ = [
    "apply_live_ratings",
    "commit_round",
    "create_async_game",
    "create_game",
    "find_opponent",
    "get_game",
    "get_player_state",
    "get_snapshots",
    "record_snapshot_from_game",
    "remove_snapshot",
    "seed_bot_snapshot",
    "surrender",
    "update_snapshot_record",
]
