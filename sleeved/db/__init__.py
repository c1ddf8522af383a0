from sleeved.db.database import get_session, get_session_factory, init_db
from sleeved.db.operations import (
    count_active_games,
    create_game_record,
    create_snapshot,
    delete_snapshot,
    game_to_model,
    get_game,
    get_or_create_rating,
    get_rating,
    get_snapshot,
    list_ratings,
    list_snapshots,
    load_game,
    player_states_to_model,
    record_result,
    save_game,
    snapshot_to_model,
)

__all__ = [
    "count_active_games",
    "create_game_record",
    "create_snapshot",
    "delete_snapshot",
    "game_to_model",
    "get_game",
    "get_or_create_rating",
    "get_rating",
    "get_session",
    "get_session_factory",
    "get_snapshot",
    "list_ratings",
    "list_snapshots",
    "load_game",
    "player_states_to_model",
    "record_result",
    "save_game",
    "snapshot_to_model",
]
