from sleeved.engine.combat import Combatant, CombatResult, resolve_combat
from sleeved.engine.coordinator import (
    CommitOutcome,
    RoundCoordinator,
    RoundPhase,
    create_async_game,
    create_game,
    validate_card_counts,
)
from sleeved.engine.elo import calculate_elo_change, rate_game
from sleeved.engine.snapshots import select_snapshot
from sleeved.engine.stats import get_stat_attribution, merge_stats, resolve_stats

__all__ = [
    "CombatResult",
    "Combatant",
    "CommitOutcome",
    "RoundCoordinator",
    "RoundPhase",
    "calculate_elo_change",
    "create_async_game",
    "create_game",
    "get_stat_attribution",
    "merge_stats",
    "rate_game",
    "resolve_combat",
    "resolve_stats",
    "select_snapshot",
    "validate_card_counts",
]
