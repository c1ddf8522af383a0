"""
Effect processing.

Turns a round's triggered effects into state for the following rounds:
- add_persistent_modifier: appended to persistent_modifiers, tagged with
  the round it came from; never expires
- modify_initiative: summed into initiative_modifier for the next round only
  (reset to 0 every round, whether or not anything fired)
- draw_cards: extra equipment draws; fizzles silently with nothing to draw
"""

import logging
import random
from collections.abc import Iterable

from sleeved.engine.deck import draw_equipment
from sleeved.models.effects import EffectActionType, PersistentModifier, TriggeredEffect
from sleeved.models.game import PlayerGameState, SnapshotOpponentState

logger = logging.getLogger(__name__)


def persistent_modifiers_from(
    effects: Iterable[TriggeredEffect],
    player_id: str,
    round_number: int,
) -> list[PersistentModifier]:
    """New persistent modifiers earned by a player this round."""
    earned: list[PersistentModifier] = []
    for triggered in effects:
        if triggered.player_id != player_id:
            continue
        action = triggered.effect.effect
        if action.type == EffectActionType.ADD_PERSISTENT_MODIFIER and action.stat is not None:
            earned.append(
                PersistentModifier(
                    stat=action.stat, amount=action.amount, source_round=round_number
                )
            )
    return earned


def initiative_modifier_from(effects: Iterable[TriggeredEffect], player_id: str) -> int:
    """Initiative offset a player carries into the next round."""
    return sum(
        t.effect.effect.amount
        for t in effects
        if t.player_id == player_id and t.effect.effect.type == EffectActionType.MODIFY_INITIATIVE
    )


def draw_counts_from(effects: Iterable[TriggeredEffect], player_id: str) -> list[int]:
    return [
        t.effect.effect.count
        for t in effects
        if t.player_id == player_id and t.effect.effect.type == EffectActionType.DRAW_CARDS
    ]


def apply_effects(
    state: PlayerGameState,
    effects: Iterable[TriggeredEffect],
    round_number: int,
    rng: random.Random | None = None,
) -> None:
    """Fold one round's triggered effects into a live player's state."""
    effects = list(effects)
    state.persistent_modifiers.extend(
        persistent_modifiers_from(effects, state.player_id, round_number)
    )
    state.initiative_modifier = initiative_modifier_from(effects, state.player_id)

    for count in draw_counts_from(effects, state.player_id):
        drawn = draw_equipment(state, count, rng)
        if len(drawn) < count:
            logger.debug(
                "draw_cards for %s drew %d of %d (deck and discard exhausted)",
                state.player_id,
                len(drawn),
                count,
            )


def apply_effects_to_snapshot(
    state: SnapshotOpponentState,
    effects: Iterable[TriggeredEffect],
    round_number: int,
) -> None:
    """
    Fold effects into a recorded opponent's state.

    A snapshot has no deck, so its draw_cards effects always fizzle.
    """
    effects = list(effects)
    state.persistent_modifiers.extend(
        persistent_modifiers_from(effects, state.player_id, round_number)
    )
    state.initiative_modifier = initiative_modifier_from(effects, state.player_id)
