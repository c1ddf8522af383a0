"""
Special effects, modifiers, and triggered-effect records.

Only ONE special effect can be active per composed card. Higher layers
overwrite lower layers' effects, just like other stats.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class StatName(str, Enum):
    """Stats that modifiers can adjust."""

    DAMAGE = "damage"
    HEALTH = "health"


class EffectTrigger(str, Enum):
    """When a special effect's condition is checked."""

    ON_PLAY = "on_play"  # When card is committed, before combat
    IF_SURVIVES = "if_survives"
    IF_DESTROYED = "if_destroyed"
    IF_DEFEATS = "if_defeats"
    IF_DOESNT_DEFEAT = "if_doesnt_defeat"


class EffectTiming(str, Enum):
    """When the effect resolves in the round flow."""

    ON_PLAY = "on_play"
    POST_COMBAT = "post_combat"
    END_OF_ROUND = "end_of_round"


class EffectActionType(str, Enum):
    DRAW_CARDS = "draw_cards"
    MODIFY_INITIATIVE = "modify_initiative"
    ADD_PERSISTENT_MODIFIER = "add_persistent_modifier"


@dataclass(frozen=True, slots=True)
class Modifier:
    """Additive adjustment to one stat of the current composed card only."""

    type: StatName
    amount: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Modifier":
        return cls(type=StatName(data["type"]), amount=int(data["amount"]))


@dataclass(frozen=True, slots=True)
class EffectAction:
    """
    What a special effect does when it fires.

    Attributes:
        type: The action kind
        count: Cards to draw (draw_cards only)
        amount: Initiative or stat delta (modify_initiative, add_persistent_modifier)
        stat: Stat receiving the persistent bonus (add_persistent_modifier only)
    """

    type: EffectActionType
    count: int = 0
    amount: int = 0
    stat: StatName | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.type == EffectActionType.DRAW_CARDS:
            return {"type": self.type.value, "count": self.count}
        if self.type == EffectActionType.MODIFY_INITIATIVE:
            return {"type": self.type.value, "amount": self.amount}
        return {
            "type": self.type.value,
            "stat": self.stat.value if self.stat else None,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EffectAction":
        action_type = EffectActionType(data["type"])
        stat = data.get("stat")
        if action_type == EffectActionType.ADD_PERSISTENT_MODIFIER and stat is None:
            msg = "add_persistent_modifier requires a stat"
            raise ValueError(msg)
        return cls(
            type=action_type,
            count=int(data.get("count", 0)),
            amount=int(data.get("amount", 0)),
            stat=StatName(stat) if stat is not None else None,
        )


@dataclass(frozen=True, slots=True)
class SpecialEffect:
    """A complete special effect: trigger condition, action, and timing."""

    trigger: EffectTrigger
    effect: EffectAction
    timing: EffectTiming = EffectTiming.POST_COMBAT

    @property
    def is_on_play(self) -> bool:
        return self.trigger == EffectTrigger.ON_PLAY

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger": self.trigger.value,
            "effect": self.effect.to_dict(),
            "timing": self.timing.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpecialEffect":
        trigger = EffectTrigger(data["trigger"])
        default_timing = (
            EffectTiming.ON_PLAY if trigger == EffectTrigger.ON_PLAY else EffectTiming.POST_COMBAT
        )
        timing = data.get("timing")
        return cls(
            trigger=trigger,
            effect=EffectAction.from_dict(data["effect"]),
            timing=EffectTiming(timing) if timing else default_timing,
        )


@dataclass(frozen=True, slots=True)
class PersistentModifier:
    """
    Permanent additive bonus earned from a past round's effect.

    Never expires; source_round is kept for auditing only.
    """

    stat: StatName
    amount: int
    source_round: int

    def to_dict(self) -> dict[str, Any]:
        return {"stat": self.stat.value, "amount": self.amount, "source_round": self.source_round}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersistentModifier":
        return cls(
            stat=StatName(data["stat"]),
            amount=int(data["amount"]),
            source_round=int(data["source_round"]),
        )


@dataclass(frozen=True, slots=True)
class TriggeredEffect:
    """Record of a special effect that fired during a round."""

    player_id: str
    effect: SpecialEffect
    resolved: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "effect": self.effect.to_dict(),
            "resolved": self.resolved,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TriggeredEffect":
        return cls(
            player_id=data["player_id"],
            effect=SpecialEffect.from_dict(data["effect"]),
            resolved=bool(data.get("resolved", True)),
        )
