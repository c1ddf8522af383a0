from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sleeved.models.effects import Modifier, SpecialEffect


class LayerType(str, Enum):
    """Layer in the card composition stack, bottom to top."""

    SLEEVE_BG = "sleeve_bg"
    ANIMAL = "animal"
    EQUIPMENT = "equipment"
    SLEEVE_FG = "sleeve_fg"
    PERSISTENT = "persistent"
    INITIATIVE_MOD = "initiative_mod"


@dataclass(frozen=True, slots=True)
class StatLayerInfo:
    """What one layer contributes. is_additive layers add instead of overwriting."""

    layer_type: LayerType
    card_id: str
    card_name: str
    damage: int | None = None
    health: int | None = None
    initiative: int | None = None
    modifier: Modifier | None = None
    special_effect: SpecialEffect | None = None
    is_additive: bool = False
    source_round: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer_type": self.layer_type.value,
            "card_id": self.card_id,
            "card_name": self.card_name,
            "damage": self.damage,
            "health": self.health,
            "initiative": self.initiative,
            "modifier": self.modifier.to_dict() if self.modifier else None,
            "special_effect": self.special_effect.to_dict() if self.special_effect else None,
            "is_additive": self.is_additive,
            "source_round": self.source_round,
        }


@dataclass
class StatAttribution:
    """
    Which layer contributes which stats, and which layer "wins" each field.

    active_layer maps a field name (damage, health, initiative, modifier,
    special_effect) to the card_id of the winning layer, or None.
    """

    layers: list[StatLayerInfo] = field(default_factory=list)
    active_layer: dict[str, str | None] = field(
        default_factory=lambda: {
            "damage": None,
            "health": None,
            "initiative": None,
            "modifier": None,
            "special_effect": None,
        }
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "layers": [layer.to_dict() for layer in self.layers],
            "active_layer": dict(self.active_layer),
        }
