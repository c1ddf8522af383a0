from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sleeved.models.effects import Modifier, SpecialEffect
from sleeved.models.failure import CatalogIntegrityError


class CardType(str, Enum):
    SLEEVE = "sleeve"
    ANIMAL = "animal"
    EQUIPMENT = "equipment"


@dataclass(frozen=True, slots=True)
class CardStats:
    """
    Sparse attribute bag for one card layer.

    A field set to None is absent: the layer says nothing about that stat.
    Absent and zero are different things (see merge_stats).
    """

    damage: int | None = None
    health: int | None = None
    initiative: int | None = None
    modifier: Modifier | None = None
    special_effect: SpecialEffect | None = None

    def is_empty(self) -> bool:
        return (
            self.damage is None
            and self.health is None
            and self.initiative is None
            and self.modifier is None
            and self.special_effect is None
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.damage is not None:
            data["damage"] = self.damage
        if self.health is not None:
            data["health"] = self.health
        if self.initiative is not None:
            data["initiative"] = self.initiative
        if self.modifier is not None:
            data["modifier"] = self.modifier.to_dict()
        if self.special_effect is not None:
            data["special_effect"] = self.special_effect.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CardStats":
        if not data:
            return cls()
        modifier = data.get("modifier")
        effect = data.get("special_effect")
        return cls(
            damage=_optional_int(data.get("damage")),
            health=_optional_int(data.get("health")),
            initiative=_optional_int(data.get("initiative")),
            modifier=Modifier.from_dict(modifier) if modifier else None,
            special_effect=SpecialEffect.from_dict(effect) if effect else None,
        )


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


@dataclass(frozen=True, slots=True)
class CardDefinition:
    """
    Immutable catalog entry.

    Sleeves carry background_stats (easily overwritten by cards inside) and
    foreground_stats (guaranteed to overwrite). Animals and equipment carry stats.

    Attributes:
        id: Opaque card ID
        type: sleeve, animal, or equipment
        name: Display name
        active: Inactive cards are excluded when a game snapshots the catalog
    """

    id: str
    type: CardType
    name: str
    description: str = ""
    active: bool = True
    background_stats: CardStats | None = None
    foreground_stats: CardStats | None = None
    stats: CardStats | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "active": self.active,
        }
        if self.background_stats is not None:
            data["background_stats"] = self.background_stats.to_dict()
        if self.foreground_stats is not None:
            data["foreground_stats"] = self.foreground_stats.to_dict()
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CardDefinition":
        def stats_or_none(key: str) -> CardStats | None:
            raw = data.get(key)
            return CardStats.from_dict(raw) if raw is not None else None

        return cls(
            id=data["id"],
            type=CardType(data["type"]),
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            active=bool(data.get("active", True)),
            background_stats=stats_or_none("background_stats"),
            foreground_stats=stats_or_none("foreground_stats"),
            stats=stats_or_none("stats"),
        )


@dataclass(frozen=True)
class CardSnapshot:
    """
    Frozen copy of the active catalog taken at game start.

    Games resolve cards only through their snapshot, so later catalog
    edits never reach an in-progress game.
    """

    sleeves: tuple[CardDefinition, ...] = ()
    animals: tuple[CardDefinition, ...] = ()
    equipment: tuple[CardDefinition, ...] = ()

    @classmethod
    def from_catalog(cls, cards: Iterable[CardDefinition]) -> "CardSnapshot":
        """Copy the active cards of a catalog, grouped by type."""
        # Round-trip through plain data so nothing is shared with the caller
        copies = [CardDefinition.from_dict(card.to_dict()) for card in cards if card.active]
        return cls(
            sleeves=tuple(c for c in copies if c.type == CardType.SLEEVE),
            animals=tuple(c for c in copies if c.type == CardType.ANIMAL),
            equipment=tuple(c for c in copies if c.type == CardType.EQUIPMENT),
        )

    def cards_of_type(self, card_type: CardType) -> tuple[CardDefinition, ...]:
        if card_type == CardType.SLEEVE:
            return self.sleeves
        if card_type == CardType.ANIMAL:
            return self.animals
        return self.equipment

    def find(self, card_id: str, card_type: CardType) -> CardDefinition | None:
        """Find a card by ID, only if it has the expected type."""
        for card in self.cards_of_type(card_type):
            if card.id == card_id:
                return card
        return None

    def require(self, card_id: str, card_type: CardType) -> CardDefinition:
        """
        Find a card that must exist.

        Raises:
            CatalogIntegrityError: The card is missing from the frozen snapshot
        """
        card = self.find(card_id, card_type)
        if card is None:
            raise CatalogIntegrityError(
                f"{card_type.value} '{card_id}' not found in game card snapshot",
                card_id=card_id,
            )
        return card

    def card_ids(self) -> list[str]:
        return [c.id for c in (*self.sleeves, *self.animals, *self.equipment)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sleeves": [c.to_dict() for c in self.sleeves],
            "animals": [c.to_dict() for c in self.animals],
            "equipment": [c.to_dict() for c in self.equipment],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CardSnapshot":
        return cls(
            sleeves=tuple(CardDefinition.from_dict(c) for c in data.get("sleeves", [])),
            animals=tuple(CardDefinition.from_dict(c) for c in data.get("animals", [])),
            equipment=tuple(CardDefinition.from_dict(c) for c in data.get("equipment", [])),
        )
