"""
Request and response models shared by the routers.

Requests are validated here, then converted to the frozen domain
dataclasses with their from_dict constructors.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from sleeved.models.card import CardDefinition
from sleeved.models.effects import PersistentModifier
from sleeved.models.rules import GameRules
from sleeved.models.snapshot import SnapshotCommit

StatField = Literal["damage", "health"]


class ModifierIn(BaseModel):
    type: StatField
    amount: int


class EffectActionIn(BaseModel):
    type: Literal["draw_cards", "modify_initiative", "add_persistent_modifier"]
    count: int = Field(default=0, ge=0)
    amount: int = 0
    stat: StatField | None = None

    @model_validator(mode="after")
    def _stat_required_for_persistent(self) -> "EffectActionIn":
        if self.type == "add_persistent_modifier" and self.stat is None:
            raise ValueError("add_persistent_modifier requires a stat")
        return self


class SpecialEffectIn(BaseModel):
    trigger: Literal["on_play", "if_survives", "if_destroyed", "if_defeats", "if_doesnt_defeat"]
    effect: EffectActionIn
    timing: Literal["on_play", "post_combat"] | None = None


class CardStatsIn(BaseModel):
    """Sparse stats. Omitted fields are absent, which is not the same as zero."""

    damage: int | None = None
    health: int | None = None
    initiative: int | None = None
    modifier: ModifierIn | None = None
    special_effect: SpecialEffectIn | None = None


class CardIn(BaseModel):
    """One catalog entry."""

    id: str = Field(..., min_length=1)
    type: Literal["sleeve", "animal", "equipment"]
    name: str = ""
    description: str = ""
    active: bool = True
    background_stats: CardStatsIn | None = None
    foreground_stats: CardStatsIn | None = None
    stats: CardStatsIn | None = None

    def to_domain(self) -> CardDefinition:
        data = self.model_dump(exclude_none=True)
        if not data.get("name"):
            data["name"] = self.id
        return CardDefinition.from_dict(data)


class RulesIn(BaseModel):
    """Rules overrides. Omitted fields keep their defaults."""

    scoring_mode: Literal["rounds", "points"] | None = None
    points_for_surviving: int | None = Field(default=None, ge=0)
    points_for_defeating: int | None = Field(default=None, ge=0)
    points_to_win: int | None = Field(default=None, ge=1)
    starting_equipment_hand: int | None = Field(default=None, ge=0)
    equipment_draw_per_round: int | None = Field(default=None, ge=0)
    starting_animal_hand: int | None = Field(default=None, ge=1)
    default_initiative: int | None = None
    max_rounds: int | None = Field(default=None, ge=1)
    points_for_kill: int | None = Field(default=None, ge=0)
    points_per_overkill: int | None = Field(default=None, ge=0)
    points_per_absorbed: int | None = Field(default=None, ge=0)


def rules_from(rules: RulesIn | None) -> GameRules:
    return GameRules.from_dict(rules.model_dump(exclude_none=True) if rules else None)


class PersistentModifierIn(BaseModel):
    stat: StatField
    amount: int
    source_round: int = Field(default=1, ge=1)

    def to_domain(self) -> PersistentModifier:
        return PersistentModifier.from_dict(self.model_dump())


class CompositionIn(BaseModel):
    """A sleeve, an animal, and equipment in stacking order (bottom to top)."""

    sleeve: CardIn | None = None
    animal: CardIn | None = None
    equipment: list[CardIn] = Field(default_factory=list)
    persistent_modifiers: list[PersistentModifierIn] = Field(default_factory=list)
    initiative_modifier: int = 0
    default_initiative: int = 0


class CommitIn(BaseModel):
    """Card IDs for one round, equipment in stacking order."""

    sleeve_id: str = Field(..., min_length=1)
    animal_id: str = Field(..., min_length=1)
    equipment_ids: list[str] = Field(default_factory=list)

    def to_snapshot_commit(self) -> SnapshotCommit:
        return SnapshotCommit(
            sleeve_id=self.sleeve_id,
            animal_id=self.animal_id,
            equipment_ids=tuple(self.equipment_ids),
        )


class ResolvedStatsOut(BaseModel):
    damage: int
    health: int
    initiative: int
    modifier: dict[str, Any] | None = None
    special_effect: dict[str, Any] | None = None


class GameOut(BaseModel):
    """Public game document."""

    id: str
    players: list[str]
    status: str
    current_round: int
    max_rounds: int
    scores: dict[str, int]
    winner: str | None = None
    is_draw: bool = False
    ranked: bool = True
    is_async: bool = False
    snapshot_id: str | None = None
    end_reason: str | None = None
    rules: dict[str, Any]
    rounds: list[dict[str, Any]] = Field(default_factory=list)
    elo_changes: dict[str, dict[str, int]] = Field(default_factory=dict)
    created_at: str | None = None
    ended_at: str | None = None

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "GameOut":
        return cls.model_validate(document)
