"""
Stateless resolution endpoints.

Resolve a composition's stats, explain where each stat came from, or
simulate combat between two already-resolved cards. Nothing is stored.
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from sleeved.api.schemas import CompositionIn, ModifierIn, RulesIn, SpecialEffectIn, rules_from
from sleeved.engine.combat import Combatant, resolve_combat
from sleeved.engine.stats import get_stat_attribution, resolve_stats
from sleeved.models.card import CardDefinition
from sleeved.models.effects import PersistentModifier
from sleeved.models.game import ResolvedStats

router = APIRouter(prefix="/resolve", tags=["resolve"])


class ResolvedStatsIn(BaseModel):
    damage: int = Field(..., ge=0)
    health: int = Field(..., ge=0)
    initiative: int
    modifier: ModifierIn | None = None
    special_effect: SpecialEffectIn | None = None

    def to_domain(self) -> ResolvedStats:
        return ResolvedStats.from_dict(self.model_dump(exclude_none=True))


class CombatRequest(BaseModel):
    player1_id: str = "player1"
    player2_id: str = "player2"
    player1: ResolvedStatsIn
    player2: ResolvedStatsIn
    rules: RulesIn | None = None


class CombatSideResponse(BaseModel):
    player_id: str
    outcome: dict[str, Any]


class CombatResponse(BaseModel):
    player1: CombatSideResponse
    player2: CombatSideResponse
    effects_triggered: list[dict[str, Any]] = Field(default_factory=list)
    combat_log: list[str] = Field(default_factory=list)


def _composition_args(
    request: CompositionIn,
) -> tuple[
    CardDefinition | None, CardDefinition | None, list[CardDefinition], list[PersistentModifier]
]:
    return (
        request.sleeve.to_domain() if request.sleeve else None,
        request.animal.to_domain() if request.animal else None,
        [card.to_domain() for card in request.equipment],
        [mod.to_domain() for mod in request.persistent_modifiers],
    )


@router.post("/stats")
async def resolve_composition_stats(request: CompositionIn) -> dict[str, Any]:
    """Final stats of a sleeve + animal + equipment composition."""
    sleeve, animal, equipment, modifiers = _composition_args(request)
    stats = resolve_stats(
        sleeve,
        animal,
        equipment,
        modifiers,
        request.initiative_modifier,
        default_initiative=request.default_initiative,
    )
    return stats.to_dict()


@router.post("/attribution")
async def resolve_attribution(request: CompositionIn) -> dict[str, Any]:
    """Each layer's contribution and which layer supplies each final stat."""
    sleeve, animal, equipment, modifiers = _composition_args(request)
    attribution = get_stat_attribution(
        sleeve, animal, equipment, modifiers, request.initiative_modifier
    )
    return attribution.to_dict()


@router.post("/combat", response_model=CombatResponse)
async def simulate_combat(request: CombatRequest) -> CombatResponse:
    """Simulate one combat between two resolved cards."""
    result = resolve_combat(
        Combatant(request.player1_id, request.player1.to_domain()),
        Combatant(request.player2_id, request.player2.to_domain()),
        rules_from(request.rules),
    )
    return CombatResponse(
        player1=CombatSideResponse(
            player_id=request.player1_id, outcome=result.player1.outcome.to_dict()
        ),
        player2=CombatSideResponse(
            player_id=request.player2_id, outcome=result.player2.outcome.to_dict()
        ),
        effects_triggered=[e.to_dict() for e in result.effects_triggered()],
        combat_log=list(result.combat_log),
    )
