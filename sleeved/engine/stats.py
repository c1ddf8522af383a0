"""
Stat resolution.

Merges the layers of a composed card into one dense ResolvedStats.

Layering order (bottom to top):
1. Sleeve background stats
2. Animal stats
3. Equipment stats (in stacking order)
4. Sleeve foreground stats

Then, additively:
5. Persistent modifiers
6. The single surviving card modifier
7. The carried-over initiative modifier

Damage and health are floored at 0; initiative may be negative.
Every function here is pure.
"""

from collections.abc import Iterable, Sequence

from sleeved.models.attribution import LayerType, StatAttribution, StatLayerInfo
from sleeved.models.card import CardDefinition, CardStats
from sleeved.models.effects import PersistentModifier, StatName
from sleeved.models.game import ResolvedStats


def merge_stats(base: CardStats, overlay: CardStats) -> CardStats:
    """
    Overlay one layer on top of another.

    Absent (None) fields never overwrite. Zero damage or health also never
    overwrites: a zero there means the layer says nothing about the stat.
    Initiative, modifier, and special effect overwrite on mere presence,
    so an explicit zero initiative does overwrite.
    """
    return CardStats(
        damage=overlay.damage if overlay.damage else base.damage,
        health=overlay.health if overlay.health else base.health,
        initiative=overlay.initiative if overlay.initiative is not None else base.initiative,
        modifier=overlay.modifier if overlay.modifier is not None else base.modifier,
        special_effect=(
            overlay.special_effect if overlay.special_effect is not None else base.special_effect
        ),
    )


def stack_layers(
    sleeve: CardDefinition | None,
    animal: CardDefinition | None,
    equipment: Sequence[CardDefinition],
) -> list[tuple[LayerType, str, str, CardStats]]:
    """
    The composition's layers in fold order as (type, layer_id, name, stats).

    Sleeve layers get `<id>_bg` / `<id>_fg` IDs so they stay distinguishable.
    """
    layers: list[tuple[LayerType, str, str, CardStats]] = []
    if sleeve is not None and sleeve.background_stats is not None:
        layers.append(
            (LayerType.SLEEVE_BG, f"{sleeve.id}_bg", f"{sleeve.name} (BG)", sleeve.background_stats)
        )
    if animal is not None and animal.stats is not None:
        layers.append((LayerType.ANIMAL, animal.id, animal.name, animal.stats))
    for equip in equipment:
        if equip.stats is not None:
            layers.append((LayerType.EQUIPMENT, equip.id, equip.name, equip.stats))
    if sleeve is not None and sleeve.foreground_stats is not None:
        layers.append(
            (LayerType.SLEEVE_FG, f"{sleeve.id}_fg", f"{sleeve.name} (FG)", sleeve.foreground_stats)
        )
    return layers


def resolve_stats(
    sleeve: CardDefinition | None,
    animal: CardDefinition | None,
    equipment: Sequence[CardDefinition],
    persistent_modifiers: Iterable[PersistentModifier] = (),
    initiative_modifier: int = 0,
    default_initiative: int = 0,
) -> ResolvedStats:
    """
    Resolve final stats for a card composition.

    Args:
        sleeve: The sleeve card (background + foreground layers)
        animal: The animal card
        equipment: Equipment cards in stacking order, bottom to top
        persistent_modifiers: Bonuses accumulated from earlier rounds
        initiative_modifier: One-round initiative offset from last round's effects
        default_initiative: Initiative used when no layer sets one

    Returns:
        Dense ResolvedStats
    """
    stats = CardStats()
    for _, _, _, layer in stack_layers(sleeve, animal, equipment):
        stats = merge_stats(stats, layer)

    damage = stats.damage or 0
    health = stats.health or 0
    initiative = stats.initiative if stats.initiative is not None else default_initiative

    for mod in persistent_modifiers:
        if mod.stat == StatName.DAMAGE:
            damage += mod.amount
        elif mod.stat == StatName.HEALTH:
            health += mod.amount

    if stats.modifier is not None:
        if stats.modifier.type == StatName.DAMAGE:
            damage += stats.modifier.amount
        elif stats.modifier.type == StatName.HEALTH:
            health += stats.modifier.amount

    initiative += initiative_modifier

    return ResolvedStats(
        damage=max(0, damage),
        health=max(0, health),
        initiative=initiative,
        modifier=stats.modifier,
        special_effect=stats.special_effect,
    )


def get_stat_attribution(
    sleeve: CardDefinition | None,
    animal: CardDefinition | None,
    equipment: Sequence[CardDefinition],
    persistent_modifiers: Iterable[PersistentModifier] = (),
    initiative_modifier: int = 0,
) -> StatAttribution:
    """
    Explain a composition: each layer's contribution and the winning layer per field.

    Uses the same presence rules as merge_stats, so the winner reported for
    each field is always the layer resolve_stats actually took it from.
    Persistent and initiative layers are additive and never win.
    """
    attribution = StatAttribution()
    active = attribution.active_layer

    for layer_type, layer_id, name, stats in stack_layers(sleeve, animal, equipment):
        attribution.layers.append(
            StatLayerInfo(
                layer_type=layer_type,
                card_id=layer_id,
                card_name=name,
                damage=stats.damage,
                health=stats.health,
                initiative=stats.initiative,
                modifier=stats.modifier,
                special_effect=stats.special_effect,
            )
        )
        if stats.damage:
            active["damage"] = layer_id
        if stats.health:
            active["health"] = layer_id
        if stats.initiative is not None:
            active["initiative"] = layer_id
        if stats.modifier is not None:
            active["modifier"] = layer_id
        if stats.special_effect is not None:
            active["special_effect"] = layer_id

    for mod in persistent_modifiers:
        attribution.layers.append(
            StatLayerInfo(
                layer_type=LayerType.PERSISTENT,
                card_id=f"persistent_{mod.source_round}_{mod.stat.value}",
                card_name=f"Round {mod.source_round}",
                damage=mod.amount if mod.stat == StatName.DAMAGE else None,
                health=mod.amount if mod.stat == StatName.HEALTH else None,
                is_additive=True,
                source_round=mod.source_round,
            )
        )

    if initiative_modifier != 0:
        attribution.layers.append(
            StatLayerInfo(
                layer_type=LayerType.INITIATIVE_MOD,
                card_id="initiative_modifier",
                card_name="Initiative Bonus",
                initiative=initiative_modifier,
                is_additive=True,
            )
        )

    return attribution
