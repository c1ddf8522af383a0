"""
Combat simulation between two resolved cards.

Combat rules:
- Equal initiative: both attack simultaneously (never a coin flip)
- Different initiative: higher attacks first; the defender counterattacks
  only if it survives the first strike
- 0 damage deals no damage (tanks that can't attack are intentional)

The combat log is purely observational; no game logic reads it.
"""

from dataclasses import dataclass

from sleeved.models.effects import (
    EffectActionType,
    EffectTrigger,
    SpecialEffect,
    TriggeredEffect,
)
from sleeved.models.game import ResolvedStats, RoundOutcome
from sleeved.models.rules import GameRules, ScoringMode


@dataclass(frozen=True, slots=True)
class Combatant:
    player_id: str
    stats: ResolvedStats


@dataclass(frozen=True, slots=True)
class CombatSideResult:
    outcome: RoundOutcome
    effect_triggered: TriggeredEffect | None


@dataclass(frozen=True)
class CombatResult:
    player1: CombatSideResult
    player2: CombatSideResult
    combat_log: tuple[str, ...]

    def effects_triggered(self) -> list[TriggeredEffect]:
        """Triggered effects in firing order: on_play effects, then post-combat."""
        fired = [s.effect_triggered for s in (self.player1, self.player2) if s.effect_triggered]
        on_play = [e for e in fired if e.effect.is_on_play]
        post_combat = [e for e in fired if not e.effect.is_on_play]
        return on_play + post_combat


@dataclass(frozen=True, slots=True)
class _Score:
    points: int
    absorbed: int
    kill_bonus: int


def should_effect_trigger(
    trigger: EffectTrigger,
    survived: bool,
    defeated: bool,
    opponent_survived: bool,
) -> bool:
    """Check whether a special effect fires given the combat outcome."""
    if trigger == EffectTrigger.ON_PLAY:
        return True
    if trigger == EffectTrigger.IF_SURVIVES:
        return survived
    if trigger == EffectTrigger.IF_DESTROYED:
        return not survived
    if trigger == EffectTrigger.IF_DEFEATS:
        return defeated
    if trigger == EffectTrigger.IF_DOESNT_DEFEAT:
        return opponent_survived
    return False


def resolve_combat(player1: Combatant, player2: Combatant, rules: GameRules) -> CombatResult:
    """
    Resolve one round of combat.

    Deterministic: identical inputs always produce identical results,
    including the combat log.
    """
    p1, p2 = player1.stats, player2.stats
    p1_id, p2_id = player1.player_id, player2.player_id
    log: list[str] = [
        "=== ROUND START ===",
        f"{p1_id}: {p1.damage} DMG, {p1.health} HP, {p1.initiative} INIT",
        f"{p2_id}: {p2.damage} DMG, {p2.health} HP, {p2.initiative} INIT",
    ]

    # on_play effects fire unconditionally, before combat
    p1_on_play = _on_play_effect(p1_id, p1, log)
    p2_on_play = _on_play_effect(p2_id, p2, log)

    p1_health = p1.health
    p2_health = p2.health
    p1_dealt = 0
    p2_dealt = 0

    log.append("=== COMBAT ===")
    if p1.initiative == p2.initiative:
        log.append(f"Initiative tied ({p1.initiative}) - simultaneous attack")
        p1_health -= p2.damage
        p2_health -= p1.damage
        p1_dealt = p1.damage
        p2_dealt = p2.damage
        log.append(f"{p1_id} deals {p1.damage} damage ({p2.health} -> {p2_health})")
        log.append(f"{p2_id} deals {p2.damage} damage ({p1.health} -> {p1_health})")
    elif p1.initiative > p2.initiative:
        log.append(f"{p1_id} has higher initiative ({p1.initiative} > {p2.initiative})")
        p2_health -= p1.damage
        p1_dealt = p1.damage
        log.append(f"{p1_id} attacks first: {p1.damage} damage ({p2.health} -> {p2_health})")
        if p2_health > 0:
            p1_health -= p2.damage
            p2_dealt = p2.damage
            log.append(f"{p2_id} counterattacks: {p2.damage} damage ({p1.health} -> {p1_health})")
        else:
            log.append(f"{p2_id} is destroyed before attacking")
    else:
        log.append(f"{p2_id} has higher initiative ({p2.initiative} > {p1.initiative})")
        p1_health -= p2.damage
        p2_dealt = p2.damage
        log.append(f"{p2_id} attacks first: {p2.damage} damage ({p1.health} -> {p1_health})")
        if p1_health > 0:
            p2_health -= p1.damage
            p1_dealt = p1.damage
            log.append(f"{p1_id} counterattacks: {p1.damage} damage ({p2.health} -> {p2_health})")
        else:
            log.append(f"{p1_id} is destroyed before attacking")

    p1_survived = p1_health > 0
    p2_survived = p2_health > 0
    p1_defeated = not p2_survived
    p2_defeated = not p1_survived

    log.append("=== RESULTS ===")
    log.append(f"{p1_id}: {'SURVIVED' if p1_survived else 'DESTROYED'} ({max(0, p1_health)} HP)")
    log.append(f"{p2_id}: {'SURVIVED' if p2_survived else 'DESTROYED'} ({max(0, p2_health)} HP)")

    p1_post = _post_combat_effect(p1_id, p1, p1_survived, p1_defeated, p2_survived, log)
    p2_post = _post_combat_effect(p2_id, p2, p2_survived, p2_defeated, p1_survived, log)

    # Damage taken is whatever the opponent actually dealt
    p1_score = _score(rules, p1_survived, p1_defeated, p1_dealt, p2_dealt, p2.health)
    p2_score = _score(rules, p2_survived, p2_defeated, p2_dealt, p1_dealt, p1.health)

    log.append("=== SCORING ===")
    log.append(_score_line(p1_id, p1_score, p1_survived))
    log.append(_score_line(p2_id, p2_score, p2_survived))

    return CombatResult(
        player1=CombatSideResult(
            outcome=RoundOutcome(
                points_earned=p1_score.points,
                survived=p1_survived,
                defeated=p1_defeated,
                final_health=max(0, p1_health),
                damage_dealt=p1_dealt,
                damage_absorbed=p2_dealt if p1_survived else 0,
                kill_bonus=p1_score.kill_bonus,
            ),
            effect_triggered=p1_on_play or p1_post,
        ),
        player2=CombatSideResult(
            outcome=RoundOutcome(
                points_earned=p2_score.points,
                survived=p2_survived,
                defeated=p2_defeated,
                final_health=max(0, p2_health),
                damage_dealt=p2_dealt,
                damage_absorbed=p1_dealt if p2_survived else 0,
                kill_bonus=p2_score.kill_bonus,
            ),
            effect_triggered=p2_on_play or p2_post,
        ),
        combat_log=tuple(log),
    )


def _on_play_effect(player_id: str, stats: ResolvedStats, log: list[str]) -> TriggeredEffect | None:
    effect = stats.special_effect
    if effect is None or not effect.is_on_play:
        return None
    log.append(f"{player_id} triggers ON_PLAY: {format_effect_action(effect)}")
    return TriggeredEffect(player_id=player_id, effect=effect)


def _post_combat_effect(
    player_id: str,
    stats: ResolvedStats,
    survived: bool,
    defeated: bool,
    opponent_survived: bool,
    log: list[str],
) -> TriggeredEffect | None:
    effect = stats.special_effect
    if effect is None or effect.is_on_play:
        return None
    if not should_effect_trigger(effect.trigger, survived, defeated, opponent_survived):
        return None
    log.append(
        f"{player_id} triggers {effect.trigger.value.upper()}: {format_effect_action(effect)}"
    )
    return TriggeredEffect(player_id=player_id, effect=effect)


def _score(
    rules: GameRules,
    survived: bool,
    defeated: bool,
    damage_dealt: int,
    damage_taken: int,
    opponent_health: int,
) -> _Score:
    if rules.scoring_mode == ScoringMode.POINTS:
        points = 0
        if survived:
            points += rules.points_for_surviving
        if defeated:
            points += rules.points_for_defeating
        return _Score(points=points, absorbed=0, kill_bonus=0)

    if not survived:
        return _Score(points=0, absorbed=0, kill_bonus=0)
    absorbed = damage_taken * rules.points_per_absorbed
    kill_bonus = 0
    if defeated:
        overkill = max(0, damage_dealt - opponent_health)
        kill_bonus = rules.points_for_kill + overkill * rules.points_per_overkill
    return _Score(points=absorbed + kill_bonus, absorbed=absorbed, kill_bonus=kill_bonus)


def _score_line(player_id: str, score: _Score, survived: bool) -> str:
    if not survived:
        return f"{player_id}: {score.points} points (destroyed)"
    return (
        f"{player_id}: {score.points} points "
        f"(absorbed: {score.absorbed}, kill: {score.kill_bonus})"
    )


def format_effect_action(effect: SpecialEffect) -> str:
    """Format a special effect's action for display."""
    action = effect.effect
    if action.type == EffectActionType.DRAW_CARDS:
        return f"Draw {action.count} card{'s' if action.count != 1 else ''}"
    sign = "+" if action.amount > 0 else ""
    if action.type == EffectActionType.MODIFY_INITIATIVE:
        return f"{sign}{action.amount} Initiative next round"
    stat = action.stat.value if action.stat else "stat"
    return f"{sign}{action.amount} {stat} permanent"


_TRIGGER_NAMES = {
    EffectTrigger.ON_PLAY: "On Play",
    EffectTrigger.IF_SURVIVES: "If Survives",
    EffectTrigger.IF_DESTROYED: "If Destroyed",
    EffectTrigger.IF_DEFEATS: "If Defeats",
    EffectTrigger.IF_DOESNT_DEFEAT: "If Doesn't Defeat",
}


def format_trigger_name(trigger: EffectTrigger) -> str:
    return _TRIGGER_NAMES.get(trigger, trigger.value)
