from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from sleeved.models.card import CardSnapshot
from sleeved.models.effects import Modifier, PersistentModifier, SpecialEffect, TriggeredEffect
from sleeved.models.rules import GameRules
from sleeved.models.snapshot import SnapshotCommit

SNAPSHOT_PLAYER_PREFIX = "snapshot:"


class GameStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


class GameEndReason(str, Enum):
    ROUNDS = "rounds"  # max_rounds reached
    POINTS = "points"  # legacy points_to_win reached
    SURRENDER = "surrender"


@dataclass(frozen=True, slots=True)
class ResolvedStats:
    """Dense stats of a composed card. Produced fresh by every resolution."""

    damage: int
    health: int
    initiative: int
    modifier: Modifier | None = None
    special_effect: SpecialEffect | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "damage": self.damage,
            "health": self.health,
            "initiative": self.initiative,
            "modifier": self.modifier.to_dict() if self.modifier else None,
            "special_effect": self.special_effect.to_dict() if self.special_effect else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResolvedStats":
        modifier = data.get("modifier")
        effect = data.get("special_effect")
        return cls(
            damage=int(data["damage"]),
            health=int(data["health"]),
            initiative=int(data["initiative"]),
            modifier=Modifier.from_dict(modifier) if modifier else None,
            special_effect=SpecialEffect.from_dict(effect) if effect else None,
        )


@dataclass(frozen=True, slots=True)
class CommittedCard:
    """One player's composed card for a round. Immutable once created."""

    sleeve_id: str
    animal_id: str
    equipment_ids: tuple[str, ...]
    final_stats: ResolvedStats

    def to_snapshot_commit(self) -> SnapshotCommit:
        return SnapshotCommit(
            sleeve_id=self.sleeve_id,
            animal_id=self.animal_id,
            equipment_ids=self.equipment_ids,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sleeve_id": self.sleeve_id,
            "animal_id": self.animal_id,
            "equipment_ids": list(self.equipment_ids),
            "final_stats": self.final_stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommittedCard":
        return cls(
            sleeve_id=data["sleeve_id"],
            animal_id=data["animal_id"],
            equipment_ids=tuple(data.get("equipment_ids", ())),
            final_stats=ResolvedStats.from_dict(data["final_stats"]),
        )


@dataclass(frozen=True, slots=True)
class RoundOutcome:
    """Outcome of a round for one player."""

    points_earned: int
    survived: bool
    defeated: bool  # Did this card defeat the opponent's card
    final_health: int
    damage_dealt: int = 0
    damage_absorbed: int = 0
    kill_bonus: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "points_earned": self.points_earned,
            "survived": self.survived,
            "defeated": self.defeated,
            "final_health": self.final_health,
            "damage_dealt": self.damage_dealt,
            "damage_absorbed": self.damage_absorbed,
            "kill_bonus": self.kill_bonus,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoundOutcome":
        return cls(
            points_earned=int(data["points_earned"]),
            survived=bool(data["survived"]),
            defeated=bool(data["defeated"]),
            final_health=int(data["final_health"]),
            damage_dealt=int(data.get("damage_dealt", 0)),
            damage_absorbed=int(data.get("damage_absorbed", 0)),
            kill_bonus=int(data.get("kill_bonus", 0)),
        )


@dataclass(frozen=True)
class RoundResult:
    """
    Ledger entry for one resolved round.

    Appended to Game.rounds and never rewritten.
    """

    round_number: int
    commits: dict[str, CommittedCard]
    results: dict[str, RoundOutcome]
    effects_triggered: tuple[TriggeredEffect, ...] = ()
    combat_log: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "round_number": self.round_number,
            "commits": {pid: c.to_dict() for pid, c in self.commits.items()},
            "results": {pid: r.to_dict() for pid, r in self.results.items()},
            "effects_triggered": [e.to_dict() for e in self.effects_triggered],
            "combat_log": list(self.combat_log),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoundResult":
        return cls(
            round_number=int(data["round_number"]),
            commits={pid: CommittedCard.from_dict(c) for pid, c in data["commits"].items()},
            results={pid: RoundOutcome.from_dict(r) for pid, r in data["results"].items()},
            effects_triggered=tuple(
                TriggeredEffect.from_dict(e) for e in data.get("effects_triggered", [])
            ),
            combat_log=tuple(data.get("combat_log", [])),
        )


@dataclass(frozen=True, slots=True)
class EloChange:
    previous_elo: int
    new_elo: int

    @property
    def change(self) -> int:
        return self.new_elo - self.previous_elo

    def to_dict(self) -> dict[str, Any]:
        return {"previous_elo": self.previous_elo, "new_elo": self.new_elo, "change": self.change}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EloChange":
        return cls(previous_elo=int(data["previous_elo"]), new_elo=int(data["new_elo"]))


@dataclass
class PlayerGameState:
    """
    Private, mutable progress of one live player.

    Only the round coordinator mutates this, after both sides resolve.
    """

    player_id: str
    animal_hand: list[str] = field(default_factory=list)
    animal_deck: list[str] = field(default_factory=list)
    animal_discard: list[str] = field(default_factory=list)
    equipment_hand: list[str] = field(default_factory=list)
    equipment_deck: list[str] = field(default_factory=list)
    equipment_discard: list[str] = field(default_factory=list)
    available_sleeves: list[str] = field(default_factory=list)
    used_sleeves: list[str] = field(default_factory=list)
    persistent_modifiers: list[PersistentModifier] = field(default_factory=list)
    initiative_modifier: int = 0  # Applies to the next round only
    current_commit: CommittedCard | None = None
    has_committed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "animal_hand": list(self.animal_hand),
            "animal_deck": list(self.animal_deck),
            "animal_discard": list(self.animal_discard),
            "equipment_hand": list(self.equipment_hand),
            "equipment_deck": list(self.equipment_deck),
            "equipment_discard": list(self.equipment_discard),
            "available_sleeves": list(self.available_sleeves),
            "used_sleeves": list(self.used_sleeves),
            "persistent_modifiers": [m.to_dict() for m in self.persistent_modifiers],
            "initiative_modifier": self.initiative_modifier,
            "current_commit": self.current_commit.to_dict() if self.current_commit else None,
            "has_committed": self.has_committed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerGameState":
        commit = data.get("current_commit")
        return cls(
            player_id=data["player_id"],
            animal_hand=list(data.get("animal_hand", [])),
            animal_deck=list(data.get("animal_deck", [])),
            animal_discard=list(data.get("animal_discard", [])),
            equipment_hand=list(data.get("equipment_hand", [])),
            equipment_deck=list(data.get("equipment_deck", [])),
            equipment_discard=list(data.get("equipment_discard", [])),
            available_sleeves=list(data.get("available_sleeves", [])),
            used_sleeves=list(data.get("used_sleeves", [])),
            persistent_modifiers=[
                PersistentModifier.from_dict(m) for m in data.get("persistent_modifiers", [])
            ],
            initiative_modifier=int(data.get("initiative_modifier", 0)),
            current_commit=CommittedCard.from_dict(commit) if commit else None,
            has_committed=bool(data.get("has_committed", False)),
        )


@dataclass
class SnapshotOpponentState:
    """
    The recorded opponent's side of an asynchronous game.

    Holds a copy of the snapshot's commits (so deleting the snapshot
    cannot break a running game) plus the effect state it accumulates.
    """

    snapshot_id: str
    name: str
    elo: int
    commits: list[SnapshotCommit] = field(default_factory=list)
    persistent_modifiers: list[PersistentModifier] = field(default_factory=list)
    initiative_modifier: int = 0

    @property
    def player_id(self) -> str:
        return f"{SNAPSHOT_PLAYER_PREFIX}{self.snapshot_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_id": self.snapshot_id,
            "name": self.name,
            "elo": self.elo,
            "commits": [c.to_dict() for c in self.commits],
            "persistent_modifiers": [m.to_dict() for m in self.persistent_modifiers],
            "initiative_modifier": self.initiative_modifier,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotOpponentState":
        return cls(
            snapshot_id=data["snapshot_id"],
            name=data.get("name", data["snapshot_id"]),
            elo=int(data["elo"]),
            commits=[SnapshotCommit.from_dict(c) for c in data.get("commits", [])],
            persistent_modifiers=[
                PersistentModifier.from_dict(m) for m in data.get("persistent_modifiers", [])
            ],
            initiative_modifier=int(data.get("initiative_modifier", 0)),
        )


@dataclass
class Game:
    """
    Public game document.

    INVARIANT: status == FINISHED implies ended_at is set and exactly one of
    winner / is_draw holds. Use finish() to end a game.
    """

    id: str
    players: tuple[str, str]
    rules: GameRules
    card_snapshot: CardSnapshot
    status: GameStatus = GameStatus.ACTIVE
    current_round: int = 1
    scores: dict[str, int] = field(default_factory=dict)
    winner: str | None = None
    is_draw: bool = False
    rounds: list[RoundResult] = field(default_factory=list)
    ranked: bool = True
    is_async: bool = False
    snapshot_state: SnapshotOpponentState | None = None
    elo_changes: dict[str, EloChange] = field(default_factory=dict)
    created_at: datetime | None = None
    ended_at: datetime | None = None
    end_reason: GameEndReason | None = None

    @property
    def max_rounds(self) -> int:
        return self.rules.max_rounds

    @property
    def snapshot_id(self) -> str | None:
        return self.snapshot_state.snapshot_id if self.snapshot_state else None

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    def is_player(self, player_id: str) -> bool:
        return player_id in self.players

    def opponent_of(self, player_id: str) -> str:
        first, second = self.players
        return second if player_id == first else first

    def live_players(self) -> list[str]:
        """Players with a PlayerGameState (the snapshot side has none)."""
        if self.snapshot_state is None:
            return list(self.players)
        return [p for p in self.players if p != self.snapshot_state.player_id]

    def finish(
        self,
        winner: str | None,
        reason: GameEndReason,
        now: datetime,
    ) -> None:
        """End the game. winner=None means a draw."""
        self.status = GameStatus.FINISHED
        self.winner = winner
        self.is_draw = winner is None
        self.ended_at = now
        self.end_reason = reason

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "players": list(self.players),
            "status": self.status.value,
            "current_round": self.current_round,
            "max_rounds": self.max_rounds,
            "scores": dict(self.scores),
            "winner": self.winner,
            "is_draw": self.is_draw,
            "rules": self.rules.to_dict(),
            "card_snapshot": self.card_snapshot.to_dict(),
            "rounds": [r.to_dict() for r in self.rounds],
            "ranked": self.ranked,
            "is_async": self.is_async,
            "snapshot_id": self.snapshot_id,
            "snapshot_state": self.snapshot_state.to_dict() if self.snapshot_state else None,
            "elo_changes": {pid: c.to_dict() for pid, c in self.elo_changes.items()},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "end_reason": self.end_reason.value if self.end_reason else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Game":
        first, second = data["players"]
        snapshot_state = data.get("snapshot_state")
        end_reason = data.get("end_reason")
        return cls(
            id=data["id"],
            players=(first, second),
            rules=GameRules.from_dict(data.get("rules")),
            card_snapshot=CardSnapshot.from_dict(data.get("card_snapshot", {})),
            status=GameStatus(data.get("status", GameStatus.ACTIVE.value)),
            current_round=int(data.get("current_round", 1)),
            scores={pid: int(s) for pid, s in data.get("scores", {}).items()},
            winner=data.get("winner"),
            is_draw=bool(data.get("is_draw", False)),
            rounds=[RoundResult.from_dict(r) for r in data.get("rounds", [])],
            ranked=bool(data.get("ranked", True)),
            is_async=bool(data.get("is_async", False)),
            snapshot_state=(
                SnapshotOpponentState.from_dict(snapshot_state) if snapshot_state else None
            ),
            elo_changes={
                pid: EloChange.from_dict(c) for pid, c in data.get("elo_changes", {}).items()
            },
            created_at=_parse_datetime(data.get("created_at")),
            ended_at=_parse_datetime(data.get("ended_at")),
            end_reason=GameEndReason(end_reason) if end_reason else None,
        )


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
