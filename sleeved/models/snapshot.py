"""
Recorded strategies used as stand-in opponents for asynchronous play.

Snapshots store card IDs only. Stats are NOT pre-baked: they are re-resolved
each round against the game's card snapshot, so balance changes reach
recorded opponents too.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class SnapshotCommit:
    """One round's card composition (IDs only, no resolved stats)."""

    sleeve_id: str
    animal_id: str
    equipment_ids: tuple[str, ...] = ()  # Stacking order, bottom to top

    def card_ids(self) -> list[str]:
        return [self.sleeve_id, self.animal_id, *self.equipment_ids]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sleeve_id": self.sleeve_id,
            "animal_id": self.animal_id,
            "equipment_ids": list(self.equipment_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotCommit":
        return cls(
            sleeve_id=data["sleeve_id"],
            animal_id=data["animal_id"],
            equipment_ids=tuple(data.get("equipment_ids", ())),
        )


@dataclass
class GameSnapshot:
    """
    A recorded game strategy.

    Attributes:
        commits: Composition per round (index 0 = round 1)
        active_card_ids: Catalog cards that were active when recorded
        round_count: Number of recorded rounds; matched against a game's max_rounds
        is_bot: Seeded by an admin rather than recorded from a finished game
    """

    id: str
    source_player_id: str
    source_player_name: str
    elo: int
    commits: list[SnapshotCommit] = field(default_factory=list)
    active_card_ids: list[str] = field(default_factory=list)
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    is_bot: bool = False
    created_at: datetime | None = None

    @property
    def round_count(self) -> int:
        return len(self.commits)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_player_id": self.source_player_id,
            "source_player_name": self.source_player_name,
            "elo": self.elo,
            "games_played": self.games_played,
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "round_count": self.round_count,
            "commits": [c.to_dict() for c in self.commits],
            "active_card_ids": list(self.active_card_ids),
            "is_bot": self.is_bot,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
