from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any


class ScoringMode(str, Enum):
    """
    Which scoring rules a game uses.

    ROUNDS: absorption + kill bonus + overkill, game ends after max_rounds.
    POINTS: legacy surviving/defeating points, game ends at points_to_win
            (max_rounds still caps the game length).
    """

    ROUNDS = "rounds"
    POINTS = "points"


@dataclass(frozen=True)
class GameRules:
    """
    Rules configuration, snapshotted at game start.

    Changes to the live rules only affect new games.
    """

    version: int = 1
    scoring_mode: ScoringMode = ScoringMode.ROUNDS

    # Legacy scoring
    points_for_surviving: int = 1
    points_for_defeating: int = 2
    points_to_win: int = 15

    # Card draw
    starting_equipment_hand: int = 5
    equipment_draw_per_round: int = 1
    starting_animal_hand: int = 3

    # Combat
    default_initiative: int = 0

    # Rounds scoring
    max_rounds: int = 5
    points_for_kill: int = 3
    points_per_overkill: int = 1
    points_per_absorbed: int = 1

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["scoring_mode"] = self.scoring_mode.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GameRules":
        """Build rules from partial data; missing fields keep their defaults."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {k: v for k, v in data.items() if k in known}
        if "scoring_mode" in values:
            values["scoring_mode"] = ScoringMode(values["scoring_mode"])
        return cls(**values)


DEFAULT_GAME_RULES = GameRules()
