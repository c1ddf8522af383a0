"""
ELO rating calculation.

Standard logistic expected-score model. The K-factor depends on the rated
side's own games played: 40 while new, 20 once established.
"""

from dataclasses import dataclass
from enum import Enum

from sleeved.models.game import EloChange

DEFAULT_ELO = 1500

K_FACTOR_NEW = 40
K_FACTOR_ESTABLISHED = 20
GAMES_UNTIL_ESTABLISHED = 30

# Snapshots have no account history to derive a K-factor from
SNAPSHOT_ASSUMED_GAMES_PLAYED = GAMES_UNTIL_ESTABLISHED


class GameResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"

    @property
    def actual_score(self) -> float:
        if self == GameResult.WIN:
            return 1.0
        if self == GameResult.DRAW:
            return 0.5
        return 0.0

    def inverse(self) -> "GameResult":
        if self == GameResult.WIN:
            return GameResult.LOSS
        if self == GameResult.LOSS:
            return GameResult.WIN
        return GameResult.DRAW


def get_k_factor(games_played: int) -> int:
    return K_FACTOR_NEW if games_played < GAMES_UNTIL_ESTABLISHED else K_FACTOR_ESTABLISHED


def calculate_expected_score(player_elo: float, opponent_elo: float) -> float:
    """E = 1 / (1 + 10^((opponent - player) / 400))"""
    return 1 / (1 + 10 ** ((opponent_elo - player_elo) / 400))


def calculate_new_rating(old_rating: int, expected: float, actual: float, k: int) -> int:
    """New rating, rounded half up (round() would round half to even)."""
    value = old_rating + k * (actual - expected)
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def calculate_elo_change(
    player_elo: int,
    opponent_elo: int,
    player_games_played: int,
    result: GameResult,
) -> EloChange:
    """Rating change for one side, from that side's perspective."""
    expected = calculate_expected_score(player_elo, opponent_elo)
    k = get_k_factor(player_games_played)
    new_elo = calculate_new_rating(player_elo, expected, result.actual_score, k)
    return EloChange(previous_elo=player_elo, new_elo=new_elo)


@dataclass(frozen=True)
class RatedSide:
    player_id: str
    elo: int
    games_played: int


def rate_game(
    first: RatedSide,
    second: RatedSide,
    winner: str | None,
) -> dict[str, EloChange]:
    """
    Rate both sides of a finished game independently, using pre-game ratings.

    winner=None means a draw.
    """
    if winner is None:
        first_result = GameResult.DRAW
    elif winner == first.player_id:
        first_result = GameResult.WIN
    else:
        first_result = GameResult.LOSS

    return {
        first.player_id: calculate_elo_change(
            first.elo, second.elo, first.games_played, first_result
        ),
        second.player_id: calculate_elo_change(
            second.elo, first.elo, second.games_played, first_result.inverse()
        ),
    }
