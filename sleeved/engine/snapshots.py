"""
Snapshot matching and replay.

A snapshot is a commitment to card IDs, never to baked stats: each round
the recorded composition is re-resolved against the game's own card
snapshot and the recorded side's accumulated effect state.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from sleeved.engine.stats import resolve_stats
from sleeved.models.card import CardSnapshot, CardType
from sleeved.models.failure import CatalogIntegrityError, InvalidInputError
from sleeved.models.game import CommittedCard, Game, SnapshotOpponentState
from sleeved.models.snapshot import GameSnapshot, SnapshotCommit


def snapshot_is_playable(snapshot: GameSnapshot, cards: CardSnapshot) -> bool:
    """True if every card the snapshot commits to exists (with the right type) in `cards`."""
    for commit in snapshot.commits:
        if cards.find(commit.sleeve_id, CardType.SLEEVE) is None:
            return False
        if cards.find(commit.animal_id, CardType.ANIMAL) is None:
            return False
        if any(cards.find(e, CardType.EQUIPMENT) is None for e in commit.equipment_ids):
            return False
    return True


def select_snapshot(
    candidates: Iterable[GameSnapshot],
    player_id: str,
    player_elo: int,
    max_rounds: int,
    cards: CardSnapshot,
    tolerance: int,
) -> GameSnapshot | None:
    """
    Pick a recorded opponent for an asynchronous game.

    Only snapshots with exactly max_rounds commits that the current catalog
    can replay are eligible, and a player never meets their own recordings.
    The nearest rating inside the tolerance window wins; with nothing
    inside the window the nearest rating overall is used. Ties go to the
    snapshot with fewer games played, then to ID order.

    Returns:
        The chosen snapshot, or None if nothing is eligible
    """
    eligible = [
        s
        for s in candidates
        if s.round_count == max_rounds
        and s.source_player_id != player_id
        and snapshot_is_playable(s, cards)
    ]
    if not eligible:
        return None

    def distance(s: GameSnapshot) -> tuple[int, int, str]:
        return (abs(s.elo - player_elo), s.games_played, s.id)

    in_window = [s for s in eligible if abs(s.elo - player_elo) <= tolerance]
    return min(in_window or eligible, key=distance)


def commit_for_round(state: SnapshotOpponentState, round_number: int) -> SnapshotCommit:
    """
    The recorded composition for a 1-based round number.

    Raises:
        CatalogIntegrityError: The snapshot holds no commit for this round
    """
    index = round_number - 1
    if index < 0 or index >= len(state.commits):
        raise CatalogIntegrityError(
            f"Snapshot {state.snapshot_id} has no commit for round {round_number}"
        )
    return state.commits[index]


def replay_commit(game: Game, round_number: int) -> CommittedCard:
    """
    Re-resolve the recorded opponent's commit for a round.

    Raises:
        CatalogIntegrityError: A recorded card is missing from the game's card snapshot
    """
    state = game.snapshot_state
    if state is None:
        msg = f"Game {game.id} has no recorded opponent"
        raise ValueError(msg)

    recorded = commit_for_round(state, round_number)
    cards = game.card_snapshot
    sleeve = cards.require(recorded.sleeve_id, CardType.SLEEVE)
    animal = cards.require(recorded.animal_id, CardType.ANIMAL)
    equipment = [cards.require(e, CardType.EQUIPMENT) for e in recorded.equipment_ids]

    final_stats = resolve_stats(
        sleeve,
        animal,
        equipment,
        state.persistent_modifiers,
        state.initiative_modifier,
        default_initiative=game.rules.default_initiative,
    )
    return CommittedCard(
        sleeve_id=recorded.sleeve_id,
        animal_id=recorded.animal_id,
        equipment_ids=recorded.equipment_ids,
        final_stats=final_stats,
    )


def validate_snapshot_commits(commits: Sequence[SnapshotCommit], max_rounds: int) -> None:
    """
    Check a seeded strategy is complete.

    Raises:
        InvalidInputError: Wrong number of rounds or a round missing its sleeve/animal
    """
    if len(commits) != max_rounds:
        raise InvalidInputError(
            f"commits must contain exactly {max_rounds} rounds, got {len(commits)}"
        )
    for index, commit in enumerate(commits, start=1):
        if not commit.sleeve_id or not commit.animal_id:
            raise InvalidInputError(f"Commit {index} must have a sleeve_id and an animal_id")


def build_snapshot_from_game(
    game: Game,
    player_id: str,
    snapshot_id: str,
    elo: int,
    now: datetime,
) -> GameSnapshot | None:
    """
    Record a finished game's live player as a new opponent.

    Returns None unless the player committed in every round up to
    max_rounds (a surrendered game leaves an incomplete strategy).
    """
    commits = [
        r.commits[player_id].to_snapshot_commit()
        for r in sorted(game.rounds, key=lambda r: r.round_number)
        if player_id in r.commits
    ]
    if len(commits) != game.max_rounds:
        return None

    return GameSnapshot(
        id=snapshot_id,
        source_player_id=player_id,
        source_player_name=player_id,
        elo=elo,
        commits=commits,
        active_card_ids=game.card_snapshot.card_ids(),
        is_bot=False,
        created_at=now,
    )
