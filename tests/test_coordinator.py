"""Tests for the round coordinator state machine."""

import random
from datetime import UTC, datetime

import pytest

from sleeved.engine.coordinator import (
    RoundCoordinator,
    RoundPhase,
    create_async_game,
    create_game,
)
from sleeved.models.card import CardDefinition, CardType
from sleeved.models.effects import StatName
from sleeved.models.failure import (
    DuplicateCommitError,
    GameNotActiveError,
    InsufficientCardsError,
    InvalidInputError,
    InvalidSelectionError,
    NoSnapshotAvailableError,
    NotAPlayerError,
)
from sleeved.models.game import GameEndReason, GameStatus
from sleeved.models.rules import GameRules, ScoringMode
from sleeved.models.snapshot import GameSnapshot, SnapshotCommit

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def start(
    catalog: list[CardDefinition], rules: GameRules, rng: random.Random
) -> RoundCoordinator:
    game, states = create_game("g1", ["p1", "p2"], catalog, rules, rng=rng, now=NOW)
    return RoundCoordinator(game, states, rng=rng, clock=lambda: NOW)


def bot_snapshot(commit: SnapshotCommit, rounds: int = 3) -> GameSnapshot:
    return GameSnapshot(
        id="bot1",
        source_player_id="bot:bot1",
        source_player_name="Bot",
        elo=1500,
        commits=[commit] * rounds,
        is_bot=True,
    )


def start_async(
    catalog: list[CardDefinition],
    rules: GameRules,
    rng: random.Random,
    commit: SnapshotCommit,
) -> RoundCoordinator:
    game, states = create_async_game(
        "g2", "p1", bot_snapshot(commit, rules.max_rounds), catalog, rules, rng=rng, now=NOW
    )
    return RoundCoordinator(game, states, rng=rng, clock=lambda: NOW)


class TestCreateGame:
    def test_new_game(self, catalog: list[CardDefinition], rules: GameRules, rng) -> None:
        """A new game starts at round 1 with zero scores and dealt hands."""
        coordinator = start(catalog, rules, rng)
        game = coordinator.game

        assert game.status == GameStatus.ACTIVE
        assert game.current_round == 1
        assert game.scores == {"p1": 0, "p2": 0}
        assert set(coordinator.player_states) == {"p1", "p2"}
        assert coordinator.phase == RoundPhase.AWAITING_BOTH
        assert game.created_at == NOW

    def test_inactive_cards_excluded(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """Only active cards are copied into the game."""
        game = start(catalog, rules, rng).game

        assert game.card_snapshot.find("retired", CardType.ANIMAL) is None
        assert game.card_snapshot.find("wolf", CardType.ANIMAL) is not None

    def test_insufficient_cards(self, catalog: list[CardDefinition], rng) -> None:
        """A catalog too small for the opening hands is rejected."""
        rules = GameRules(starting_animal_hand=4, starting_equipment_hand=2)

        with pytest.raises(InsufficientCardsError) as exc_info:
            create_game("g1", ["p1", "p2"], catalog, rules, rng=rng)

        assert exc_info.value.card_type == "animal"
        assert exc_info.value.required == 4
        assert exc_info.value.available == 3

    def test_same_player_twice(self, catalog: list[CardDefinition], rules: GameRules) -> None:
        with pytest.raises(InvalidInputError):
            create_game("g1", ["p1", "p1"], catalog, rules)


class TestSyncRounds:
    def test_first_commit_waits(self, catalog: list[CardDefinition], rules: GameRules, rng) -> None:
        """The first commit is recorded but nothing resolves."""
        coordinator = start(catalog, rules, rng)

        outcome = coordinator.commit("p1", "s1", "wolf", [])

        assert outcome.both_committed is False
        assert outcome.round_result is None
        assert coordinator.game.rounds == []
        assert coordinator.phase == RoundPhase.AWAITING_ONE
        state = coordinator.player_states["p1"]
        assert state.has_committed is True
        assert state.current_commit is not None
        assert state.current_commit.final_stats.damage == 6

    def test_second_commit_resolves(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """The second commit resolves combat, scores, and advances the round."""
        coordinator = start(catalog, rules, rng)
        coordinator.commit("p1", "s1", "wolf", [])

        outcome = coordinator.commit("p2", "s1", "mouse", [])

        game = coordinator.game
        assert outcome.both_committed is True
        assert outcome.round_result is not None
        assert outcome.round_result.round_number == 1
        assert outcome.round_result.combat_log
        assert len(game.rounds) == 1
        assert game.scores == {"p1": 7, "p2": 0}
        assert game.current_round == 2
        assert coordinator.phase == RoundPhase.AWAITING_BOTH
        for state in coordinator.player_states.values():
            assert state.has_committed is False
            assert state.current_commit is None
            assert sorted(state.animal_hand) == ["bear", "mouse", "wolf"]
            assert state.available_sleeves == ["s1"]

    def test_commit_uses_equipment(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """Equipment modifiers are part of the committed stats."""
        coordinator = start(catalog, rules, rng)

        outcome = coordinator.commit("p1", "s1", "wolf", ["claws"])

        assert outcome.commit.final_stats.damage == 7
        assert outcome.commit.equipment_ids == ("claws",)

    def test_duplicate_commit_rejected(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """A second commit in the same round is refused and changes nothing."""
        coordinator = start(catalog, rules, rng)
        first = coordinator.commit("p1", "s1", "wolf", [])

        with pytest.raises(DuplicateCommitError) as exc_info:
            coordinator.commit("p1", "s1", "mouse", [])

        assert exc_info.value.round_number == 1
        assert coordinator.player_states["p1"].current_commit == first.commit
        assert coordinator.game.rounds == []

    def test_duplicate_commit_leaves_history(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """Round history is untouched by a rejected duplicate."""
        coordinator = start(catalog, rules, rng)
        coordinator.commit("p1", "s1", "wolf", [])
        coordinator.commit("p2", "s1", "mouse", [])
        coordinator.commit("p1", "s1", "wolf", [])
        history = list(coordinator.game.rounds)

        with pytest.raises(DuplicateCommitError):
            coordinator.commit("p1", "s1", "bear", [])

        assert coordinator.game.rounds == history

    def test_invalid_selection_mutates_nothing(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """Selecting a card not in hand is refused before any state changes."""
        coordinator = start(catalog, rules, rng)
        before = coordinator.player_states["p1"].to_dict()

        with pytest.raises(InvalidSelectionError):
            coordinator.commit("p1", "s1", "retired", [])

        assert coordinator.player_states["p1"].to_dict() == before

    def test_not_a_player(self, catalog: list[CardDefinition], rules: GameRules, rng) -> None:
        coordinator = start(catalog, rules, rng)

        with pytest.raises(NotAPlayerError):
            coordinator.commit("p3", "s1", "wolf", [])

    def test_persistent_effect_carries_over(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """A surviving shell grants +1 health to every later round."""
        coordinator = start(catalog, rules, rng)
        coordinator.commit("p1", "s1", "wolf", [])
        coordinator.commit("p2", "s1", "bear", ["shell"])

        state = coordinator.player_states["p2"]
        assert [(m.stat, m.amount, m.source_round) for m in state.persistent_modifiers] == [
            (StatName.HEALTH, 1, 1)
        ]
        assert sorted(state.equipment_hand) == ["claws", "shell"]

        outcome = coordinator.commit("p2", "s1", "bear", [])
        assert outcome.commit.final_stats.health == 10


class TestTermination:
    def test_game_ends_after_max_rounds(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """After max_rounds the higher score wins."""
        coordinator = start(catalog, rules, rng)
        for _ in range(rules.max_rounds):
            coordinator.commit("p1", "s1", "wolf", [])
            outcome = coordinator.commit("p2", "s1", "mouse", [])

        game = coordinator.game
        assert outcome.game_finished is True
        assert game.status == GameStatus.FINISHED
        assert game.winner == "p1"
        assert game.is_draw is False
        assert game.end_reason == GameEndReason.ROUNDS
        assert game.ended_at == NOW
        assert game.current_round == rules.max_rounds
        assert game.scores["p1"] == 21
        assert coordinator.phase == RoundPhase.FINISHED

    def test_commit_after_finish_rejected(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        coordinator = start(catalog, rules, rng)
        for _ in range(rules.max_rounds):
            coordinator.commit("p1", "s1", "wolf", [])
            coordinator.commit("p2", "s1", "mouse", [])

        with pytest.raises(GameNotActiveError):
            coordinator.commit("p1", "s1", "wolf", [])

    def test_equal_scores_draw(self, catalog: list[CardDefinition], rules: GameRules, rng) -> None:
        """Mutual destruction every round ends in a draw."""
        coordinator = start(catalog, rules, rng)
        for _ in range(rules.max_rounds):
            coordinator.commit("p1", "s1", "wolf", [])
            coordinator.commit("p2", "s1", "wolf", [])

        assert coordinator.game.is_draw is True
        assert coordinator.game.winner is None

    def test_points_mode_ends_early(self, catalog: list[CardDefinition], rng) -> None:
        """Legacy scoring ends the game as soon as a side reaches points_to_win."""
        rules = GameRules(
            scoring_mode=ScoringMode.POINTS,
            points_to_win=3,
            starting_animal_hand=3,
            starting_equipment_hand=2,
            max_rounds=5,
        )
        coordinator = start(catalog, rules, rng)
        coordinator.commit("p1", "s1", "wolf", [])
        coordinator.commit("p2", "s1", "mouse", [])

        game = coordinator.game
        assert game.is_finished
        assert game.end_reason == GameEndReason.POINTS
        assert game.winner == "p1"
        assert game.current_round == 1

    def test_surrender(self, catalog: list[CardDefinition], rules: GameRules, rng) -> None:
        """Surrender ends the game immediately with the opponent winning."""
        coordinator = start(catalog, rules, rng)
        coordinator.commit("p1", "s1", "wolf", [])

        coordinator.surrender("p2")

        game = coordinator.game
        assert game.winner == "p1"
        assert game.end_reason == GameEndReason.SURRENDER
        assert game.rounds == []
        with pytest.raises(GameNotActiveError):
            coordinator.surrender("p1")


class TestAsyncRounds:
    def test_commit_resolves_immediately(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """Against a recorded opponent a single commit resolves the round."""
        coordinator = start_async(catalog, rules, rng, SnapshotCommit("s1", "mouse", ()))

        outcome = coordinator.commit("p1", "s1", "wolf", [])

        game = coordinator.game
        assert game.players == ("p1", "snapshot:bot1")
        assert outcome.both_committed is True
        assert outcome.round_result is not None
        assert outcome.round_result.commits["snapshot:bot1"].animal_id == "mouse"
        assert game.scores == {"p1": 7, "snapshot:bot1": 0}
        assert game.current_round == 2

    def test_full_async_game(self, catalog: list[CardDefinition], rules: GameRules, rng) -> None:
        coordinator = start_async(catalog, rules, rng, SnapshotCommit("s1", "mouse", ()))
        for _ in range(rules.max_rounds):
            coordinator.commit("p1", "s1", "wolf", [])

        assert coordinator.game.is_finished
        assert coordinator.game.winner == "p1"
        assert len(coordinator.game.rounds) == rules.max_rounds

    def test_snapshot_side_accumulates_effects(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """The recorded opponent's effects apply to its later replays."""
        coordinator = start_async(catalog, rules, rng, SnapshotCommit("s1", "bear", ("shell",)))
        coordinator.commit("p1", "s1", "wolf", [])

        assert len(coordinator.game.snapshot_state.persistent_modifiers) == 1

        outcome = coordinator.commit("p1", "s1", "wolf", [])
        assert outcome.round_result.commits["snapshot:bot1"].final_stats.health == 12

    def test_snapshot_side_cannot_act(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        coordinator = start_async(catalog, rules, rng, SnapshotCommit("s1", "mouse", ()))

        with pytest.raises(NotAPlayerError):
            coordinator.commit("snapshot:bot1", "s1", "wolf", [])

    def test_unplayable_snapshot_rejected(
        self, catalog: list[CardDefinition], rules: GameRules, rng
    ) -> None:
        """A snapshot referencing retired cards cannot start a game."""
        with pytest.raises(NoSnapshotAvailableError):
            start_async(catalog, rules, rng, SnapshotCommit("s1", "retired", ()))
