"""
Round coordination.

One round moves through:

    AWAITING_BOTH -> AWAITING_ONE -> (resolved) -> AWAITING_BOTH | FINISHED

Synchronous games defer resolution until the second live commit arrives.
Asynchronous games (one side is a recorded snapshot) resolve on the live
player's single commit, replaying the snapshot's composition for that round.

The coordinator works purely in memory on a Game and its player states.
Callers persist the result; every validation happens before the first
mutation, so a rejected commit leaves the state untouched.
"""

import logging
import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from sleeved.engine.combat import Combatant, resolve_combat
from sleeved.engine.deck import (
    deal_opening_state,
    discard_played,
    draw_equipment,
    rotate_sleeve,
    top_up_animals,
    validate_selection,
)
from sleeved.engine.effects import apply_effects, apply_effects_to_snapshot
from sleeved.engine.snapshots import replay_commit, snapshot_is_playable
from sleeved.engine.stats import resolve_stats
from sleeved.models.card import CardDefinition, CardSnapshot, CardType
from sleeved.models.effects import TriggeredEffect
from sleeved.models.failure import (
    DuplicateCommitError,
    GameNotActiveError,
    InsufficientCardsError,
    InvalidInputError,
    NoSnapshotAvailableError,
    NotAPlayerError,
)
from sleeved.models.game import (
    CommittedCard,
    Game,
    GameEndReason,
    PlayerGameState,
    RoundResult,
    SnapshotOpponentState,
)
from sleeved.models.rules import GameRules, ScoringMode
from sleeved.models.snapshot import GameSnapshot

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class RoundPhase(str, Enum):
    AWAITING_BOTH = "awaiting_both"
    AWAITING_ONE = "awaiting_one"
    FINISHED = "finished"


@dataclass(frozen=True)
class CommitOutcome:
    """
    Result of accepting a commit.

    round_result is set when this commit triggered resolution.
    """

    commit: CommittedCard
    both_committed: bool
    round_result: RoundResult | None = None
    game_finished: bool = False


def validate_card_counts(cards: CardSnapshot, rules: GameRules) -> None:
    """
    Check the catalog can deal opening hands.

    Raises:
        InsufficientCardsError: Too few active cards of some type
    """
    required = [
        (CardType.SLEEVE, 1),
        (CardType.ANIMAL, rules.starting_animal_hand),
        (CardType.EQUIPMENT, rules.starting_equipment_hand),
    ]
    for card_type, minimum in required:
        available = len(cards.cards_of_type(card_type))
        if available < minimum:
            raise InsufficientCardsError(card_type.value, minimum, available)


def create_game(
    game_id: str,
    players: Sequence[str],
    catalog: Iterable[CardDefinition],
    rules: GameRules,
    ranked: bool = True,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> tuple[Game, dict[str, PlayerGameState]]:
    """
    Start a synchronous game between two live players.

    The catalog's active cards are frozen into the game's card snapshot.
    """
    if len(players) != 2 or players[0] == players[1]:
        raise InvalidInputError("A game needs exactly two distinct players")

    cards = CardSnapshot.from_catalog(catalog)
    validate_card_counts(cards, rules)

    first, second = players
    game = Game(
        id=game_id,
        players=(first, second),
        rules=rules,
        card_snapshot=cards,
        scores={first: 0, second: 0},
        ranked=ranked,
        created_at=now or utc_now(),
    )
    states = {p: deal_opening_state(p, cards, rules, rng) for p in game.players}
    logger.info("Created game %s between %s and %s", game_id, first, second)
    return game, states


def create_async_game(
    game_id: str,
    player_id: str,
    snapshot: GameSnapshot,
    catalog: Iterable[CardDefinition],
    rules: GameRules,
    ranked: bool = True,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> tuple[Game, dict[str, PlayerGameState]]:
    """
    Start an asynchronous game of a live player against a recorded snapshot.

    Raises:
        NoSnapshotAvailableError: The snapshot cannot be replayed with this catalog
    """
    cards = CardSnapshot.from_catalog(catalog)
    validate_card_counts(cards, rules)

    if snapshot.round_count != rules.max_rounds or not snapshot_is_playable(snapshot, cards):
        raise NoSnapshotAvailableError(player_id)

    opponent = SnapshotOpponentState(
        snapshot_id=snapshot.id,
        name=snapshot.source_player_name,
        elo=snapshot.elo,
        commits=list(snapshot.commits),
    )
    if opponent.player_id == player_id:
        raise InvalidInputError("A player cannot play against their own snapshot")

    game = Game(
        id=game_id,
        players=(player_id, opponent.player_id),
        rules=rules,
        card_snapshot=cards,
        scores={player_id: 0, opponent.player_id: 0},
        ranked=ranked,
        is_async=True,
        snapshot_state=opponent,
        created_at=now or utc_now(),
    )
    states = {player_id: deal_opening_state(player_id, cards, rules, rng)}
    logger.info("Created async game %s: %s vs snapshot %s", game_id, player_id, snapshot.id)
    return game, states


class RoundCoordinator:
    """
    Drives commits, round resolution, and termination for one game.

    Args:
        game: The game document (mutated in place)
        player_states: State of every live player, by player ID (mutated in place)
        rng: Randomness for reshuffles and draws
        clock: Source of timestamps for game end
    """

    def __init__(
        self,
        game: Game,
        player_states: dict[str, PlayerGameState],
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.game = game
        self.player_states = player_states
        self.rng = rng
        self.clock = clock

    @property
    def phase(self) -> RoundPhase:
        if self.game.is_finished:
            return RoundPhase.FINISHED
        committed = sum(1 for s in self.player_states.values() if s.has_committed)
        return RoundPhase.AWAITING_ONE if committed else RoundPhase.AWAITING_BOTH

    def commit(
        self,
        player_id: str,
        sleeve_id: str,
        animal_id: str,
        equipment_ids: Sequence[str],
    ) -> CommitOutcome:
        """
        Accept one player's composition for the current round.

        Resolves the round when this is the second live commit, or
        immediately in an asynchronous game.

        Raises:
            GameNotActiveError: The game has finished
            NotAPlayerError: player_id is not a live player of this game
            DuplicateCommitError: The player already committed this round
            InvalidSelectionError: A selected card is not held by the player
            CatalogIntegrityError: A card is missing from the game's card snapshot
        """
        state = self._require_live_player(player_id)
        if state.has_committed:
            raise DuplicateCommitError(player_id, self.game.current_round)
        validate_selection(state, sleeve_id, animal_id, equipment_ids)

        commit = self._compose(state, sleeve_id, animal_id, tuple(equipment_ids))

        if self.game.is_async:
            opponent_commit = replay_commit(self.game, self.game.current_round)
            state.current_commit = commit
            state.has_committed = True
            result = self._resolve_round(
                {player_id: commit, self.game.opponent_of(player_id): opponent_commit}
            )
            return CommitOutcome(
                commit=commit,
                both_committed=True,
                round_result=result,
                game_finished=self.game.is_finished,
            )

        state.current_commit = commit
        state.has_committed = True

        opponent = self.player_states[self.game.opponent_of(player_id)]
        if not opponent.has_committed or opponent.current_commit is None:
            logger.info(
                "Player %s committed round %d of game %s; waiting for opponent",
                player_id,
                self.game.current_round,
                self.game.id,
            )
            return CommitOutcome(commit=commit, both_committed=False)

        result = self._resolve_round(
            {player_id: commit, opponent.player_id: opponent.current_commit}
        )
        return CommitOutcome(
            commit=commit,
            both_committed=True,
            round_result=result,
            game_finished=self.game.is_finished,
        )

    def surrender(self, player_id: str) -> None:
        """
        End the game immediately; the opponent wins.

        Bypasses round resolution entirely.
        """
        self._require_live_player(player_id)
        winner = self.game.opponent_of(player_id)
        self.game.finish(winner, GameEndReason.SURRENDER, self.clock())
        logger.info("Player %s surrendered game %s", player_id, self.game.id)

    def _require_live_player(self, player_id: str) -> PlayerGameState:
        if not self.game.is_player(player_id) or player_id not in self.player_states:
            raise NotAPlayerError(player_id, self.game.id)
        if self.game.is_finished:
            raise GameNotActiveError(self.game.id)
        return self.player_states[player_id]

    def _compose(
        self,
        state: PlayerGameState,
        sleeve_id: str,
        animal_id: str,
        equipment_ids: tuple[str, ...],
    ) -> CommittedCard:
        cards = self.game.card_snapshot
        sleeve = cards.require(sleeve_id, CardType.SLEEVE)
        animal = cards.require(animal_id, CardType.ANIMAL)
        equipment = [cards.require(e, CardType.EQUIPMENT) for e in equipment_ids]
        final_stats = resolve_stats(
            sleeve,
            animal,
            equipment,
            state.persistent_modifiers,
            state.initiative_modifier,
            default_initiative=self.game.rules.default_initiative,
        )
        return CommittedCard(
            sleeve_id=sleeve_id,
            animal_id=animal_id,
            equipment_ids=equipment_ids,
            final_stats=final_stats,
        )

    def _resolve_round(self, commits: dict[str, CommittedCard]) -> RoundResult:
        game = self.game
        rules = game.rules
        round_number = game.current_round
        first, second = game.players

        combat = resolve_combat(
            Combatant(first, commits[first].final_stats),
            Combatant(second, commits[second].final_stats),
            rules,
        )
        effects = combat.effects_triggered()
        result = RoundResult(
            round_number=round_number,
            commits={first: commits[first], second: commits[second]},
            results={first: combat.player1.outcome, second: combat.player2.outcome},
            effects_triggered=tuple(effects),
            combat_log=combat.combat_log,
        )
        game.rounds.append(result)
        for player_id, outcome in result.results.items():
            game.scores[player_id] = game.scores.get(player_id, 0) + outcome.points_earned

        end_reason = self._end_reason(round_number)

        for player_id, state in self.player_states.items():
            self._advance_player(
                state, commits[player_id], effects, round_number, continues=end_reason is None
            )
        if game.snapshot_state is not None:
            apply_effects_to_snapshot(game.snapshot_state, effects, round_number)

        logger.info(
            "Resolved round %d of game %s: %s",
            round_number,
            game.id,
            {pid: o.points_earned for pid, o in result.results.items()},
        )

        if end_reason is None:
            game.current_round += 1
        else:
            self._finish(end_reason)
        return result

    def _end_reason(self, round_number: int) -> GameEndReason | None:
        rules = self.game.rules
        if rules.scoring_mode == ScoringMode.POINTS and any(
            score >= rules.points_to_win for score in self.game.scores.values()
        ):
            return GameEndReason.POINTS
        if round_number >= rules.max_rounds:
            return GameEndReason.ROUNDS
        return None

    def _finish(self, reason: GameEndReason) -> None:
        first, second = self.game.players
        first_score = self.game.scores.get(first, 0)
        second_score = self.game.scores.get(second, 0)
        if first_score == second_score:
            winner = None
        else:
            winner = first if first_score > second_score else second
        self.game.finish(winner, reason, self.clock())
        logger.info(
            "Game %s finished (%s): winner=%s scores=%s",
            self.game.id,
            reason.value,
            winner or "draw",
            self.game.scores,
        )

    def _advance_player(
        self,
        state: PlayerGameState,
        commit: CommittedCard,
        effects: list[TriggeredEffect],
        round_number: int,
        continues: bool,
    ) -> None:
        rotate_sleeve(state, commit.sleeve_id)
        discard_played(state, commit)
        apply_effects(state, effects, round_number, self.rng)

        if continues:
            top_up_animals(state, self.game.rules.starting_animal_hand, self.rng)
            draw_equipment(state, self.game.rules.equipment_draw_per_round, self.rng)

        state.current_commit = None
        state.has_committed = False
