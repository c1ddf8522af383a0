"""Tests for game lifecycle orchestration against a real (in-memory) database."""

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from sleeved.db.operations import get_rating, get_snapshot, list_snapshots, load_game
from sleeved.models.card import CardDefinition
from sleeved.models.failure import (
    DuplicateCommitError,
    GameNotActiveError,
    GameNotFoundError,
    InvalidInputError,
    NoSnapshotAvailableError,
    NotAPlayerError,
)
from sleeved.models.game import GameEndReason
from sleeved.models.rules import GameRules
from sleeved.models.snapshot import SnapshotCommit
from sleeved.services import games as game_service
from sleeved.services import ratings as rating_service
from sleeved.services import snapshots as snapshot_service
from sleeved.services.snapshots import get_snapshots, remove_snapshot, seed_bot_snapshot

Factory = async_sessionmaker[AsyncSession]


async def new_game(factory: Factory, catalog, rules: GameRules, ranked: bool = True) -> str:
    async with factory() as session:
        game = await game_service.create_game(
            session, ["p1", "p2"], catalog, rules, ranked=ranked
        )
        await session.commit()
    return game.id


async def seed_mouse_bot(factory: Factory, rules: GameRules, elo: int = 1500) -> str:
    async with factory() as session:
        snapshot = await seed_bot_snapshot(
            session,
            "Mouse Bot",
            elo,
            [SnapshotCommit("s1", "mouse", ())] * rules.max_rounds,
            rules,
        )
        await session.commit()
    return snapshot.id


async def play_round(factory: Factory, game_id: str, p1_animal: str, p2_animal: str):
    await game_service.commit_round(factory, game_id, "p1", "s1", p1_animal, [])
    return await game_service.commit_round(factory, game_id, "p2", "s1", p2_animal, [])


class TestCommitRound:
    async def test_round_resolves_on_second_commit(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """Two commits through the service produce exactly one round result."""
        game_id = await new_game(session_factory, catalog, rules)

        first, _ = await game_service.commit_round(session_factory, game_id, "p1", "s1", "wolf", [])
        second, game = await game_service.commit_round(
            session_factory, game_id, "p2", "s1", "mouse", []
        )

        assert first.both_committed is False
        assert second.round_result is not None
        async with session_factory() as session:
            _, stored, _ = await load_game(session, game_id)
        assert len(stored.rounds) == 1
        assert stored.current_round == 2
        assert stored.to_dict() == game.to_dict()

    async def test_duplicate_commit_writes_nothing(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """A refused commit leaves the stored game untouched."""
        game_id = await new_game(session_factory, catalog, rules)
        await game_service.commit_round(session_factory, game_id, "p1", "s1", "wolf", [])
        async with session_factory() as session:
            row, _, _ = await load_game(session, game_id)
            version = row.version

        with pytest.raises(DuplicateCommitError):
            await game_service.commit_round(session_factory, game_id, "p1", "s1", "bear", [])

        async with session_factory() as session:
            row, _, states = await load_game(session, game_id)
        assert row.version == version
        assert states["p1"].current_commit.animal_id == "wolf"

    async def test_unknown_game(self, session_factory: Factory) -> None:
        with pytest.raises(GameNotFoundError):
            await game_service.commit_round(session_factory, "nope", "p1", "s1", "wolf", [])

    async def test_retries_after_lost_race(
        self,
        session_factory: Factory,
        catalog: list[CardDefinition],
        rules: GameRules,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A write that loses the version check is retried from a fresh load."""
        game_id = await new_game(session_factory, catalog, rules)
        await game_service.commit_round(session_factory, game_id, "p1", "s1", "wolf", [])

        real_save = game_service.save_game
        calls = []

        async def flaky_save(session, row, game, states):
            calls.append(game.id)
            if len(calls) == 1:
                raise StaleDataError("games row was updated concurrently")
            return await real_save(session, row, game, states)

        monkeypatch.setattr(game_service, "save_game", flaky_save)

        outcome, game = await game_service.commit_round(
            session_factory, game_id, "p2", "s1", "mouse", []
        )

        assert len(calls) == 2
        assert outcome.round_result is not None
        assert len(game.rounds) == 1
        async with session_factory() as session:
            _, stored, _ = await load_game(session, game_id)
        assert len(stored.rounds) == 1

    async def test_gives_up_after_attempts(
        self,
        session_factory: Factory,
        catalog: list[CardDefinition],
        rules: GameRules,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Persistent conflicts surface after the configured attempts."""
        game_id = await new_game(session_factory, catalog, rules)

        async def always_stale(session, row, game, states):
            raise StaleDataError("games row was updated concurrently")

        monkeypatch.setattr(game_service, "save_game", always_stale)

        with pytest.raises(StaleDataError):
            await game_service.commit_round(
                session_factory, game_id, "p1", "s1", "wolf", [], attempts=2
            )

        async with session_factory() as session:
            _, _, states = await load_game(session, game_id)
        assert states["p1"].has_committed is False


class TestFinishedGames:
    async def test_ranked_game_updates_ratings(
        self, session_factory: Factory, catalog: list[CardDefinition]
    ) -> None:
        """Finishing a ranked game rates both players and records the result."""
        rules = GameRules(starting_animal_hand=3, starting_equipment_hand=2, max_rounds=1)
        game_id = await new_game(session_factory, catalog, rules)

        outcome, game = await play_round(session_factory, game_id, "wolf", "mouse")

        assert outcome.game_finished is True
        assert game.elo_changes["p1"].new_elo == 1520
        assert game.elo_changes["p2"].new_elo == 1480
        async with session_factory() as session:
            winner = await get_rating(session, "p1")
            loser = await get_rating(session, "p2")
        assert (winner.elo, winner.wins, winner.games_played) == (1520, 1, 1)
        assert (loser.elo, loser.losses) == (1480, 1)

    async def test_unranked_game_keeps_ratings(
        self, session_factory: Factory, catalog: list[CardDefinition]
    ) -> None:
        """Unranked games update the record but not the rating."""
        rules = GameRules(starting_animal_hand=3, starting_equipment_hand=2, max_rounds=1)
        game_id = await new_game(session_factory, catalog, rules, ranked=False)

        _, game = await play_round(session_factory, game_id, "wolf", "mouse")

        assert game.elo_changes == {}
        async with session_factory() as session:
            rating = await get_rating(session, "p1")
        assert rating.elo == 1500
        assert rating.wins == 1

    async def test_surrender(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """Surrender is stored and cannot be repeated."""
        game_id = await new_game(session_factory, catalog, rules)

        game = await game_service.surrender(session_factory, game_id, "p1")

        assert game.winner == "p2"
        assert game.end_reason == GameEndReason.SURRENDER
        with pytest.raises(GameNotActiveError):
            await game_service.surrender(session_factory, game_id, "p2")
        with pytest.raises(GameNotActiveError):
            await game_service.commit_round(session_factory, game_id, "p2", "s1", "wolf", [])

    async def test_surrender_retries_after_lost_race(
        self,
        session_factory: Factory,
        catalog: list[CardDefinition],
        rules: GameRules,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A surrender that loses the version check is retried from a fresh load."""
        game_id = await new_game(session_factory, catalog, rules)

        real_save = game_service.save_game
        calls = []

        async def flaky_save(session, row, game, states):
            calls.append(game.id)
            if len(calls) == 1:
                raise StaleDataError("games row was updated concurrently")
            return await real_save(session, row, game, states)

        monkeypatch.setattr(game_service, "save_game", flaky_save)

        game = await game_service.surrender(session_factory, game_id, "p1")

        assert len(calls) == 2
        assert game.winner == "p2"
        async with session_factory() as session:
            _, stored, _ = await load_game(session, game_id)
            loser = await get_rating(session, "p1")
        assert stored.end_reason == GameEndReason.SURRENDER
        assert (loser.games_played, loser.losses) == (1, 1)

    async def test_surrender_gives_up_after_attempts(
        self,
        session_factory: Factory,
        catalog: list[CardDefinition],
        rules: GameRules,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        game_id = await new_game(session_factory, catalog, rules)

        async def always_stale(session, row, game, states):
            raise StaleDataError("games row was updated concurrently")

        monkeypatch.setattr(game_service, "save_game", always_stale)

        with pytest.raises(StaleDataError):
            await game_service.surrender(session_factory, game_id, "p1", attempts=2)

        async with session_factory() as session:
            _, stored, _ = await load_game(session, game_id)
            assert await get_rating(session, "p1") is None
        assert not stored.is_finished

    async def test_player_state_access(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        game_id = await new_game(session_factory, catalog, rules)

        async with session_factory() as session:
            state = await game_service.get_player_state(session, game_id, "p1")
            assert sorted(state.animal_hand) == ["bear", "mouse", "wolf"]
            with pytest.raises(NotAPlayerError):
                await game_service.get_player_state(session, game_id, "p9")


class TestAsyncGames:
    async def test_no_snapshot_available(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        async with session_factory() as session:
            with pytest.raises(NoSnapshotAvailableError):
                await game_service.create_async_game(session, "p1", catalog, rules)

    async def test_full_async_game(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """Finishing an async game rates the snapshot and records the player."""
        snapshot_id = await seed_mouse_bot(session_factory, rules)
        async with session_factory() as session:
            game = await game_service.create_async_game(session, "p1", catalog, rules)
            await session.commit()
        assert game.snapshot_id == snapshot_id

        for _ in range(rules.max_rounds):
            outcome, game = await game_service.commit_round(
                session_factory, game.id, "p1", "s1", "wolf", []
            )

        assert outcome.game_finished
        assert game.winner == "p1"
        assert game.elo_changes["p1"].new_elo == 1520
        assert game.elo_changes[f"snapshot:{snapshot_id}"].new_elo == 1490
        async with session_factory() as session:
            bot = await get_snapshot(session, snapshot_id)
            snapshots = await list_snapshots(session)
        assert (bot.elo, bot.games_played, bot.losses) == (1490, 1, 1)
        recorded = [s for s in snapshots if s.source_player_id == "p1"]
        assert len(recorded) == 1
        assert recorded[0].elo == 1520
        assert recorded[0].round_count == rules.max_rounds

    async def test_surrendered_async_game_records_no_snapshot(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """An incomplete history is not recorded as a new opponent."""
        await seed_mouse_bot(session_factory, rules)
        async with session_factory() as session:
            game = await game_service.create_async_game(session, "p1", catalog, rules)
            await session.commit()

        await game_service.surrender(session_factory, game.id, "p1")

        async with session_factory() as session:
            snapshots = await get_snapshots(session)
        assert [s.source_player_id for s in snapshots if not s.is_bot] == []
        assert snapshots[0].wins == 1

    async def test_snapshot_update_failure_is_swallowed(
        self,
        session_factory: Factory,
        catalog: list[CardDefinition],
        rules: GameRules,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failing best-effort write never undoes the finished game."""
        await seed_mouse_bot(session_factory, rules)
        async with session_factory() as session:
            game = await game_service.create_async_game(session, "p1", catalog, rules)
            await session.commit()

        async def broken_get_snapshot(session, snapshot_id, for_update=False):
            raise SQLAlchemyError("snapshot table unavailable")

        monkeypatch.setattr(rating_service, "get_snapshot", broken_get_snapshot)

        for _ in range(rules.max_rounds):
            outcome, _ = await game_service.commit_round(
                session_factory, game.id, "p1", "s1", "wolf", []
            )

        assert outcome.game_finished
        async with session_factory() as session:
            _, stored, _ = await load_game(session, game.id)
        assert stored.is_finished

    async def test_deleted_snapshot_does_not_break_game(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """A running game keeps its own copy of the recorded commits."""
        snapshot_id = await seed_mouse_bot(session_factory, rules)
        async with session_factory() as session:
            game = await game_service.create_async_game(session, "p1", catalog, rules)
            await remove_snapshot(session, snapshot_id)
            await session.commit()

        outcome, _ = await game_service.commit_round(
            session_factory, game.id, "p1", "s1", "wolf", []
        )

        assert outcome.round_result is not None

    async def test_overlapping_games_each_rate_the_snapshot(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """Two games against one snapshot both count towards its rating."""
        snapshot_id = await seed_mouse_bot(session_factory, rules)
        async with session_factory() as session:
            first = await game_service.create_async_game(session, "p1", catalog, rules)
            second = await game_service.create_async_game(session, "p2", catalog, rules)
            await session.commit()

        for game_id, player_id in [(first.id, "p1"), (second.id, "p2")]:
            for _ in range(rules.max_rounds):
                await game_service.commit_round(
                    session_factory, game_id, player_id, "s1", "wolf", []
                )

        async with session_factory() as session:
            bot = await get_snapshot(session, snapshot_id)
        # 1500 -> 1490 against p1, then 1490 -> 1480 against p2 (still at 1500)
        assert (bot.games_played, bot.losses) == (2, 2)
        assert bot.elo == 1480

    async def test_unranked_game_keeps_snapshot_rating(
        self, session_factory: Factory, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """Unranked games update the snapshot's record only."""
        snapshot_id = await seed_mouse_bot(session_factory, rules)
        async with session_factory() as session:
            game = await game_service.create_async_game(
                session, "p1", catalog, rules, ranked=False
            )
            await session.commit()

        for _ in range(rules.max_rounds):
            await game_service.commit_round(session_factory, game.id, "p1", "s1", "wolf", [])

        async with session_factory() as session:
            bot = await get_snapshot(session, snapshot_id)
        assert (bot.elo, bot.losses) == (1500, 1)

    async def test_unexpected_recording_failure_is_swallowed(
        self,
        session_factory: Factory,
        catalog: list[CardDefinition],
        rules: GameRules,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Any error while recording the player as an opponent leaves the game finished."""
        await seed_mouse_bot(session_factory, rules)
        async with session_factory() as session:
            game = await game_service.create_async_game(session, "p1", catalog, rules)
            await session.commit()

        def broken_build(*_args, **_kwargs):
            raise ValueError("commit history could not be read")

        monkeypatch.setattr(snapshot_service, "build_snapshot_from_game", broken_build)

        for _ in range(rules.max_rounds):
            outcome, _ = await game_service.commit_round(
                session_factory, game.id, "p1", "s1", "wolf", []
            )

        assert outcome.game_finished
        async with session_factory() as session:
            snapshots = await get_snapshots(session)
        assert [s.source_player_id for s in snapshots if not s.is_bot] == []
        assert snapshots[0].losses == 1


class TestSeedSnapshot:
    async def test_wrong_round_count_rejected(
        self, session: AsyncSession, rules: GameRules
    ) -> None:
        with pytest.raises(InvalidInputError):
            await seed_bot_snapshot(session, "Bot", 1500, [SnapshotCommit("s1", "wolf", ())], rules)

    async def test_records_active_catalog(
        self, session: AsyncSession, catalog: list[CardDefinition], rules: GameRules
    ) -> None:
        """The active catalog's card IDs are stored with the snapshot."""
        snapshot = await seed_bot_snapshot(
            session, "Bot", 1500, [SnapshotCommit("s1", "wolf", ())] * 3, rules, catalog
        )

        assert "retired" not in snapshot.active_card_ids
        assert "claws" in snapshot.active_card_ids
        assert snapshot.source_player_id.startswith("bot:")
