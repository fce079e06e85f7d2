"""Tests for pathfortune.store — SQLite tables and transaction isolation."""

import sqlite3

import pytest

from pathfortune.models import PlayerStats, TournamentStatus
from pathfortune.store import LedgerStore


@pytest.fixture
def store():
    """Fresh in-memory store for each test."""
    s = LedgerStore(":memory:")
    yield s
    s.close()


def _insert_tournament(store: LedgerStore, tid: int = 1, pool: int = 10_000_000, target: int = 20_000_000):
    store.insert_tournament(
        tid,
        creator="ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5",
        min_entry_price=2_000_000,
        pool_contribution=pool,
        target_pool=target,
        duration=300,
        created_at=1,
    )


class TestInitialState:
    def test_contract_state_starts_empty(self, store):
        stats = store.get_contract_stats()
        assert stats.next_tournament_id == 1
        assert stats.treasury_balance == 0
        assert stats.total_burned == 0
        assert stats.contract_balance == 0

    def test_block_height_starts_at_zero(self, store):
        assert store.get_block_height() == 0

    def test_missing_records_are_none(self, store):
        assert store.get_tournament(1) is None
        assert store.get_participant(1, "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG") is None
        assert store.get_game_score(1, "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG", 1) is None
        assert store.get_player_stats("ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG") is None

    def test_unknown_account_has_zero_balance(self, store):
        assert store.get_balance("nobody") == 0

    def test_creates_missing_parent_dirs(self, tmp_path):
        path = tmp_path / "fresh" / "nested" / "ledger.db"
        s = LedgerStore(str(path))
        assert path.parent.is_dir()
        assert s.get_block_height() == 0
        s.close()

    def test_expands_home_for_parent_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        s = LedgerStore("~/.pathfortune/ledger.db")
        assert (tmp_path / ".pathfortune").is_dir()
        assert s.path == str(tmp_path / ".pathfortune" / "ledger.db")
        s.close()

    def test_reopening_file_keeps_state(self, tmp_path):
        path = str(tmp_path / "ledger.db")
        s = LedgerStore(path)
        with s.transaction():
            s.set_balance("alice", 42)
            s.update_contract_state(next_tournament_id=7)
        s.close()

        s = LedgerStore(path)
        assert s.get_balance("alice") == 42
        assert s.get_contract_stats().next_tournament_id == 7
        s.close()


class TestTransactions:
    def test_write_outside_transaction_rejected(self, store):
        with pytest.raises(RuntimeError):
            store.set_balance("alice", 10)

    def test_commit_persists(self, store):
        with store.transaction():
            store.set_balance("alice", 10)
        assert store.get_balance("alice") == 10

    def test_exception_rolls_back_everything(self, store):
        with pytest.raises(ZeroDivisionError):
            with store.transaction():
                store.set_balance("alice", 10)
                _insert_tournament(store)
                store.update_contract_state(next_tournament_id=2)
                1 / 0

        assert store.get_balance("alice") == 0
        assert store.get_tournament(1) is None
        assert store.get_contract_stats().next_tournament_id == 1

    def test_nested_transaction_rejected(self, store):
        with store.transaction():
            with pytest.raises(RuntimeError):
                with store.transaction():
                    pass

    def test_store_usable_after_rollback(self, store):
        with pytest.raises(ValueError):
            with store.transaction():
                raise ValueError("boom")
        with store.transaction():
            store.set_balance("alice", 5)
        assert store.get_balance("alice") == 5

    def test_negative_balance_violates_constraint(self, store):
        with pytest.raises(sqlite3.IntegrityError):
            with store.transaction():
                store.set_balance("alice", -1)


class TestTournaments:
    def test_insert_and_read_back(self, store):
        with store.transaction():
            _insert_tournament(store)
        t = store.get_tournament(1)
        assert t.status is TournamentStatus.PENDING
        assert t.current_pool == 10_000_000
        assert t.participant_count == 0
        assert t.settled is False
        assert t.start_tick is None
        assert t.end_tick is None

    def test_update_known_columns(self, store):
        with store.transaction():
            _insert_tournament(store)
            store.update_tournament(1, status=TournamentStatus.ACTIVE, start_tick=5, end_tick=305)
        t = store.get_tournament(1)
        assert t.status is TournamentStatus.ACTIVE
        assert (t.start_tick, t.end_tick) == (5, 305)

    def test_update_rejects_unowned_columns(self, store):
        with store.transaction():
            _insert_tournament(store)
            with pytest.raises(ValueError):
                store.update_tournament(1, creator="someone-else")

    def test_pool_above_target_violates_constraint(self, store):
        with pytest.raises(sqlite3.IntegrityError):
            with store.transaction():
                _insert_tournament(store)
                store.update_tournament(1, current_pool=20_000_001)

    def test_list_and_count_by_status(self, store):
        with store.transaction():
            _insert_tournament(store, 1)
            _insert_tournament(store, 2)
            store.update_tournament(2, status=TournamentStatus.ACTIVE)
        assert [t.id for t in store.list_tournaments()] == [1, 2]
        assert [t.id for t in store.list_tournaments(TournamentStatus.ACTIVE)] == [2]
        assert store.count_by_status(TournamentStatus.PENDING) == 1
        assert store.tournament_count() == 2


class TestParticipantsAndScores:
    def test_duplicate_participant_rejected_by_key(self, store):
        with pytest.raises(sqlite3.IntegrityError):
            with store.transaction():
                _insert_tournament(store)
                store.insert_participant(1, "alice", entry_amount=2_000_000, entry_tick=1)
                store.insert_participant(1, "alice", entry_amount=2_000_000, entry_tick=2)

    def test_standings_order(self, store):
        with store.transaction():
            _insert_tournament(store)
            store.insert_participant(1, "alice", entry_amount=2_000_000, entry_tick=3)
            store.insert_participant(1, "bob", entry_amount=2_000_000, entry_tick=1)
            store.insert_participant(1, "carol", entry_amount=2_000_000, entry_tick=2)
            store.update_participant(1, "alice", best_score=500)
            store.update_participant(1, "bob", best_score=100)
            store.update_participant(1, "carol", best_score=500)
        # carol ties alice on score but entered earlier
        assert [p.address for p in store.list_participants(1)] == ["carol", "alice", "bob"]

    def test_score_count_tracks_sequence(self, store):
        with store.transaction():
            _insert_tournament(store)
            store.insert_game_score(1, "alice", 1, 100, submitted_at=5)
            store.insert_game_score(1, "alice", 2, 300, submitted_at=6)
        assert store.score_count(1, "alice") == 2
        assert store.score_count(1, "bob") == 0
        assert store.get_game_score(1, "alice", 2).score == 300

    def test_put_player_stats_upserts(self, store):
        with store.transaction():
            store.put_player_stats(PlayerStats(address="alice", tournaments_played=1))
        with store.transaction():
            store.put_player_stats(PlayerStats(address="alice", tournaments_played=2, best_score=9))
        stats = store.get_player_stats("alice")
        assert stats.tournaments_played == 2
        assert stats.best_score == 9
