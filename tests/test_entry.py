"""Tests for staking into tournaments and submitting scores."""

import threading

import pytest

from pathfortune.errors import (
    AlreadyParticipated,
    EntryClosed,
    InsufficientBalance,
    InsufficientEntryAmount,
    InvalidScore,
    PoolTargetReached,
    TournamentNotActive,
    TournamentNotEnded,
    TournamentNotFound,
    Unauthorized,
)
from pathfortune.ledger import Ledger
from pathfortune.models import TournamentStatus
from pathfortune.store import LedgerStore

DEPLOYER = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
CREATOR = "ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5"
ALICE = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
BOB = "ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC"
CAROL = "ST2NEB84ASENDXKYGJPQW86YXQCEFEX2ZQPG87ND"


@pytest.fixture
def ledger():
    lg = Ledger(LedgerStore(":memory:"), authority=DEPLOYER)
    for address in (CREATOR, ALICE, BOB, CAROL):
        lg.fund(address, 100_000_000)
    yield lg
    lg.store.close()


@pytest.fixture
def pending(ledger):
    """Tournament 1: min entry 2, pool 10, target 20, 300 ticks."""
    return ledger.create_tournament(
        2_000_000, 10_000_000, 20_000_000, 300, sender=CREATOR, tick=1
    )


@pytest.fixture
def active(ledger, pending):
    """Tournament 1 filled by ALICE and BOB at tick 10; runs until 310."""
    ledger.enter_tournament(pending, 5_000_000, sender=ALICE, tick=5)
    ledger.enter_tournament(pending, 5_000_000, sender=BOB, tick=10)
    return pending


class TestEnterTournament:
    def test_minimum_entry(self, ledger, pending):
        t = ledger.enter_tournament(pending, 2_000_000, sender=ALICE, tick=3)
        assert t.current_pool == 12_000_000
        assert t.participant_count == 1
        assert t.status is TournamentStatus.PENDING

        p = ledger.get_participant(pending, ALICE)
        assert p.entry_amount == 2_000_000
        assert p.entry_tick == 3
        assert p.best_score == 0
        assert p.games_played == 0
        assert p.final_rank is None

    def test_entry_moves_funds(self, ledger, pending):
        ledger.enter_tournament(pending, 3_000_000, sender=ALICE)
        assert ledger.get_balance(ALICE) == 97_000_000
        assert ledger.get_contract_stats().contract_balance == 13_000_000

    def test_entry_updates_player_stats(self, ledger, pending):
        ledger.enter_tournament(pending, 3_000_000, sender=ALICE)
        stats = ledger.get_player_stats(ALICE)
        assert stats.tournaments_played == 1
        assert stats.total_entry_fees == 3_000_000
        assert stats.total_winnings == 0

    def test_below_tournament_minimum(self, ledger, pending):
        with pytest.raises(InsufficientEntryAmount):
            ledger.enter_tournament(pending, 1_999_999, sender=ALICE)
        assert ledger.get_participant(pending, ALICE) is None

    def test_double_entry(self, ledger, pending):
        ledger.enter_tournament(pending, 2_000_000, sender=ALICE)
        with pytest.raises(AlreadyParticipated):
            ledger.enter_tournament(pending, 2_000_000, sender=ALICE)
        t = ledger.get_tournament(pending)
        assert t.current_pool == 12_000_000
        assert t.participant_count == 1

    def test_unknown_tournament(self, ledger):
        with pytest.raises(TournamentNotFound):
            ledger.enter_tournament(9, 2_000_000, sender=ALICE)

    def test_exact_fill_starts_tournament(self, ledger, pending):
        t = ledger.enter_tournament(pending, 10_000_000, sender=ALICE, tick=7)
        assert t.current_pool == 20_000_000
        assert t.status is TournamentStatus.ACTIVE
        assert t.start_tick == 7
        assert t.end_tick == 307
        assert ledger.is_tournament_active(pending) is True

    def test_fill_over_several_entries(self, ledger, pending):
        ledger.enter_tournament(pending, 4_000_000, sender=ALICE, tick=2)
        ledger.enter_tournament(pending, 4_000_000, sender=BOB, tick=3)
        assert ledger.get_tournament(pending).status is TournamentStatus.PENDING

        t = ledger.enter_tournament(pending, 2_000_000, sender=CAROL, tick=4)
        assert t.status is TournamentStatus.ACTIVE
        assert t.participant_count == 3
        assert t.start_tick == 4

    def test_overshoot_rejected(self, ledger, pending):
        ledger.enter_tournament(pending, 5_000_000, sender=ALICE)
        with pytest.raises(PoolTargetReached):
            ledger.enter_tournament(pending, 6_000_000, sender=BOB)

        t = ledger.get_tournament(pending)
        assert t.current_pool == 15_000_000
        assert t.status is TournamentStatus.PENDING
        assert ledger.get_balance(BOB) == 100_000_000

    def test_entry_after_start(self, ledger, active):
        with pytest.raises(EntryClosed) as exc_info:
            ledger.enter_tournament(active, 2_000_000, sender=CAROL)
        # Clients that only know the contract codes see TournamentNotEnded
        assert isinstance(exc_info.value, TournamentNotEnded)
        assert exc_info.value.code == 109

    def test_closed_check_precedes_amount_check(self, ledger, active):
        with pytest.raises(EntryClosed):
            ledger.enter_tournament(active, 1, sender=CAROL)

    def test_unfunded_entrant(self, ledger, pending):
        with pytest.raises(InsufficientBalance):
            ledger.enter_tournament(pending, 2_000_000, sender="ST-BROKE")
        t = ledger.get_tournament(pending)
        assert t.current_pool == 10_000_000
        assert t.participant_count == 0
        assert ledger.get_player_stats("ST-BROKE") is None

    def test_concurrent_entries_start_tournament_once(self, ledger):
        tid = ledger.create_tournament(
            1_000_000, 5_000_000, 10_000_000, 144, sender=CREATOR, tick=1
        )
        ledger.enter_tournament(tid, 4_000_000, sender=ALICE, tick=2)

        racers = [f"ST-RACER-{i:02d}" for i in range(20)]
        for address in racers:
            ledger.fund(address, 5_000_000)

        barrier = threading.Barrier(len(racers))
        results: dict[str, object] = {}

        def race(address: str):
            barrier.wait()
            try:
                results[address] = ledger.enter_tournament(tid, 1_000_000, sender=address)
            except (EntryClosed, PoolTargetReached) as e:
                results[address] = e

        threads = [threading.Thread(target=race, args=(a,)) for a in racers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(results) == len(racers)
        winners = [a for a, r in results.items() if not isinstance(r, Exception)]
        assert len(winners) == 1

        t = ledger.get_tournament(tid)
        assert t.status is TournamentStatus.ACTIVE
        assert t.current_pool == t.target_pool == 10_000_000
        assert t.participant_count == 2
        assert ledger.get_contract_stats().contract_balance == 10_000_000
        for address in racers:
            expected = 4_000_000 if address in winners else 5_000_000
            assert ledger.get_balance(address) == expected


class TestSubmitScore:
    def test_first_score(self, ledger, active):
        game = ledger.submit_score(active, 1500, sender=ALICE, tick=20)
        assert game.seq == 1
        assert game.score == 1500
        assert game.submitted_at == 20

        p = ledger.get_participant(active, ALICE)
        assert p.best_score == 1500
        assert p.games_played == 1

    def test_best_score_keeps_maximum(self, ledger, active):
        for score in (1500, 900, 2100, 1800):
            ledger.submit_score(active, score, sender=ALICE)
        p = ledger.get_participant(active, ALICE)
        assert p.best_score == 2100
        assert p.games_played == 4

    def test_every_game_is_recorded(self, ledger, active):
        ledger.submit_score(active, 100, sender=ALICE, tick=20)
        ledger.submit_score(active, 50, sender=ALICE, tick=21)
        assert ledger.get_game_score(active, ALICE, 1).score == 100
        second = ledger.get_game_score(active, ALICE, 2)
        assert second.score == 50
        assert second.submitted_at == 21
        assert ledger.get_game_score(active, ALICE, 3) is None

    def test_global_best_score(self, ledger, active):
        ledger.submit_score(active, 800, sender=ALICE)
        ledger.submit_score(active, 300, sender=ALICE)
        assert ledger.get_player_stats(ALICE).best_score == 800

    def test_non_participant(self, ledger, active):
        with pytest.raises(Unauthorized):
            ledger.submit_score(active, 100, sender=CAROL)

    @pytest.mark.parametrize("score", [0, -5])
    def test_non_positive_score(self, ledger, active, score):
        with pytest.raises(InvalidScore):
            ledger.submit_score(active, score, sender=ALICE)
        assert ledger.get_participant(active, ALICE).games_played == 0

    def test_pending_tournament(self, ledger, pending):
        ledger.enter_tournament(pending, 2_000_000, sender=ALICE)
        with pytest.raises(TournamentNotActive):
            ledger.submit_score(pending, 100, sender=ALICE)

    def test_state_check_precedes_participant_check(self, ledger, pending):
        with pytest.raises(TournamentNotActive):
            ledger.submit_score(pending, 100, sender=CAROL)

    def test_after_end(self, ledger, active):
        ledger.end_tournament(active, sender=ALICE, tick=310)
        with pytest.raises(TournamentNotActive):
            ledger.submit_score(active, 100, sender=ALICE)

    def test_scores_allowed_past_end_tick_until_ended(self, ledger, active):
        game = ledger.submit_score(active, 100, sender=ALICE, tick=400)
        assert game.seq == 1
