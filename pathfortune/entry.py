"""
pathfortune/entry.py - Staking into pending tournaments and scoring active ones.

Entry owns current_pool, participant_count and the pending -> active switch.
The switch happens in the same transaction as the entry that fills the pool,
so exactly one entry ever starts a tournament.

Both functions expect an open ``store.transaction()``.
"""

import logging

from .accounts import debit
from .amounts import checked_add, require_uint
from .errors import (
    AlreadyParticipated,
    EntryClosed,
    InsufficientEntryAmount,
    InvalidScore,
    PoolTargetReached,
    TournamentNotActive,
    Unauthorized,
)
from .lifecycle import get_existing
from .models import GameScore, Participant, PlayerStats, Tournament, TournamentStatus
from .store import LedgerStore

logger = logging.getLogger(__name__)


def enter_tournament(
    store: LedgerStore, tournament_id: int, entrant: str, amount: int, tick: int
) -> Tournament:
    """Stake ``amount`` into a pending tournament. Returns the updated tournament."""
    require_uint(amount)
    tournament = get_existing(store, tournament_id)

    if tournament.status is not TournamentStatus.PENDING:
        raise EntryClosed(f"tournament {tournament_id} is {tournament.status.value}")
    if amount < tournament.min_entry_price:
        raise InsufficientEntryAmount(
            f"entry {amount} below tournament minimum {tournament.min_entry_price}"
        )
    new_pool = tournament.current_pool + amount
    if new_pool > tournament.target_pool:
        raise PoolTargetReached(
            f"entry {amount} would take pool to {new_pool}, target is {tournament.target_pool}"
        )
    if store.get_participant(tournament_id, entrant) is not None:
        raise AlreadyParticipated(f"{entrant} already entered tournament {tournament_id}")

    stats = store.get_player_stats(entrant) or PlayerStats(address=entrant)
    stats.tournaments_played += 1
    stats.total_entry_fees = checked_add(stats.total_entry_fees, amount)
    contract_balance = checked_add(store.get_contract_stats().contract_balance, amount)

    debit(store, entrant, amount)
    store.insert_participant(tournament_id, entrant, entry_amount=amount, entry_tick=tick)
    store.put_player_stats(stats)
    store.update_contract_state(contract_balance=contract_balance)

    tournament.current_pool = new_pool
    tournament.participant_count += 1
    updates = {
        "current_pool": tournament.current_pool,
        "participant_count": tournament.participant_count,
    }

    if tournament.current_pool == tournament.target_pool:
        tournament.status = TournamentStatus.ACTIVE
        tournament.start_tick = tick
        tournament.end_tick = tick + tournament.duration
        updates.update(
            status=tournament.status,
            start_tick=tournament.start_tick,
            end_tick=tournament.end_tick,
        )

    store.update_tournament(tournament_id, **updates)

    logger.info(
        f"{entrant} entered tournament {tournament_id} with {amount} "
        f"(pool {tournament.current_pool}/{tournament.target_pool})"
    )
    if tournament.is_active:
        logger.info(
            f"Tournament {tournament_id} filled and started: ticks "
            f"{tournament.start_tick}-{tournament.end_tick}"
        )
    return tournament


def submit_score(
    store: LedgerStore, tournament_id: int, player: str, score: int, tick: int
) -> GameScore:
    """Log a game score for a participant of an active tournament."""
    tournament = get_existing(store, tournament_id)

    if tournament.status is not TournamentStatus.ACTIVE:
        raise TournamentNotActive(f"tournament {tournament_id} is {tournament.status.value}")

    participant: Participant | None = store.get_participant(tournament_id, player)
    if participant is None:
        raise Unauthorized(f"{player} is not a participant of tournament {tournament_id}")
    if isinstance(score, int) and not isinstance(score, bool) and score <= 0:
        raise InvalidScore(f"score must be positive, got {score}")
    require_uint(score, "score")

    seq = store.score_count(tournament_id, player) + 1
    store.insert_game_score(tournament_id, player, seq, score, submitted_at=tick)

    participant.games_played += 1
    participant.best_score = max(participant.best_score, score)
    store.update_participant(
        tournament_id,
        player,
        games_played=participant.games_played,
        best_score=participant.best_score,
    )

    stats = store.get_player_stats(player) or PlayerStats(address=player)
    if score > stats.best_score:
        stats.best_score = score
        store.put_player_stats(stats)

    logger.debug(f"{player} scored {score} in tournament {tournament_id} (game #{seq})")
    return GameScore(
        tournament_id=tournament_id, address=player, seq=seq, score=score, submitted_at=tick
    )
