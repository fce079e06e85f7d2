"""
pathfortune/lifecycle.py - Tournament creation and ending.

The pending -> active transition lives in entry.py (it happens inside the entry
that fills the pool); this module owns creation and active -> ended.

Both functions expect an open ``store.transaction()``.
"""

import logging

from .accounts import debit
from .amounts import checked_add, require_uint
from .errors import (
    InsufficientEntryAmount,
    InsufficientPoolContribution,
    InvalidDuration,
    InvalidTargetPool,
    TournamentNotEnded,
    TournamentNotFound,
)
from .models import Tournament, TournamentRules, TournamentStatus
from .store import LedgerStore

logger = logging.getLogger(__name__)


def validate_creation(
    rules: TournamentRules,
    min_entry_price: int,
    pool_contribution: int,
    target_pool: int,
    duration: int,
) -> None:
    """Check creation parameters in order; the first violated rule is raised."""
    if min_entry_price < rules.min_entry_price:
        raise InsufficientEntryAmount(
            f"min entry price {min_entry_price} below {rules.min_entry_price}"
        )
    if pool_contribution < rules.min_pool_contribution:
        raise InsufficientPoolContribution(
            f"pool contribution {pool_contribution} below {rules.min_pool_contribution}"
        )
    if target_pool < rules.min_target_pool:
        raise InvalidTargetPool(f"target pool {target_pool} below {rules.min_target_pool}")
    if target_pool < pool_contribution:
        raise InvalidTargetPool(
            f"target pool {target_pool} below creator contribution {pool_contribution}"
        )
    if not rules.min_duration <= duration <= rules.max_duration:
        raise InvalidDuration(
            f"duration {duration} outside [{rules.min_duration}, {rules.max_duration}]"
        )


def create_tournament(
    store: LedgerStore,
    rules: TournamentRules,
    creator: str,
    min_entry_price: int,
    pool_contribution: int,
    target_pool: int,
    duration: int,
    tick: int,
) -> int:
    """Fund and register a pending tournament. Returns its id."""
    require_uint(min_entry_price, "min_entry_price")
    require_uint(pool_contribution, "pool_contribution")
    require_uint(target_pool, "target_pool")
    require_uint(duration, "duration")

    validate_creation(rules, min_entry_price, pool_contribution, target_pool, duration)

    stats = store.get_contract_stats()
    contract_balance = checked_add(stats.contract_balance, pool_contribution)

    debit(store, creator, pool_contribution)

    tournament_id = stats.next_tournament_id
    store.insert_tournament(
        tournament_id,
        creator=creator,
        min_entry_price=min_entry_price,
        pool_contribution=pool_contribution,
        target_pool=target_pool,
        duration=duration,
        created_at=tick,
        winners_pct=rules.winners_pct,
        treasury_pct=rules.treasury_pct,
        burn_pct=rules.burn_pct,
    )
    store.update_contract_state(
        next_tournament_id=tournament_id + 1,
        contract_balance=contract_balance,
    )

    logger.info(
        f"Tournament {tournament_id} created by {creator}: "
        f"pool {pool_contribution}/{target_pool}, min entry {min_entry_price}, "
        f"{duration} ticks"
    )
    return tournament_id


def get_existing(store: LedgerStore, tournament_id: int) -> Tournament:
    tournament = store.get_tournament(tournament_id)
    if tournament is None:
        raise TournamentNotFound(f"tournament {tournament_id} does not exist")
    return tournament


def end_tournament(store: LedgerStore, tournament_id: int, caller: str, tick: int) -> Tournament:
    """Close an active tournament whose window has elapsed. Anyone may call."""
    tournament = get_existing(store, tournament_id)

    if tournament.status is not TournamentStatus.ACTIVE:
        raise TournamentNotEnded(
            f"tournament {tournament_id} is {tournament.status.value}, not active"
        )
    if tick < tournament.end_tick:
        raise TournamentNotEnded(
            f"tournament {tournament_id} runs until tick {tournament.end_tick} (now {tick})"
        )

    store.update_tournament(tournament_id, status=TournamentStatus.ENDED)
    tournament.status = TournamentStatus.ENDED

    logger.info(f"Tournament {tournament_id} ended at tick {tick} by {caller}")
    return tournament
