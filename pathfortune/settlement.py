"""
pathfortune/settlement.py - Prize distribution for ended tournaments.

The pool is split once, with floor division:

    winners_pool = pool * winners_pct // 100
    treasury_cut = pool * treasury_pct // 100
    burn_cut     = pool * burn_pct // 100
    share        = winners_pool // len(winners)

The percentages are those recorded on the tournament at creation, not the
ledger's current rules.

Rounding dust (whatever the floors leave behind, at the pool level and between
winners) stays in the held balance. It is not tracked or redistributed.

The winner list is chosen by the caller; this module only checks it and pays.
``distribute_prizes`` expects an open ``store.transaction()``.
"""

import logging
from dataclasses import asdict, dataclass, replace

from .accounts import credit
from .amounts import checked_add, checked_sub, percent_of
from .errors import (
    InvalidWinners,
    PrizesAlreadyDistributed,
    TournamentNotEnded,
    Unauthorized,
)
from .lifecycle import get_existing
from .models import PlayerStats, TournamentRules, TournamentStatus
from .store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrizeSplit:
    """How one pool divides. Pure arithmetic, no state."""

    pool: int
    winners_pool: int
    treasury_cut: int
    burn_cut: int
    winner_count: int
    share: int

    @property
    def paid_to_winners(self) -> int:
        return self.share * self.winner_count

    @property
    def dust(self) -> int:
        """Value that stays held: pool-level plus per-winner rounding."""
        return self.pool - self.paid_to_winners - self.treasury_cut - self.burn_cut

    def to_dict(self) -> dict:
        data = asdict(self)
        data["dust"] = self.dust
        return data


def compute_split(pool: int, winner_count: int, rules: TournamentRules) -> PrizeSplit:
    if winner_count <= 0:
        raise InvalidWinners("at least one winner is required")
    winners_pool = percent_of(pool, rules.winners_pct)
    return PrizeSplit(
        pool=pool,
        winners_pool=winners_pool,
        treasury_cut=percent_of(pool, rules.treasury_pct),
        burn_cut=percent_of(pool, rules.burn_pct),
        winner_count=winner_count,
        share=winners_pool // winner_count,
    )


def distribute_prizes(
    store: LedgerStore,
    rules: TournamentRules,
    authority: str | None,
    tournament_id: int,
    caller: str,
    winners: list[str],
) -> PrizeSplit:
    """Settle an ended tournament exactly once."""
    if authority is None or caller != authority:
        raise Unauthorized(f"{caller} is not the settlement authority")

    tournament = get_existing(store, tournament_id)
    if tournament.status is not TournamentStatus.ENDED:
        raise TournamentNotEnded(
            f"tournament {tournament_id} is {tournament.status.value}, not ended"
        )
    if tournament.settled:
        raise PrizesAlreadyDistributed(f"tournament {tournament_id} already settled")

    winners = list(winners)
    if len(set(winners)) != len(winners):
        raise InvalidWinners("winner list contains duplicates")
    for address in winners:
        if store.get_participant(tournament_id, address) is None:
            raise InvalidWinners(f"{address} did not enter tournament {tournament_id}")

    terms = replace(
        rules,
        winners_pct=tournament.winners_pct,
        treasury_pct=tournament.treasury_pct,
        burn_pct=tournament.burn_pct,
    )
    split = compute_split(tournament.current_pool, len(winners), terms)

    stats = store.get_contract_stats()
    contract_balance = checked_sub(
        stats.contract_balance, split.paid_to_winners + split.burn_cut
    )
    treasury_balance = checked_add(stats.treasury_balance, split.treasury_cut)
    total_burned = checked_add(stats.total_burned, split.burn_cut)

    for rank, address in enumerate(winners, start=1):
        credit(store, address, split.share)
        player = store.get_player_stats(address) or PlayerStats(address=address)
        player.total_winnings = checked_add(player.total_winnings, split.share)
        player.tournaments_won += 1
        store.put_player_stats(player)
        store.update_participant(tournament_id, address, final_rank=rank)

    store.update_contract_state(
        treasury_balance=treasury_balance,
        total_burned=total_burned,
        contract_balance=contract_balance,
    )
    store.update_tournament(tournament_id, settled=1)

    logger.info(
        f"Tournament {tournament_id} settled: {split.share} x {split.winner_count} winners, "
        f"treasury {split.treasury_cut}, burned {split.burn_cut}, dust {split.dust}"
    )
    return split
