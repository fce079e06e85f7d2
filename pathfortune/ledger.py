"""
pathfortune/ledger.py - The public face of the tournament ledger.

Ledger binds a store, a rule set and the settlement authority, and runs every
mutating entry point as one store transaction:

    ledger = Ledger(LedgerStore(":memory:"), authority="SP...DEPLOYER")
    ledger.fund("SP...ALICE", 50_000_000)
    tid = ledger.create_tournament(2_000_000, 10_000_000, 20_000_000, 300,
                                   sender="SP...ALICE")

The acting address is always the keyword-only ``sender``. Time is a block
height ("tick") kept in the store; calls may pass ``tick`` to move it forward,
otherwise they run at the current height.
"""

import logging
from typing import Callable, TypeVar

from . import accounts, entry, lifecycle, queries, settlement
from .amounts import checked_add, require_uint
from .errors import LedgerError
from .models import (
    ContractStats,
    GameScore,
    Participant,
    PlayerStats,
    Tournament,
    TournamentRules,
    TournamentStatus,
)
from .settlement import PrizeSplit
from .store import LedgerStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Ledger:
    """Serialized, all-or-nothing access to one LedgerStore."""

    def __init__(
        self,
        store: LedgerStore,
        rules: TournamentRules | None = None,
        authority: str | None = None,
    ):
        self.store = store
        self.rules = rules or TournamentRules()
        self.authority = authority

    @classmethod
    def from_config(cls, config) -> "Ledger":
        """Build a ledger from a PathfortuneConfig (see config.py)."""
        return cls(
            LedgerStore(config.ledger.db_path),
            rules=config.rules,
            authority=config.ledger.authority,
        )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _execute(self, action: str, tick: int | None, op: Callable[[int], T]) -> T:
        try:
            with self.store.transaction():
                now = self._advance_to(tick)
                return op(now)
        except LedgerError as e:
            logger.debug(f"{action} rejected: {e.name} ({e.message})")
            raise

    def _advance_to(self, tick: int | None) -> int:
        height = self.store.get_block_height()
        if tick is None:
            return height
        require_uint(tick, "tick")
        if tick < height:
            raise ValueError(f"tick {tick} is behind ledger height {height}")
        if tick > height:
            self.store.update_contract_state(block_height=tick)
        return tick

    @property
    def height(self) -> int:
        with self.store.snapshot():
            return self.store.get_block_height()

    def mine(self, blocks: int = 1) -> int:
        """Advance the ledger clock by ``blocks`` ticks. Returns the new height."""
        require_uint(blocks, "blocks")
        with self.store.transaction():
            height = checked_add(self.store.get_block_height(), blocks)
            self.store.update_contract_state(block_height=height)
        return height

    def fund(self, address: str, amount: int) -> int:
        with self.store.transaction():
            return accounts.fund(self.store, address, amount)

    # ------------------------------------------------------------------
    # Mutating entry points
    # ------------------------------------------------------------------

    def create_tournament(
        self,
        min_entry_price: int,
        pool_contribution: int,
        target_pool: int,
        duration: int,
        *,
        sender: str,
        tick: int | None = None,
    ) -> int:
        return self._execute(
            "create-tournament",
            tick,
            lambda now: lifecycle.create_tournament(
                self.store, self.rules, sender,
                min_entry_price, pool_contribution, target_pool, duration, now,
            ),
        )

    def enter_tournament(
        self, tournament_id: int, amount: int, *, sender: str, tick: int | None = None
    ) -> Tournament:
        return self._execute(
            "enter-tournament",
            tick,
            lambda now: entry.enter_tournament(self.store, tournament_id, sender, amount, now),
        )

    def submit_score(
        self, tournament_id: int, score: int, *, sender: str, tick: int | None = None
    ) -> GameScore:
        return self._execute(
            "submit-score",
            tick,
            lambda now: entry.submit_score(self.store, tournament_id, sender, score, now),
        )

    def end_tournament(
        self, tournament_id: int, *, sender: str, tick: int | None = None
    ) -> Tournament:
        return self._execute(
            "end-tournament",
            tick,
            lambda now: lifecycle.end_tournament(self.store, tournament_id, sender, now),
        )

    def distribute_prizes(
        self, tournament_id: int, winners: list[str], *, sender: str, tick: int | None = None
    ) -> PrizeSplit:
        return self._execute(
            "distribute-prizes",
            tick,
            lambda now: settlement.distribute_prizes(
                self.store, self.rules, self.authority, tournament_id, sender, winners,
            ),
        )

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    def get_tournament_constants(self) -> dict[str, int]:
        return queries.get_tournament_constants(self.rules)

    def get_contract_stats(self) -> ContractStats:
        return queries.get_contract_stats(self.store)

    def get_tournament(self, tournament_id: int) -> Tournament | None:
        return queries.get_tournament(self.store, tournament_id)

    def get_participant(self, tournament_id: int, address: str) -> Participant | None:
        return queries.get_participant(self.store, tournament_id, address)

    def get_game_score(self, tournament_id: int, address: str, seq: int) -> GameScore | None:
        return queries.get_game_score(self.store, tournament_id, address, seq)

    def get_player_stats(self, address: str) -> PlayerStats | None:
        return queries.get_player_stats(self.store, address)

    def is_tournament_active(self, tournament_id: int) -> bool:
        return queries.is_tournament_active(self.store, tournament_id)

    def list_tournaments(self, status: TournamentStatus | str | None = None) -> list[Tournament]:
        return queries.list_tournaments(self.store, status)

    def list_participants(self, tournament_id: int) -> list[Participant]:
        return queries.list_participants(self.store, tournament_id)

    def get_balance(self, address: str) -> int:
        return queries.get_balance(self.store, address)
