"""
pathfortune/models.py - Ledger records and tournament rules.

Plain dataclasses mirroring the store's tables. Records are snapshots: mutating
one does nothing to the store, only the operations in lifecycle/entry/settlement
write.
"""

import sqlite3
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any

from .amounts import MICRO
from .errors import ConfigError

# ============================================================================
# Constants
# ============================================================================

MIN_ENTRY_PRICE = 1 * MICRO
MIN_POOL_CONTRIBUTION = 5 * MICRO
MIN_TARGET_POOL = 10 * MICRO
MIN_DURATION = 144  # ~1 day of blocks
MAX_DURATION = 1008  # ~1 week of blocks
WINNERS_PCT = 80
TREASURY_PCT = 10
BURN_PCT = 10


class TournamentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class TournamentRules:
    """The global constants a ledger enforces. Defaults are production values."""

    min_entry_price: int = MIN_ENTRY_PRICE
    min_pool_contribution: int = MIN_POOL_CONTRIBUTION
    min_target_pool: int = MIN_TARGET_POOL
    min_duration: int = MIN_DURATION
    max_duration: int = MAX_DURATION
    winners_pct: int = WINNERS_PCT
    treasury_pct: int = TREASURY_PCT
    burn_pct: int = BURN_PCT

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{f.name} must be a non-negative integer, got {value!r}")
        if self.winners_pct + self.treasury_pct + self.burn_pct != 100:
            raise ConfigError(
                "winners_pct + treasury_pct + burn_pct must equal 100, got "
                f"{self.winners_pct + self.treasury_pct + self.burn_pct}"
            )
        if self.min_duration > self.max_duration:
            raise ConfigError(
                f"min_duration ({self.min_duration}) exceeds max_duration ({self.max_duration})"
            )

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


# ============================================================================
# Records
# ============================================================================


@dataclass
class Tournament:
    id: int
    creator: str
    min_entry_price: int
    pool_contribution: int
    target_pool: int
    duration: int
    start_tick: int | None
    end_tick: int | None
    current_pool: int
    participant_count: int
    status: TournamentStatus
    settled: bool
    created_at: int
    winners_pct: int = WINNERS_PCT
    treasury_pct: int = TREASURY_PCT
    burn_pct: int = BURN_PCT

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Tournament":
        data = dict(row)
        data["status"] = TournamentStatus(data["status"])
        data["settled"] = bool(data["settled"])
        return cls(**data)

    @property
    def is_active(self) -> bool:
        return self.status is TournamentStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class Participant:
    tournament_id: int
    address: str
    entry_amount: int
    entry_tick: int
    best_score: int
    games_played: int
    final_rank: int | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Participant":
        return cls(**dict(row))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GameScore:
    tournament_id: int
    address: str
    seq: int
    score: int
    submitted_at: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "GameScore":
        return cls(**dict(row))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PlayerStats:
    """Per-address totals across every tournament."""

    address: str
    tournaments_played: int = 0
    total_entry_fees: int = 0
    total_winnings: int = 0
    tournaments_won: int = 0
    best_score: int = 0

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "PlayerStats":
        return cls(**dict(row))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ContractStats:
    next_tournament_id: int
    treasury_balance: int
    total_burned: int
    contract_balance: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
