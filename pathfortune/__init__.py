"""
PathFortune - pooled-entry tournament ledger

Creators seed a pool, players stake until it fills, the fill starts the
tournament, scores flow in while it runs, and the settlement authority splits
the pool 80/10/10 between winners, treasury and burn.
"""

__version__ = "0.1.0"

from .errors import (
    LedgerError,
    InsufficientEntryAmount,
    InsufficientPoolContribution,
    TournamentNotFound,
    InvalidDuration,
    InvalidTargetPool,
    AlreadyParticipated,
    InvalidWinners,
    Unauthorized,
    TournamentNotEnded,
    EntryClosed,
    TournamentNotActive,
    PrizesAlreadyDistributed,
    InvalidScore,
    PoolTargetReached,
    InsufficientBalance,
    ConfigError,
)

from .models import (
    TournamentStatus,
    TournamentRules,
    Tournament,
    Participant,
    GameScore,
    PlayerStats,
    ContractStats,
)

from .store import LedgerStore
from .settlement import PrizeSplit, compute_split
from .ledger import Ledger

__all__ = [
    # Version
    "__version__",
    # Errors
    "LedgerError",
    "InsufficientEntryAmount",
    "InsufficientPoolContribution",
    "TournamentNotFound",
    "InvalidDuration",
    "InvalidTargetPool",
    "AlreadyParticipated",
    "InvalidWinners",
    "Unauthorized",
    "TournamentNotEnded",
    "EntryClosed",
    "TournamentNotActive",
    "PrizesAlreadyDistributed",
    "InvalidScore",
    "PoolTargetReached",
    "InsufficientBalance",
    "ConfigError",
    # Records
    "TournamentStatus",
    "TournamentRules",
    "Tournament",
    "Participant",
    "GameScore",
    "PlayerStats",
    "ContractStats",
    # Ledger
    "LedgerStore",
    "PrizeSplit",
    "compute_split",
    "Ledger",
]
