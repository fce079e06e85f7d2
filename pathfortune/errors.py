"""
pathfortune/errors.py - Ledger error taxonomy.

Every rejected call raises a LedgerError subclass. Codes match the error
constants of the deployed PathFortune contract so clients can keep a single
error table for both backends.
"""


class LedgerError(Exception):
    """Base class for precondition failures. Never partially applied."""

    code: int = 0
    name: str = "LedgerError"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.name)
        self.message = message or self.name

    def to_dict(self) -> dict:
        return {"error": self.name, "code": self.code, "message": self.message}


class InsufficientEntryAmount(LedgerError):
    """Stake or min-entry price below the floor."""

    code = 100
    name = "InsufficientEntryAmount"


class InsufficientPoolContribution(LedgerError):
    code = 101
    name = "InsufficientPoolContribution"


class TournamentNotFound(LedgerError):
    code = 102
    name = "TournamentNotFound"


class InvalidDuration(LedgerError):
    code = 103
    name = "InvalidDuration"


class InvalidTargetPool(LedgerError):
    """Target below the global floor or below the creator's contribution."""

    code = 104
    name = "InvalidTargetPool"


class AlreadyParticipated(LedgerError):
    code = 105
    name = "AlreadyParticipated"


class InvalidWinners(LedgerError):
    """Empty, duplicated, or non-participant entries in a winner list."""

    code = 106
    name = "InvalidWinners"


class Unauthorized(LedgerError):
    code = 108
    name = "Unauthorized"


class TournamentNotEnded(LedgerError):
    """Action invoked outside the tournament state it depends on."""

    code = 109
    name = "TournamentNotEnded"


class EntryClosed(TournamentNotEnded):
    """Entry attempted on a tournament that is no longer pending."""

    name = "EntryClosed"


class TournamentNotActive(TournamentNotEnded):
    """Score submitted outside the active window."""

    name = "TournamentNotActive"


class PrizesAlreadyDistributed(LedgerError):
    code = 110
    name = "PrizesAlreadyDistributed"


class InvalidScore(LedgerError):
    code = 111
    name = "InvalidScore"


class PoolTargetReached(LedgerError):
    """Entry would push current_pool past target_pool."""

    code = 112
    name = "PoolTargetReached"


class InsufficientBalance(LedgerError):
    """External account cannot cover a debit."""

    code = 113
    name = "InsufficientBalance"


class ConfigError(ValueError):
    """Raised when [rules] overrides describe an impossible rule set."""
