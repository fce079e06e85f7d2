"""
pathfortune/queries.py - Read-only projections over the ledger.

Each query runs under ``store.snapshot()`` so it never sees a half-applied
mutation.
"""

from .models import (
    ContractStats,
    GameScore,
    Participant,
    PlayerStats,
    Tournament,
    TournamentRules,
    TournamentStatus,
)
from .store import LedgerStore


def get_tournament_constants(rules: TournamentRules) -> dict[str, int]:
    return rules.to_dict()


def get_contract_stats(store: LedgerStore) -> ContractStats:
    with store.snapshot():
        return store.get_contract_stats()


def get_tournament(store: LedgerStore, tournament_id: int) -> Tournament | None:
    with store.snapshot():
        return store.get_tournament(tournament_id)


def get_participant(store: LedgerStore, tournament_id: int, address: str) -> Participant | None:
    with store.snapshot():
        return store.get_participant(tournament_id, address)


def get_game_score(store: LedgerStore, tournament_id: int, address: str, seq: int) -> GameScore | None:
    with store.snapshot():
        return store.get_game_score(tournament_id, address, seq)


def get_player_stats(store: LedgerStore, address: str) -> PlayerStats | None:
    with store.snapshot():
        return store.get_player_stats(address)


def is_tournament_active(store: LedgerStore, tournament_id: int) -> bool:
    """True while a tournament accepts scores. Unknown ids are not active."""
    tournament = get_tournament(store, tournament_id)
    return tournament is not None and tournament.status is TournamentStatus.ACTIVE


def list_tournaments(
    store: LedgerStore, status: TournamentStatus | str | None = None
) -> list[Tournament]:
    with store.snapshot():
        return store.list_tournaments(TournamentStatus(status) if status else None)


def list_participants(store: LedgerStore, tournament_id: int) -> list[Participant]:
    """Standings: best score first, earlier entry breaking ties."""
    with store.snapshot():
        return store.list_participants(tournament_id)


def get_balance(store: LedgerStore, address: str) -> int:
    with store.snapshot():
        return store.get_balance(address)
