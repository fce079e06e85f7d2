"""
pathfortune/store.py - SQLite storage for the tournament ledger.

All state goes through LedgerStore. One instance per process, backed by a
single SQLite file (or :memory: for tests). The store holds no policy: it reads
and writes rows, and hands out transactions.

Writes are only legal inside ``transaction()``. A transaction holds the store
lock for its whole read-validate-write cycle and either commits everything or
rolls everything back, so no caller ever observes half of another call.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .models import (
    BURN_PCT,
    TREASURY_PCT,
    WINNERS_PCT,
    ContractStats,
    GameScore,
    Participant,
    PlayerStats,
    Tournament,
    TournamentStatus,
)

logger = logging.getLogger(__name__)

_TOURNAMENT_COLUMNS = {
    "start_tick", "end_tick", "current_pool", "participant_count", "status", "settled",
}
_PARTICIPANT_COLUMNS = {"best_score", "games_played", "final_rank"}
_STATS_COLUMNS = {
    "tournaments_played", "total_entry_fees", "total_winnings", "tournaments_won", "best_score",
}
_CONTRACT_COLUMNS = {
    "next_tournament_id", "treasury_balance", "total_burned", "contract_balance", "block_height",
}


class LedgerStore:
    """Thin wrapper around SQLite for tournament ledger tables."""

    def __init__(self, path: str = "ledger.db"):
        if path != ":memory:":
            path = str(Path(path).expanduser())
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.path = path
        # isolation_level=None: we issue BEGIN/COMMIT ourselves
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._lock = threading.RLock()
        self._in_tx = False
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS tournaments (
                id INTEGER PRIMARY KEY,
                creator TEXT NOT NULL,
                min_entry_price INTEGER NOT NULL,
                pool_contribution INTEGER NOT NULL,
                target_pool INTEGER NOT NULL,
                duration INTEGER NOT NULL,
                start_tick INTEGER,
                end_tick INTEGER,
                current_pool INTEGER NOT NULL,
                participant_count INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'pending',
                settled INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                winners_pct INTEGER NOT NULL,
                treasury_pct INTEGER NOT NULL,
                burn_pct INTEGER NOT NULL,
                CHECK (current_pool <= target_pool)
            );

            CREATE TABLE IF NOT EXISTS participants (
                tournament_id INTEGER NOT NULL REFERENCES tournaments(id),
                address TEXT NOT NULL,
                entry_amount INTEGER NOT NULL,
                entry_tick INTEGER NOT NULL,
                best_score INTEGER NOT NULL DEFAULT 0,
                games_played INTEGER NOT NULL DEFAULT 0,
                final_rank INTEGER,
                PRIMARY KEY (tournament_id, address)
            );

            CREATE TABLE IF NOT EXISTS game_scores (
                tournament_id INTEGER NOT NULL,
                address TEXT NOT NULL,
                seq INTEGER NOT NULL,
                score INTEGER NOT NULL,
                submitted_at INTEGER NOT NULL,
                PRIMARY KEY (tournament_id, address, seq)
            );

            CREATE TABLE IF NOT EXISTS player_stats (
                address TEXT PRIMARY KEY,
                tournaments_played INTEGER NOT NULL DEFAULT 0,
                total_entry_fees INTEGER NOT NULL DEFAULT 0,
                total_winnings INTEGER NOT NULL DEFAULT 0,
                tournaments_won INTEGER NOT NULL DEFAULT 0,
                best_score INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS contract_state (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                next_tournament_id INTEGER NOT NULL DEFAULT 1,
                treasury_balance INTEGER NOT NULL DEFAULT 0,
                total_burned INTEGER NOT NULL DEFAULT 0,
                contract_balance INTEGER NOT NULL DEFAULT 0,
                block_height INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS accounts (
                address TEXT PRIMARY KEY,
                balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0)
            );

            INSERT OR IGNORE INTO contract_state (id) VALUES (1);
            """
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Isolation
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["LedgerStore"]:
        """One atomic unit of work. Any exception rolls back every write."""
        with self._lock:
            if self._in_tx:
                raise RuntimeError("nested ledger transactions are not supported")
            self._conn.execute("BEGIN IMMEDIATE")
            self._in_tx = True
            try:
                yield self
            except BaseException:
                self._conn.execute("ROLLBACK")
                logger.debug("Ledger transaction rolled back")
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._in_tx = False

    @contextmanager
    def snapshot(self) -> Iterator["LedgerStore"]:
        """Consistent read view: waits out any in-flight transaction."""
        with self._lock:
            yield self

    def _require_tx(self) -> None:
        if not self._in_tx:
            raise RuntimeError("ledger writes must run inside store.transaction()")

    def _fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _update(self, table: str, allowed: set[str], where: str, key: tuple, values: dict) -> None:
        self._require_tx()
        unknown = set(values) - allowed
        if unknown:
            raise ValueError(f"cannot update {table} columns: {sorted(unknown)}")
        if not values:
            return
        assignments = ", ".join(f"{col} = ?" for col in values)
        params = tuple(
            v.value if isinstance(v, TournamentStatus) else v for v in values.values()
        )
        self._conn.execute(f"UPDATE {table} SET {assignments} WHERE {where}", params + key)

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    def insert_tournament(
        self,
        tournament_id: int,
        creator: str,
        min_entry_price: int,
        pool_contribution: int,
        target_pool: int,
        duration: int,
        created_at: int,
        winners_pct: int = WINNERS_PCT,
        treasury_pct: int = TREASURY_PCT,
        burn_pct: int = BURN_PCT,
    ) -> None:
        self._require_tx()
        self._conn.execute(
            "INSERT INTO tournaments (id, creator, min_entry_price, pool_contribution, "
            "target_pool, duration, current_pool, participant_count, status, settled, created_at, "
            "winners_pct, treasury_pct, burn_pct) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, 0, ?, ?, ?, ?)",
            (
                tournament_id,
                creator,
                min_entry_price,
                pool_contribution,
                target_pool,
                duration,
                pool_contribution,
                TournamentStatus.PENDING.value,
                created_at,
                winners_pct,
                treasury_pct,
                burn_pct,
            ),
        )

    def get_tournament(self, tournament_id: int) -> Tournament | None:
        row = self._fetchone("SELECT * FROM tournaments WHERE id = ?", (tournament_id,))
        return Tournament.from_row(row) if row else None

    def update_tournament(self, tournament_id: int, **values) -> None:
        self._update("tournaments", _TOURNAMENT_COLUMNS, "id = ?", (tournament_id,), values)

    def list_tournaments(self, status: TournamentStatus | None = None) -> list[Tournament]:
        if status is None:
            rows = self._fetchall("SELECT * FROM tournaments ORDER BY id ASC")
        else:
            rows = self._fetchall(
                "SELECT * FROM tournaments WHERE status = ? ORDER BY id ASC",
                (TournamentStatus(status).value,),
            )
        return [Tournament.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Participants & scores
    # ------------------------------------------------------------------

    def insert_participant(
        self, tournament_id: int, address: str, entry_amount: int, entry_tick: int
    ) -> None:
        self._require_tx()
        self._conn.execute(
            "INSERT INTO participants (tournament_id, address, entry_amount, entry_tick, "
            "best_score, games_played, final_rank) VALUES (?, ?, ?, ?, 0, 0, NULL)",
            (tournament_id, address, entry_amount, entry_tick),
        )

    def get_participant(self, tournament_id: int, address: str) -> Participant | None:
        row = self._fetchone(
            "SELECT * FROM participants WHERE tournament_id = ? AND address = ?",
            (tournament_id, address),
        )
        return Participant.from_row(row) if row else None

    def update_participant(self, tournament_id: int, address: str, **values) -> None:
        self._update(
            "participants", _PARTICIPANT_COLUMNS,
            "tournament_id = ? AND address = ?", (tournament_id, address), values,
        )

    def list_participants(self, tournament_id: int) -> list[Participant]:
        """Participants ordered by best score, earliest entry breaking ties."""
        rows = self._fetchall(
            "SELECT * FROM participants WHERE tournament_id = ? "
            "ORDER BY best_score DESC, entry_tick ASC, address ASC",
            (tournament_id,),
        )
        return [Participant.from_row(r) for r in rows]

    def insert_game_score(
        self, tournament_id: int, address: str, seq: int, score: int, submitted_at: int
    ) -> None:
        self._require_tx()
        self._conn.execute(
            "INSERT INTO game_scores (tournament_id, address, seq, score, submitted_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (tournament_id, address, seq, score, submitted_at),
        )

    def get_game_score(self, tournament_id: int, address: str, seq: int) -> GameScore | None:
        row = self._fetchone(
            "SELECT * FROM game_scores WHERE tournament_id = ? AND address = ? AND seq = ?",
            (tournament_id, address, seq),
        )
        return GameScore.from_row(row) if row else None

    # ------------------------------------------------------------------
    # Player stats
    # ------------------------------------------------------------------

    def get_player_stats(self, address: str) -> PlayerStats | None:
        row = self._fetchone("SELECT * FROM player_stats WHERE address = ?", (address,))
        return PlayerStats.from_row(row) if row else None

    def put_player_stats(self, stats: PlayerStats) -> None:
        """Insert or overwrite a player's stats row."""
        self._require_tx()
        self._conn.execute(
            "INSERT INTO player_stats (address, tournaments_played, total_entry_fees, "
            "total_winnings, tournaments_won, best_score) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(address) DO UPDATE SET "
            "tournaments_played = excluded.tournaments_played, "
            "total_entry_fees = excluded.total_entry_fees, "
            "total_winnings = excluded.total_winnings, "
            "tournaments_won = excluded.tournaments_won, "
            "best_score = excluded.best_score",
            (
                stats.address,
                stats.tournaments_played,
                stats.total_entry_fees,
                stats.total_winnings,
                stats.tournaments_won,
                stats.best_score,
            ),
        )

    # ------------------------------------------------------------------
    # Contract-wide counters
    # ------------------------------------------------------------------

    def get_contract_stats(self) -> ContractStats:
        row = self._fetchone(
            "SELECT next_tournament_id, treasury_balance, total_burned, contract_balance "
            "FROM contract_state WHERE id = 1"
        )
        return ContractStats(**dict(row))

    def update_contract_state(self, **values) -> None:
        self._update("contract_state", _CONTRACT_COLUMNS, "id = 1", (), values)

    def get_block_height(self) -> int:
        return self._fetchone("SELECT block_height FROM contract_state WHERE id = 1")[0]

    # ------------------------------------------------------------------
    # External accounts
    # ------------------------------------------------------------------

    def get_balance(self, address: str) -> int:
        row = self._fetchone("SELECT balance FROM accounts WHERE address = ?", (address,))
        return row["balance"] if row else 0

    def set_balance(self, address: str, balance: int) -> None:
        self._require_tx()
        self._conn.execute(
            "INSERT INTO accounts (address, balance) VALUES (?, ?) "
            "ON CONFLICT(address) DO UPDATE SET balance = excluded.balance",
            (address, balance),
        )

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def tournament_count(self) -> int:
        return self._fetchone("SELECT COUNT(*) FROM tournaments")[0]

    def count_by_status(self, status: TournamentStatus) -> int:
        return self._fetchone(
            "SELECT COUNT(*) FROM tournaments WHERE status = ?", (TournamentStatus(status).value,)
        )[0]

    def score_count(self, tournament_id: int, address: str) -> int:
        """Number of scores logged for a player, i.e. the last used sequence number."""
        return self._fetchone(
            "SELECT COUNT(*) FROM game_scores WHERE tournament_id = ? AND address = ?",
            (tournament_id, address),
        )[0]
