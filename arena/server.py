"""
arena/server.py - FastAPI front for the PathFortune ledger.

Endpoints:
    POST   /tournaments                       Create and fund a tournament
    GET    /tournaments                       List tournaments (?status=)
    GET    /tournaments/{id}                  Tournament record
    GET    /tournaments/{id}/active           Is the scoring window open
    POST   /tournaments/{id}/enter            Stake into a pending tournament
    POST   /tournaments/{id}/scores           Submit a game score
    POST   /tournaments/{id}/end              Close an elapsed tournament
    POST   /tournaments/{id}/distribute       Settle prizes (authority only)
    GET    /tournaments/{id}/participants     Standings
    GET    /tournaments/{id}/participants/{a} Participant record
    GET    /tournaments/{id}/scores/{a}/{n}   One logged game score
    GET    /players/{address}                 Player stats across tournaments
    GET    /accounts/{address}                External balance
    GET    /constants                         Tournament rules
    GET    /stats                             Contract-wide counters
    GET    /health                            Server health check

Admin (dev chains only, 403 unless [server] admin = true):
    POST   /admin/fund                        Credit an external account
    POST   /admin/mine                        Advance the ledger clock

The acting address is the ``sender`` field of each POST body. Ledger errors
come back as {"detail": {"error", "code", "message"}}.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from pathfortune import __version__
from pathfortune.config import PathfortuneConfig, load_config
from pathfortune.errors import (
    AlreadyParticipated,
    InsufficientBalance,
    LedgerError,
    PoolTargetReached,
    PrizesAlreadyDistributed,
    TournamentNotEnded,
    TournamentNotFound,
    Unauthorized,
)
from pathfortune.ledger import Ledger
from pathfortune.models import TournamentStatus

logger = logging.getLogger(__name__)

# Global ledger instance, set during lifespan
_ledger: Ledger | None = None
# Dev-only /admin endpoints, enabled by [server] admin = true
_admin_enabled: bool = False


def get_ledger() -> Ledger:
    assert _ledger is not None, "Ledger not initialized"
    return _ledger


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _ledger, _admin_enabled
    config = getattr(app.state, "config", None) or load_config()
    _ledger = Ledger.from_config(config)
    _admin_enabled = config.server.admin
    logger.info(f"Ledger initialized: {config.ledger.db_path}")

    _log_startup_config(config)

    yield
    _ledger.store.close()
    _ledger = None
    _admin_enabled = False


def _log_startup_config(config: PathfortuneConfig):
    """Log ledger configuration on startup so operators can verify it."""
    logger.info("=" * 50)
    logger.info(f"PathFortune ledger {__version__} startup config:")
    logger.info(f"  DB: {config.ledger.db_path}")
    if config.ledger.authority:
        logger.info(f"  Settlement authority: {config.ledger.authority}")
    else:
        logger.warning("  Settlement authority: NOT configured (PATHFORTUNE_AUTHORITY missing)")
        logger.warning("  → Prize distribution DISABLED")
    rules = config.rules
    logger.info(
        f"  Rules: min entry {rules.min_entry_price}, min pool {rules.min_pool_contribution}, "
        f"min target {rules.min_target_pool}, duration {rules.min_duration}-{rules.max_duration}, "
        f"split {rules.winners_pct}/{rules.treasury_pct}/{rules.burn_pct}"
    )
    if config.server.admin:
        logger.warning("  Admin endpoints ENABLED (/admin/fund, /admin/mine)")
    logger.info("=" * 50)


app = FastAPI(title="PathFortune Ledger", lifespan=lifespan)

# Allow the website (and other frontends) to call ledger endpoints
from starlette.middleware.cors import CORSMiddleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ======================================================================
# Error mapping
# ======================================================================

_STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (TournamentNotFound, 404),
    (Unauthorized, 403),
    (InsufficientBalance, 402),
    (TournamentNotEnded, 409),
    (PrizesAlreadyDistributed, 409),
    (AlreadyParticipated, 409),
    (PoolTargetReached, 409),
]

# Caller mistakes: ledger preconditions plus out-of-range arithmetic
_CLIENT_ERRORS = (LedgerError, ValueError, OverflowError)


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, LedgerError):
        status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(e, cls)), 400)
        return HTTPException(status_code=status, detail=e.to_dict())
    return HTTPException(
        status_code=400,
        detail={"error": type(e).__name__, "code": 0, "message": str(e)},
    )


def _require_tournament(ledger: Ledger, tournament_id: int) -> dict[str, Any]:
    tournament = ledger.get_tournament(tournament_id)
    if tournament is None:
        raise _http_error(TournamentNotFound(f"tournament {tournament_id} does not exist"))
    return tournament.to_dict()


# ======================================================================
# Request/Response Models
# ======================================================================


class CreateTournamentRequest(BaseModel):
    sender: str
    min_entry_price: int = Field(ge=0)
    pool_contribution: int = Field(ge=0)
    target_pool: int = Field(ge=0)
    duration: int = Field(ge=0)
    tick: int | None = Field(default=None, ge=0)


class CreateTournamentResponse(BaseModel):
    tournament_id: int


class EnterRequest(BaseModel):
    sender: str
    amount: int = Field(ge=0)
    tick: int | None = Field(default=None, ge=0)


class ScoreRequest(BaseModel):
    sender: str
    score: int
    tick: int | None = Field(default=None, ge=0)


class EndRequest(BaseModel):
    sender: str
    tick: int | None = Field(default=None, ge=0)


class DistributeRequest(BaseModel):
    sender: str
    winners: list[str]


class FundRequest(BaseModel):
    address: str
    amount: int = Field(ge=0)


class MineRequest(BaseModel):
    blocks: int = Field(default=1, ge=0)


class TournamentResponse(BaseModel):
    id: int
    creator: str
    min_entry_price: int
    pool_contribution: int
    target_pool: int
    duration: int
    start_tick: int | None = None
    end_tick: int | None = None
    current_pool: int
    participant_count: int
    status: str
    settled: bool
    created_at: int
    winners_pct: int
    treasury_pct: int
    burn_pct: int


class ParticipantResponse(BaseModel):
    tournament_id: int
    address: str
    entry_amount: int
    entry_tick: int
    best_score: int
    games_played: int
    final_rank: int | None = None


class GameScoreResponse(BaseModel):
    tournament_id: int
    address: str
    seq: int
    score: int
    submitted_at: int


class PlayerStatsResponse(BaseModel):
    address: str
    tournaments_played: int
    total_entry_fees: int
    total_winnings: int
    tournaments_won: int
    best_score: int


class ContractStatsResponse(BaseModel):
    next_tournament_id: int
    treasury_balance: int
    total_burned: int
    contract_balance: int


class ConstantsResponse(BaseModel):
    min_entry_price: int
    min_pool_contribution: int
    min_target_pool: int
    min_duration: int
    max_duration: int
    winners_pct: int
    treasury_pct: int
    burn_pct: int


class SettlementResponse(BaseModel):
    tournament_id: int
    pool: int
    winners_pool: int
    treasury_cut: int
    burn_cut: int
    winner_count: int
    share: int
    dust: int


class BalanceResponse(BaseModel):
    address: str
    balance: int


class HealthResponse(BaseModel):
    status: str
    version: str
    block_height: int
    tournaments: int
    pending: int
    active: int


# ======================================================================
# Mutating endpoints
# ======================================================================


@app.post("/tournaments", response_model=CreateTournamentResponse)
def create_tournament(req: CreateTournamentRequest) -> dict[str, Any]:
    """Create a tournament, moving the creator's contribution into the pool."""
    ledger = get_ledger()
    try:
        tournament_id = ledger.create_tournament(
            req.min_entry_price, req.pool_contribution, req.target_pool, req.duration,
            sender=req.sender, tick=req.tick,
        )
    except _CLIENT_ERRORS as e:
        raise _http_error(e)
    return {"tournament_id": tournament_id}


@app.post("/tournaments/{tournament_id}/enter", response_model=TournamentResponse)
def enter_tournament(tournament_id: int, req: EnterRequest) -> dict[str, Any]:
    """Stake into a pending tournament. The entry that fills the pool starts it."""
    ledger = get_ledger()
    try:
        tournament = ledger.enter_tournament(
            tournament_id, req.amount, sender=req.sender, tick=req.tick
        )
    except _CLIENT_ERRORS as e:
        raise _http_error(e)
    return tournament.to_dict()


@app.post("/tournaments/{tournament_id}/scores", response_model=GameScoreResponse)
def submit_score(tournament_id: int, req: ScoreRequest) -> dict[str, Any]:
    ledger = get_ledger()
    try:
        game = ledger.submit_score(tournament_id, req.score, sender=req.sender, tick=req.tick)
    except _CLIENT_ERRORS as e:
        raise _http_error(e)
    return game.to_dict()


@app.post("/tournaments/{tournament_id}/end", response_model=TournamentResponse)
def end_tournament(tournament_id: int, req: EndRequest) -> dict[str, Any]:
    ledger = get_ledger()
    try:
        tournament = ledger.end_tournament(tournament_id, sender=req.sender, tick=req.tick)
    except _CLIENT_ERRORS as e:
        raise _http_error(e)
    return tournament.to_dict()


@app.post("/tournaments/{tournament_id}/distribute", response_model=SettlementResponse)
def distribute_prizes(tournament_id: int, req: DistributeRequest) -> dict[str, Any]:
    """Split the pool of an ended tournament. Winners are ranked by list order."""
    ledger = get_ledger()
    try:
        split = ledger.distribute_prizes(tournament_id, req.winners, sender=req.sender)
    except _CLIENT_ERRORS as e:
        raise _http_error(e)
    return {"tournament_id": tournament_id, **split.to_dict()}


# ======================================================================
# Read-only endpoints
# ======================================================================


@app.get("/tournaments", response_model=list[TournamentResponse])
def list_tournaments(status: TournamentStatus | None = None) -> list[dict[str, Any]]:
    ledger = get_ledger()
    return [t.to_dict() for t in ledger.list_tournaments(status)]


@app.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int) -> dict[str, Any]:
    return _require_tournament(get_ledger(), tournament_id)


@app.get("/tournaments/{tournament_id}/active")
def is_tournament_active(tournament_id: int) -> dict[str, Any]:
    ledger = get_ledger()
    return {"tournament_id": tournament_id, "active": ledger.is_tournament_active(tournament_id)}


@app.get("/tournaments/{tournament_id}/participants", response_model=list[ParticipantResponse])
def list_participants(tournament_id: int) -> list[dict[str, Any]]:
    """Standings for a tournament, best score first."""
    ledger = get_ledger()
    _require_tournament(ledger, tournament_id)
    return [p.to_dict() for p in ledger.list_participants(tournament_id)]


@app.get(
    "/tournaments/{tournament_id}/participants/{address}", response_model=ParticipantResponse
)
def get_participant(tournament_id: int, address: str) -> dict[str, Any]:
    participant = get_ledger().get_participant(tournament_id, address)
    if participant is None:
        raise HTTPException(status_code=404, detail="Participant not found")
    return participant.to_dict()


@app.get("/tournaments/{tournament_id}/scores/{address}/{seq}", response_model=GameScoreResponse)
def get_game_score(tournament_id: int, address: str, seq: int) -> dict[str, Any]:
    game = get_ledger().get_game_score(tournament_id, address, seq)
    if game is None:
        raise HTTPException(status_code=404, detail="Game score not found")
    return game.to_dict()


@app.get("/players/{address}", response_model=PlayerStatsResponse)
def get_player_stats(address: str) -> dict[str, Any]:
    stats = get_ledger().get_player_stats(address)
    if stats is None:
        raise HTTPException(status_code=404, detail="Player not found")
    return stats.to_dict()


@app.get("/accounts/{address}", response_model=BalanceResponse)
def get_balance(address: str) -> dict[str, Any]:
    return {"address": address, "balance": get_ledger().get_balance(address)}


@app.get("/constants", response_model=ConstantsResponse)
def get_tournament_constants() -> dict[str, Any]:
    return get_ledger().get_tournament_constants()


@app.get("/stats", response_model=ContractStatsResponse)
def get_contract_stats() -> dict[str, Any]:
    return get_ledger().get_contract_stats().to_dict()


@app.get("/health", response_model=HealthResponse)
def health() -> dict[str, Any]:
    """Server health check."""
    ledger = get_ledger()
    store = ledger.store
    with store.snapshot():
        return {
            "status": "ok",
            "version": __version__,
            "block_height": store.get_block_height(),
            "tournaments": store.tournament_count(),
            "pending": store.count_by_status(TournamentStatus.PENDING),
            "active": store.count_by_status(TournamentStatus.ACTIVE),
        }


# ======================================================================
# Admin
# ======================================================================


def _require_admin() -> None:
    if not _admin_enabled:
        raise HTTPException(
            status_code=403,
            detail={"error": "AdminDisabled", "code": 0, "message": "admin endpoints are disabled"},
        )


@app.post("/admin/fund", response_model=BalanceResponse)
def admin_fund(req: FundRequest) -> dict[str, Any]:
    """Credit an external account. For dev chains and tests."""
    _require_admin()
    ledger = get_ledger()
    try:
        balance = ledger.fund(req.address, req.amount)
    except _CLIENT_ERRORS as e:
        raise _http_error(e)
    return {"address": req.address, "balance": balance}


@app.post("/admin/mine")
def admin_mine(req: MineRequest) -> dict[str, Any]:
    """Advance the ledger clock by ``blocks`` ticks."""
    _require_admin()
    try:
        height = get_ledger().mine(req.blocks)
    except _CLIENT_ERRORS as e:
        raise _http_error(e)
    logger.info(f"Mined {req.blocks} blocks -> height {height}")
    return {"block_height": height}
