#!/usr/bin/env python3
"""
pathfortune/cli.py - Command line interface for the PathFortune ledger

Usage:
    pathfortune serve [--port 8000]
    pathfortune create <min-entry> <pool> <target> <duration> --sender ADDR
    pathfortune enter <id> <amount> --sender ADDR
    pathfortune score <id> <score> --sender ADDR
    pathfortune end <id> --sender ADDR
    pathfortune distribute <id> <winner>... --sender ADDR
    pathfortune show <id>
    pathfortune standings <id>
    pathfortune stats | constants
    pathfortune fund <address> <amount>
    pathfortune balance <address>
    pathfortune mine [blocks]

Amounts are micro-units. Every command works on the configured SQLite file
(see pathfortune/config.py); --db overrides it.
"""

import argparse
import logging
import sys
from pathlib import Path

from pathfortune.amounts import format_units
from pathfortune.config import PathfortuneConfig, load_config
from pathfortune.errors import ConfigError, LedgerError, TournamentNotFound
from pathfortune.ledger import Ledger

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _load(args) -> PathfortuneConfig:
    config = load_config(Path(args.config) if args.config else None)
    if args.db:
        config.ledger.db_path = args.db
    return config


def _open_ledger(args) -> Ledger:
    return Ledger.from_config(_load(args))


def _run(args, action) -> int:
    """Run one ledger action, translating ledger errors into an exit code."""
    ledger = _open_ledger(args)
    try:
        action(ledger)
        return 0
    except LedgerError as e:
        logger.error(f"{e.name} ({e.code}): {e.message}")
        return 1
    except (ValueError, TypeError, OverflowError) as e:
        logger.error(f"Invalid input: {e}")
        return 2
    finally:
        ledger.store.close()


# ============================================================================
# Mutating commands
# ============================================================================


def cmd_create(args):
    """Create and fund a tournament."""
    def action(ledger: Ledger):
        tid = ledger.create_tournament(
            args.min_entry, args.pool, args.target, args.duration,
            sender=args.sender, tick=args.tick,
        )
        print(f"Tournament {tid} created")

    return _run(args, action)


def cmd_enter(args):
    def action(ledger: Ledger):
        t = ledger.enter_tournament(args.tournament_id, args.amount, sender=args.sender, tick=args.tick)
        print(f"Entered tournament {t.id}: pool {format_units(t.current_pool)}/"
              f"{format_units(t.target_pool)} ({t.status.value})")

    return _run(args, action)


def cmd_score(args):
    def action(ledger: Ledger):
        game = ledger.submit_score(args.tournament_id, args.score, sender=args.sender, tick=args.tick)
        print(f"Score {game.score} logged as game #{game.seq}")

    return _run(args, action)


def cmd_end(args):
    def action(ledger: Ledger):
        t = ledger.end_tournament(args.tournament_id, sender=args.sender, tick=args.tick)
        print(f"Tournament {t.id} ended")

    return _run(args, action)


def cmd_distribute(args):
    """Settle an ended tournament. Winners are ranked in the order given."""
    def action(ledger: Ledger):
        split = ledger.distribute_prizes(args.tournament_id, args.winners, sender=args.sender)
        print(f"\n🏆 Tournament {args.tournament_id} settled\n")
        print(f"   Pool:      {format_units(split.pool)}")
        print(f"   Winners:   {split.winner_count} x {format_units(split.share)}")
        print(f"   Treasury:  {format_units(split.treasury_cut)}")
        print(f"   Burned:    {format_units(split.burn_cut)}")
        print(f"   Dust held: {split.dust}")
        print()

    return _run(args, action)


def cmd_fund(args):
    def action(ledger: Ledger):
        balance = ledger.fund(args.address, args.amount)
        print(f"{args.address}: {format_units(balance)}")

    return _run(args, action)


def cmd_mine(args):
    def action(ledger: Ledger):
        print(f"Block height: {ledger.mine(args.blocks)}")

    return _run(args, action)


# ============================================================================
# Read-only commands
# ============================================================================


def cmd_show(args):
    """Show a tournament record."""
    def action(ledger: Ledger):
        t = ledger.get_tournament(args.tournament_id)
        if t is None:
            raise TournamentNotFound(f"tournament {args.tournament_id} does not exist")
        window = f"{t.start_tick}-{t.end_tick}" if t.start_tick is not None else "not started"
        print(f"\n🎮 Tournament {t.id} ({t.status.value}{', settled' if t.settled else ''})")
        print(f"   Creator:      {t.creator}")
        print(f"   Pool:         {format_units(t.current_pool)} / {format_units(t.target_pool)}")
        print(f"   Min entry:    {format_units(t.min_entry_price)}")
        print(f"   Participants: {t.participant_count}")
        print(f"   Duration:     {t.duration} ticks ({window})")
        print()

    return _run(args, action)


def cmd_standings(args):
    def action(ledger: Ledger):
        participants = ledger.list_participants(args.tournament_id)
        print(f"\n📋 Standings — tournament {args.tournament_id}\n")
        print(f"{'#':<4} {'Address':<44} {'Best':>10} {'Games':>6} {'Rank':>5}")
        print("-" * 72)
        for i, p in enumerate(participants, start=1):
            rank = p.final_rank if p.final_rank is not None else "-"
            print(f"{i:<4} {p.address:<44} {p.best_score:>10} {p.games_played:>6} {rank:>5}")
        print()

    return _run(args, action)


def cmd_stats(args):
    def action(ledger: Ledger):
        stats = ledger.get_contract_stats()
        print(f"Next tournament id: {stats.next_tournament_id}")
        print(f"Treasury:           {format_units(stats.treasury_balance)}")
        print(f"Total burned:       {format_units(stats.total_burned)}")
        print(f"Held balance:       {format_units(stats.contract_balance)}")
        print(f"Block height:       {ledger.height}")

    return _run(args, action)


def cmd_constants(args):
    def action(ledger: Ledger):
        for key, value in ledger.get_tournament_constants().items():
            print(f"{key:<22} {value}")

    return _run(args, action)


def cmd_balance(args):
    def action(ledger: Ledger):
        print(f"{args.address}: {format_units(ledger.get_balance(args.address))}")

    return _run(args, action)


def cmd_serve(args):
    """Start the ledger HTTP server."""
    import uvicorn

    from arena.server import app

    config = _load(args)
    if args.admin:
        config.server.admin = True
    # Set config on app state so lifespan picks it up
    app.state.config = config
    port = args.port or config.server.port
    host = args.host or config.server.host
    logger.info(f"Starting ledger server on {host}:{port} (db: {config.ledger.db_path})")
    uvicorn.run(app, host=host, port=port, log_level="info")
    return 0


# ============================================================================
# Entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pathfortune",
        description="Pooled-entry tournament ledger",
    )
    parser.add_argument("--config", default=None, help="Config file (default: ~/.pathfortune/config.toml)")
    parser.add_argument("--db", default=None, help="SQLite database path (overrides config)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def mutating(name: str, help_text: str):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("--sender", required=True, help="Acting address")
        p.add_argument("--tick", type=int, default=None, help="Block height to act at (default: current)")
        return p

    create_parser = mutating("create", "Create and fund a tournament")
    create_parser.add_argument("min_entry", type=int, help="Minimum stake per entrant")
    create_parser.add_argument("pool", type=int, help="Creator's pool contribution")
    create_parser.add_argument("target", type=int, help="Pool size that starts the tournament")
    create_parser.add_argument("duration", type=int, help="Active window in ticks")
    create_parser.set_defaults(func=cmd_create)

    enter_parser = mutating("enter", "Stake into a pending tournament")
    enter_parser.add_argument("tournament_id", type=int)
    enter_parser.add_argument("amount", type=int)
    enter_parser.set_defaults(func=cmd_enter)

    score_parser = mutating("score", "Submit a game score")
    score_parser.add_argument("tournament_id", type=int)
    score_parser.add_argument("score", type=int)
    score_parser.set_defaults(func=cmd_score)

    end_parser = mutating("end", "End a tournament whose window has elapsed")
    end_parser.add_argument("tournament_id", type=int)
    end_parser.set_defaults(func=cmd_end)

    dist_parser = subparsers.add_parser("distribute", help="Settle prizes (authority only)")
    dist_parser.add_argument("tournament_id", type=int)
    dist_parser.add_argument("winners", nargs="+", help="Winner addresses, best first")
    dist_parser.add_argument("--sender", required=True, help="Settlement authority address")
    dist_parser.set_defaults(func=cmd_distribute)

    show_parser = subparsers.add_parser("show", help="Show a tournament")
    show_parser.add_argument("tournament_id", type=int)
    show_parser.set_defaults(func=cmd_show)

    standings_parser = subparsers.add_parser("standings", help="List participants by best score")
    standings_parser.add_argument("tournament_id", type=int)
    standings_parser.set_defaults(func=cmd_standings)

    subparsers.add_parser("stats", help="Contract-wide counters").set_defaults(func=cmd_stats)
    subparsers.add_parser("constants", help="Tournament rules").set_defaults(func=cmd_constants)

    fund_parser = subparsers.add_parser("fund", help="Credit an external account (dev)")
    fund_parser.add_argument("address")
    fund_parser.add_argument("amount", type=int)
    fund_parser.set_defaults(func=cmd_fund)

    balance_parser = subparsers.add_parser("balance", help="Show an external balance")
    balance_parser.add_argument("address")
    balance_parser.set_defaults(func=cmd_balance)

    mine_parser = subparsers.add_parser("mine", help="Advance the ledger clock")
    mine_parser.add_argument("blocks", type=int, nargs="?", default=1)
    mine_parser.set_defaults(func=cmd_mine)

    serve_parser = subparsers.add_parser("serve", help="Start the ledger HTTP server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: from config)")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Server port (default: from config)")
    serve_parser.add_argument(
        "--admin", action="store_true", help="Enable /admin/fund and /admin/mine (dev chains only)"
    )
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        sys.exit(args.func(args))
    except ConfigError as e:
        logger.error(f"Bad config: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
