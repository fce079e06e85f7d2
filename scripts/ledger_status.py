#!/usr/bin/env python3
"""
Check a running ledger server — health, contract stats, and open tournaments.

Usage:
    python scripts/ledger_status.py
    python scripts/ledger_status.py --server http://localhost:8000 --status active
"""

import argparse
import sys

DEFAULT_SERVER = "http://127.0.0.1:8000"

# Pools within this share of their target are flagged as about to start
NEAR_FULL_PCT = 90


def _units(micro: int) -> str:
    from pathfortune.amounts import format_units
    return format_units(micro)


def main():
    parser = argparse.ArgumentParser(description="Check ledger server status")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="Ledger server URL")
    parser.add_argument(
        "--status", choices=["pending", "active", "ended"], default=None,
        help="Only show tournaments in this state",
    )
    args = parser.parse_args()

    try:
        import httpx
        from rich.console import Console
        from rich.table import Table
        from rich.text import Text
    except ImportError:
        print("Missing dependency: rich/httpx. Install: pip install -e '.[ops]'")
        sys.exit(1)

    console = Console()
    server = args.server.rstrip("/")

    # --- Server health ---
    console.print()
    try:
        health = httpx.get(f"{server}/health", timeout=5).json()
        stats = httpx.get(f"{server}/stats", timeout=5).json()
    except httpx.HTTPError as e:
        console.print(f"[bold]Ledger:[/bold] [red]unreachable[/red] ({e})")
        sys.exit(1)

    active = health.get("active", 0)
    style = "green" if active > 0 else "dim"
    console.print(
        f"[bold]Ledger {health.get('version', '?')}:[/bold] height {health.get('block_height')}, "
        f"[{style}]{active} active[/{style}], {health.get('pending', 0)} pending"
    )
    console.print(
        f"  Treasury {_units(stats['treasury_balance'])} | "
        f"Burned {_units(stats['total_burned'])} | "
        f"Held {_units(stats['contract_balance'])}"
    )
    console.print()

    # --- Tournaments ---
    params = {"status": args.status} if args.status else None
    tournaments = httpx.get(f"{server}/tournaments", params=params, timeout=5).json()

    table = Table(title="Tournaments", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", justify="right")
    table.add_column("Status")
    table.add_column("Creator", min_width=14)
    table.add_column("Pool", justify="right", min_width=14)
    table.add_column("Players", justify="right")
    table.add_column("Window", justify="right")

    for t in tournaments:
        filled = t["current_pool"] * 100 // t["target_pool"] if t["target_pool"] else 0
        pool_text = f"{_units(t['current_pool'])} / {_units(t['target_pool'])}"
        if t["status"] == "pending" and filled >= NEAR_FULL_PCT:
            pool = Text(pool_text, style="bold yellow")
        else:
            pool = Text(pool_text)

        status = t["status"] + (" ✓" if t["settled"] else "")
        window = f"{t['start_tick']}-{t['end_tick']}" if t["start_tick"] is not None else "-"
        table.add_row(
            str(t["id"]), status, f"{t['creator'][:12]}...", pool,
            str(t["participant_count"]), window,
        )

    console.print(table)
    console.print()


if __name__ == "__main__":
    main()
