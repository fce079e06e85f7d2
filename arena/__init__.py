"""
arena - HTTP server for the PathFortune ledger

Exposes the five ledger entry points and the read-only queries over HTTP.
The arena holds no policy of its own — every rule lives in pathfortune.
"""

from .server import app, get_ledger

__all__ = ["app", "get_ledger"]
