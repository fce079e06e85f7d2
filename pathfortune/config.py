"""
pathfortune/config.py - Local configuration management

Reads config from a platform-appropriate config directory:
  - macOS/Linux: ~/.pathfortune/config.toml
  - Windows: %APPDATA%\\pathfortune\\config.toml

Example:
    [ledger]
    db_path = "~/.pathfortune/ledger.db"
    authority = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"

    [rules]            # any subset; omitted keys keep production values
    min_duration = 5

    [server]
    host = "0.0.0.0"
    port = 8000
    admin = false      # true only on dev chains: enables /admin/fund and /admin/mine

The settlement authority and database path can also come from the
PATHFORTUNE_AUTHORITY and PATHFORTUNE_DB environment variables, which win over
the file. Deployments set the authority there rather than in a checked-in file.
"""

import logging
import os
import sys
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path

from .errors import ConfigError
from .models import TournamentRules

logger = logging.getLogger(__name__)

# ============================================================================
# Constants
# ============================================================================


def _get_config_dir() -> Path:
    """Get platform-appropriate config directory."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "pathfortune"
    return Path.home() / ".pathfortune"


CONFIG_DIR = _get_config_dir()
CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = str(CONFIG_DIR / "ledger.db")

AUTHORITY_ENV = "PATHFORTUNE_AUTHORITY"
DB_ENV = "PATHFORTUNE_DB"


# ============================================================================
# Data Types
# ============================================================================


@dataclass
class LedgerConfig:
    """Where the ledger lives and who may settle it."""

    db_path: str = DEFAULT_DB_PATH
    authority: str | None = None


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    admin: bool = False  # exposes /admin/fund and /admin/mine


@dataclass
class PathfortuneConfig:
    """Top-level configuration."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    rules: TournamentRules = field(default_factory=TournamentRules)
    server: ServerConfig = field(default_factory=ServerConfig)


# ============================================================================
# Parsing
# ============================================================================


def _expand(path: str | None) -> str | None:
    """Expand ~ in a path string. :memory: passes through."""
    if path is None or path == ":memory:":
        return path
    return str(Path(path).expanduser())


def _parse_rules(data: dict) -> TournamentRules:
    """Parse [rules] into TournamentRules. Unknown keys are an error."""
    known = {f.name for f in fields(TournamentRules)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"unknown [rules] keys: {', '.join(sorted(unknown))}")
    return TournamentRules(**data)


def _apply_env(config: PathfortuneConfig) -> PathfortuneConfig:
    authority = os.environ.get(AUTHORITY_ENV)
    if authority:
        config.ledger.authority = authority
    db_path = os.environ.get(DB_ENV)
    if db_path:
        config.ledger.db_path = _expand(db_path)
    return config


def load_config(path: Path | None = None) -> PathfortuneConfig:
    """
    Read config from TOML file, then apply environment overrides.

    Args:
        path: Override config file path (default: ~/.pathfortune/config.toml)

    Returns:
        PathfortuneConfig. Missing file or bad TOML returns defaults.

    Raises:
        ConfigError: [rules] present but describing an impossible rule set,
            or a non-boolean [server] admin.
    """
    config_path = path or CONFIG_PATH

    if not config_path.exists():
        return _apply_env(PathfortuneConfig())

    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return _apply_env(PathfortuneConfig())

    config = PathfortuneConfig()

    # Parse [ledger] section
    ledger_data = raw.get("ledger", {})
    if isinstance(ledger_data, dict):
        config.ledger = LedgerConfig(
            db_path=_expand(ledger_data.get("db_path")) or DEFAULT_DB_PATH,
            authority=ledger_data.get("authority"),
        )

    # Parse [rules] section
    rules_data = raw.get("rules", {})
    if isinstance(rules_data, dict) and rules_data:
        config.rules = _parse_rules(rules_data)

    # Parse [server] section
    server_data = raw.get("server", {})
    if isinstance(server_data, dict):
        _defaults = ServerConfig()
        config.server = ServerConfig(
            host=server_data.get("host", _defaults.host),
            port=server_data.get("port", _defaults.port),
            admin=server_data.get("admin", _defaults.admin),
        )
        if not isinstance(config.server.admin, bool):
            raise ConfigError(f"[server] admin must be true or false, got {config.server.admin!r}")

    return _apply_env(config)
