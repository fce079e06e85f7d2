"""Tests for pathfortune.config — local config file management."""

import textwrap
from pathlib import Path

import pytest

from pathfortune.config import (
    AUTHORITY_ENV,
    DB_ENV,
    DEFAULT_DB_PATH,
    PathfortuneConfig,
    load_config,
)
from pathfortune.errors import ConfigError
from pathfortune.ledger import Ledger
from pathfortune.models import TournamentRules


@pytest.fixture
def config_dir(tmp_path):
    """Temporary directory for config files."""
    return tmp_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's shell from leaking into config tests."""
    monkeypatch.delenv(AUTHORITY_ENV, raising=False)
    monkeypatch.delenv(DB_ENV, raising=False)


def _write_config(config_dir: Path, content: str) -> Path:
    """Write a config.toml and return the path."""
    config_path = config_dir / "config.toml"
    config_path.write_text(textwrap.dedent(content))
    return config_path


class TestLoadConfig:
    def test_missing_file_returns_defaults(self, config_dir):
        cfg = load_config(config_dir / "nonexistent.toml")
        assert isinstance(cfg, PathfortuneConfig)
        assert cfg.ledger.db_path == DEFAULT_DB_PATH
        assert cfg.ledger.authority is None
        assert cfg.rules == TournamentRules()
        assert cfg.server.host == "127.0.0.1"
        assert cfg.server.port == 8000
        assert cfg.server.admin is False

    def test_full_config(self, config_dir):
        path = _write_config(config_dir, """\
            [ledger]
            db_path = "/var/lib/pathfortune/ledger.db"
            authority = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"

            [rules]
            min_duration = 5
            max_duration = 2016

            [server]
            host = "0.0.0.0"
            port = 9000
            admin = true
        """)
        cfg = load_config(path)
        assert cfg.ledger.db_path == "/var/lib/pathfortune/ledger.db"
        assert cfg.ledger.authority == "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
        assert cfg.rules.min_duration == 5
        assert cfg.rules.max_duration == 2016
        # Unset rules keep production values
        assert cfg.rules.min_entry_price == 1_000_000
        assert cfg.server.host == "0.0.0.0"
        assert cfg.server.port == 9000
        assert cfg.server.admin is True

    def test_tilde_expansion(self, config_dir):
        path = _write_config(config_dir, """\
            [ledger]
            db_path = "~/ledgers/dev.db"
        """)
        cfg = load_config(path)
        assert cfg.ledger.db_path.startswith(str(Path.home()))
        assert "~" not in cfg.ledger.db_path

    def test_memory_db_passes_through(self, config_dir):
        path = _write_config(config_dir, """\
            [ledger]
            db_path = ":memory:"
        """)
        assert load_config(path).ledger.db_path == ":memory:"

    def test_partial_server_section(self, config_dir):
        path = _write_config(config_dir, """\
            [server]
            port = 8123
        """)
        cfg = load_config(path)
        assert cfg.server.port == 8123
        assert cfg.server.host == "127.0.0.1"

    def test_admin_must_be_boolean(self, config_dir):
        path = _write_config(config_dir, """\
            [server]
            admin = "yes"
        """)
        with pytest.raises(ConfigError, match="admin"):
            load_config(path)

    def test_bad_toml_returns_defaults(self, config_dir):
        path = _write_config(config_dir, "this is not [valid toml")
        cfg = load_config(path)
        assert cfg.ledger.authority is None
        assert cfg.rules == TournamentRules()


class TestRules:
    def test_unknown_rule_key(self, config_dir):
        path = _write_config(config_dir, """\
            [rules]
            max_players = 8
        """)
        with pytest.raises(ConfigError, match="max_players"):
            load_config(path)

    def test_percentages_must_sum_to_100(self, config_dir):
        path = _write_config(config_dir, """\
            [rules]
            winners_pct = 90
        """)
        with pytest.raises(ConfigError):
            load_config(path)

    def test_inverted_duration_bounds(self, config_dir):
        path = _write_config(config_dir, """\
            [rules]
            min_duration = 500
            max_duration = 100
        """)
        with pytest.raises(ConfigError):
            load_config(path)

    def test_negative_minimum(self):
        with pytest.raises(ConfigError):
            TournamentRules(min_entry_price=-1)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestEnvironment:
    def test_authority_from_env(self, config_dir, monkeypatch):
        path = _write_config(config_dir, """\
            [ledger]
            authority = "ST-FROM-FILE"
        """)
        monkeypatch.setenv(AUTHORITY_ENV, "ST-FROM-ENV")
        assert load_config(path).ledger.authority == "ST-FROM-ENV"

    def test_db_from_env_without_file(self, config_dir, monkeypatch):
        monkeypatch.setenv(DB_ENV, ":memory:")
        cfg = load_config(config_dir / "nonexistent.toml")
        assert cfg.ledger.db_path == ":memory:"


class TestLedgerFromConfig:
    def test_builds_ledger(self, config_dir):
        path = _write_config(config_dir, f"""\
            [ledger]
            db_path = "{(config_dir / 'ledger.db').as_posix()}"
            authority = "ST-AUTH"

            [rules]
            min_duration = 10
        """)
        ledger = Ledger.from_config(load_config(path))
        assert ledger.authority == "ST-AUTH"
        assert ledger.rules.min_duration == 10
        assert ledger.store.path == str(config_dir / "ledger.db")
        ledger.store.close()
