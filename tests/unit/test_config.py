"""Unit tests for playday_sync.config."""

from pathlib import Path

import pytest

from playday_sync.config import (
    DEFAULT_DSN_ENV,
    SyncConfig,
    load_config,
    resolve_db_dsn,
    validate_config,
)
from playday_sync.errors import ConfigError

PROJECT_ROOT = Path(__file__).parent.parent.parent


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "cfg.yml"
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------

class TestLoadConfig:
    def test_none_returns_defaults(self):
        assert load_config(None) == SyncConfig()

    def test_example_config_loads(self):
        cfg = load_config(PROJECT_ROOT / "config" / "playday_sync.example.yml")
        assert cfg.db_dsn_env == DEFAULT_DSN_ENV
        assert cfg.max_reject_rate == 0.05

    def test_values_parsed(self, tmp_path):
        cfg = load_config(_write(tmp_path, (
            "db_dsn_env: MY_DSN\n"
            "reports_dir: out/reports\n"
            "max_reject_rate: 0.2\n"
            "log_level: debug\n"
        )))
        assert cfg.db_dsn_env == "MY_DSN"
        assert cfg.reports_dir == Path("out/reports")
        assert cfg.max_reject_rate == 0.2
        assert cfg.log_level == "DEBUG"

    def test_empty_file_returns_defaults(self, tmp_path):
        assert load_config(_write(tmp_path, "")) == SyncConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yml")


class TestValidateConfig:
    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown config keys"):
            validate_config({"db_password": "x"})

    def test_rate_out_of_range(self):
        with pytest.raises(ConfigError, match=r"\[0.0, 1.0\]"):
            validate_config({"max_reject_rate": 1.5})

    def test_rate_not_numeric(self):
        with pytest.raises(ConfigError, match="not numeric"):
            validate_config({"max_reject_rate": "lots"})

    def test_bad_log_level(self):
        with pytest.raises(ConfigError, match="Invalid log_level"):
            validate_config({"log_level": "LOUD"})

    def test_root_must_be_mapping(self):
        with pytest.raises(ConfigError):
            validate_config(["a"])


# ---------------------------------------------------------------------------
# Overrides and DSN resolution
# ---------------------------------------------------------------------------

class TestOverrides:
    def test_none_overrides_ignored(self):
        cfg = SyncConfig(max_reject_rate=0.1).with_overrides(max_reject_rate=None, log_level="ERROR")
        assert cfg.max_reject_rate == 0.1
        assert cfg.log_level == "ERROR"


class TestResolveDbDsn:
    def test_explicit_dsn_wins(self):
        cfg = SyncConfig(db_dsn="host=a")
        assert resolve_db_dsn(cfg, {DEFAULT_DSN_ENV: "host=b"}) == "host=a"

    def test_env_var(self):
        assert resolve_db_dsn(SyncConfig(), {DEFAULT_DSN_ENV: "host=b"}) == "host=b"

    def test_custom_env_var(self):
        cfg = SyncConfig(db_dsn_env="OTHER")
        assert resolve_db_dsn(cfg, {"OTHER": "host=c"}) == "host=c"

    def test_missing(self):
        assert resolve_db_dsn(SyncConfig(), {}) is None
