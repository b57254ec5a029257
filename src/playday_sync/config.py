"""playday_sync.config

Run configuration, loaded from an optional YAML file and overridden by CLI
flags.  The resulting SyncConfig is passed explicitly to every run function;
nothing in the package reads process-wide settings on its own.

Example (config/playday_sync.example.yml):

    db_dsn_env: PLAYDAY_DB_DSN
    rejects_path: ./artifacts/rejects/playday_rejects.csv
    reports_dir: ./artifacts/reports
    max_reject_rate: 0.05
    log_level: INFO
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from playday_sync.errors import ConfigError

DEFAULT_DSN_ENV = "PLAYDAY_DB_DSN"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class SyncConfig:
    db_dsn: str | None = None
    db_dsn_env: str = DEFAULT_DSN_ENV
    rejects_path: Path = Path("./artifacts/rejects/playday_rejects.csv")
    reports_dir: Path = Path("./artifacts/reports")
    max_reject_rate: float = 0.05
    log_level: str = "INFO"

    def with_overrides(self, **overrides: Any) -> SyncConfig:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


_KNOWN_KEYS = frozenset(f.name for f in fields(SyncConfig))


def validate_config(data: Any) -> None:
    """Raise ConfigError if data does not match the config schema."""
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping.")

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

    if "max_reject_rate" in data:
        try:
            rate = float(data["max_reject_rate"])
        except (TypeError, ValueError):
            raise ConfigError(
                f"max_reject_rate value {data['max_reject_rate']!r} is not numeric."
            )
        if not (0.0 <= rate <= 1.0):
            raise ConfigError(f"max_reject_rate value {rate} must be in [0.0, 1.0].")

    level = data.get("log_level")
    if level is not None and str(level).upper() not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log_level {level!r}. Must be one of {list(VALID_LOG_LEVELS)}."
        )


def load_config(yaml_path: Path | None) -> SyncConfig:
    """Load and validate a SyncConfig; None returns the defaults.

    Raises:
        ConfigError: If the file content is invalid.
        FileNotFoundError: If the YAML file does not exist.
    """
    if yaml_path is None:
        return SyncConfig()
    data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    validate_config(data)
    kwargs: dict[str, Any] = dict(data)
    for key in ("rejects_path", "reports_dir"):
        if key in kwargs:
            kwargs[key] = Path(kwargs[key])
    if "max_reject_rate" in kwargs:
        kwargs["max_reject_rate"] = float(kwargs["max_reject_rate"])
    if "log_level" in kwargs:
        kwargs["log_level"] = str(kwargs["log_level"]).upper()
    return SyncConfig(**kwargs)


def resolve_db_dsn(config: SyncConfig, environ: Mapping[str, str] | None = None) -> str | None:
    """Return the explicit DSN, else the one held by config.db_dsn_env."""
    if config.db_dsn:
        return config.db_dsn
    env = os.environ if environ is None else environ
    return env.get(config.db_dsn_env) or None
