"""
Configuration.

Defaults are the Settings dataclass defaults. On top of them we merge, in order:
- a YAML file (explicit path, or $COURSEFILTER_CONFIG)
- environment overrides ($COURSEFILTER_STORE, $COURSEFILTER_CATALOG_YEAR,
  $COURSEFILTER_LOG_LEVEL)
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import yaml

from coursefilter.errors import ConfigError
from coursefilter.notify import RetryPolicy
from coursefilter.periods import default_periods
from coursefilter.storage import default_store_path

CATALOG_URL_PATTERN = "https://courses.aalto.fi/s/sfsites/aura*aura.ApexAction.execute*"
SHELL_URL_PATTERN = (
    "https://courses.aalto.fi/s/sfsites/aura*ui-comm-runtime-components-aura-components-siteforce-qb*"
)

ENV_CONFIG = "COURSEFILTER_CONFIG"
ENV_STORE = "COURSEFILTER_STORE"
ENV_CATALOG_YEAR = "COURSEFILTER_CATALOG_YEAR"
ENV_LOG_LEVEL = "COURSEFILTER_LOG_LEVEL"


@dataclass
class Settings:
    catalog_url_pattern: str = CATALOG_URL_PATTERN
    shell_url_pattern: str = SHELL_URL_PATTERN
    store_path: str = dataclasses.field(default_factory=lambda: str(default_store_path()))
    catalog_year: Optional[int] = None
    period_offset_days: int = 7
    prefix_min_length: int = 2
    period_min_length: int = 1
    annotation_field: str = "coursePeriod"
    notify_interval: float = 0.1
    notify_max_attempts: int = 50
    log_level: str = "WARNING"

    def periods(self):
        return default_periods(timedelta(days=self.period_offset_days))

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.notify_max_attempts, interval=self.notify_interval)


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Check a YAML/env value against the type of the field default."""
    if name == "catalog_year":
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"catalog_year must be an integer, got {value!r}") from e

    expected = type(default)
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if expected is int and isinstance(value, str):
        try:
            return int(value)
        except ValueError as e:
            raise ConfigError(f"{name} must be an integer, got {value!r}") from e
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ConfigError(f"{name} must be {expected.__name__}, got {value!r}")
    return value


def apply_overrides(settings: Settings, overrides: dict[str, Any]) -> Settings:
    fields = {f.name: getattr(settings, f.name) for f in dataclasses.fields(settings)}
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        name = str(key).replace("-", "_")
        if name not in fields:
            raise ConfigError(f"Unknown setting: {key!r}")
        changes[name] = _coerce(name, value, fields[name])
    return dataclasses.replace(settings, **changes)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error reading config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_settings(path: str | Path | None = None) -> Settings:
    settings = Settings()

    config_path = path if path is not None else os.environ.get(ENV_CONFIG)
    if config_path:
        settings = apply_overrides(settings, _read_yaml(Path(config_path)))

    env: dict[str, Any] = {}
    if os.environ.get(ENV_STORE):
        env["store_path"] = os.environ[ENV_STORE]
    if os.environ.get(ENV_CATALOG_YEAR):
        env["catalog_year"] = os.environ[ENV_CATALOG_YEAR]
    if os.environ.get(ENV_LOG_LEVEL):
        env["log_level"] = os.environ[ENV_LOG_LEVEL].upper()

    return apply_overrides(settings, env)
