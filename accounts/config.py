"""Configuration management for the user accounts service."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_ENV_OVERRIDES = {
    "database_path": "ACCOUNTS_DB_PATH",
    "host": "ACCOUNTS_HOST",
    "port": "ACCOUNTS_PORT",
    "log_level": "ACCOUNTS_LOG_LEVEL",
    "hash_passwords": "ACCOUNTS_HASH_PASSWORDS",
    "require_token": "ACCOUNTS_REQUIRE_TOKEN",
}


def _parse_bool(value: object, *, name: str) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the accounts API."""

    database_path: Path
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"
    hash_passwords: bool = False
    require_token: bool = False

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data, filling in defaults."""
        known = {item.name for item in fields(Settings)}
        unknown = set(data.keys()) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_db_path = data.get("database_path")
        if raw_db_path:
            candidate = Path(str(raw_db_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        return Settings(
            database_path=database_path,
            host=str(data.get("host", "127.0.0.1")),
            port=int(data.get("port", 8080)),  # type: ignore[arg-type]
            log_level=str(data.get("log_level", "INFO")).upper(),
            hash_passwords=_parse_bool(data.get("hash_passwords", False), name="hash_passwords"),
            require_token=_parse_bool(data.get("require_token", False), name="require_token"),
        )

    def with_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Return a copy with ``ACCOUNTS_*`` environment variables applied."""
        env = os.environ if environ is None else environ
        overrides: Dict[str, object] = {}
        for field_name, variable in _ENV_OVERRIDES.items():
            raw = env.get(variable)
            if raw is None or not raw.strip():
                continue
            if field_name == "database_path":
                overrides[field_name] = resolve_database_path(raw)
            elif field_name == "port":
                overrides[field_name] = int(raw)
            elif field_name == "log_level":
                overrides[field_name] = raw.strip().upper()
            elif field_name in {"hash_passwords", "require_token"}:
                overrides[field_name] = _parse_bool(raw, name=variable)
            else:
                overrides[field_name] = raw.strip()
        if not overrides:
            return self
        return replace(self, **overrides)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "accounts.yaml").resolve(strict=False)
    return candidate


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""
    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("ACCOUNTS_CONFIG"))

    raw: Dict[str, object] = {}
    if path.is_file():
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping of settings")
        raw = loaded

    settings = Settings.from_dict(raw, base_path=path.parent)
    return settings.with_env_overrides(env)


__all__ = ["Settings", "load_settings", "resolve_config_path"]
