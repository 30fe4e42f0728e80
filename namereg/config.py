from __future__ import annotations
"""
namereg.config - configuration for the name registry.

Covers:
- Name length limit (UTF-8 bytes)
- Location of the SQLite record store (unset = in-memory registry)
- Administrator identity recorded at construction (inert metadata)
- Logging level and format
- How many recent events the registry retains

Environment overrides (all optional; sensible defaults provided):

  NAMEREG_MAX_NAME_BYTES=64
  NAMEREG_DB_PATH=/var/lib/namereg/records.sqlite3
  NAMEREG_ADMIN=0x…
  NAMEREG_LOG_LEVEL=INFO
  NAMEREG_LOG_FORMAT=text      # text | json
  NAMEREG_EVENT_LOG_SIZE=1024  # retained events; 0 keeps none

You can also load from a JSON or YAML file via `NAMEREG_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional
import json
import os

import yaml

from .errors import ConfigError, IdentityError
from .events import DEFAULT_EVENT_LOG_SIZE
from .types import Identity, to_hex, to_identity

DEFAULT_MAX_NAME_BYTES = 64
MAX_EVENT_LOG_SIZE = 1_000_000
_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_LOG_FORMATS = ("text", "json")


# -------------------------- Data classes --------------------------


@dataclass(frozen=True)
class RegistryConfig:
    """Top-level configuration container."""
    max_name_bytes: int = DEFAULT_MAX_NAME_BYTES
    db_path: Optional[Path] = None
    admin: Optional[Identity] = None
    log_level: str = "INFO"
    log_format: str = "text"
    event_log_size: int = DEFAULT_EVENT_LOG_SIZE

    def validate(self) -> None:
        if not (1 <= self.max_name_bytes <= 1024):
            raise ConfigError(f"max_name_bytes must be between 1 and 1024 (got {self.max_name_bytes}).")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(_LOG_LEVELS)} (got {self.log_level!r}).")
        if self.log_format not in _LOG_FORMATS:
            raise ConfigError(f"log_format must be 'text' or 'json' (got {self.log_format!r}).")
        if not (0 <= self.event_log_size <= MAX_EVENT_LOG_SIZE):
            raise ConfigError(
                f"event_log_size must be between 0 and {MAX_EVENT_LOG_SIZE} (got {self.event_log_size})."
            )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["db_path"] = str(self.db_path) if self.db_path else None
        d["admin"] = to_hex(self.admin) if self.admin is not None else None
        return d


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except Exception as e:
        raise ConfigError(f"Invalid int for {name}: {v!r}") from e


def _coerce_int(raw: Any, key: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid int for {key}: {raw!r}") from e


def _coerce_admin(raw: Any, source: str) -> Optional[Identity]:
    if raw is None or raw == "":
        return None
    try:
        return to_identity(raw)
    except IdentityError as e:
        raise ConfigError(f"Invalid admin identity in {source}: {raw!r}") from e


def from_env(base: Optional[RegistryConfig] = None, prefix: str = "NAMEREG_") -> RegistryConfig:
    """
    Build a RegistryConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or RegistryConfig()

    db_raw = os.getenv(f"{prefix}DB_PATH")
    admin_raw = os.getenv(f"{prefix}ADMIN")

    new_cfg = replace(
        cfg,
        max_name_bytes=_getenv_int(f"{prefix}MAX_NAME_BYTES", cfg.max_name_bytes),
        db_path=Path(db_raw).expanduser() if db_raw else cfg.db_path,
        admin=_coerce_admin(admin_raw, f"{prefix}ADMIN") if admin_raw else cfg.admin,
        log_level=(os.getenv(f"{prefix}LOG_LEVEL") or cfg.log_level).upper(),
        log_format=(os.getenv(f"{prefix}LOG_FORMAT") or cfg.log_format).lower(),
        event_log_size=_getenv_int(f"{prefix}EVENT_LOG_SIZE", cfg.event_log_size),
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> RegistryConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text or "{}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot parse config file {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a mapping.")

    defaults = RegistryConfig()
    db_path = data.get("db_path")
    cfg = RegistryConfig(
        max_name_bytes=_coerce_int(data.get("max_name_bytes", defaults.max_name_bytes), "max_name_bytes"),
        db_path=Path(db_path).expanduser() if db_path else None,
        admin=_coerce_admin(data.get("admin"), str(p)),
        log_level=str(data.get("log_level", defaults.log_level)).upper(),
        log_format=str(data.get("log_format", defaults.log_format)).lower(),
        event_log_size=_coerce_int(data.get("event_log_size", defaults.event_log_size), "event_log_size"),
    )
    cfg.validate()
    return cfg


def load() -> RegistryConfig:
    """
    Load configuration using the following precedence:
      1) File at $NAMEREG_CONFIG_FILE (JSON/YAML)
      2) Environment variables (NAMEREG_*), applied on top of defaults or file values
    """
    file_path = os.getenv("NAMEREG_CONFIG_FILE")
    base = from_file(file_path) if file_path else RegistryConfig()
    return from_env(base=base)


def pretty(cfg: Optional[RegistryConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "DEFAULT_MAX_NAME_BYTES",
    "DEFAULT_EVENT_LOG_SIZE",
    "RegistryConfig",
    "from_env",
    "from_file",
    "load",
    "pretty",
]
