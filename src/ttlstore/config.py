"""Configuration loader for the TTL cache."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .backends import DEFAULT_DB_PATH
from .cache import STORAGE_KINDS, TTLCache, create_storage


@dataclass(frozen=True)
class StorageConfig:
    storage_kind: str
    db_path: str
    quota_bytes: Optional[int]
    log_level: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageConfig":
        kind = str(data.get("storage_kind", "local"))
        quota = data.get("quota_bytes")
        return cls(
            storage_kind=kind if kind in STORAGE_KINDS else "local",
            db_path=os.path.expanduser(str(data.get("db_path", DEFAULT_DB_PATH))),
            quota_bytes=int(quota) if quota is not None else None,
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    def build(self) -> TTLCache:
        return create_storage(self.storage_kind, self.db_path, self.quota_bytes)


ENV_MAP = {
    "storage_kind": "TTLSTORE_KIND",
    "db_path": "TTLSTORE_DB_PATH",
    "quota_bytes": "TTLSTORE_QUOTA_BYTES",
    "log_level": "TTLSTORE_LOG_LEVEL",
}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        if key == "quota_bytes":
            value = int(value)
        merged[key] = value

    return merged


def load_config(config_path: str | Path = "config/ttlstore.defaults.yml") -> StorageConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    data = merge_env_overrides(data)
    return StorageConfig.from_dict(data)


def load_default_config(config_path: str | Path = "config/ttlstore.defaults.yml") -> StorageConfig:
    """load_config when the file exists, otherwise built-in defaults plus env overrides."""
    path = Path(config_path)
    if path.exists():
        return load_config(path)
    return StorageConfig.from_dict(merge_env_overrides({}))
