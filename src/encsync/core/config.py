"""
Project configuration for the encsync command line.

Stored as a small JSON file (``encsync.json``) in the directory passed to
``encsync init``. It records where files come from, where encrypted copies go
and the Argon2id parameters for passphrase keys; keys and nonces are never
written here.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .exceptions import ConfigError

CONFIG_FILE_NAME = "encsync.json"


@dataclass
class Config:
    sources: List[str] = field(default_factory=list)
    version: str = "0.1.0"
    destination: str = "."
    # Argon2id parameters used for --passphrase keys; None means library defaults
    kdf: Optional[Dict] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.kdf is None:
            data.pop("kdf")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        try:
            sources = data["sources"]
            version = data["version"]
            destination = data["destination"]
        except (KeyError, TypeError) as e:
            raise ConfigError(f"missing config field: {e}") from e
        if not isinstance(sources, list) or not all(isinstance(s, str) for s in sources):
            raise ConfigError("config field 'sources' must be a list of strings")
        kdf = data.get("kdf")
        if kdf is not None and not isinstance(kdf, dict):
            raise ConfigError("config field 'kdf' must be an object")
        return cls(sources=list(sources), version=str(version), destination=str(destination), kdf=kdf)


def default_config_path(root: Path | str = ".") -> Path:
    return Path(root) / CONFIG_FILE_NAME


def get_config(path: Path | str) -> Optional[Config]:
    """Load the config at ``path``; returns None if the file does not exist."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid config file: {e}", path=str(path)) from e
    except OSError as e:
        raise ConfigError(f"cannot read config file: {e}", path=str(path)) from e
    return Config.from_dict(data)


def write_config(path: Path | str, config: Config) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
