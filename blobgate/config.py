"""
Process configuration.

Settings are read once from the environment (optionally seeded from a
.env file) into a frozen value that is passed to whatever needs it. The
allow-list is a frozenset: membership checks only, never mutated.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_BLOB_DIRECTORY = "blobs"
DEFAULT_EVENT_STORE_PATH = "events.jsonl"
DEFAULT_AUDIT_LOG_PATH = "audit.log"
DEFAULT_SERVER_ADDRESS = "0.0.0.0:3334"


def parse_allowed_users(value: str | None) -> frozenset[str]:
    """Split a comma-separated pubkey list. Blank entries are dropped."""
    if not value:
        return frozenset()
    return frozenset(p.strip() for p in value.split(",") if p.strip())


def _env_int(environ: Mapping[str, str], key: str, fallback: int) -> int:
    raw = environ.get(key)
    if raw is None:
        return fallback
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("%s=%r is not an integer, using %d", key, raw, fallback)
        return fallback


@dataclass(frozen=True)
class RelayInfo:
    """Relay information document fields. Cosmetic only."""

    name: str = "my relay"
    description: str = "this is my custom relay"
    pubkey: str = "79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    icon: str = "https://example.com/icon.jpg"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "pubkey": self.pubkey,
            "icon": self.icon,
        }


@dataclass(frozen=True)
class Settings:
    allowed_users: frozenset[str] = field(default_factory=frozenset)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    blob_directory: Path = Path(DEFAULT_BLOB_DIRECTORY)
    event_store_path: Path = Path(DEFAULT_EVENT_STORE_PATH)
    audit_log_path: Path = Path(DEFAULT_AUDIT_LOG_PATH)
    server_address: str = DEFAULT_SERVER_ADDRESS
    relay: RelayInfo = field(default_factory=RelayInfo)

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_users", frozenset(self.allowed_users))

    def is_allowed(self, pubkey: str | None) -> bool:
        return bool(pubkey) and pubkey in self.allowed_users

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ
        defaults = RelayInfo()
        return cls(
            allowed_users=parse_allowed_users(env.get("ALLOWED_USERS")),
            max_file_size=_env_int(env, "MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
            blob_directory=Path(env.get("BLOB_DIRECTORY", DEFAULT_BLOB_DIRECTORY)),
            event_store_path=Path(env.get("EVENT_STORE_PATH", DEFAULT_EVENT_STORE_PATH)),
            audit_log_path=Path(env.get("AUDIT_LOG_PATH", DEFAULT_AUDIT_LOG_PATH)),
            server_address=env.get("SERVER_ADDRESS", DEFAULT_SERVER_ADDRESS),
            relay=RelayInfo(
                name=env.get("RELAY_NAME", defaults.name),
                description=env.get("RELAY_DESCRIPTION", defaults.description),
                pubkey=env.get("RELAY_PUBKEY", defaults.pubkey),
                icon=env.get("RELAY_ICON_URL", defaults.icon),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed_users": sorted(self.allowed_users),
            "max_file_size": self.max_file_size,
            "blob_directory": str(self.blob_directory),
            "event_store_path": str(self.event_store_path),
            "audit_log_path": str(self.audit_log_path),
            "server_address": self.server_address,
            "relay": self.relay.to_dict(),
        }


def load_settings(env_file: Path | None = None) -> Settings:
    """
    Load settings, seeding the environment from a .env file first.

    Variables already set in the environment win over the file.
    """
    if env_file is not None:
        if not load_dotenv(env_file):
            logger.warning("no variables loaded from %s", env_file)
    else:
        load_dotenv(find_dotenv(usecwd=True))
    return Settings.from_env()
