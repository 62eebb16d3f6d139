"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_DB_PATH = "brewbot.db"


@dataclass(frozen=True)
class Config:
    """Settings the bot needs to connect and persist state."""

    token: str = ""
    app_id: str = ""
    db_path: str = DEFAULT_DB_PATH


def load(env: Mapping[str, str] | None = None) -> Config:
    """Build a Config from ``env`` (defaults to the process environment)."""
    if env is None:
        env = os.environ
    return Config(
        token=env.get("DISCORD_TOKEN", ""),
        app_id=env.get("DISCORD_APP_ID", ""),
        db_path=env.get("DB_PATH") or DEFAULT_DB_PATH,
    )