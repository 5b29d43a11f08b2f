"""
tests/conftest.py — Shared Test Fixtures
=========================================

Every test gets its own config file and data folder under ``tmp_path``, so
nothing touches a real ``config.yaml`` or ``database/`` directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from boarbot.context import BotContext

DEFAULT_CHANNEL = 1000
UPDATES_CHANNEL = 2000
LOG_CHANNEL = 3000


def make_raw_config(database_folder: Path, **overrides: Any) -> dict[str, Any]:
    """A complete config mapping pointing at *database_folder*."""
    raw: dict[str, Any] = {
        "default_channel": DEFAULT_CHANNEL,
        "updates_channel": UPDATES_CHANNEL,
        "log_channel": LOG_CHANNEL,
        "paths": {"database_folder": str(database_folder)},
        "numbers": {"cache_warm_delay": 0, "powerup_min_ms": 1000, "powerup_max_ms": 2000},
        "strings": {
            "pull_link": "https://api.github.test/repos/boar/bot/pulls?state=closed",
            "notification_daily_ready": "Daily ready!",
            "notification_stop": " (stop with /boar notify)",
            "notification_server_ping": "Go!",
            "notification_extras": [f"extra {i} %@" for i in range(18)],
        },
        "rarities": [
            {"name": "common", "boars": ["bacon", "blob"]},
            {"name": "rare", "boars": ["golden"]},
        ],
        "quest_ids": ["q1", "q2", "q3", "q4", "q5", "q6", "q7", "q8"],
    }
    raw.update(overrides)
    return raw


def write_config(path: Path, raw: dict[str, Any]) -> Path:
    path.write_text(yaml.safe_dump(raw), encoding="utf-8")
    return path


@pytest.fixture
def database_folder(tmp_path: Path) -> Path:
    return tmp_path / "database"


@pytest.fixture
def config_path(tmp_path: Path, database_folder: Path) -> Path:
    return write_config(tmp_path / "config.yaml", make_raw_config(database_folder))


@pytest.fixture
def ctx(config_path: Path) -> BotContext:
    return BotContext.load(config_path)


@pytest.fixture
def store(ctx: BotContext):
    return ctx.store
