"""
boarbot.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` (any JSON config parses too, JSON being a subset of
YAML) into a frozen :class:`BotConfig`.  Only the handful of fields the
core needs are typed; everything else stays in :attr:`BotConfig.raw` and is
treated as opaque.

The file's SHA-256 fingerprint is what the poller compares to decide when
to reload.

Usage::

    from boarbot.config import config_fingerprint, load_config

    cfg = load_config("config.yaml")
    print(cfg.paths.user_dir)          # database/users
    print(config_fingerprint("config.yaml"))
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, time
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_NOTIFICATION_TIME = time(hour=0, minute=0, tzinfo=UTC)


class ConfigError(Exception):
    """Raised when the config file is unreadable or structurally wrong."""


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PathConfig:
    """Where the flat-file records live."""

    database_folder: Path = Path("database")
    user_data_folder: str = "users"
    guild_data_folder: str = "guilds"
    global_data_folder: str = "global"

    @property
    def user_dir(self) -> Path:
        return self.database_folder / self.user_data_folder

    @property
    def guild_dir(self) -> Path:
        return self.database_folder / self.guild_data_folder

    @property
    def global_dir(self) -> Path:
        return self.database_folder / self.global_data_folder


@dataclass(frozen=True, slots=True)
class StringConfig:
    """User-visible strings the core sends on its own."""

    notification_extras: tuple[str, ...] = ()
    notification_daily_ready: str = "Your daily boar is ready!"
    notification_stop: str = ""
    notification_server_ping: str = ""
    pull_link: str = ""
    github_img: str = ""
    error: str = "Something went wrong. Please try again later."
    dm_received: str = "Thanks! Your message was forwarded to the developers."
    presence: str = "/boar help"
    powerup_spawned: str = "A powerup has appeared!"
    help_text: str = "Use `/boar notify` to toggle daily notifications."


@dataclass(frozen=True, slots=True)
class NumberConfig:
    """Timing and sizing knobs for the scheduler."""

    poll_interval_seconds: int = 120
    notification_time: time = DEFAULT_NOTIFICATION_TIME
    cache_warm_delay: float = 1.0
    powerup_min_ms: int = 2 * 60 * 60 * 1000
    powerup_max_ms: int = 6 * 60 * 60 * 1000
    quests_per_window: int = 7
    feed_body_limit: int = 500


@dataclass(frozen=True, slots=True)
class BotConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    default_channel: int
    debug_mode: bool = False
    updates_channel: int | None = None
    log_channel: int | None = None
    paths: PathConfig = field(default_factory=PathConfig)
    strings: StringConfig = field(default_factory=StringConfig)
    numbers: NumberConfig = field(default_factory=NumberConfig)
    # Ordered (rarity name, boar ids) pairs, most common first
    rarities: tuple[tuple[str, tuple[str, ...]], ...] = ()
    quest_ids: tuple[str, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def boar_ids(self) -> tuple[str, ...]:
        """Every boar id in the catalog, in rarity order, without duplicates."""
        seen: dict[str, None] = {}
        for _, ids in self.rarities:
            for boar_id in ids:
                seen.setdefault(boar_id, None)
        return tuple(seen)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def _optional_int(value: Any) -> int | None:
    return int(value) if value else None


def _parse_time(value: Any) -> time:
    """Parse ``"HH:MM"`` into a UTC :class:`datetime.time`."""
    if value is None:
        return DEFAULT_NOTIFICATION_TIME
    try:
        hour, minute = (int(part) for part in str(value).split(":", 1))
        return time(hour=hour, minute=minute, tzinfo=UTC)
    except ValueError as exc:
        raise ConfigError(f"Invalid notification_time {value!r}; expected HH:MM") from exc


def _parse_paths(raw: Mapping[str, Any]) -> PathConfig:
    return PathConfig(
        database_folder=Path(raw.get("database_folder", "database")),
        user_data_folder=raw.get("user_data_folder", "users"),
        guild_data_folder=raw.get("guild_data_folder", "guilds"),
        global_data_folder=raw.get("global_data_folder", "global"),
    )


def _parse_strings(raw: Mapping[str, Any]) -> StringConfig:
    defaults = StringConfig()
    known = {
        name: raw[name]
        for name in StringConfig.__dataclass_fields__
        if name in raw and name != "notification_extras"
    }
    return StringConfig(
        notification_extras=tuple(raw.get("notification_extras", defaults.notification_extras)),
        **known,
    )


def _parse_numbers(raw: Mapping[str, Any]) -> NumberConfig:
    defaults = NumberConfig()
    numbers = NumberConfig(
        poll_interval_seconds=int(raw.get("poll_interval_seconds", defaults.poll_interval_seconds)),
        notification_time=_parse_time(raw.get("notification_time")),
        cache_warm_delay=float(raw.get("cache_warm_delay", defaults.cache_warm_delay)),
        powerup_min_ms=int(raw.get("powerup_min_ms", defaults.powerup_min_ms)),
        powerup_max_ms=int(raw.get("powerup_max_ms", defaults.powerup_max_ms)),
        quests_per_window=int(raw.get("quests_per_window", defaults.quests_per_window)),
        feed_body_limit=int(raw.get("feed_body_limit", defaults.feed_body_limit)),
    )
    if numbers.poll_interval_seconds <= 0:
        raise ConfigError("poll_interval_seconds must be positive")
    if numbers.powerup_min_ms > numbers.powerup_max_ms:
        raise ConfigError("powerup_min_ms must not exceed powerup_max_ms")
    return numbers


def _parse_rarities(raw: Any) -> tuple[tuple[str, tuple[str, ...]], ...]:
    rarities = []
    for entry in raw or []:
        rarities.append((str(entry["name"]), tuple(str(b) for b in entry.get("boars", []))))
    return tuple(rarities)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def config_fingerprint(path: str | Path = DEFAULT_CONFIG_PATH) -> str:
    """Return the SHA-256 hex digest of the raw config file bytes."""
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


def parse_config(raw: Mapping[str, Any]) -> BotConfig:
    """Build a :class:`BotConfig` from an already-parsed mapping."""
    if not isinstance(raw, Mapping):
        raise ConfigError("Config root must be a mapping")
    try:
        return BotConfig(
            default_channel=int(raw["default_channel"]),
            debug_mode=bool(raw.get("debug_mode", False)),
            updates_channel=_optional_int(raw.get("updates_channel")),
            log_channel=_optional_int(raw.get("log_channel")),
            paths=_parse_paths(raw.get("paths") or {}),
            strings=_parse_strings(raw.get("strings") or {}),
            numbers=_parse_numbers(raw.get("numbers") or {}),
            rarities=_parse_rarities(raw.get("rarities")),
            quest_ids=tuple(str(q) for q in raw.get("quest_ids") or ()),
            raw=raw,
        )
    except KeyError as exc:
        raise ConfigError(f"Missing required config key: {exc.args[0]}") from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Malformed config value: {exc}") from exc


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> BotConfig:
    """Read *path* and return a :class:`BotConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the config file doesn't exist.
    ConfigError
        If the file isn't valid YAML or a required key is missing.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse {config_path}: {exc}") from exc

    return parse_config(raw or {})
