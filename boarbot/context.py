"""
boarbot.context — Process Context
==================================

The one explicitly owned holder of process-wide state: the live config,
the fingerprint of the file it was loaded from, the keyed task queue and
the record store.  It is built once at boot and handed to every component
that needs it.

A reload never mutates fields one by one: the new config and its
fingerprint are built first and then swapped in with a single assignment,
so readers always see a matching pair.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from boarbot.config import BotConfig, config_fingerprint, load_config
from boarbot.database.queue import KeyedTaskQueue
from boarbot.database.store import DataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConfigSnapshot:
    config: BotConfig
    fingerprint: str


class BotContext:
    """Live config + fingerprint, queue and store for one bot process."""

    def __init__(self, config_path: str | Path, snapshot: ConfigSnapshot) -> None:
        self.config_path = Path(config_path)
        self._snapshot = snapshot
        self.queue = KeyedTaskQueue()
        self.store = DataStore(lambda: self.config.paths, self.queue)

    @classmethod
    def load(cls, config_path: str | Path) -> BotContext:
        """Build the context from *config_path*.  Errors propagate (fatal at boot)."""
        ctx = cls(config_path, _read_snapshot(config_path))
        ctx._apply_log_level()
        logger.info("Config loaded from %s (%s)", ctx.config_path, ctx.fingerprint[:12])
        return ctx

    # -------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------
    @property
    def config(self) -> BotConfig:
        return self._snapshot.config

    @property
    def fingerprint(self) -> str:
        return self._snapshot.fingerprint

    @property
    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot

    # -------------------------------------------------------------------
    # Reloading
    # -------------------------------------------------------------------
    def current_fingerprint(self) -> str:
        return config_fingerprint(self.config_path)

    def reload(self) -> None:
        """Re-read the config file and swap it in.  Errors propagate."""
        self._snapshot = _read_snapshot(self.config_path)
        self._apply_log_level()
        logger.info("Config reloaded (%s)", self.fingerprint[:12])

    def reload_if_changed(self) -> bool:
        """Reload when the file's fingerprint differs from the live one.

        A broken file keeps the previous config in place; its fingerprint is
        still recorded so the same broken file isn't re-parsed every tick.
        Returns True when a new config was swapped in.
        """
        fingerprint = self.current_fingerprint()
        if fingerprint == self.fingerprint:
            return False

        try:
            self.reload()
        except Exception:
            logger.exception("Config changed but could not be loaded; keeping previous config")
            self._snapshot = ConfigSnapshot(self.config, fingerprint)
            return False
        return True

    def _apply_log_level(self) -> None:
        level = logging.DEBUG if self.config.debug_mode else logging.INFO
        logging.getLogger("boarbot").setLevel(level)


def _read_snapshot(config_path: str | Path) -> ConfigSnapshot:
    # Hash first: if the file changes between the two reads, the next
    # poll sees a mismatch and reloads again.
    fingerprint = config_fingerprint(config_path)
    return ConfigSnapshot(load_config(config_path), fingerprint)
