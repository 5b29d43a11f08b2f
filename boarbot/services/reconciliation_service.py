"""
boarbot.services.reconciliation_service — Boot-Time Data Reconciliation
========================================================================

Two passes the lifecycle runs once at boot:

1. :func:`purge_incomplete_guilds`: before login.  A guild record whose
   ``fullySetup`` flag is still false belongs to a setup flow that was
   abandoned; it is deleted.  Nothing else can touch the store yet, so the
   sweep runs without the queue.
2. :func:`normalize_global_data`: after login.  Brings the global records
   to the shape the current version expects (items catalog ordering) and
   makes sure every global record exists.  Idempotent.
"""

from __future__ import annotations

import logging

from boarbot.config import BotConfig
from boarbot.constants import GlobalFile
from boarbot.database.records import Scope, global_record, guild_record
from boarbot.database.store import DataStore, RecordCorruptError
from boarbot.engine.items import order_global_boars

logger = logging.getLogger(__name__)


def purge_incomplete_guilds(store: DataStore) -> list[str]:
    """Delete every guild record that never finished setup.

    Creates the database and guild directories if they are missing.
    Filesystem errors propagate; the caller treats them as fatal.

    Returns the ids of the deleted guild records.
    """
    store.directory(Scope.GUILD).mkdir(parents=True, exist_ok=True)

    deleted: list[str] = []
    for guild_id in store.list_ids(Scope.GUILD):
        rid = guild_record(guild_id)
        try:
            fully_setup = store.read(rid, create=False).get("fullySetup")
        except RecordCorruptError:
            logger.error("Guild file %s is corrupt; leaving it in place", guild_id)
            continue
        if fully_setup:
            continue
        store.delete(rid)
        deleted.append(guild_id)
        logger.info("Deleted unfinished guild file: %s", guild_id)

    logger.info("Guild data fixed! (%d unfinished setups removed)", len(deleted))
    return deleted


async def normalize_global_data(store: DataStore, config: BotConfig) -> None:
    """Bring every global record to the current version's shape."""

    def _order(items: dict) -> dict:
        return order_global_boars(items, config.rarities)

    await store.read_then_write(global_record(GlobalFile.ITEMS), _order)

    for name in GlobalFile:
        if name is not GlobalFile.ITEMS:
            await store.fetch(global_record(name))

    logger.info("Global data normalized")
