"""
boarbot.services.quest_service — Quest Rotation
================================================

Checked on every poller tick.  The expiry check and the regeneration run in
one queue entry for the global ``quest`` record, so a rotation can't race a
command that is reading or updating the current quests.
"""

from __future__ import annotations

import logging
import random
import time

from boarbot.config import BotConfig
from boarbot.constants import GlobalFile
from boarbot.database.records import global_record
from boarbot.database.store import DataStore, run_io
from boarbot.engine.quests import quest_window_expired, regenerate_quests

logger = logging.getLogger(__name__)


async def rotate_quests_if_expired(
    store: DataStore,
    config: BotConfig,
    now_ms: int | None = None,
    rng: random.Random | None = None,
) -> bool:
    """Start a new quest window if the current one is over.

    Returns True when the quests were regenerated.
    """
    rid = global_record(GlobalFile.QUEST)
    now = int(time.time() * 1000) if now_ms is None else now_ms

    async def _work() -> bool:
        quest = await run_io(store.read, rid)
        if not quest_window_expired(quest, now):
            return False
        regenerate_quests(quest, config.quest_ids, now, config.numbers.quests_per_window, rng)
        await run_io(store.write, rid, quest)
        logger.info(
            "Quest window rotated: start=%d quests=%s",
            quest["questsStartTimestamp"],
            quest["curQuestIDs"],
        )
        return True

    return await store.queue.enqueue(rid.key, _work)
