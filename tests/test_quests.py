"""
tests/test_quests.py — Weekly Quest Rotation
=============================================
"""

from __future__ import annotations

import asyncio
import random

from boarbot.constants import ONE_DAY_MS, QUEST_WINDOW_MS, GlobalFile
from boarbot.database.records import global_record
from boarbot.engine.quests import (
    next_window_start,
    quest_window_expired,
    regenerate_quests,
)
from boarbot.services.quest_service import rotate_quests_if_expired


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.run(coro)


START = 1_700_006_400_000  # a UTC midnight


class TestWindow:
    def test_not_expired_inside_window(self):
        quest = {"questsStartTimestamp": START}
        assert not quest_window_expired(quest, START + QUEST_WINDOW_MS - 1)

    def test_expired_at_window_end(self):
        quest = {"questsStartTimestamp": START}
        assert quest_window_expired(quest, START + QUEST_WINDOW_MS)

    def test_fresh_record_is_expired(self):
        assert quest_window_expired({"questsStartTimestamp": 0}, START)

    def test_null_start_counts_as_fresh(self):
        quest = {"questsStartTimestamp": None, "curQuestIDs": []}
        assert quest_window_expired(quest, START)
        regenerate_quests(quest, ["a", "b"], START + 1000, 2)
        assert quest["questsStartTimestamp"] == START

    def test_next_start_keeps_weekly_cadence(self):
        now = START + 3 * QUEST_WINDOW_MS + 5 * ONE_DAY_MS
        assert next_window_start(START, now) == START + 3 * QUEST_WINDOW_MS

    def test_first_window_starts_at_midnight(self):
        now = START + 5 * 60 * 60 * 1000
        assert next_window_start(0, now) == START


class TestRegenerate:
    def test_picks_distinct_quests(self):
        quest = {"questsStartTimestamp": 0, "curQuestIDs": []}
        regenerate_quests(quest, ["a", "b", "c", "d"], START, 3, random.Random(1))
        assert len(set(quest["curQuestIDs"])) == 3
        assert set(quest["curQuestIDs"]) <= {"a", "b", "c", "d"}

    def test_count_capped_by_pool(self):
        quest = {"questsStartTimestamp": 0, "curQuestIDs": []}
        regenerate_quests(quest, ["a", "b"], START, 7)
        assert sorted(quest["curQuestIDs"]) == ["a", "b"]


class TestRotateQuestsIfExpired:
    def test_rotates_only_once_expired(self, store, ctx):
        rid = global_record(GlobalFile.QUEST)
        store.write(rid, {"questsStartTimestamp": START, "curQuestIDs": ["old"]})

        inside = run_async(rotate_quests_if_expired(store, ctx.config, now_ms=START + ONE_DAY_MS))
        assert inside is False
        assert store.read(rid)["curQuestIDs"] == ["old"]

        later = START + QUEST_WINDOW_MS + ONE_DAY_MS
        rotated = run_async(
            rotate_quests_if_expired(store, ctx.config, now_ms=later, rng=random.Random(2))
        )
        record = store.read(rid)
        assert rotated is True
        assert record["questsStartTimestamp"] == START + QUEST_WINDOW_MS
        assert len(record["curQuestIDs"]) == ctx.config.numbers.quests_per_window
        assert set(record["curQuestIDs"]) <= set(ctx.config.quest_ids)
