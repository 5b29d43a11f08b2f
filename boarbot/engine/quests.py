"""
boarbot.engine.quests — Weekly Quest Window
============================================

The global quest record holds the start of the current quest window
(``questsStartTimestamp``, epoch milliseconds) and the quests picked for
it (``curQuestIDs``).  A window lasts seven days; once it has passed, the
poller regenerates it.

New windows stay on the original weekly cadence: the start advances by
whole weeks from the previous start, so a bot that was offline for a while
doesn't drift the rotation day.  A record that never had a window starts at
today's UTC midnight.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Any

from boarbot.constants import ONE_DAY_MS, QUEST_WINDOW_MS


def quest_window_expired(
    quest: dict[str, Any],
    now_ms: int,
    window_ms: int = QUEST_WINDOW_MS,
) -> bool:
    return now_ms >= int(quest.get("questsStartTimestamp") or 0) + window_ms


def next_window_start(previous_start: int, now_ms: int, window_ms: int = QUEST_WINDOW_MS) -> int:
    if previous_start <= 0 or previous_start > now_ms:
        return now_ms - now_ms % ONE_DAY_MS
    weeks_passed = (now_ms - previous_start) // window_ms
    return previous_start + weeks_passed * window_ms


def regenerate_quests(
    quest: dict[str, Any],
    quest_ids: Sequence[str],
    now_ms: int,
    count: int,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Start a new window on *quest* and pick up to *count* distinct quests.

    Mutates and returns *quest*.
    """
    picker = rng or random
    quest["questsStartTimestamp"] = next_window_start(
        int(quest.get("questsStartTimestamp") or 0), now_ms
    )
    quest["curQuestIDs"] = picker.sample(list(quest_ids), min(count, len(quest_ids)))
    return quest
