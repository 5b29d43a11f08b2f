"""
boarbot.constants — Shared Constants
=====================================

Single source of truth for record names and time units.  Import from here
instead of repeating literals in cogs and services.
"""

from __future__ import annotations

from enum import StrEnum


class GlobalFile(StrEnum):
    """Fixed names of the global singleton records."""

    ITEMS = "items"
    LEADERBOARDS = "leaderboards"
    BANNED_USERS = "bannedUsers"
    POWERUPS = "powerups"
    QUEST = "quest"
    GITHUB = "github"


# ---------------------------------------------------------------------------
# Time units (milliseconds, matching the on-disk record format)
# ---------------------------------------------------------------------------
ONE_SECOND_MS = 1000
ONE_MINUTE_MS = 60 * ONE_SECOND_MS
ONE_HOUR_MS = 60 * ONE_MINUTE_MS
ONE_DAY_MS = 24 * ONE_HOUR_MS
QUEST_WINDOW_MS = 7 * ONE_DAY_MS

# Placeholder consumed left to right by engine.templates.fill_placeholders
PLACEHOLDER = "%@"

# Discord hard limit is 2000; leave room for the code fence
LOG_MESSAGE_LIMIT = 1900

# How many announced pull-request URLs the feed cursor remembers
FEED_HISTORY_LIMIT = 20

# Minimum spacing between rate-limit reports mirrored to the log channel
RATE_LIMIT_MIRROR_SECONDS = 30
