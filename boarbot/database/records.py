"""
boarbot.database.records — Record Identities & Default Shapes
==============================================================

A record is one JSON document on disk.  It is identified by a
:class:`RecordId`: a scope (``global``, ``user`` or ``guild``) plus a name
(a fixed :class:`~boarbot.constants.GlobalFile` name, a user id or a guild
id).  ``RecordId.key`` is the queue key every writer of that record uses.

On-disk keys keep the camelCase names existing BoarBot data already uses.
"""

from __future__ import annotations

import copy
from enum import StrEnum
from typing import Any, NamedTuple

from boarbot.constants import GlobalFile


class Scope(StrEnum):
    GLOBAL = "global"
    USER = "user"
    GUILD = "guild"


class RecordId(NamedTuple):
    """Identity of one persisted record."""

    scope: Scope
    name: str

    @property
    def key(self) -> tuple[str, str]:
        """Queue key serializing every mutation of this record."""
        return (str(self.scope), self.name)

    def __str__(self) -> str:
        return f"{self.scope}/{self.name}"


def global_record(name: GlobalFile | str) -> RecordId:
    return RecordId(Scope.GLOBAL, str(GlobalFile(name)))


def user_record(user_id: int | str) -> RecordId:
    return RecordId(Scope.USER, str(user_id))


def guild_record(guild_id: int | str) -> RecordId:
    return RecordId(Scope.GUILD, str(guild_id))


# ---------------------------------------------------------------------------
# Default shapes, deep-copied on every use
# ---------------------------------------------------------------------------
_GLOBAL_DEFAULTS: dict[GlobalFile, dict[str, Any]] = {
    GlobalFile.ITEMS: {"boars": {}, "badges": {}, "powerups": {}},
    GlobalFile.LEADERBOARDS: {},
    GlobalFile.BANNED_USERS: {},
    GlobalFile.POWERUPS: {"nextPowerup": 0, "lastSpawn": 0, "numSpawns": 0},
    GlobalFile.QUEST: {"questsStartTimestamp": 0, "curQuestIDs": []},
    GlobalFile.GITHUB: {"lastURL": "", "pastURLs": []},
}

_USER_DEFAULT: dict[str, Any] = {
    "stats": {
        "general": {
            "notificationsOn": False,
            "notificationChannel": None,
            "boarStreak": 0,
            "lastDaily": 0,
        },
    },
}

_GUILD_DEFAULT: dict[str, Any] = {
    "fullySetup": False,
    "channels": [],
    "isSBServer": False,
}


def default_record(record_id: RecordId) -> dict[str, Any]:
    """Return a fresh copy of the default shape for *record_id*."""
    if record_id.scope == Scope.GLOBAL:
        template = _GLOBAL_DEFAULTS[GlobalFile(record_id.name)]
    elif record_id.scope == Scope.USER:
        template = _USER_DEFAULT
    else:
        template = _GUILD_DEFAULT
    return copy.deepcopy(template)
