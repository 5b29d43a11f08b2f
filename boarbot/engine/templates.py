"""
boarbot.engine.templates — Notification Templating
===================================================

Pure functions that turn the configured notification strings into the DM a
user receives.  No Discord or filesystem access happens here; the caller
passes the live statistics in.

Some templates carry a ``%@`` placeholder for a live statistic.  Which
statistic belongs to which template is an explicit table
(:data:`STAT_PRODUCERS`) keyed by the template's index in
``strings.notification_extras``.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from boarbot.config import StringConfig
from boarbot.constants import PLACEHOLDER


@dataclass(frozen=True, slots=True)
class NotificationStats:
    """Live numbers a notification template may quote."""

    catalog_size: int
    user_count: int
    guild_count: int


StatProducer = Callable[[NotificationStats, Mapping[str, Any]], int]

# template index → value for its placeholder (stats, user record)
STAT_PRODUCERS: dict[int, StatProducer] = {
    5: lambda stats, _user: stats.catalog_size,
    7: lambda stats, _user: stats.user_count,
    16: lambda stats, _user: stats.guild_count,
    17: lambda _stats, user: user_general(user).get("boarStreak", 0),
}


def user_general(user_record: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the ``stats.general`` block of a user record (empty if absent)."""
    return user_record.get("stats", {}).get("general", {})


def fill_placeholders(template: str, values: Sequence[object]) -> str:
    """Replace ``%@`` placeholders in *template* with *values*, left to right.

    Placeholders beyond the supplied values are left untouched; surplus
    values are ignored.
    """
    parts = template.split(PLACEHOLDER)
    out = [parts[0]]
    for index, tail in enumerate(parts[1:]):
        out.append(str(values[index]) if index < len(values) else PLACEHOLDER)
        out.append(tail)
    return "".join(out)


def pick_template_index(count: int, rng: random.Random | None = None) -> int:
    """Uniformly pick an index into a list of *count* templates."""
    return (rng or random).randrange(count)


def channel_mention(channel_id: int | str) -> str:
    return f"<#{channel_id}>"


def compose_notification(
    strings: StringConfig,
    index: int | None,
    stats: NotificationStats,
    user_record: Mapping[str, Any],
    default_channel: int,
) -> str:
    """Build the daily-ready DM for one user.

    *index* selects the extra flavour line (``None`` when no extras are
    configured).  The result always ends with the daily-ready line, a
    mention of the channel the user plays in and the stop instructions.
    """
    extra = ""
    if index is not None:
        extra = strings.notification_extras[index]
        producer = STAT_PRODUCERS.get(index)
        if producer is not None:
            extra = fill_placeholders(extra, [f"{producer(stats, user_record):,}"])
        if extra:
            extra = f"## {extra}\n"

    channel_id = user_general(user_record).get("notificationChannel") or default_channel
    return (
        extra
        + strings.notification_daily_ready
        + "\n# "
        + channel_mention(channel_id)
        + strings.notification_stop
    )
