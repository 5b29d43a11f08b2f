"""
boarbot.services.notification_service — Daily Notifications
============================================================

Runs once a day from the scheduler's cron loop:

1. DM every known user who turned notifications on, with a randomly
   picked flavour line (see :mod:`boarbot.engine.templates`).
2. Post one "daily ready" ping in the default channel.

User records are only *read* here, outside the queue, because nothing is
written back.  A user who can't be DMed (left every shared server,
closed DMs, ...) is logged and skipped; the loop always reaches the end.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

import discord

from boarbot.database.records import Scope, user_record
from boarbot.database.store import run_io
from boarbot.engine.templates import (
    NotificationStats,
    compose_notification,
    pick_template_index,
    user_general,
)

if TYPE_CHECKING:
    from boarbot.bot.core import BoarBot

logger = logging.getLogger(__name__)


def resolve_user(bot: BoarBot, user_id: str) -> discord.abc.User | None:
    """Find *user_id* in the client cache or the warmed-user map."""
    try:
        uid = int(user_id)
    except ValueError:
        return None
    return bot.get_user(uid) or bot.known_users.get(uid)


async def gather_stats(bot: BoarBot, user_count: int) -> NotificationStats:
    guild_count = await run_io(bot.ctx.store.count, Scope.GUILD)
    return NotificationStats(
        catalog_size=len(bot.ctx.config.boar_ids),
        user_count=user_count,
        guild_count=guild_count,
    )


async def send_daily_notifications(bot: BoarBot, rng: random.Random | None = None) -> int:
    """DM every opted-in user, then ping the default channel.

    Returns the number of DMs delivered.
    """
    config = bot.ctx.config
    store = bot.ctx.store
    extras = config.strings.notification_extras

    user_ids = await run_io(store.list_ids, Scope.USER)
    stats = await gather_stats(bot, len(user_ids))

    sent = 0
    for user_id in user_ids:
        user = resolve_user(bot, user_id)
        if user is None:
            continue

        try:
            record = await run_io(store.read, user_record(user_id), create=False)
            if not user_general(record).get("notificationsOn"):
                continue

            index = pick_template_index(len(extras), rng) if extras else None
            text = compose_notification(
                config.strings, index, stats, record, config.default_channel
            )
            await user.send(text)
            sent += 1
        except discord.HTTPException as exc:
            logger.debug("Could not DM user %s: %s", user_id, exc)
        except Exception:
            logger.exception("Daily notification failed for user %s", user_id)

    logger.info("Daily notifications delivered to %d user(s)", sent)
    await send_daily_ping(bot)
    return sent


async def send_daily_ping(bot: BoarBot) -> None:
    """Announce the daily reset in the default channel.  Failures are logged."""
    config = bot.ctx.config
    channel_id = config.default_channel
    try:
        channel = bot.get_channel(channel_id) or await bot.fetch_channel(channel_id)
        await channel.send(
            f"{config.strings.notification_daily_ready} {config.strings.notification_server_ping}"
        )
    except Exception:
        logger.exception("Could not send the daily-ready ping to channel %s", channel_id)
