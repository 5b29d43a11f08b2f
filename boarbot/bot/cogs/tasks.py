"""
boarbot.bot.cogs.tasks — Scheduler
====================================

Owns the three timing mechanisms of the bot:

- **Daily cron**: ``discord.ext.tasks`` loop pinned to a UTC wall-clock
  time (``numbers.notification_time``); sends the daily notifications.
- **Poller**: fixed-interval loop (``numbers.poll_interval_seconds``,
  120 s by default) that reloads a changed config, polls the update feed
  and rotates expired quests.
- **Powerup timer**: reads the persisted countdown through the queue and
  hands it to a :class:`~boarbot.services.powerup_spawner.PowerupSpawner`,
  which owns it from then on.

Nothing runs until :meth:`Scheduler.start`, which the bot calls from its
first ``on_ready``.  The scheduler goes ``UNSTARTED → RUNNING`` once and
has no pause/resume.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from boarbot.config import DEFAULT_NOTIFICATION_TIME
from boarbot.constants import GlobalFile
from boarbot.database.records import global_record
from boarbot.database.store import DataStore
from boarbot.services.notification_service import send_daily_notifications
from boarbot.services.powerup_spawner import PowerupSpawner
from boarbot.services.quest_service import rotate_quests_if_expired
from boarbot.services.update_feed import poll_update_feed

if TYPE_CHECKING:
    from boarbot.bot.core import BoarBot

logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    UNSTARTED = "unstarted"
    RUNNING = "running"


async def read_powerup_countdown(store: DataStore) -> int:
    """Read ``nextPowerup`` through the queue entry of the powerups record.

    Using the record's own key orders this read after any boot-time write
    of the same record.  Falls back to 0 (spawn right away) on failure.
    """
    try:
        record = await store.fetch(global_record(GlobalFile.POWERUPS))
        return int(record.get("nextPowerup", 0))
    except Exception:
        logger.exception("Could not read the powerup countdown; spawning immediately")
        return 0


class Scheduler(commands.Cog):
    """Cron, poller and powerup timer for the bot process."""

    def __init__(self, bot: BoarBot) -> None:
        self.bot = bot
        self.state = SchedulerState.UNSTARTED
        self.pow_spawner: PowerupSpawner | None = None

    async def start(self) -> None:
        """Arm every timing mechanism.  Only the first call does anything."""
        if self.state is SchedulerState.RUNNING:
            return
        self.state = SchedulerState.RUNNING

        numbers = self.bot.ctx.config.numbers
        self.daily_notifications.change_interval(time=numbers.notification_time)
        self.daily_notifications.start()
        self.poll_loop.change_interval(seconds=numbers.poll_interval_seconds)
        self.poll_loop.start()

        countdown = await read_powerup_countdown(self.bot.ctx.store)
        self.pow_spawner = PowerupSpawner(self.bot, countdown)
        self.pow_spawner.start()

        logger.info(
            "Scheduler running: notifications at %s UTC, polling every %ds",
            numbers.notification_time.strftime("%H:%M"),
            numbers.poll_interval_seconds,
        )

    async def cog_unload(self) -> None:
        """Cancel everything on shutdown."""
        self.daily_notifications.cancel()
        self.poll_loop.cancel()
        if self.pow_spawner:
            self.pow_spawner.stop()

    # -------------------------------------------------------------------
    # Daily cron
    # -------------------------------------------------------------------
    @tasks.loop(time=DEFAULT_NOTIFICATION_TIME)
    async def daily_notifications(self):
        """Send the daily-ready DMs and channel ping."""
        try:
            await send_daily_notifications(self.bot)
        except Exception:
            logger.exception("Daily notification job failed", extra={"task": "notifications"})

    @daily_notifications.before_loop
    async def _wait_daily(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Poller
    # -------------------------------------------------------------------
    @tasks.loop(seconds=120)
    async def poll_loop(self):
        await self.poll_once()

    @poll_loop.before_loop
    async def _wait_poll(self):
        await self.bot.wait_until_ready()

    async def poll_once(self) -> None:
        """One poller tick.  Each step is isolated from the others' failures."""
        ctx = self.bot.ctx
        logger.debug("Poll tick: config, update feed, quests")

        try:
            if ctx.reload_if_changed():
                self._apply_intervals()
        except Exception:
            logger.exception("Config fingerprint check failed", extra={"task": "config"})

        try:
            await poll_update_feed(self.bot)
        except Exception:
            logger.exception("Update feed step failed", extra={"task": "feed"})

        try:
            await rotate_quests_if_expired(ctx.store, ctx.config)
        except Exception:
            logger.exception("Quest rotation failed", extra={"task": "quests"})

    def _apply_intervals(self) -> None:
        """Follow interval/time changes from a reloaded config."""
        numbers = self.bot.ctx.config.numbers
        if self.poll_loop.seconds != numbers.poll_interval_seconds:
            self.poll_loop.change_interval(seconds=numbers.poll_interval_seconds)
        if self.daily_notifications.time != [numbers.notification_time]:
            self.daily_notifications.change_interval(time=numbers.notification_time)


async def setup(bot: BoarBot) -> None:
    await bot.add_cog(Scheduler(bot))
