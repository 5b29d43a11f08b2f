"""
boarbot.services.powerup_spawner — Self-Rescheduling Powerup Timer
===================================================================

A powerup is a short in-chat bonus event.  The delay until the next one is
persisted in the global ``powerups`` record (``nextPowerup``, milliseconds)
so a restart picks the countdown up again.

The spawner is a single task running a plain loop::

    sleep(countdown) → spawn → pick next delay → persist it → repeat

The countdown lives in exactly one place (this task) and is replaced from
the freshly written record after every firing, so there is no repeating
timer holding stale state.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import discord

from boarbot.constants import GlobalFile
from boarbot.database.records import Scope, global_record, guild_record
from boarbot.database.store import RecordCorruptError, run_io

if TYPE_CHECKING:
    from boarbot.bot.core import BoarBot

logger = logging.getLogger(__name__)

SpawnEffect = Callable[[], Awaitable[None]]


class PowerupSpawner:
    """Owns the powerup countdown once the scheduler hands it over.

    Parameters
    ----------
    bot:
        The running bot (for the context and channel access).
    initial_delay_ms:
        Countdown read from ``powerups.nextPowerup`` at boot.
    spawn:
        The spawn side effect.  Defaults to :meth:`spawn_in_guilds`.
    """

    def __init__(
        self,
        bot: BoarBot,
        initial_delay_ms: int,
        spawn: SpawnEffect | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._bot = bot
        self.countdown_ms = max(0, int(initial_delay_ms))
        self._spawn = spawn or self.spawn_in_guilds
        self._rng = rng or random.Random()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the spawn loop.  Calling it again returns the running task."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._run(), name="powerup-spawner"
            )
            logger.info("Powerup spawner armed: next spawn in %d ms", self.countdown_ms)
        return self._task

    def stop(self) -> None:
        if self._task:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.countdown_ms / 1000)
            await self.fire()

    async def fire(self) -> None:
        """Spawn once, then compute, persist and adopt the next countdown."""
        try:
            await self._spawn()
        except Exception:
            logger.exception("Powerup spawn failed")

        next_delay = self.next_delay()
        try:
            record = await self._persist(next_delay)
            self.countdown_ms = max(0, int(record.get("nextPowerup", next_delay)))
        except Exception:
            logger.exception("Could not persist the next powerup delay")
            self.countdown_ms = next_delay

    def next_delay(self) -> int:
        numbers = self._bot.ctx.config.numbers
        return self._rng.randint(numbers.powerup_min_ms, numbers.powerup_max_ms)

    async def _persist(self, delay_ms: int) -> dict:
        now_ms = int(time.time() * 1000)

        def _update(record: dict) -> None:
            record["nextPowerup"] = delay_ms
            record["lastSpawn"] = now_ms
            record["numSpawns"] = int(record.get("numSpawns", 0)) + 1

        return await self._bot.ctx.store.read_then_write(
            global_record(GlobalFile.POWERUPS), _update
        )

    # -------------------------------------------------------------------
    # Default spawn effect
    # -------------------------------------------------------------------
    async def spawn_in_guilds(self) -> None:
        """Post the powerup message in every set-up guild's boar channels."""
        store = self._bot.ctx.store
        text = self._bot.ctx.config.strings.powerup_spawned

        sent = 0
        for guild_id in await run_io(store.list_ids, Scope.GUILD):
            try:
                guild = await run_io(store.read, guild_record(guild_id), create=False)
            except RecordCorruptError:
                logger.error("Guild file %s is corrupt; no powerup there", guild_id)
                continue
            if not guild.get("fullySetup"):
                continue
            for channel_id in guild.get("channels", []):
                try:
                    channel = self._bot.get_channel(int(channel_id)) or await self._bot.fetch_channel(
                        int(channel_id)
                    )
                    await channel.send(text)
                    sent += 1
                except (discord.HTTPException, ValueError) as exc:
                    logger.warning("Powerup not sent to channel %s: %s", channel_id, exc)

        logger.info("Powerup spawned in %d channel(s)", sent)
