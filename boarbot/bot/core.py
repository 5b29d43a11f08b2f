"""
boarbot.bot.core — Bot Instance & Boot Sequence
=================================================

:class:`BoarBot` is a ``commands.Bot`` subclass that owns the boot
sequence.  :meth:`BoarBot.create` runs it in a fixed order::

    load config → register cogs → fix guild data → login
        → normalize global data → connect

and the first ``on_ready`` finishes the job (:meth:`BoarBot.on_start`):
sync the command tree, start the scheduler, set the presence, announce
readiness and warm the user cache.

Every boot step that can't be recovered from (bad config, unreadable data
folder, rejected token) logs at CRITICAL and exits with status 1.

Cogs reach shared state through ``self.bot.ctx`` (config, fingerprint,
queue, store).
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path

import discord
from discord import app_commands
from discord.ext import commands

from boarbot.config import DEFAULT_CONFIG_PATH, ConfigError
from boarbot.context import BotContext
from boarbot.database.records import Scope
from boarbot.database.store import run_io
from boarbot.services.error_reporter import install_mirror, install_rate_limit_monitor
from boarbot.services.powerup_spawner import PowerupSpawner
from boarbot.services.reconciliation_service import (
    normalize_global_data,
    purge_incomplete_guilds,
)

logger = logging.getLogger(__name__)

# Slash-command cogs, then listener/background cogs.
COMMAND_EXTENSIONS: list[str] = [
    "boarbot.bot.cogs.general",
]
LISTENER_EXTENSIONS: list[str] = [
    "boarbot.bot.cogs.events",
    "boarbot.bot.cogs.tasks",
]

TOKEN_PLACEHOLDER = "your-discord-bot-token-here"


class BoarBot(commands.Bot):
    """Custom Bot subclass that carries the process context.

    Parameters
    ----------
    config_path:
        Where ``config.yaml`` lives.  Re-read whenever its fingerprint changes.
    github_token:
        Optional token for the update feed.  Secrets never come from the
        config file.
    """

    def __init__(
        self,
        config_path: str | Path = DEFAULT_CONFIG_PATH,
        github_token: str | None = None,
    ) -> None:
        # Only guild and DM events are needed; nothing privileged.
        intents = discord.Intents.none()
        intents.guilds = True
        intents.dm_messages = True

        super().__init__(command_prefix=commands.when_mentioned, intents=intents)

        self.config_path = Path(config_path)
        self.github_token = github_token
        self.ctx: BotContext | None = None
        self.known_users: dict[int, discord.User] = {}
        self.user_file_count = 0
        self._started = False
        self._warm_task: asyncio.Task | None = None

    # -----------------------------------------------------------------------
    # Boot sequence
    # -----------------------------------------------------------------------
    async def create(self, token: str | None) -> None:
        """Run the whole boot sequence and stay connected until closed."""
        async with self:
            try:
                self.load_config(first_load=True)
            except (OSError, ConfigError):
                logger.critical("Unable to load the config file", exc_info=True)
                sys.exit(1)
            await self.register_commands()
            await self.register_listeners()
            self.fix_guild_data()
            await self.login(token)
            await self.update_all_data()
            await self.connect()

    def load_config(self, first_load: bool = False) -> None:
        """Build the process context.  Errors propagate to the caller."""
        if first_load or self.ctx is None:
            self.ctx = BotContext.load(self.config_path)
        else:
            self.ctx.reload()

    async def register_commands(self) -> None:
        for ext in COMMAND_EXTENSIONS:
            await self.load_extension(ext)
            logger.info("Loaded extension: %s", ext)

    async def register_listeners(self) -> None:
        for ext in LISTENER_EXTENSIONS:
            await self.load_extension(ext)
            logger.info("Loaded extension: %s", ext)

    def fix_guild_data(self) -> None:
        """Drop unfinished guild setups.  Filesystem errors are fatal."""
        try:
            purge_incomplete_guilds(self.ctx.store)
        except OSError:
            logger.critical("Could not reconcile guild data", exc_info=True)
            sys.exit(1)

    async def login(self, token: str | None) -> None:
        """Log in once.  A missing or rejected token is fatal (no retry)."""
        if not token or token == TOKEN_PLACEHOLDER:
            logger.critical("DISCORD_TOKEN is not set.  Copy .env.example → .env and add it.")
            sys.exit(1)
        try:
            await super().login(token)
        except discord.LoginFailure:
            logger.critical("Discord rejected the bot token")
            sys.exit(1)
        logger.info("Logged in")

    async def update_all_data(self) -> None:
        await normalize_global_data(self.ctx.store, self.ctx.config)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def on_ready(self) -> None:
        """Fired on every (re)connect; only the first one starts things."""
        if self._started:
            return
        self._started = True
        await self.on_start()

    async def on_start(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        await self.deploy_commands()

        scheduler = self.get_cog("Scheduler")
        if scheduler is not None:
            await scheduler.start()

        await self.change_presence(
            activity=discord.CustomActivity(name=self.ctx.config.strings.presence)
        )

        install_mirror(self)
        install_rate_limit_monitor(self)
        logger.info("All functions online!", extra={"mirror": True})

        self._warm_task = asyncio.get_running_loop().create_task(
            self.warm_user_cache(), name="warm-user-cache"
        )

    async def deploy_commands(self) -> None:
        """Sync the slash-command tree (guild-scoped when ``DEV_GUILD_ID`` is set)."""
        dev_guild_id = os.getenv("DEV_GUILD_ID")
        try:
            if dev_guild_id:
                guild = discord.Object(id=int(dev_guild_id))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
            else:
                synced = await self.tree.sync()
                logger.info("Synced %d commands globally", len(synced))
        except (discord.HTTPException, ValueError):
            logger.exception("Command sync failed")

    async def warm_user_cache(self) -> int:
        """Fetch every user with a data file so DMs can reach them later."""
        ids = await run_io(self.ctx.store.list_ids, Scope.USER)
        self.user_file_count = len(ids)
        delay = self.ctx.config.numbers.cache_warm_delay

        warmed = 0
        for index, user_id in enumerate(ids):
            if index:
                await asyncio.sleep(delay)
            try:
                user = await self.fetch_user(int(user_id))
            except Exception as exc:
                logger.warning("Could not fetch user %s: %s", user_id, exc)
                continue
            self.known_users[user.id] = user
            warmed += 1

        logger.info("User cache warmed: %d/%d users", warmed, len(ids))
        return warmed

    async def close(self) -> None:
        """Graceful shutdown: stop background work, then disconnect."""
        logger.info("Bot shutting down…")
        if self._warm_task:
            self._warm_task.cancel()
        await super().close()

    # -----------------------------------------------------------------------
    # Registries
    # -----------------------------------------------------------------------
    @property
    def command_registry(self) -> dict[str, app_commands.Command | app_commands.Group]:
        """Top-level slash commands by name."""
        return {cmd.name: cmd for cmd in self.tree.get_commands()}

    @property
    def subcommand_registry(self) -> dict[str, dict[str, app_commands.Command]]:
        """Subcommands of each command group, by group name then subcommand name."""
        return {
            cmd.name: {sub.name: sub for sub in cmd.commands}
            for cmd in self.tree.get_commands()
            if isinstance(cmd, app_commands.Group)
        }

    @property
    def pow_spawner(self) -> PowerupSpawner | None:
        scheduler = self.get_cog("Scheduler")
        return scheduler.pow_spawner if scheduler is not None else None
