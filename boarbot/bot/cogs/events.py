"""
boarbot.bot.cogs.events — Event Listeners
===========================================

- Direct messages to the bot are treated as reports: logged (and mirrored
  to the log channel) and answered with ``strings.dm_received``.
- Every slash-command failure is routed to
  :func:`~boarbot.services.error_reporter.report_interaction_error`, which
  logs the details and shows the user the generic error message.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from boarbot.services.error_reporter import report_interaction_error

if TYPE_CHECKING:
    from boarbot.bot.core import BoarBot

logger = logging.getLogger(__name__)


class Events(commands.Cog):
    """DM reports and app-command error handling."""

    def __init__(self, bot: BoarBot) -> None:
        self.bot = bot
        self._previous_tree_error = bot.tree.on_error
        bot.tree.on_error = self.on_app_command_error

    async def cog_unload(self) -> None:
        self.bot.tree.on_error = self._previous_tree_error

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is not None:
            return

        logger.info(
            "DM REPORT %s (%s) sent: %s",
            message.author,
            message.author.id,
            message.content,
            extra={"mirror": True},
        )
        try:
            await message.reply(self.bot.ctx.config.strings.dm_received)
        except discord.HTTPException as exc:
            logger.warning("Could not answer DM from %s: %s", message.author.id, exc)

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        original = error.original if isinstance(error, app_commands.CommandInvokeError) else error
        await report_interaction_error(
            interaction, original, self.bot.ctx.config.strings.error
        )


async def setup(bot: BoarBot) -> None:
    await bot.add_cog(Events(bot))
