"""
boarbot.bot.cogs.general — /boar Command Group
================================================

The user-facing entry points that live in the core:

- /boar help: show the configured help text
- /boar notify: toggle the daily-ready DM (optionally picking the channel
  the DM should point to)

``/boar notify`` is a read-modify-write of the user's record and therefore
goes through :meth:`DataStore.read_then_write`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from boarbot.database.records import user_record
from boarbot.engine.templates import channel_mention, user_general
from boarbot.services.embeds import build_info_embed

if TYPE_CHECKING:
    from boarbot.bot.core import BoarBot


def toggle_notifications(record: dict, channel_id: int | None = None) -> None:
    """Flip ``notificationsOn`` on a user record, optionally setting the channel."""
    general = record.setdefault("stats", {}).setdefault("general", {})
    general["notificationsOn"] = not general.get("notificationsOn", False)
    if channel_id is not None:
        general["notificationChannel"] = str(channel_id)


class General(commands.GroupCog, group_name="boar", group_description="Boar commands"):
    """Help and notification settings."""

    def __init__(self, bot: BoarBot) -> None:
        self.bot = bot
        super().__init__()

    @app_commands.command(name="help", description="How to play.")
    async def help(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(
            embed=build_info_embed(self.bot.ctx.config.strings.help_text),
            ephemeral=True,
        )

    @app_commands.command(name="notify", description="Toggle your daily boar notification.")
    @app_commands.describe(channel="Channel your notification should point to")
    async def notify(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel | None = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)

        channel_id = channel.id if channel else None
        record = await self.bot.ctx.store.read_then_write(
            user_record(interaction.user.id),
            lambda rec: toggle_notifications(rec, channel_id),
        )

        general = user_general(record)
        if general.get("notificationsOn"):
            target = general.get("notificationChannel") or self.bot.ctx.config.default_channel
            text = f"Daily notifications are **on**. They will point you to {channel_mention(target)}."
        else:
            text = "Daily notifications are **off**."
        await interaction.followup.send(embed=build_info_embed(text), ephemeral=True)


async def setup(bot: BoarBot) -> None:
    await bot.add_cog(General(bot))
