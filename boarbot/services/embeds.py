"""
boarbot.services.embeds — Discord embed builders
==================================================

All embed construction lives here so services and cogs only supply data.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import discord

DARK_COLOR = discord.Color(0x121214)
ERROR_COLOR = discord.Color.red()


def truncate_body(body: str | None, title: str, limit: int = 500) -> str:
    """Strip the repeated title from a pull-request body and cut it to *limit*."""
    text = (body or "").replace(title, "", 1).strip()
    return text[:limit] + "..."


def build_update_embed(
    pull: Mapping[str, Any],
    *,
    thumbnail_url: str = "",
    body_limit: int = 500,
) -> discord.Embed:
    """Announcement embed for a freshly merged pull request."""
    title = str(pull.get("title") or "Update")
    embed = discord.Embed(
        title=title[:256],
        url=pull["html_url"],
        description=truncate_body(pull.get("body"), title, body_limit),
        color=DARK_COLOR,
    )
    if thumbnail_url:
        embed.set_thumbnail(url=thumbnail_url)
    return embed


def build_error_embed(message: str) -> discord.Embed:
    """Generic reply shown to a user when their interaction failed."""
    return discord.Embed(description=message, color=ERROR_COLOR)


def build_info_embed(message: str) -> discord.Embed:
    return discord.Embed(description=message, color=DARK_COLOR)
