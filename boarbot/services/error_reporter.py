"""
boarbot.services.error_reporter — Console + Log-Channel Reporting
==================================================================

Every error in the bot ends up in the standard ``logging`` tree, which
prints to the operator console.  :class:`ChannelMirrorHandler` plugs into
that tree and best-effort mirrors the important records into the
configured Discord log channel:

* every record at ERROR or above, and
* any record logged with ``extra={"mirror": True}``.

Mirroring is fire-and-forget.  If the client isn't ready, the channel
can't be resolved or the send fails, the record simply stays console-only.

Rate limiting is surfaced by :class:`RateLimitMonitor`, which listens on
discord.py's ``discord.http`` logger and reports each "rate limited" warning
with the size of the warmed user cache.  At most one report per
``RATE_LIMIT_MIRROR_SECONDS`` reaches the log channel.

User-facing failures go through :func:`report_interaction_error`, which
logs the full error for the operator and shows the user only the generic
configured error message.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import TYPE_CHECKING, Callable

import discord

from boarbot.constants import LOG_MESSAGE_LIMIT, RATE_LIMIT_MIRROR_SECONDS
from boarbot.services.embeds import build_error_embed

if TYPE_CHECKING:
    from boarbot.bot.core import BoarBot

logger = logging.getLogger(__name__)

MIRROR_FORMAT = "[%(levelname)s] %(asctime)s │ %(name)s\n%(message)s"


class ChannelMirrorHandler(logging.Handler):
    """Logging handler that copies selected records to the log channel."""

    def __init__(self, bot: BoarBot, level: int = logging.ERROR) -> None:
        super().__init__(logging.DEBUG)
        self._bot = bot
        self._mirror_level = level
        self._pending: set[asyncio.Task] = set()
        self.setFormatter(logging.Formatter(MIRROR_FORMAT))

    def should_mirror(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self._mirror_level or bool(getattr(record, "mirror", False))

    def emit(self, record: logging.LogRecord) -> None:
        if not self.should_mirror(record):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        ctx = getattr(self._bot, "ctx", None)
        if ctx is None or not ctx.config.log_channel or not self._bot.is_ready():
            return

        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return

        task = loop.create_task(self._send(ctx.config.log_channel, message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, channel_id: int, message: str) -> None:
        try:
            channel = self._bot.get_channel(channel_id) or await self._bot.fetch_channel(channel_id)
            await channel.send(f"```ansi\n{message[:LOG_MESSAGE_LIMIT]}```")
        except Exception:
            # Console already has the record; logging here would recurse
            return


def install_mirror(bot: BoarBot, level: int = logging.ERROR) -> ChannelMirrorHandler:
    """Attach a :class:`ChannelMirrorHandler` to the ``boarbot`` logger (once)."""
    root = logging.getLogger("boarbot")
    for handler in root.handlers:
        if isinstance(handler, ChannelMirrorHandler):
            return handler
    handler = ChannelMirrorHandler(bot, level=level)
    root.addHandler(handler)
    return handler


class RateLimitMonitor(logging.Handler):
    """Reports discord.py rate-limit warnings alongside the user-cache progress."""

    def __init__(
        self,
        bot: BoarBot,
        interval: float = RATE_LIMIT_MIRROR_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(logging.WARNING)
        self._bot = bot
        self._interval = interval
        self._clock = clock
        self._last_mirror = -math.inf

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        if "rate limited" not in text.lower():
            return

        now = self._clock()
        mirror = now - self._last_mirror >= self._interval
        if mirror:
            self._last_mirror = now

        logger.warning(
            "Hit Limit! Cached Users: %d/%d",
            len(self._bot.known_users),
            self._bot.user_file_count,
            extra={"mirror": mirror},
        )


def install_rate_limit_monitor(bot: BoarBot) -> RateLimitMonitor:
    """Attach a :class:`RateLimitMonitor` to the ``discord.http`` logger (once)."""
    http_logger = logging.getLogger("discord.http")
    for handler in http_logger.handlers:
        if isinstance(handler, RateLimitMonitor):
            return handler
    handler = RateLimitMonitor(bot)
    http_logger.addHandler(handler)
    return handler


def describe_interaction(interaction: discord.Interaction) -> str:
    """``"name (id) used /boar notify"`` for context for operator logs."""
    command = interaction.command.qualified_name if interaction.command else "?"
    return f"{interaction.user} ({interaction.user.id}) used /{command}"


async def report_interaction_error(
    interaction: discord.Interaction,
    error: BaseException,
    message: str,
) -> None:
    """Log *error* with its interaction context and reply with *message*."""
    logger.error(
        "%s: %s",
        describe_interaction(interaction),
        error,
        exc_info=(type(error), error, error.__traceback__),
    )

    embed = build_error_embed(message)
    try:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)
    except discord.HTTPException:
        logger.warning("Could not deliver the error reply for %s", describe_interaction(interaction))
