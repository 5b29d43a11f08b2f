"""
boarbot.services.update_feed — GitHub Pull-Request Announcements
=================================================================

Every poller tick asks the GitHub API for the most recent pull requests and
announces the newest one once it has been merged.

How it works:
    1. GET ``strings.pull_link`` (a ``/pulls?state=closed`` listing) with a
       bearer token, and take the first element.
    2. Inside the queue entry for the global ``github`` record, compare its
       ``html_url`` with the stored cursor (``lastURL`` plus a short history
       in ``pastURLs``).  A merged, never-seen pull request advances the
       cursor and is *claimed*.
    3. Only a claimed pull request is posted to the updates channel, so two
       overlapping polls can never announce the same one twice.

Network and parse failures are logged as warnings and never escape: the
next tick simply tries again.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import httpx

from boarbot.constants import FEED_HISTORY_LIMIT, GlobalFile
from boarbot.database.records import global_record
from boarbot.database.store import DataStore, run_io
from boarbot.services.embeds import build_update_embed

if TYPE_CHECKING:
    from boarbot.bot.core import BoarBot

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 10


async def fetch_latest_pull(
    client: httpx.AsyncClient,
    url: str,
    token: str | None,
) -> dict[str, Any] | None:
    """Return the first pull request of the listing at *url*, if any."""
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    resp = await client.get(url, headers=headers)
    resp.raise_for_status()
    data = resp.json()

    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return None
    return data[0]


def should_announce(cursor: Mapping[str, Any], pull: Mapping[str, Any]) -> bool:
    """True for a merged pull request the cursor has never seen."""
    url = pull.get("html_url")
    if not url or pull.get("merged_at") is None:
        return False
    return url != cursor.get("lastURL") and url not in cursor.get("pastURLs", [])


def advance_cursor(cursor: dict[str, Any], url: str) -> dict[str, Any]:
    past = [u for u in cursor.get("pastURLs", []) if u != url]
    past.append(url)
    cursor["lastURL"] = url
    cursor["pastURLs"] = past[-FEED_HISTORY_LIMIT:]
    return cursor


async def claim_pull(store: DataStore, pull: Mapping[str, Any]) -> bool:
    """Advance the feed cursor to *pull* if it should be announced.

    Decision and write happen in one queue entry for the ``github`` record.
    """
    rid = global_record(GlobalFile.GITHUB)

    async def _work() -> bool:
        cursor = await run_io(store.read, rid)
        if not should_announce(cursor, pull):
            return False
        advance_cursor(cursor, pull["html_url"])
        await run_io(store.write, rid, cursor)
        return True

    return await store.queue.enqueue(rid.key, _work)


async def announce_pull(bot: BoarBot, pull: Mapping[str, Any]) -> None:
    config = bot.ctx.config
    if not config.updates_channel:
        logger.warning("No updates_channel configured; skipping %s", pull["html_url"])
        return

    channel = bot.get_channel(config.updates_channel) or await bot.fetch_channel(
        config.updates_channel
    )
    embed = build_update_embed(
        pull,
        thumbnail_url=config.strings.github_img,
        body_limit=config.numbers.feed_body_limit,
    )
    await channel.send(embed=embed)
    logger.info("Announced update %s", pull["html_url"])


async def poll_update_feed(
    bot: BoarBot,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Run one feed poll.  Returns True when an update was announced."""
    config = bot.ctx.config
    if not config.strings.pull_link:
        return False

    transport = transport or httpx.AsyncHTTPTransport(retries=1)
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, transport=transport) as client:
            pull = await fetch_latest_pull(client, config.strings.pull_link, bot.github_token)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Update feed poll failed: %s", exc)
        return False

    if pull is None or not await claim_pull(bot.ctx.store, pull):
        return False

    try:
        await announce_pull(bot, pull)
    except Exception:
        logger.exception("Could not announce update %s", pull.get("html_url"))
        return False
    return True
