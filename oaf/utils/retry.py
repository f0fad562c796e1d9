"""
OAF Discord Bot - Discord Delivery
==================================

Getting alerts and announcements into Discord despite flaky HTTP.

DESIGN:
    Discord occasionally answers 5xx or times out. Posts that matter
    (alerts, relayed announcements) are retried with doubling delays.
    Missing channels and missing permissions are configuration problems,
    not transient ones, so they are never retried.

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
from typing import Any, Awaitable, Callable, Iterator, Optional, Tuple, Type

import discord

from oaf.core.logger import logger


TRANSIENT_DISCORD_ERRORS: Tuple[Type[BaseException], ...] = (
    discord.HTTPException,
    asyncio.TimeoutError,
    ConnectionError,
)

PERMANENT_DISCORD_ERRORS: Tuple[Type[BaseException], ...] = (
    discord.NotFound,
    discord.Forbidden,
)


def backoff_delays(attempts: int, base: float, cap: float) -> Iterator[float]:
    """Delays before each retry: base, 2*base, 4*base ... never above cap."""
    for attempt in range(attempts):
        yield min(base * 2 ** attempt, cap)


async def retry_async(
    call: Callable[..., Awaitable[Any]],
    *args: Any,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    **kwargs: Any,
) -> Any:
    """
    Await `call(*args, **kwargs)`, retrying transient Discord failures.

    Raises:
        The permanent error immediately, or the last transient error once
        every retry has been used.
    """
    delays = backoff_delays(max_retries, base_delay, max_delay)
    while True:
        try:
            return await call(*args, **kwargs)
        except PERMANENT_DISCORD_ERRORS:
            raise
        except TRANSIENT_DISCORD_ERRORS as e:
            delay = next(delays, None)
            if delay is None:
                logger.error(f"Discord call gave up after {max_retries} retries: {type(e).__name__}: {e}")
                raise
            logger.warning(f"Discord call failed ({type(e).__name__}), retrying in {delay:.1f}s")
            await asyncio.sleep(delay)


async def safe_fetch_channel(bot, channel_id: Optional[int]) -> Optional[discord.abc.GuildChannel]:
    """
    Resolve a configured channel id.

    Returns:
        The channel, or None when unset, deleted or hidden from the bot.
    """
    if not channel_id:
        return None

    cached = bot.get_channel(channel_id)
    if cached is not None:
        return cached

    try:
        return await retry_async(bot.fetch_channel, channel_id, max_retries=2, base_delay=0.5)
    except PERMANENT_DISCORD_ERRORS:
        logger.warning(f"Channel {channel_id} is missing or hidden from OAF")
    except discord.HTTPException as e:
        logger.error(f"Could not fetch channel {channel_id}: {e}")
    return None


async def safe_send(
    channel: Optional[discord.abc.Messageable],
    content: Optional[str] = None,
    **kwargs: Any,
) -> Optional[discord.Message]:
    """Post to a channel with retries. None if it could not be posted."""
    if channel is None:
        return None

    try:
        return await retry_async(channel.send, content, max_retries=2, base_delay=0.5, **kwargs)
    except discord.HTTPException as e:
        logger.error(f"Could not post to {getattr(channel, 'name', channel)}: {e}")
        return None


__all__ = [
    "retry_async",
    "backoff_delays",
    "safe_fetch_channel",
    "safe_send",
    "TRANSIENT_DISCORD_ERRORS",
]
