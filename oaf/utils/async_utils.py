"""
OAF Discord Bot - Async Utilities
=================================

Concurrent and background work whose failures always reach the log.

The chat poller and the event bus run several coroutines side by side;
one failing must neither cancel the others nor vanish silently.

Usage:
    await gather_with_logging(
        ("Check Messages", client.check_messages()),
        ("Check Kmails", client.check_kmails()),
        context="KoL Chat Poll",
    )

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
from typing import Any, Awaitable, List, Optional, Tuple

from oaf.core.logger import logger


async def gather_with_logging(
    *labelled: Tuple[str, Awaitable[Any]],
    context: Optional[str] = None,
) -> List[Any]:
    """
    Await labelled coroutines together.

    Returns:
        One result per coroutine, in order. A coroutine that raised
        contributes its exception, which has already been logged under
        its label.
    """
    if not labelled:
        return []

    labels, awaitables = zip(*labelled)
    outcomes = await asyncio.gather(*awaitables, return_exceptions=True)

    for label, outcome in zip(labels, outcomes):
        if not isinstance(outcome, Exception):
            continue
        details = [] if context is None else [("Context", context)]
        details += [
            ("Operation", label),
            ("Error Type", type(outcome).__name__),
            ("Error", str(outcome)[:100]),
        ]
        logger.warning("Async Operation Failed", details)

    return list(outcomes)


def create_safe_task(coro: Awaitable[Any], name: str = "Background Task") -> asyncio.Task:
    """Start a named task that logs, rather than drops, its exception."""

    async def guarded() -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])

    return asyncio.create_task(guarded(), name=name)


__all__ = [
    "gather_with_logging",
    "create_safe_task",
]
