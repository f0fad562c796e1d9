"""
OAF Discord Bot - Game Event Bus
================================

Named-topic publish/subscribe between the game client and the Discord side.

Topics:
    public   - clan chat line (KoLMessage)
    whisper  - private message to the bot (KoLMessage)
    system   - system announcement (KoLMessage)
    kmail    - kmail received and deleted from the inbox (KoLMessage)
    rollover - first successful login after nightly maintenance (no payload)

Bot: OAF
Game: kingdomofloathing.com
"""

from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional

from oaf.utils.async_utils import gather_with_logging


PUBLIC = "public"
WHISPER = "whisper"
SYSTEM = "system"
KMAIL = "kmail"
ROLLOVER = "rollover"

Handler = Callable[..., Awaitable[Any]]


class EventEmitter:
    """Async event emitter. Handler failures are logged, never raised."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def on(self, topic: str, handler: Optional[Handler] = None):
        """
        Subscribe a coroutine function to a topic.

        Usable directly (``events.on("kmail", handle)``) or as a decorator
        (``@events.on("kmail")``).
        """
        if handler is None:
            def decorator(func: Handler) -> Handler:
                self._handlers[topic].append(func)
                return func
            return decorator

        self._handlers[topic].append(handler)
        return handler

    def off(self, topic: str, handler: Handler) -> None:
        if handler in self._handlers.get(topic, []):
            self._handlers[topic].remove(handler)

    def listener_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, []))

    async def emit(self, topic: str, *payload: Any) -> int:
        """
        Run every handler for a topic concurrently.

        Returns:
            Number of handlers invoked.
        """
        handlers = list(self._handlers.get(topic, []))
        if not handlers:
            return 0

        await gather_with_logging(
            *[(getattr(h, "__qualname__", repr(h)), h(*payload)) for h in handlers],
            context=f"Event: {topic}",
        )
        return len(handlers)


__all__ = [
    "EventEmitter",
    "PUBLIC",
    "WHISPER",
    "SYSTEM",
    "KMAIL",
    "ROLLOVER",
]
