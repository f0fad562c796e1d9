"""
OAF Discord Bot - Kingdom of Loathing Package
=============================================

Everything that talks to kingdomofloathing.com.

Package Structure:
- credentials.py: Session cookie and pwd hash holder
- transport.py: aiohttp transport, response and request descriptor
- maintenance.py: Nightly rollover detector
- session.py: Login sequencing, one-retry requests, exclusive actions
- events.py: Event bus for chat, kmail and rollover
- parsing.py / models.py: Page scrapers and the records they return
- client.py: KoLClient, the game-side API used by the cogs

Bot: OAF
Game: kingdomofloathing.com
"""

from .client import KoLClient
from .credentials import Credentials, CredentialStore
from .events import EventEmitter
from .maintenance import RolloverDetector
from .models import FullPlayer, KoLMessage, KoLUser, MallPrice, PartialPlayer
from .session import KoLSession
from .transport import AiohttpTransport, HttpResponse, KoLRequest, is_logged_out


__all__ = [
    "KoLClient",
    "KoLSession",
    "Credentials",
    "CredentialStore",
    "EventEmitter",
    "RolloverDetector",
    "AiohttpTransport",
    "HttpResponse",
    "KoLRequest",
    "is_logged_out",
    "KoLUser",
    "KoLMessage",
    "PartialPlayer",
    "FullPlayer",
    "MallPrice",
]
