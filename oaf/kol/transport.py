"""
OAF Discord Bot - Game HTTP Transport
=====================================

Thin aiohttp wrapper for talking to kingdomofloathing.com.

DESIGN:
    The session never keeps cookies of its own (DummyCookieJar): the
    credential store is the only place a session cookie lives, and every
    request passes it explicitly. Responses are read fully and returned
    as an HttpResponse so callers never hold an open connection.

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import aiohttp


# =============================================================================
# Constants
# =============================================================================

KOL_BASE_URL = "https://www.kingdomofloathing.com"

TRANSPORT_ERRORS: Tuple[type, ...] = (aiohttp.ClientError, asyncio.TimeoutError)
"""Errors that mean the site could not be reached or answered badly."""

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=30)

_LOGIN_FORM = re.compile(r"""name=["']?loginname""", re.IGNORECASE)


# =============================================================================
# Response
# =============================================================================

@dataclass
class HttpResponse:
    """A fully-read response from the game site."""

    status: int
    text: str
    url: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    set_cookies: Tuple[str, ...] = ()

    @property
    def location(self) -> str:
        """Redirect target, or an empty string."""
        return self.headers.get("Location", "") or self.headers.get("location", "")

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError on malformed input."""
        return json.loads(self.text)


def is_logged_out(response: HttpResponse) -> bool:
    """
    Default logged-out check for authenticated pages.

    The site answers a stale session by redirecting to login.php, or by
    serving the anonymous login page in place of the requested one.
    """
    if "login.php" in response.url:
        return True
    if response.status in (301, 302, 303, 307) and "login.php" in response.location:
        return True
    return bool(_LOGIN_FORM.search(response.text))


# =============================================================================
# Request Descriptor
# =============================================================================

@dataclass(frozen=True)
class KoLRequest:
    """
    Outbound request for an authenticated page.

    Attributes:
        path: Page path relative to the site root (e.g. "showplayer.php").
        params: Query parameters.
        data: Optional form body.
        requires_token: Whether to add pwd=<hash> to the query.
        logged_out: Predicate recognising a logged-out answer for this page.
    """

    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    data: Optional[Mapping[str, Any]] = None
    requires_token: bool = True
    logged_out: Callable[[HttpResponse], bool] = is_logged_out


# =============================================================================
# Transport
# =============================================================================

def _stringify(values: Optional[Mapping[str, Any]]) -> Optional[Dict[str, str]]:
    """aiohttp only accepts str/int/float query values; drop Nones."""
    if values is None:
        return None
    return {str(k): str(v) for k, v in values.items() if v is not None}


class AiohttpTransport:
    """Sends requests to the game site over one shared aiohttp session."""

    def __init__(self, base_url: str = KOL_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                cookie_jar=aiohttp.DummyCookieJar(),
                timeout=REQUEST_TIMEOUT,
            )
        return self._session

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        cookie: Optional[str] = None,
        allow_redirects: bool = True,
    ) -> HttpResponse:
        """
        Send one request and read the whole response.

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError: On transport failure.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Cookie": cookie} if cookie else {}

        async with self._get_session().request(
            method,
            url,
            params=_stringify(params),
            data=_stringify(data),
            headers=headers,
            allow_redirects=allow_redirects,
        ) as resp:
            text = await resp.text(errors="replace")
            return HttpResponse(
                status=resp.status,
                text=text,
                url=str(resp.url),
                headers=dict(resp.headers),
                set_cookies=tuple(resp.headers.getall("Set-Cookie", ())),
            )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = [
    "KOL_BASE_URL",
    "TRANSPORT_ERRORS",
    "HttpResponse",
    "KoLRequest",
    "AiohttpTransport",
    "is_logged_out",
]
