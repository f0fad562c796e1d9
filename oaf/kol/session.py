"""
OAF Discord Bot - Game Session
==============================

Authenticated access to kingdomofloathing.com for one bot account.

DESIGN:
    One KoLSession owns the credential store, the rollover detector and
    two locks:

    - Login lock: at most one login attempt at a time. Every caller
      waiting on it re-probes once it gets in, so a burst of requests
      after the session expires produces one handshake, not many.
    - Action lock: run_exclusive() keeps multi-request game actions
      (join a clan, then whitelist someone in it) from interleaving.
      Actions may log in freely; the login lock is never held while
      waiting for the action lock.

    request() never raises for network trouble or a dead session. It
    returns the caller's fallback instead, after at most one re-login
    and one retry.

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from oaf.core.logger import logger
from oaf.kol.credentials import Credentials, CredentialStore
from oaf.kol.events import EventEmitter, ROLLOVER
from oaf.kol.maintenance import RolloverDetector, DEFAULT_RECHECK_INTERVAL
from oaf.kol.transport import (
    AiohttpTransport,
    HttpResponse,
    KoLRequest,
    TRANSPORT_ERRORS,
)


T = TypeVar("T")

# Pages too noisy to dump in debug mode
_QUIET_PATHS = ("api.php", "newchatmessages.php")


def _session_cookie(set_cookies) -> str:
    """Join the name=value part of every Set-Cookie header."""
    return "; ".join(c.split(";")[0].strip() for c in set_cookies if c)


class KoLSession:
    """
    Logged-in game session with single-flight login and one-retry requests.

    Attributes:
        username: Game account name.
        credentials: Current cookie and pwd hash.
        rollover: Maintenance window detector.
        events: Bus the `rollover` event is published on.
    """

    def __init__(
        self,
        username: str,
        password: str,
        transport=None,
        events: Optional[EventEmitter] = None,
        rollover_interval: float = DEFAULT_RECHECK_INTERVAL,
    ) -> None:
        self.username = username
        self._login_form = {
            "loggingin": "Yup.",
            "loginname": username,
            "password": password,
            "secure": "0",
            "submitbutton": "Log In",
        }
        self.transport = transport if transport is not None else AiohttpTransport()
        self.events = events if events is not None else EventEmitter()
        self.credentials = CredentialStore()
        self.rollover = RolloverDetector(self.transport, interval=rollover_interval)

        self._login_lock = asyncio.Lock()
        self._action_lock = asyncio.Lock()

    @property
    def _status_params(self):
        return {"what": "status", "for": f"{self.username} Chatbot"}

    # =========================================================================
    # Login
    # =========================================================================

    async def is_logged_in(self) -> bool:
        """Probe whether the current cookie is still accepted."""
        cookie = self.credentials.get().session_cookie
        if not cookie:
            return False
        try:
            response = await self.transport.send(
                "GET", "api.php",
                params=self._status_params,
                cookie=cookie,
                allow_redirects=False,
            )
        except TRANSPORT_ERRORS:
            logger.warning("KoL login check failed, assuming logged out")
            return False
        return response.status == 200

    async def ensure_logged_in(self) -> bool:
        """
        Make sure the session is logged in, logging in if needed.

        Returns:
            True if the session is usable. Never raises for login failure.
        """
        async with self._login_lock:
            logged_in = await self._log_in_locked()
            resumed = logged_in and self.rollover.consume_resume_signal()

        if resumed:
            logger.tree("KoL Rollover Complete", [
                ("User", self.username),
            ], emoji="🌅")
            await self.events.emit(ROLLOVER)

        return logged_in

    async def _log_in_locked(self) -> bool:
        if await self.is_logged_in():
            return True
        if self.rollover.in_maintenance:
            return False

        logger.info(f"Not logged in. Logging in as {self.username}")
        credentials = await self._handshake()
        if credentials is None:
            logger.warning("KoL Login Failed, checking for rollover")
            await self.rollover.check()
            return False

        self.credentials.set(credentials)
        logger.tree("KoL Login Succeeded", [
            ("User", self.username),
        ], emoji="🔑")
        return True

    async def _handshake(self) -> Optional[Credentials]:
        """POST the login form, then read the pwd hash. None on any failure."""
        try:
            login = await self.transport.send(
                "POST", "login.php",
                data=self._login_form,
                allow_redirects=False,
            )
            if login.status != 302:
                logger.debug(f"Login answered {login.status}, expected 302")
                return None

            cookie = _session_cookie(login.set_cookies)
            if not cookie:
                logger.debug("Login answered without a session cookie")
                return None

            status = await self.transport.send(
                "GET", "api.php",
                params=self._status_params,
                cookie=cookie,
                allow_redirects=False,
            )
            if status.status != 200:
                return None
            payload = status.json()
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Login transport error: {type(e).__name__}")
            return None
        except ValueError:
            logger.debug("Login status was not JSON")
            return None

        pwd = payload.get("pwd") if isinstance(payload, dict) else None
        if not pwd:
            return None
        return Credentials(session_cookie=cookie, pwd_hash=str(pwd))

    # =========================================================================
    # Requests
    # =========================================================================

    async def request(self, descriptor: KoLRequest, fallback: str = "") -> str:
        """
        Send an authenticated request, re-logging in and retrying once.

        Returns:
            The response body, or `fallback` during maintenance, on login
            failure, on a transport error, or when the retry is still
            logged out.
        """
        if self.rollover.in_maintenance or not await self.ensure_logged_in():
            return fallback

        try:
            response = await self._send(descriptor)
            if descriptor.logged_out(response):
                logger.info("KoL Session Expired", [("Page", descriptor.path)])
                if not await self.ensure_logged_in():
                    return fallback
                response = await self._send(descriptor)
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Request to {descriptor.path} failed: {type(e).__name__}")
            return fallback

        if descriptor.logged_out(response):
            logger.warning("KoL Still Logged Out After Retry", [("Page", descriptor.path)])
            return fallback

        if not descriptor.path.startswith(_QUIET_PATHS):
            logger.debug(f"{descriptor.path} {dict(descriptor.params)}")
        return response.text

    async def _send(self, descriptor: KoLRequest) -> HttpResponse:
        credentials = self.credentials.get()
        params = dict(descriptor.params)
        if descriptor.requires_token:
            params["pwd"] = credentials.pwd_hash
        return await self.transport.send(
            "POST", descriptor.path,
            params=params,
            data=descriptor.data,
            cookie=credentials.session_cookie,
        )

    # =========================================================================
    # Serialized Actions
    # =========================================================================

    async def run_exclusive(self, action: Callable[[], Awaitable[T]]) -> T:
        """Run a multi-request game action without interleaving others."""
        async with self._action_lock:
            return await action()

    async def close(self) -> None:
        await self.rollover.stop()
        await self.transport.close()


__all__ = ["KoLSession"]
