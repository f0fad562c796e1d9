"""
OAF Discord Bot - Claim Tokens
==============================

Short-lived tokens proving that a Discord user controls a game account.

DESIGN:
    A player whispers "claim" to the bot in game and gets back a token.
    The token is the player id with a 6-digit TOTP code (pyotp, 2-minute
    step) appended, written in hex. The TOTP secret is the base32 form of
    "<SALT>-<player id>", so a code minted for one player never verifies
    for another. /claim decodes the id back out of the token.

Bot: OAF
Game: kingdomofloathing.com
"""

import base64
import time
from typing import Optional, Tuple

import pyotp


TOKEN_STEP = 120
TOKEN_DIGITS = 6


def _now(now: Optional[float]) -> int:
    return int(time.time() if now is None else now)


def _player_totp(player_id: int, salt: str) -> pyotp.TOTP:
    secret = base64.b32encode(f"{salt}-{player_id}".encode("utf-8")).decode("ascii")
    return pyotp.TOTP(secret, digits=TOKEN_DIGITS, interval=TOKEN_STEP)


def generate_player_token(player_id: int, salt: str, now: Optional[float] = None) -> str:
    """Mint the current token for a player."""
    code = _player_totp(player_id, salt).at(_now(now))
    return format(int(f"{player_id}{code}"), "x")


def check_player_token(token: str, salt: str, now: Optional[float] = None) -> Tuple[Optional[int], bool]:
    """
    Verify a token against the current time step.

    Returns:
        (player id or None if the token is not hex, whether it is valid)
    """
    try:
        decoded = int(token.strip(), 16)
    except ValueError:
        return None, False

    player_id, code = divmod(decoded, 10 ** TOKEN_DIGITS)
    if player_id <= 0:
        return player_id, False

    code = str(code).zfill(TOKEN_DIGITS)
    return player_id, _player_totp(player_id, salt).verify(code, for_time=_now(now))


def time_remaining(now: Optional[float] = None) -> int:
    """Seconds until the current token expires."""
    return TOKEN_STEP - _now(now) % TOKEN_STEP


__all__ = [
    "TOKEN_STEP",
    "generate_player_token",
    "check_player_token",
    "time_remaining",
]
