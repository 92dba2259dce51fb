# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
JWT access tokens (PyJWT / HS256).

A token carries ``sub`` (user id), ``iat`` and ``exp`` and nothing else.
Account state is never read from it; see ``core.access``.

``verify`` checks the signature first and the expiry second, so a token
whose signature fails is always ``MALFORMED_TOKEN`` even if it is also
past its ``exp``.  Expiry is compared against an explicit ``now`` instead
of PyJWT's wall clock so that the service is a pure function of
(token, key, now).
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt as _jwt        # PyJWT

from core.errors import AuthError, Rejection

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "iat", "exp"]


class TokenService:
    """Issue and verify signed, time-limited bearer tokens."""

    def __init__(self, secret_key: str, lifetime: timedelta = timedelta(days=7)):
        if not secret_key:
            # Refuse to exist rather than sign with an empty key
            raise RuntimeError("SECRET_KEY is not configured")
        if lifetime <= timedelta(0):
            raise RuntimeError("token lifetime must be positive")
        self._key = secret_key
        self.lifetime = lifetime

    def issue(self, user_id: int, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        # exp rounds up so a fractional issue time never shortens the lifetime
        claims = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": math.ceil((now + self.lifetime).timestamp()),
        }
        return _jwt.encode(claims, self._key, algorithm=_ALGORITHM)

    def verify(self, token: str, now: Optional[datetime] = None) -> int:
        """
        Return the subject user id, or raise ``AuthError`` with
        ``MALFORMED_TOKEN`` (bad signature, corrupt payload, wrong algorithm,
        missing claim) or ``TOKEN_EXPIRED``.
        """
        try:
            payload = _jwt.decode(
                token,
                self._key,
                algorithms=[_ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": _REQUIRED_CLAIMS,
                },
            )
        except _jwt.InvalidTokenError as exc:
            raise AuthError(Rejection.MALFORMED_TOKEN) from exc

        user_id = _subject(payload)
        exp = payload["exp"]
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise AuthError(Rejection.MALFORMED_TOKEN)

        now = now or datetime.now(timezone.utc)
        if now.timestamp() >= exp:
            raise AuthError(Rejection.TOKEN_EXPIRED)
        return user_id


def _subject(payload: dict) -> int:
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.isdigit():
        raise AuthError(Rejection.MALFORMED_TOKEN)
    return int(sub)
