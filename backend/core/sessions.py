# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Device-scoped sessions.

A session binds one issued token to a (user, device) pair with its own
expiry, independent of the token's ``exp``.  It is layered on top of the
token: a valid session never rescues an invalid token, and an expired
session only matters on routes whose caller sent a device id.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from core.errors import AuthError, Rejection
from core.security import digest
from core.store import CredentialStore, SessionRecord


class SessionTracker:
    def __init__(self, store: CredentialStore, ttl: timedelta = timedelta(days=7)):
        self.store = store
        self.ttl = ttl

    def open(
        self, user_id: int, device_id: str, token: str, now: Optional[datetime] = None
    ) -> SessionRecord:
        """Create or replace the session for this device."""
        now = now or datetime.now(timezone.utc)
        return self.store.upsert_session(
            user_id=user_id,
            device_id=device_id,
            token_hash=digest(token),
            expires_at=now + self.ttl,
            now=now,
        )

    def require(self, user_id: int, device_id: str, now: Optional[datetime] = None) -> SessionRecord:
        """
        Return the live session for (user, device) and stamp its
        ``last_accessed``; raise ``SESSION_INVALID`` if there is none.
        Expired rows are simply ignored here, never deleted.
        """
        now = now or datetime.now(timezone.utc)
        session = self.store.find_valid_session(user_id, device_id, now)
        if session is None:
            raise AuthError(Rejection.SESSION_INVALID)
        self.store.touch_session(user_id, device_id, now)
        return session

    def close(self, user_id: int, device_id: str) -> bool:
        """Idempotent: closing a session that does not exist is not an error."""
        return self.store.delete_session(user_id, device_id)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        return self.store.purge_expired_sessions(now or datetime.now(timezone.utc))
