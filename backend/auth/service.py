# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Account lifecycle – register, login, logout, password change / reset,
e-mail verification, account deletion and account-state writes.

Security notes
--------------
* Login returns the *same* rejection whether the email doesn't exist or the
  password is wrong, and both branches run one PBKDF2 verification.
* change-password and delete-account re-verify the current password, so a
  stolen (but not yet expired) token alone cannot take over the account.
* forgot-password never tells the caller whether the address is registered.
* Reset codes are stored as SHA-256 digests and consumed by a single
  conditional UPDATE; a code works once.
* KYC / ToS / provider-link fields change only through
  :meth:`AccountService.update_account_status`, which validates the value and
  writes an activity row.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

from core.access import Identity
from core.errors import AuthError, Rejection
from core.logger import logger
from core.security import PasswordHasher, digest, new_reset_code, new_verification_code
from core.sessions import SessionTracker
from core.store import ActivityRecord, CredentialStore, SessionRecord, UserRecord
from core.tokens import TokenService
from models.user import KYC_STATUSES, TOS_STATUSES

log = logger.getChild("accounts")

_UNSET: Any = object()


@dataclass(frozen=True)
class ClientInfo:
    """Where a request came from; only ever written to the activity log."""

    device_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: UserRecord
    session: Optional[SessionRecord] = None


def validate_new_password(pw: str) -> Optional[str]:
    """
    Return an error string if the password does not meet the minimum policy,
    or None if it is acceptable.

    Policy: >= 8 chars, at least one uppercase, one lowercase, one digit.
    """
    if len(pw) < 8:
        return "Password must be at least 8 characters"
    if not re.search(r"[A-Z]", pw):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", pw):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", pw):
        return "Password must contain at least one digit"
    return None


def _enforce_policy(pw: str) -> None:
    err = validate_new_password(pw)
    if err:
        raise AuthError(Rejection.WEAK_PASSWORD, err)


class AccountService:
    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenService,
        sessions: SessionTracker,
        hasher: PasswordHasher,
        verification_ttl: timedelta = timedelta(hours=24),
        reset_ttl: timedelta = timedelta(hours=1),
        debug_log_codes: bool = False,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.tokens = tokens
        self.sessions = sessions
        self.hasher = hasher
        self.verification_ttl = verification_ttl
        self.reset_ttl = reset_ttl
        self.debug_log_codes = debug_log_codes
        self._now = clock

    # -- register / login --------------------------------------------------

    def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        client: ClientInfo = ClientInfo(),
    ) -> AuthResult:
        _enforce_policy(password)
        if self.store.find_user_by_email(email) is not None:
            raise AuthError(Rejection.DUPLICATE_EMAIL)

        code = new_verification_code()
        user = self.store.insert_user(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=self.hasher.hash(password),
            verification_code=code,
            verification_expires=self._now() + self.verification_ttl,
        )
        token = self.tokens.issue(user.id, now=self._now())
        self._record(user.id, "register", "Account registration", client)
        self._deliver_code("verification", email, code)
        log.info("user %d registered", user.id)
        return AuthResult(token=token, user=user)

    def login(
        self,
        email: str,
        password: str,
        client: ClientInfo = ClientInfo(),
        track_session: bool = False,
    ) -> AuthResult:
        """
        Authenticate and issue a token.  With ``track_session`` (and a device
        id in *client*) a device session is opened or replaced as well.
        """
        user = self.store.find_user_by_email(email)

        # Unified failure path – no information leaks about whether the email exists
        if user is None:
            self.hasher.verify_dummy(password)
            raise AuthError(Rejection.INVALID_CREDENTIALS)
        if not self.hasher.verify(password, user.password_hash):
            raise AuthError(Rejection.INVALID_CREDENTIALS)

        now = self._now()
        token = self.tokens.issue(user.id, now=now)
        user = self.store.update_user_fields(user.id, last_login=now) or user

        session = None
        if track_session and client.device_id:
            session = self.sessions.open(user.id, client.device_id, token, now=now)

        self._record(user.id, "login", "Login", client)
        return AuthResult(token=token, user=user, session=session)

    def logout(self, identity: Identity, client: ClientInfo = ClientInfo()) -> None:
        """Always succeeds, whether or not a session existed for the device."""
        if client.device_id:
            self.sessions.close(identity.id, client.device_id)
        self._record(identity.id, "logout", "Logout", client)

    # -- passwords ---------------------------------------------------------

    def change_password(
        self,
        identity: Identity,
        current_password: str,
        new_password: str,
        client: ClientInfo = ClientInfo(),
    ) -> None:
        user = self._reload(identity)
        if not self.hasher.verify(current_password, user.password_hash):
            raise AuthError(Rejection.INCORRECT_CURRENT_PASSWORD)
        _enforce_policy(new_password)

        self.store.update_user_fields(user.id, password_hash=self.hasher.hash(new_password))
        self._record(user.id, "change_password", "Password changed", client)

    def forgot_password(self, email: str, client: ClientInfo = ClientInfo()) -> Optional[str]:
        """
        Store a one-hour reset code for *email* and return it for delivery.
        Returns None for an unknown address; callers must answer identically
        in both cases.
        """
        user = self.store.find_user_by_email(email)
        if user is None:
            return None
        code = new_reset_code()
        self.store.set_reset_code(user.id, digest(code), self._now() + self.reset_ttl)
        self._record(user.id, "forgot_password", "Password reset requested", client)
        self._deliver_code("reset", email, code)
        return code

    def reset_password(
        self, code: str, new_password: str, client: ClientInfo = ClientInfo()
    ) -> None:
        _enforce_policy(new_password)
        user_id = self.store.consume_reset_code(
            digest(code), self.hasher.hash(new_password), self._now()
        )
        if user_id is None:
            raise AuthError(Rejection.INVALID_CODE)
        self._record(user_id, "reset_password", "Password reset", client)

    # -- e-mail verification -----------------------------------------------

    def verify_email(self, email: str, code: str, client: ClientInfo = ClientInfo()) -> None:
        user_id = self.store.consume_verification_code(email, code, self._now())
        if user_id is None:
            raise AuthError(Rejection.INVALID_CODE)
        self._record(user_id, "verify_email", "Email verified", client)

    # -- profile / account -------------------------------------------------

    def update_profile(self, identity: Identity, first_name: str, last_name: str) -> UserRecord:
        user = self.store.update_user_fields(
            identity.id, first_name=first_name, last_name=last_name
        )
        if user is None:
            raise AuthError(Rejection.UNKNOWN_SUBJECT)
        return user

    def delete_account(self, identity: Identity, password: str) -> None:
        user = self._reload(identity)
        if not self.hasher.verify(password, user.password_hash):
            raise AuthError(Rejection.INCORRECT_CURRENT_PASSWORD)
        if not self.store.delete_user_cascade(user.id):
            raise AuthError(Rejection.UNKNOWN_SUBJECT)

    def update_account_status(
        self,
        user_id: int,
        *,
        kyc_status: Any = _UNSET,
        kyc_data: Any = _UNSET,
        tos_status: Any = _UNSET,
        bridge_customer_id: Any = _UNSET,
        source: str = "user",
        client: ClientInfo = ClientInfo(),
    ) -> UserRecord:
        """
        The one write path for account-state fields.  Any allowed value may
        replace any other; there is no transition table.
        """
        fields = {}
        if kyc_status is not _UNSET:
            if kyc_status not in KYC_STATUSES:
                raise AuthError(Rejection.INVALID_STATUS, "Invalid KYC status")
            fields["kyc_status"] = kyc_status
        if kyc_data is not _UNSET:
            fields["kyc_data"] = kyc_data
        if tos_status is not _UNSET:
            if tos_status is not None and tos_status not in TOS_STATUSES:
                raise AuthError(Rejection.INVALID_STATUS, "Invalid terms of service status")
            fields["tos_status"] = tos_status
        if bridge_customer_id is not _UNSET:
            fields["bridge_customer_id"] = bridge_customer_id or None
        if not fields:
            raise AuthError(Rejection.INVALID_STATUS, "Nothing to update")

        user = self.store.update_user_fields(user_id, **fields)
        if user is None:
            raise AuthError(Rejection.UNKNOWN_SUBJECT)

        changed = ", ".join(
            f"{name}={fields[name]}" for name in sorted(fields) if name != "kyc_data"
        )
        self._record(user_id, "status_update", f"{source}: {changed}", client)
        log.info("user %d status update from %s: %s", user_id, source, changed)
        return user

    # -- activity ----------------------------------------------------------

    def log_activity(
        self,
        identity: Identity,
        action: str,
        details: Optional[str] = None,
        client: ClientInfo = ClientInfo(),
    ) -> None:
        self._record(identity.id, action, details, client)

    def activity(self, identity: Identity, page: int = 1, limit: int = 20) -> List[ActivityRecord]:
        return self.store.list_activity(identity.id, page=page, limit=limit)

    # -- internals ---------------------------------------------------------

    def _reload(self, identity: Identity) -> UserRecord:
        user = self.store.find_user_by_id(identity.id)
        if user is None:
            raise AuthError(Rejection.UNKNOWN_SUBJECT)
        return user

    def _record(self, user_id: int, action: str, details: Optional[str], client: ClientInfo) -> None:
        self.store.add_activity(
            user_id,
            action,
            details=details,
            device_id=client.device_id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )

    def _deliver_code(self, kind: str, email: str, code: str) -> None:
        # No mail transport yet: codes only reach the log in debug mode.
        if self.debug_log_codes:
            log.warning("DEBUG %s code for %s: %s", kind, email, code)
        else:
            log.info("%s code issued", kind)
