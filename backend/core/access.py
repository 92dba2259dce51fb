# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Credential resolution and access-control gates.

Resolution turns an ``Authorization`` header into an :class:`Identity`:

1. extract the bearer token              → MISSING_CREDENTIAL
2. verify signature and expiry           → MALFORMED_TOKEN / TOKEN_EXPIRED
3. re-read the user from the store       → UNKNOWN_SUBJECT

Step 3 happens on every request.  The token contributes the user id and
nothing else, so deleting a user or changing their KYC state takes effect on
the very next request, not when the token runs out.

The mobile variant additionally honours an ``X-Device-Id`` header: when it
is sent, a live session for (user, device) must exist.  When it is absent
the session check is skipped.

Gates are plain functions over an Identity.  ``guard(...)`` chains them into
a FastAPI dependency that stops at the first refusal.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from fastapi import Header, Request

from core.errors import AuthError, Rejection
from core.sessions import SessionTracker
from core.store import CredentialStore, UserRecord
from core.tokens import TokenService


@dataclass(frozen=True)
class Identity:
    """The authenticated caller plus the account state the gates read."""

    id: int
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    kyc_status: str
    tos_status: Optional[str]
    bridge_customer_id: Optional[str]
    created_at: Optional[datetime] = None
    device_id: Optional[str] = None

    @classmethod
    def from_user(cls, user: UserRecord, device_id: Optional[str] = None) -> "Identity":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_verified=user.is_verified,
            kyc_status=user.kyc_status,
            tos_status=user.tos_status,
            bridge_customer_id=user.bridge_customer_id,
            created_at=user.created_at,
            device_id=device_id,
        )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def extract_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError(Rejection.MISSING_CREDENTIAL)
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthError(Rejection.MISSING_CREDENTIAL)
    return token


def resolve_identity(
    authorization: Optional[str],
    tokens: TokenService,
    store: CredentialStore,
    now: Optional[datetime] = None,
) -> Identity:
    token = extract_bearer(authorization)
    user_id = tokens.verify(token, now=now)
    user = store.find_user_by_id(user_id)
    if user is None:
        raise AuthError(Rejection.UNKNOWN_SUBJECT)
    return Identity.from_user(user)


def resolve_mobile_identity(
    authorization: Optional[str],
    device_id: Optional[str],
    tokens: TokenService,
    store: CredentialStore,
    sessions: SessionTracker,
    now: Optional[datetime] = None,
) -> Identity:
    identity = resolve_identity(authorization, tokens, store, now=now)
    if not device_id:
        return identity
    sessions.require(identity.id, device_id, now=now)
    return replace(identity, device_id=device_id)


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------

Gate = Callable[[Identity], None]


def _checked(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise TypeError("gate called before the identity was resolved")
    return identity


def require_verified(identity: Identity) -> None:
    if not _checked(identity).is_verified:
        raise AuthError(Rejection.VERIFICATION_REQUIRED)


def require_kyc(identity: Identity) -> None:
    if _checked(identity).kyc_status != "active":
        raise AuthError(Rejection.KYC_REQUIRED)


def require_tos(identity: Identity) -> None:
    if _checked(identity).tos_status != "approved":
        raise AuthError(Rejection.TOS_REQUIRED)


def require_provider_link(identity: Identity) -> None:
    if not _checked(identity).bridge_customer_id:
        raise AuthError(Rejection.PROVIDER_LINK_REQUIRED)


def run_gates(identity: Identity, *gates: Gate) -> Identity:
    for gate in gates:
        gate(identity)
    return identity


# ---------------------------------------------------------------------------
# FastAPI dependency guards
# ---------------------------------------------------------------------------


def guard(*gates: Gate, mobile: bool = False):
    """
    Build a dependency that resolves the caller and then applies *gates* in
    order.  ``mobile=True`` switches on the optional device-session check.

        @router.post("/onramp")
        def onramp(identity: Identity = Depends(guard(require_kyc, require_tos))):
            ...
    """

    def dependency(
        request: Request,
        authorization: Optional[str] = Header(default=None),
        x_device_id: Optional[str] = Header(default=None),
    ) -> Identity:
        accounts = request.app.state.accounts
        if mobile:
            identity = resolve_mobile_identity(
                authorization,
                x_device_id,
                accounts.tokens,
                accounts.store,
                accounts.sessions,
            )
        else:
            identity = resolve_identity(authorization, accounts.tokens, accounts.store)
        run_gates(identity, *gates)
        request.state.identity = identity
        return identity

    return dependency


# Most routes only need an authenticated caller
current_identity = guard()
mobile_identity = guard(mobile=True)
