# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Rejection taxonomy for the authentication / authorization core.

Every refusal the core can produce is one member of :class:`Rejection`.
The core itself knows nothing about HTTP; the boundary layer (``main.py``)
maps each member to exactly one status code through ``REJECTION_STATUS``.

``MALFORMED_TOKEN`` and ``TOKEN_EXPIRED`` are deliberately separate: the
first means "log in again", the second means "refresh and retry", and
clients branch on the difference.
"""

import enum
from typing import Optional


class Rejection(str, enum.Enum):
    MISSING_CREDENTIAL = "missing_credential"
    MALFORMED_TOKEN = "malformed_token"
    TOKEN_EXPIRED = "token_expired"
    UNKNOWN_SUBJECT = "unknown_subject"
    INVALID_CREDENTIALS = "invalid_credentials"
    DUPLICATE_EMAIL = "duplicate_email"
    DUPLICATE_WALLET = "duplicate_wallet"
    INCORRECT_CURRENT_PASSWORD = "incorrect_current_password"
    VERIFICATION_REQUIRED = "verification_required"
    KYC_REQUIRED = "kyc_required"
    TOS_REQUIRED = "tos_required"
    PROVIDER_LINK_REQUIRED = "provider_link_required"
    PROVIDER_LINK_CONFLICT = "provider_link_conflict"
    SESSION_INVALID = "session_invalid"
    INVALID_CODE = "invalid_code"
    WEAK_PASSWORD = "weak_password"
    INVALID_STATUS = "invalid_status"
    NOT_FOUND = "not_found"


# Client-facing text.  Kept generic: no message names the field that failed
# beyond what the rejection itself already says.
_DEFAULT_MESSAGES = {
    Rejection.MISSING_CREDENTIAL: "Access token required",
    Rejection.MALFORMED_TOKEN: "Invalid token",
    Rejection.TOKEN_EXPIRED: "Token expired",
    Rejection.UNKNOWN_SUBJECT: "User not found",
    Rejection.INVALID_CREDENTIALS: "Invalid email or password",
    Rejection.DUPLICATE_EMAIL: "User with this email already exists",
    Rejection.DUPLICATE_WALLET: "Wallet with this address already exists",
    Rejection.INCORRECT_CURRENT_PASSWORD: "Current password is incorrect",
    Rejection.VERIFICATION_REQUIRED: "Email verification required",
    Rejection.KYC_REQUIRED: "KYC verification required",
    Rejection.TOS_REQUIRED: "Terms of service acceptance required",
    Rejection.PROVIDER_LINK_REQUIRED: "Bridge customer setup required",
    Rejection.PROVIDER_LINK_CONFLICT: "Bridge customer is linked to another account",
    Rejection.SESSION_INVALID: "Invalid or expired session",
    Rejection.INVALID_CODE: "Invalid or expired code",
    Rejection.WEAK_PASSWORD: "Password does not meet the minimum policy",
    Rejection.INVALID_STATUS: "Invalid status value",
    Rejection.NOT_FOUND: "Resource not found",
}

REJECTION_STATUS = {
    Rejection.MISSING_CREDENTIAL: 401,
    Rejection.MALFORMED_TOKEN: 403,
    Rejection.TOKEN_EXPIRED: 401,
    Rejection.UNKNOWN_SUBJECT: 401,
    Rejection.INVALID_CREDENTIALS: 401,
    Rejection.DUPLICATE_EMAIL: 409,
    Rejection.DUPLICATE_WALLET: 409,
    Rejection.INCORRECT_CURRENT_PASSWORD: 401,
    Rejection.VERIFICATION_REQUIRED: 403,
    Rejection.KYC_REQUIRED: 403,
    Rejection.TOS_REQUIRED: 403,
    Rejection.PROVIDER_LINK_REQUIRED: 403,
    Rejection.PROVIDER_LINK_CONFLICT: 409,
    Rejection.SESSION_INVALID: 401,
    Rejection.INVALID_CODE: 400,
    Rejection.WEAK_PASSWORD: 400,
    Rejection.INVALID_STATUS: 400,
    Rejection.NOT_FOUND: 404,
}


class AuthError(Exception):
    """A named refusal raised by the core.  Carries exactly one reason."""

    def __init__(self, reason: Rejection, message: Optional[str] = None):
        self.reason = reason
        self.message = message or _DEFAULT_MESSAGES[reason]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return REJECTION_STATUS[self.reason]

    def __repr__(self) -> str:
        return f"AuthError({self.reason.value!r})"


class BridgeError(Exception):
    """The payment provider refused a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
