# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – register, login (web and mobile), e-mail verification,
password reset, current-user info, logout.

Security notes
--------------
* Login returns the *same* error whether the email doesn't exist or the
  password is wrong.  This prevents user-enumeration attacks.
* forgot-password answers identically for known and unknown addresses.
* Only /auth/mobile/login opens a device session; /auth/login never does.
  Routes guarded with ``mobile_identity`` check that session only when the
  caller sends X-Device-Id.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from auth.dependencies import client_info, get_accounts
from auth.schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserPublic,
    VerifyEmailRequest,
)
from auth.service import AccountService, AuthResult
from core.access import Identity, current_identity

router = APIRouter(prefix="/auth", tags=["auth"])

# Same body for known and unknown addresses
_RESET_SENT = "If the email exists, a password reset link has been sent"


def _auth_response(result: AuthResult, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=result.token,
        user=UserPublic.model_validate(result.user),
        session_expires_at=result.session.expires_at if result.session else None,
    )


# ---------------------------------------------------------------------------
# POST /auth/register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    """Create an unverified account and return a signed JWT."""
    result = accounts.register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        client=client_info(request, body.device_id),
    )
    return _auth_response(result, "User registered successfully")


# ---------------------------------------------------------------------------
# POST /auth/login            – web: token only
# POST /auth/mobile/login     – mobile: token + device session
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    """Authenticate and return a signed JWT."""
    result = accounts.login(body.email, body.password, client=client_info(request, body.device_id))
    return _auth_response(result, "Login successful")


@router.post("/mobile/login", response_model=AuthResponse)
def mobile_login(
    body: LoginRequest,
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    """
    Authenticate and, when a device id is supplied, open (or replace) the
    device session for it.
    """
    result = accounts.login(
        body.email,
        body.password,
        client=client_info(request, body.device_id),
        track_session=True,
    )
    return _auth_response(result, "Login successful")


# ---------------------------------------------------------------------------
# POST /auth/verify-email
# ---------------------------------------------------------------------------


@router.post("/verify-email", response_model=MessageResponse)
def verify_email(
    body: VerifyEmailRequest,
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    accounts.verify_email(body.email, body.code, client=client_info(request, body.device_id))
    return MessageResponse(message="Email verified successfully")


# ---------------------------------------------------------------------------
# POST /auth/forgot-password
# POST /auth/reset-password
# ---------------------------------------------------------------------------


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    accounts.forgot_password(body.email, client=client_info(request, body.device_id))
    return MessageResponse(message=_RESET_SENT)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    accounts.reset_password(body.token, body.password, client=client_info(request, body.device_id))
    return MessageResponse(message="Password reset successfully")


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=MeResponse)
def me(identity: Identity = Depends(current_identity)):
    """Return the authenticated user's public profile (no secrets)."""
    return MeResponse(user=UserPublic.model_validate(identity))


# ---------------------------------------------------------------------------
# POST /auth/logout
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    body: Optional[LogoutRequest] = None,
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    """Drop the device session if one is named; succeeds either way."""
    device_id = body.device_id if body else None
    accounts.logout(identity, client=client_info(request, device_id))
    return MessageResponse(message="Logout successful")
