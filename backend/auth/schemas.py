# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Pydantic request / response models for the auth endpoints.

The mobile client speaks camelCase (``firstName``, ``deviceId``); both
spellings are accepted on input and camelCase is emitted on output.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


# -- Requests --------------------------------------------------------------


class RegisterRequest(CamelModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=3, max_length=255)
    password: str
    device_id: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str
    device_id: Optional[str] = None


class VerifyEmailRequest(CamelModel):
    email: str
    code: str
    device_id: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: str
    device_id: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: str
    password: str
    device_id: Optional[str] = None


class LogoutRequest(CamelModel):
    device_id: Optional[str] = None


# -- Responses -------------------------------------------------------------


class UserPublic(CamelModel):
    """Public-safe projection of a user.  Never carries the password hash."""

    id: int
    first_name: str
    last_name: str
    email: str
    is_verified: bool
    kyc_status: str
    tos_status: Optional[str] = None
    bridge_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class AuthResponse(MessageResponse):
    token: str
    token_type: str = "bearer"
    user: UserPublic
    session_expires_at: Optional[datetime] = None


class MeResponse(CamelModel):
    success: bool = True
    user: UserPublic
