# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the user endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from auth.schemas import CamelModel, UserPublic


# -- Requests --------------------------------------------------------------


class ProfileUpdateRequest(CamelModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


class KycStatusUpdateRequest(CamelModel):
    status: str
    data: Optional[Dict[str, Any]] = None


class TosStatusUpdateRequest(CamelModel):
    status: str


class ActivityCreateRequest(CamelModel):
    action: str = Field(min_length=1, max_length=100)
    details: Optional[str] = None


class DeleteAccountRequest(CamelModel):
    password: str


# -- Responses -------------------------------------------------------------


class ProfileResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    user: UserPublic


class KycStatusResponse(CamelModel):
    success: bool = True
    kyc_status: str
    kyc_data: Optional[Dict[str, Any]] = None


class TosStatusResponse(CamelModel):
    success: bool = True
    tos_status: Optional[str] = None


class ActivityRow(CamelModel):
    action: str
    details: Optional[str] = None
    device_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int


class ActivityListResponse(CamelModel):
    success: bool = True
    activities: List[ActivityRow]
    pagination: Pagination
