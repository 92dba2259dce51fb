# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
User endpoints – profile, password change, KYC / ToS status, activity log
and account deletion.

Every endpoint requires an authenticated caller.  Account-state writes
(KYC, ToS) go through ``AccountService.update_account_status`` so that each
one is validated and leaves an activity row behind.
"""

from fastapi import APIRouter, Depends, Query, Request

from auth.dependencies import client_info, get_accounts
from auth.schemas import MessageResponse, UserPublic
from auth.service import AccountService
from core.access import Identity, current_identity
from core.errors import AuthError, Rejection
from user.schemas import (
    ActivityCreateRequest,
    ActivityListResponse,
    ActivityRow,
    ChangePasswordRequest,
    DeleteAccountRequest,
    KycStatusResponse,
    KycStatusUpdateRequest,
    Pagination,
    ProfileResponse,
    ProfileUpdateRequest,
    TosStatusResponse,
    TosStatusUpdateRequest,
)

router = APIRouter(prefix="/user", tags=["user"])


# ---------------------------------------------------------------------------
# GET / PUT /user/profile
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=ProfileResponse)
def get_profile(identity: Identity = Depends(current_identity)):
    return ProfileResponse(user=UserPublic.model_validate(identity))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdateRequest,
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    user = accounts.update_profile(identity, body.first_name, body.last_name)
    return ProfileResponse(message="Profile updated successfully", user=UserPublic.model_validate(user))


# ---------------------------------------------------------------------------
# POST /user/change-password
# ---------------------------------------------------------------------------


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    request: Request,
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    """Verify the current password before accepting the new one."""
    accounts.change_password(
        identity, body.current_password, body.new_password, client=client_info(request)
    )
    return MessageResponse(message="Password changed successfully")


# ---------------------------------------------------------------------------
# GET / PUT /user/kyc/status,  PUT /user/tos/status
# ---------------------------------------------------------------------------


@router.get("/kyc/status", response_model=KycStatusResponse)
def get_kyc_status(
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    user = accounts.store.find_user_by_id(identity.id)
    if user is None:
        raise AuthError(Rejection.UNKNOWN_SUBJECT)
    return KycStatusResponse(kyc_status=user.kyc_status, kyc_data=user.kyc_data)


@router.put("/kyc/status", response_model=KycStatusResponse)
def update_kyc_status(
    body: KycStatusUpdateRequest,
    request: Request,
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    user = accounts.update_account_status(
        identity.id,
        kyc_status=body.status,
        kyc_data=body.data,
        source="user",
        client=client_info(request),
    )
    return KycStatusResponse(kyc_status=user.kyc_status, kyc_data=user.kyc_data)


@router.put("/tos/status", response_model=TosStatusResponse)
def update_tos_status(
    body: TosStatusUpdateRequest,
    request: Request,
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    user = accounts.update_account_status(
        identity.id, tos_status=body.status, source="user", client=client_info(request)
    )
    return TosStatusResponse(tos_status=user.tos_status)


# ---------------------------------------------------------------------------
# GET / POST /user/activity
# ---------------------------------------------------------------------------


@router.get("/activity", response_model=ActivityListResponse)
def list_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    """Newest first."""
    rows = accounts.activity(identity, page=page, limit=limit)
    return ActivityListResponse(
        activities=[ActivityRow.model_validate(r) for r in rows],
        pagination=Pagination(page=page, limit=limit),
    )


@router.post("/activity", response_model=MessageResponse)
def log_activity(
    body: ActivityCreateRequest,
    request: Request,
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    accounts.log_activity(identity, body.action, body.details, client=client_info(request))
    return MessageResponse(message="Activity logged successfully")


# ---------------------------------------------------------------------------
# DELETE /user/account
# ---------------------------------------------------------------------------


@router.delete("/account", response_model=MessageResponse)
def delete_account(
    body: DeleteAccountRequest,
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    """
    Password-confirmed.  Sessions, activity, bridge transactions, the wallet
    backup and the user row go together or not at all.
    """
    accounts.delete_account(identity, body.password)
    return MessageResponse(message="Account deleted successfully")
