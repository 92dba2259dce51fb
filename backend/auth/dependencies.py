# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""FastAPI dependencies shared by the routers."""

from typing import Optional

from fastapi import Request

from auth.service import AccountService, ClientInfo
from core.security import get_client_ip


def get_accounts(request: Request) -> AccountService:
    """The AccountService built by the application factory."""
    return request.app.state.accounts


def client_info(request: Request, device_id: Optional[str] = None) -> ClientInfo:
    """
    Activity-log metadata for *request*.  An explicit *device_id* (from the
    body) wins over the X-Device-Id header.
    """
    return ClientInfo(
        device_id=device_id or request.headers.get("X-Device-Id"),
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
