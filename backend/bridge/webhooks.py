# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Bridge webhook handling.

Only status fields (and the e-mail used for linking) are read.  Two event
families matter:

* ``transfer``           – moves a local bridge transaction to a new status
* ``customer`` / ``kyc_link`` – links the Bridge customer to the account with
  the same e-mail on first sight, then updates KYC / ToS state through
  ``AccountService.update_account_status``

Anything else is acknowledged and ignored.
"""

import hashlib
import hmac
from typing import Any, Dict, Optional

from auth.service import AccountService
from core.errors import AuthError
from core.logger import logger
from models.bridge_transaction import TRANSACTION_STATUSES

log = logger.getChild("bridge.webhook")

# Provider transfer states -> local transaction status
_TRANSFER_STATUS = {
    "awaiting_funds": "pending",
    "funds_received": "processing",
    "payment_submitted": "processing",
    "in_review": "processing",
    "payment_processed": "completed",
    "undeliverable": "failed",
    "returned": "failed",
    "refunded": "failed",
    "error": "failed",
    "canceled": "cancelled",
}

# Provider KYC states -> local kyc_status
_KYC_STATUS = {
    "not_started": "pending",
    "incomplete": "under_review",
    "under_review": "under_review",
    "approved": "active",
    "rejected": "rejected",
}


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Hex HMAC-SHA256 of the raw body, compared in constant time."""
    if not signature:
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())


def transfer_status(provider_status: Optional[str]) -> Optional[str]:
    if not provider_status:
        return None
    if provider_status in TRANSACTION_STATUSES:
        return provider_status
    return _TRANSFER_STATUS.get(provider_status)


def kyc_status(provider_status: Optional[str]) -> Optional[str]:
    if not provider_status:
        return None
    return _KYC_STATUS.get(provider_status)


def handle_event(event: Dict[str, Any], accounts: AccountService) -> bool:
    """
    Apply one webhook event.  Returns True when local state changed.
    """
    category = event.get("event_category")
    obj = event.get("event_object") or {}
    if not isinstance(obj, dict):
        obj = {}

    if category == "transfer":
        return _handle_transfer(event, obj, accounts)
    if category in ("customer", "kyc_link"):
        return _handle_customer(event, obj, accounts)

    log.info("ignoring webhook event category %r", category)
    return False


def _handle_transfer(event: Dict[str, Any], obj: Dict[str, Any], accounts: AccountService) -> bool:
    tx_id = event.get("event_object_id") or obj.get("id")
    status = transfer_status(event.get("event_object_status") or obj.get("state"))
    if not tx_id or status is None:
        log.warning("transfer event without usable id/status: %r", event.get("event_id"))
        return False

    updated = accounts.store.update_transaction_status(str(tx_id), status)
    if not updated:
        log.warning("transfer event for unknown transaction %s", tx_id)
    else:
        log.info("transaction %s -> %s", tx_id, status)
    return updated


def _handle_customer(event: Dict[str, Any], obj: Dict[str, Any], accounts: AccountService) -> bool:
    if event.get("event_category") == "kyc_link":
        customer_id = obj.get("customer_id")
    else:
        customer_id = event.get("event_object_id") or obj.get("id")
    if not customer_id:
        return False
    customer_id = str(customer_id)

    changes = {}
    user = accounts.store.find_user_by_bridge_customer(customer_id)
    if user is None:
        # First event for this customer: link it to the account with the
        # same e-mail, unless that account is already linked elsewhere
        email = obj.get("email")
        user = accounts.store.find_user_by_email(email.strip()) if isinstance(email, str) else None
        if user is None or user.bridge_customer_id:
            log.warning("webhook for unknown bridge customer %s", customer_id)
            return False
        changes["bridge_customer_id"] = customer_id

    kyc = kyc_status(obj.get("kyc_status"))
    if kyc is not None:
        changes["kyc_status"] = kyc
    if obj.get("tos_status") in ("pending", "approved"):
        changes["tos_status"] = obj["tos_status"]
    if not changes:
        return False

    try:
        accounts.update_account_status(user.id, source="bridge_webhook", **changes)
    except AuthError as exc:
        log.warning("webhook status update for user %d rejected: %s", user.id, exc.message)
        return False
    return True
