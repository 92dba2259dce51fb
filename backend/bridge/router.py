# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Bridge endpoints – on-ramp / off-ramp initiation, transaction history,
supported currencies and the provider webhook.

Initiating a ramp requires a verified e-mail, approved KYC, accepted terms
of service and a linked Bridge customer, checked in that order.
"""

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from auth.dependencies import client_info, get_accounts
from auth.service import AccountService
from bridge.client import BridgeClient, transaction_id
from bridge.schemas import (
    SUPPORTED_CURRENCIES,
    CurrenciesResponse,
    OfframpRequest,
    OnrampRequest,
    RampResponse,
    TransactionListResponse,
    TransactionRow,
    WebhookAck,
)
from bridge.webhooks import handle_event, verify_signature
from core.access import (
    Identity,
    current_identity,
    guard,
    require_kyc,
    require_provider_link,
    require_tos,
    require_verified,
)
from core.logger import logger

log = logger.getChild("bridge")

router = APIRouter(prefix="/bridge", tags=["bridge"])

ramp_identity = guard(require_verified, require_kyc, require_tos, require_provider_link)


def get_bridge(request: Request) -> BridgeClient:
    return request.app.state.bridge


# ---------------------------------------------------------------------------
# POST /bridge/onramp   – fiat -> USDC
# POST /bridge/offramp  – USDC -> fiat
# ---------------------------------------------------------------------------


@router.post("/onramp", response_model=RampResponse)
def onramp(
    body: OnrampRequest,
    request: Request,
    identity: Identity = Depends(ramp_identity),
    accounts: AccountService = Depends(get_accounts),
    bridge: BridgeClient = Depends(get_bridge),
):
    data = bridge.create_onramp(
        identity.bridge_customer_id, body.amount, body.currency, body.wallet_address
    )
    tx = accounts.store.insert_transaction(
        identity.id,
        "onramp",
        body.amount,
        body.currency,
        body.wallet_address,
        transaction_id(data),
    )
    accounts.log_activity(
        identity, "onramp", f"{body.amount} {body.currency}", client=client_info(request)
    )
    return RampResponse(
        message="On-ramp initiated successfully",
        transaction=TransactionRow.model_validate(tx),
        provider=data,
    )


@router.post("/offramp", response_model=RampResponse)
def offramp(
    body: OfframpRequest,
    request: Request,
    identity: Identity = Depends(ramp_identity),
    accounts: AccountService = Depends(get_accounts),
    bridge: BridgeClient = Depends(get_bridge),
):
    data = bridge.create_offramp(
        identity.bridge_customer_id,
        body.amount,
        body.currency,
        body.wallet_address,
        body.bank_account,
    )
    tx = accounts.store.insert_transaction(
        identity.id,
        "offramp",
        body.amount,
        body.currency,
        body.wallet_address,
        transaction_id(data),
        bank_account=body.bank_account,
    )
    accounts.log_activity(
        identity, "offramp", f"{body.amount} {body.currency}", client=client_info(request)
    )
    return RampResponse(
        message="Off-ramp initiated successfully",
        transaction=TransactionRow.model_validate(tx),
        provider=data,
    )


# ---------------------------------------------------------------------------
# GET /bridge/transactions
# GET /bridge/currencies
# ---------------------------------------------------------------------------


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    identity: Identity = Depends(current_identity),
    accounts: AccountService = Depends(get_accounts),
):
    """Newest first."""
    rows = accounts.store.list_transactions(identity.id)
    return TransactionListResponse(transactions=[TransactionRow.model_validate(r) for r in rows])


@router.get("/currencies", response_model=CurrenciesResponse)
def currencies():
    return CurrenciesResponse(currencies=list(SUPPORTED_CURRENCIES))


# ---------------------------------------------------------------------------
# POST /bridge/webhook
# ---------------------------------------------------------------------------


@router.post("/webhook", response_model=WebhookAck)
async def webhook(request: Request, accounts: AccountService = Depends(get_accounts)):
    """
    Provider callback.  The raw body must carry a matching
    X-Webhook-Signature (hex HMAC-SHA256 under BRIDGE_WEBHOOK_SECRET); with
    no secret configured every call is refused.
    """
    secret = request.app.state.settings.bridge_webhook_secret
    if not secret:
        raise HTTPException(status_code=503, detail="Webhook is not configured")

    body = await request.body()
    if not verify_signature(secret, body, request.headers.get("X-Webhook-Signature")):
        log.warning("webhook signature mismatch from %s", request.client.host if request.client else "?")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Malformed webhook payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Malformed webhook payload")

    # Store calls block; keep them off the event loop
    processed = await run_in_threadpool(handle_event, event, accounts)
    return WebhookAck(processed=processed)
