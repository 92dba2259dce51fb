# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the Bridge endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from auth.schemas import CamelModel

SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP", "USDC")


class OnrampRequest(CamelModel):
    amount: Decimal = Field(gt=0, max_digits=20, decimal_places=8)
    currency: str
    wallet_address: str = Field(min_length=1, max_length=64)

    @field_validator("currency")
    @classmethod
    def _supported(cls, v: str) -> str:
        v = v.upper()
        if v not in SUPPORTED_CURRENCIES:
            raise ValueError(f"currency must be one of {', '.join(SUPPORTED_CURRENCIES)}")
        return v


class OfframpRequest(OnrampRequest):
    bank_account: str = Field(min_length=1, max_length=255)


class TransactionRow(CamelModel):
    id: int
    type: str
    amount: Decimal
    currency: str
    wallet_address: str
    bank_account: Optional[str] = None
    bridge_tx_id: str
    status: str
    created_at: Optional[datetime] = None


class RampResponse(CamelModel):
    success: bool = True
    message: str
    transaction: TransactionRow
    provider: Dict[str, Any]


class TransactionListResponse(CamelModel):
    success: bool = True
    transactions: List[TransactionRow]


class CurrenciesResponse(CamelModel):
    success: bool = True
    currencies: List[str]


class WebhookAck(CamelModel):
    success: bool = True
    processed: bool
