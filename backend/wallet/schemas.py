# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the wallet endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from auth.schemas import CamelModel


class BackupUploadRequest(CamelModel):
    # Already encrypted on the device; the server never sees the mnemonic
    encrypted_mnemonic: str = Field(min_length=1, max_length=8192)


class BackupResponse(CamelModel):
    success: bool = True
    encrypted_mnemonic: str
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Wallets
# ---------------------------------------------------------------------------

SUPPORTED_NETWORKS = ("polygon", "ethereum", "base", "arbitrum")


class WalletCreateRequest(CamelModel):
    address: str = Field(min_length=1, max_length=64)
    # Both encrypted on the device before upload
    private_key_encrypted: str = Field(min_length=1, max_length=8192)
    mnemonic_encrypted: str = Field(min_length=1, max_length=8192)
    network: str = "polygon"

    @field_validator("address")
    @classmethod
    def _strip_address(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("address must not be blank")
        return value

    @field_validator("network")
    @classmethod
    def _known_network(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in SUPPORTED_NETWORKS:
            raise ValueError(f"unsupported network: {value}")
        return value


class WalletRow(CamelModel):
    id: int
    address: str
    network: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WalletResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    wallet: WalletRow


class WalletListResponse(CamelModel):
    success: bool = True
    wallets: List[WalletRow]


class WalletStatsRow(CamelModel):
    wallet_count: int
    total_transactions: int
    completed_transactions: int
    completed_volume: Decimal


class WalletStatsResponse(CamelModel):
    success: bool = True
    stats: WalletStatsRow
