# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Wallet endpoints – registered addresses, ramp statistics and the
client-encrypted mnemonic backup.

The device encrypts the mnemonic before upload.  The server wraps that blob
again with AES-256-GCM under MASTER_ENCRYPTION_KEY and keeps one row per
user.  Registered wallets keep their encrypted private key and mnemonic
the same way, one nonce per blob, and are never returned.  Routes use
``mobile_identity`` so a device session is enforced when
the caller sends X-Device-Id.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from auth.dependencies import client_info, get_accounts
from auth.schemas import MessageResponse
from auth.service import AccountService
from core.access import Identity, mobile_identity
from core.errors import AuthError, Rejection
from core.logger import logger
from core.security import BackupCipher
from wallet.schemas import (
    BackupResponse,
    BackupUploadRequest,
    WalletCreateRequest,
    WalletListResponse,
    WalletResponse,
    WalletRow,
    WalletStatsResponse,
    WalletStatsRow,
)

log = logger.getChild("wallet")

router = APIRouter(prefix="/wallet", tags=["wallet"])


def get_cipher(request: Request) -> BackupCipher:
    cipher = request.app.state.backup_cipher
    if cipher is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Wallet backup is not configured",
        )
    return cipher


# ---------------------------------------------------------------------------
# PUT /wallet/backup
# ---------------------------------------------------------------------------


@router.put("/backup", response_model=MessageResponse)
def save_backup(
    body: BackupUploadRequest,
    request: Request,
    identity: Identity = Depends(mobile_identity),
    accounts: AccountService = Depends(get_accounts),
    cipher: BackupCipher = Depends(get_cipher),
):
    """Create or replace the caller's backup."""
    ciphertext, iv = cipher.encrypt(body.encrypted_mnemonic)
    accounts.store.save_backup(identity.id, ciphertext, iv)
    accounts.log_activity(
        identity, "wallet_backup", "Wallet backup stored", client=client_info(request)
    )
    return MessageResponse(message="Wallet backup saved")


# ---------------------------------------------------------------------------
# GET /wallet/backup
# ---------------------------------------------------------------------------


@router.get("/backup", response_model=BackupResponse)
def get_backup(
    request: Request,
    identity: Identity = Depends(mobile_identity),
    accounts: AccountService = Depends(get_accounts),
    cipher: BackupCipher = Depends(get_cipher),
):
    stored = accounts.store.load_backup(identity.id)
    if stored is None:
        raise AuthError(Rejection.NOT_FOUND, "No wallet backup found")

    ciphertext, iv, updated_at = stored
    try:
        encrypted_mnemonic = cipher.decrypt(ciphertext, iv)
    except ValueError:
        log.error("wallet backup for user %d failed integrity check", identity.id)
        raise HTTPException(status_code=500, detail="Wallet backup could not be decrypted")

    accounts.log_activity(
        identity, "wallet_restore", "Wallet backup retrieved", client=client_info(request)
    )
    return BackupResponse(encrypted_mnemonic=encrypted_mnemonic, updated_at=updated_at)


# ---------------------------------------------------------------------------
# DELETE /wallet/backup
# ---------------------------------------------------------------------------


@router.delete("/backup", response_model=MessageResponse)
def delete_backup(
    request: Request,
    identity: Identity = Depends(mobile_identity),
    accounts: AccountService = Depends(get_accounts),
):
    if not accounts.store.delete_backup(identity.id):
        raise AuthError(Rejection.NOT_FOUND, "No wallet backup found")
    accounts.log_activity(
        identity, "wallet_backup_deleted", "Wallet backup deleted", client=client_info(request)
    )
    return MessageResponse(message="Wallet backup deleted")


# ---------------------------------------------------------------------------
# GET  /wallet/list
# POST /wallet/create
# GET  /wallet/stats
# GET  /wallet/{wallet_id}   (declared last so it never shadows the above)
# ---------------------------------------------------------------------------


@router.get("/list", response_model=WalletListResponse)
def list_wallets(
    identity: Identity = Depends(mobile_identity),
    accounts: AccountService = Depends(get_accounts),
):
    rows = accounts.store.list_wallets(identity.id)
    return WalletListResponse(wallets=[WalletRow.model_validate(r) for r in rows])


@router.post("/create", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
def create_wallet(
    body: WalletCreateRequest,
    request: Request,
    identity: Identity = Depends(mobile_identity),
    accounts: AccountService = Depends(get_accounts),
    cipher: BackupCipher = Depends(get_cipher),
):
    """Register an address; a second registration of the same address is 409."""
    wallet = accounts.store.insert_wallet(
        identity.id,
        body.address,
        body.network,
        private_key=cipher.encrypt(body.private_key_encrypted),
        mnemonic=cipher.encrypt(body.mnemonic_encrypted),
    )
    accounts.log_activity(
        identity, "wallet_created", f"Wallet created: {wallet.address}", client=client_info(request)
    )
    log.info("user %d registered wallet %d on %s", identity.id, wallet.id, wallet.network)
    return WalletResponse(
        message="Wallet created successfully", wallet=WalletRow.model_validate(wallet)
    )


@router.get("/stats", response_model=WalletStatsResponse)
def wallet_stats(
    identity: Identity = Depends(mobile_identity),
    accounts: AccountService = Depends(get_accounts),
):
    """Ramp totals; volume counts completed transactions only."""
    stats = accounts.store.transaction_stats(identity.id)
    return WalletStatsResponse(
        stats=WalletStatsRow(
            wallet_count=len(accounts.store.list_wallets(identity.id)),
            total_transactions=stats.total_transactions,
            completed_transactions=stats.completed_transactions,
            completed_volume=stats.completed_volume,
        )
    )


@router.get("/{wallet_id}", response_model=WalletResponse)
def get_wallet(
    wallet_id: int,
    identity: Identity = Depends(mobile_identity),
    accounts: AccountService = Depends(get_accounts),
):
    wallet = accounts.store.find_wallet(identity.id, wallet_id)
    if wallet is None:
        raise AuthError(Rejection.NOT_FOUND, "Wallet not found")
    return WalletResponse(wallet=WalletRow.model_validate(wallet))
