# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Credential store – every query the core issues, behind one class.

Each public method borrows its own session from the injected ``Database``
and gives it back before returning, whatever happens.  Rows never leave
this module: callers get frozen dataclasses, so nothing downstream can
lazy-load or mutate an ORM object after its session is gone.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError

from core.errors import AuthError, Rejection
from core.logger import logger
from database import Database
from models.activity_log import ActivityLog
from models.bridge_transaction import TRANSACTION_TYPES, BridgeTransaction
from models.device_session import DeviceSession
from models.user import User
from models.wallet import Wallet
from models.wallet_backup import WalletBackup

log = logger.getChild("store")

# Columns that ``update_user_fields`` may touch.  Password and code columns
# have dedicated methods.
_MUTABLE_USER_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "is_verified",
        "kyc_status",
        "kyc_data",
        "tos_status",
        "bridge_customer_id",
        "last_login",
        "password_hash",
    }
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserRecord:
    id: int
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    kyc_status: str
    tos_status: Optional[str]
    bridge_customer_id: Optional[str]
    created_at: Optional[datetime] = None
    kyc_data: Optional[Dict[str, Any]] = None
    last_login: Optional[datetime] = None
    password_hash: str = field(default="", repr=False)

    @classmethod
    def from_row(cls, row: User) -> "UserRecord":
        return cls(
            id=row.id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            is_verified=bool(row.is_verified),
            kyc_status=row.kyc_status,
            tos_status=row.tos_status,
            bridge_customer_id=row.bridge_customer_id,
            created_at=_aware(row.created_at),
            kyc_data=row.kyc_data,
            last_login=_aware(row.last_login),
            password_hash=row.password_hash,
        )


@dataclass(frozen=True)
class SessionRecord:
    user_id: int
    device_id: str
    token_hash: str
    expires_at: datetime
    last_accessed: datetime

    @classmethod
    def from_row(cls, row: DeviceSession) -> "SessionRecord":
        return cls(
            user_id=row.user_id,
            device_id=row.device_id,
            token_hash=row.token_hash,
            expires_at=_aware(row.expires_at),
            last_accessed=_aware(row.last_accessed),
        )

    def is_valid(self, now: datetime) -> bool:
        return self.expires_at > now


@dataclass(frozen=True)
class ActivityRecord:
    action: str
    details: Optional[str]
    device_id: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    user_id: int
    type: str
    amount: Decimal
    currency: str
    wallet_address: str
    bank_account: Optional[str]
    bridge_tx_id: str
    status: str
    created_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: BridgeTransaction) -> "TransactionRecord":
        return cls(
            id=row.id,
            user_id=row.user_id,
            type=row.type,
            amount=row.amount,
            currency=row.currency,
            wallet_address=row.wallet_address,
            bank_account=row.bank_account,
            bridge_tx_id=row.bridge_tx_id,
            status=row.status,
            created_at=_aware(row.created_at),
        )


@dataclass(frozen=True)
class WalletRecord:
    """Public wallet fields only; key material never leaves the store."""

    id: int
    user_id: int
    address: str
    network: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: Wallet) -> "WalletRecord":
        return cls(
            id=row.id,
            user_id=row.user_id,
            address=row.address,
            network=row.network,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )


@dataclass(frozen=True)
class WalletStats:
    total_transactions: int
    completed_transactions: int
    completed_volume: Decimal


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class CredentialStore:
    def __init__(self, database: Database):
        self.database = database

    # -- users -------------------------------------------------------------

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.database.session() as db:
            row = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
            return UserRecord.from_row(row) if row else None

    def find_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        with self.database.session() as db:
            row = db.get(User, user_id)
            return UserRecord.from_row(row) if row else None

    def find_user_by_bridge_customer(self, customer_id: str) -> Optional[UserRecord]:
        with self.database.session() as db:
            row = db.execute(
                select(User).where(User.bridge_customer_id == customer_id)
            ).scalar_one_or_none()
            return UserRecord.from_row(row) if row else None

    def insert_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
        verification_code: Optional[str] = None,
        verification_expires: Optional[datetime] = None,
    ) -> UserRecord:
        """
        Insert a user with default account state.  The unique index on
        ``email`` is the final word: a concurrent duplicate surfaces here as
        ``DUPLICATE_EMAIL`` and nothing is written.
        """
        with self.database.transaction() as db:
            row = User(
                first_name=first_name,
                last_name=last_name,
                email=email,
                password_hash=password_hash,
                is_verified=False,
                kyc_status="pending",
                verification_code=verification_code,
                verification_code_expires=verification_expires,
            )
            db.add(row)
            try:
                db.flush()
            except IntegrityError as exc:
                raise AuthError(Rejection.DUPLICATE_EMAIL) from exc
            db.refresh(row)
            return UserRecord.from_row(row)

    def update_user_fields(self, user_id: int, **fields: Any) -> Optional[UserRecord]:
        unknown = set(fields) - _MUTABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"not updatable: {sorted(unknown)}")
        with self.database.transaction() as db:
            row = db.get(User, user_id)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            try:
                db.flush()
            except IntegrityError as exc:
                # bridge_customer_id is the only unique column updated here
                raise AuthError(Rejection.PROVIDER_LINK_CONFLICT) from exc
            db.refresh(row)
            return UserRecord.from_row(row)

    # -- one-time codes ----------------------------------------------------

    def set_reset_code(self, user_id: int, code_hash: str, expires_at: datetime) -> None:
        with self.database.transaction() as db:
            db.execute(
                update(User)
                .where(User.id == user_id)
                .values(reset_token_hash=code_hash, reset_token_expires=expires_at)
            )

    def consume_reset_code(
        self, code_hash: str, new_password_hash: str, now: datetime
    ) -> Optional[int]:
        """
        Swap in the new password hash and clear the code in one conditional
        UPDATE.  Returns the user id, or None if the code is unknown, expired,
        or was consumed by someone else first.
        """
        with self.database.transaction() as db:
            user_id = db.execute(
                select(User.id).where(
                    User.reset_token_hash == code_hash,
                    User.reset_token_expires > now,
                )
            ).scalar_one_or_none()
            if user_id is None:
                return None
            result = db.execute(
                update(User)
                .where(
                    User.id == user_id,
                    User.reset_token_hash == code_hash,
                    User.reset_token_expires > now,
                )
                .values(
                    password_hash=new_password_hash,
                    reset_token_hash=None,
                    reset_token_expires=None,
                )
            )
            return user_id if result.rowcount == 1 else None

    def consume_verification_code(self, email: str, code: str, now: datetime) -> Optional[int]:
        with self.database.transaction() as db:
            result = db.execute(
                update(User)
                .where(
                    User.email == email,
                    User.verification_code == code,
                    User.verification_code_expires > now,
                )
                .values(
                    is_verified=True,
                    verification_code=None,
                    verification_code_expires=None,
                )
            )
            if result.rowcount != 1:
                return None
            return db.execute(select(User.id).where(User.email == email)).scalar_one()

    # -- device sessions ---------------------------------------------------

    def upsert_session(
        self,
        user_id: int,
        device_id: str,
        token_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> SessionRecord:
        """Replace the (user, device) row, creating it if needed."""
        with self.database.transaction() as db:
            row = db.execute(
                select(DeviceSession).where(
                    DeviceSession.user_id == user_id,
                    DeviceSession.device_id == device_id,
                )
            ).scalar_one_or_none()
            if row is None:
                row = DeviceSession(user_id=user_id, device_id=device_id)
                db.add(row)
            row.token_hash = token_hash
            row.expires_at = expires_at
            row.last_accessed = now
            try:
                db.flush()
            except IntegrityError:
                # A concurrent login from the same device inserted first;
                # overwrite its row instead.
                db.rollback()
                db.execute(
                    update(DeviceSession)
                    .where(
                        DeviceSession.user_id == user_id,
                        DeviceSession.device_id == device_id,
                    )
                    .values(token_hash=token_hash, expires_at=expires_at, last_accessed=now)
                )
            return SessionRecord(
                user_id=user_id,
                device_id=device_id,
                token_hash=token_hash,
                expires_at=expires_at,
                last_accessed=now,
            )

    def find_valid_session(
        self, user_id: int, device_id: str, now: datetime
    ) -> Optional[SessionRecord]:
        with self.database.session() as db:
            row = db.execute(
                select(DeviceSession).where(
                    DeviceSession.user_id == user_id,
                    DeviceSession.device_id == device_id,
                    DeviceSession.expires_at > now,
                )
            ).scalar_one_or_none()
            return SessionRecord.from_row(row) if row else None

    def touch_session(self, user_id: int, device_id: str, now: datetime) -> None:
        with self.database.transaction() as db:
            db.execute(
                update(DeviceSession)
                .where(
                    DeviceSession.user_id == user_id,
                    DeviceSession.device_id == device_id,
                )
                .values(last_accessed=now)
            )

    def delete_session(self, user_id: int, device_id: str) -> bool:
        with self.database.transaction() as db:
            result = db.execute(
                delete(DeviceSession).where(
                    DeviceSession.user_id == user_id,
                    DeviceSession.device_id == device_id,
                )
            )
            return result.rowcount > 0

    def purge_expired_sessions(self, now: datetime) -> int:
        with self.database.transaction() as db:
            result = db.execute(delete(DeviceSession).where(DeviceSession.expires_at <= now))
            return result.rowcount

    # -- account deletion --------------------------------------------------

    def delete_user_cascade(self, user_id: int) -> bool:
        """
        Remove the user and every dependent row as one unit.  Dependents are
        deleted explicitly so the result does not hinge on the database
        honouring ON DELETE CASCADE.
        """
        with self.database.transaction() as db:
            for model in (DeviceSession, ActivityLog, BridgeTransaction, WalletBackup, Wallet):
                db.execute(delete(model).where(model.user_id == user_id))
            result = db.execute(delete(User).where(User.id == user_id))
            deleted = result.rowcount > 0
        if deleted:
            log.info("user %d deleted with dependents", user_id)
        return deleted

    # -- activity log ------------------------------------------------------

    def add_activity(
        self,
        user_id: int,
        action: str,
        details: Optional[str] = None,
        device_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        with self.database.transaction() as db:
            db.add(
                ActivityLog(
                    user_id=user_id,
                    device_id=device_id or "unknown",
                    action=action,
                    details=details,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            )

    def list_activity(self, user_id: int, page: int = 1, limit: int = 20) -> List[ActivityRecord]:
        with self.database.session() as db:
            rows = db.execute(
                select(ActivityLog)
                .where(ActivityLog.user_id == user_id)
                .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            ).scalars()
            return [
                ActivityRecord(
                    action=r.action,
                    details=r.details,
                    device_id=r.device_id,
                    ip_address=r.ip_address,
                    user_agent=r.user_agent,
                    created_at=_aware(r.created_at),
                )
                for r in rows
            ]

    # -- bridge transactions -----------------------------------------------

    def insert_transaction(
        self,
        user_id: int,
        type_: str,
        amount: Decimal,
        currency: str,
        wallet_address: str,
        bridge_tx_id: str,
        bank_account: Optional[str] = None,
        status: str = "pending",
    ) -> TransactionRecord:
        if type_ not in TRANSACTION_TYPES:
            raise ValueError(f"unknown transaction type: {type_!r}")
        with self.database.transaction() as db:
            row = BridgeTransaction(
                user_id=user_id,
                type=type_,
                amount=amount,
                currency=currency,
                wallet_address=wallet_address,
                bank_account=bank_account,
                bridge_tx_id=bridge_tx_id,
                status=status,
            )
            db.add(row)
            db.flush()
            db.refresh(row)
            return TransactionRecord.from_row(row)

    def list_transactions(self, user_id: int) -> List[TransactionRecord]:
        with self.database.session() as db:
            rows = db.execute(
                select(BridgeTransaction)
                .where(BridgeTransaction.user_id == user_id)
                .order_by(BridgeTransaction.created_at.desc(), BridgeTransaction.id.desc())
            ).scalars()
            return [TransactionRecord.from_row(r) for r in rows]

    def update_transaction_status(self, bridge_tx_id: str, status: str) -> bool:
        with self.database.transaction() as db:
            result = db.execute(
                update(BridgeTransaction)
                .where(BridgeTransaction.bridge_tx_id == bridge_tx_id)
                .values(status=status)
            )
            return result.rowcount > 0

    # -- wallet backups ----------------------------------------------------

    def save_backup(self, user_id: int, ciphertext: str, iv: str) -> None:
        with self.database.transaction() as db:
            row = db.execute(
                select(WalletBackup).where(WalletBackup.user_id == user_id)
            ).scalar_one_or_none()
            if row is None:
                db.add(WalletBackup(user_id=user_id, ciphertext=ciphertext, iv=iv))
            else:
                row.ciphertext = ciphertext
                row.iv = iv

    def load_backup(self, user_id: int) -> Optional[Tuple[str, str, Optional[datetime]]]:
        with self.database.session() as db:
            row = db.execute(
                select(WalletBackup).where(WalletBackup.user_id == user_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            return row.ciphertext, row.iv, _aware(row.updated_at)

    def delete_backup(self, user_id: int) -> bool:
        with self.database.transaction() as db:
            result = db.execute(delete(WalletBackup).where(WalletBackup.user_id == user_id))
            return result.rowcount > 0

    # -- wallets -----------------------------------------------------------

    def insert_wallet(
        self,
        user_id: int,
        address: str,
        network: str,
        private_key: Tuple[str, str],
        mnemonic: Tuple[str, str],
    ) -> WalletRecord:
        """
        *private_key* and *mnemonic* are ``(ciphertext, iv)`` pairs.  The
        unique index on ``address`` turns a concurrent duplicate into
        ``DUPLICATE_WALLET``.
        """
        with self.database.transaction() as db:
            taken = db.execute(
                select(Wallet.id).where(Wallet.address == address)
            ).scalar_one_or_none()
            if taken is not None:
                raise AuthError(Rejection.DUPLICATE_WALLET)
            row = Wallet(
                user_id=user_id,
                address=address,
                network=network,
                private_key_ciphertext=private_key[0],
                private_key_iv=private_key[1],
                mnemonic_ciphertext=mnemonic[0],
                mnemonic_iv=mnemonic[1],
            )
            db.add(row)
            try:
                db.flush()
            except IntegrityError as exc:
                raise AuthError(Rejection.DUPLICATE_WALLET) from exc
            db.refresh(row)
            return WalletRecord.from_row(row)

    def list_wallets(self, user_id: int) -> List[WalletRecord]:
        with self.database.session() as db:
            rows = db.execute(
                select(Wallet).where(Wallet.user_id == user_id).order_by(Wallet.id)
            ).scalars()
            return [WalletRecord.from_row(r) for r in rows]

    def find_wallet(self, user_id: int, wallet_id: int) -> Optional[WalletRecord]:
        """Scoped to the owner: another user's wallet id reads as missing."""
        with self.database.session() as db:
            row = db.execute(
                select(Wallet).where(Wallet.id == wallet_id, Wallet.user_id == user_id)
            ).scalar_one_or_none()
            return WalletRecord.from_row(row) if row else None

    def transaction_stats(self, user_id: int) -> WalletStats:
        completed = BridgeTransaction.status == "completed"
        with self.database.session() as db:
            total, done, volume = db.execute(
                select(
                    func.count(BridgeTransaction.id),
                    func.count(case((completed, 1))),
                    func.coalesce(func.sum(case((completed, BridgeTransaction.amount), else_=0)), 0),
                ).where(BridgeTransaction.user_id == user_id)
            ).one()
        return WalletStats(
            total_transactions=total,
            completed_transactions=done,
            completed_volume=Decimal(str(volume)),
        )
