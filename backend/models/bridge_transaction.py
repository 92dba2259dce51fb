# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""BridgeTransaction ORM model – local record of an on/off-ramp request."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from database import Base

TRANSACTION_TYPES = ("onramp", "offramp")
TRANSACTION_STATUSES = ("pending", "processing", "completed", "failed", "cancelled")


class BridgeTransaction(Base):
    __tablename__ = "bridge_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(10), nullable=False)
    amount = Column(Numeric(20, 8), nullable=False)
    currency = Column(String(10), nullable=False)
    wallet_address = Column(String(64), nullable=False)
    bank_account = Column(String(255), nullable=True)
    # Identifier assigned by Bridge; webhooks refer to it
    bridge_tx_id = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
