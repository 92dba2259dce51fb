# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Wallet ORM model – one row per on-chain address a user registers."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from database import Base


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    address = Column(String(64), unique=True, nullable=False)
    network = Column(String(32), nullable=False, default="polygon")
    # Key material arrives already encrypted by the device and is wrapped
    # again with AES-256-GCM.  Each blob has its own nonce.
    private_key_ciphertext = Column(Text, nullable=False)
    private_key_iv = Column(String(64), nullable=False)
    mnemonic_ciphertext = Column(Text, nullable=False)
    mnemonic_iv = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
