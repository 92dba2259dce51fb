# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""WalletBackup ORM model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from database import Base


class WalletBackup(Base):
    __tablename__ = "wallet_backups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # One backup per user; deleting the user removes it.
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    # The mnemonic arrives already encrypted by the client.  We wrap that
    # blob again with AES-256-GCM:  base64( ciphertext || 16-byte tag ).
    ciphertext = Column(Text, nullable=False)
    # base64( 12-byte AES-GCM nonce )
    iv = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
