"""Create bridge_transactions and wallet_backups tables

Revision ID: 0003_bridge_and_wallet
Revises: 0002_activity_logs
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0003_bridge_and_wallet"
down_revision = "0002_activity_logs"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- bridge_transactions --------------------------------------------
    op.create_table(
        "bridge_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("amount", sa.Numeric(20, 8), nullable=False),
        sa.Column("currency", sa.String(10), nullable=False),
        sa.Column("wallet_address", sa.String(64), nullable=False),
        sa.Column("bank_account", sa.String(255), nullable=True),
        sa.Column("bridge_tx_id", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_bridge_transactions_user_id", "bridge_transactions", ["user_id"])
    op.create_index("ix_bridge_transactions_bridge_tx_id", "bridge_transactions", ["bridge_tx_id"])
    op.create_index("ix_bridge_transactions_status", "bridge_transactions", ["status"])

    # -- wallet_backups -------------------------------------------------
    op.create_table(
        "wallet_backups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        # base64( ciphertext || 16-byte GCM tag )
        sa.Column("ciphertext", sa.Text(), nullable=False),
        # base64( 12-byte AES-GCM nonce )
        sa.Column("iv", sa.String(64), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("wallet_backups")
    op.drop_index("ix_bridge_transactions_status", table_name="bridge_transactions")
    op.drop_index("ix_bridge_transactions_bridge_tx_id", table_name="bridge_transactions")
    op.drop_index("ix_bridge_transactions_user_id", table_name="bridge_transactions")
    op.drop_table("bridge_transactions")
