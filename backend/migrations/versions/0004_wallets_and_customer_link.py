"""Create wallets table; one Bridge customer per user

Revision ID: 0004_wallets_and_customer_link
Revises: 0003_bridge_and_wallet
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0004_wallets_and_customer_link"
down_revision = "0003_bridge_and_wallet"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.create_unique_constraint("uq_users_bridge_customer_id", ["bridge_customer_id"])

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("address", sa.String(64), nullable=False, unique=True),
        sa.Column("network", sa.String(32), nullable=False, server_default="polygon"),
        sa.Column("private_key_ciphertext", sa.Text(), nullable=False),
        sa.Column("private_key_iv", sa.String(64), nullable=False),
        sa.Column("mnemonic_ciphertext", sa.Text(), nullable=False),
        sa.Column("mnemonic_iv", sa.String(64), nullable=False),
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
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")
    with op.batch_alter_table("users") as batch:
        batch.drop_constraint("uq_users_bridge_customer_id", type_="unique")
