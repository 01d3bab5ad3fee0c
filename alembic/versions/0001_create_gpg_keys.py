"""Create gpg_keys and email_addresses tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "gpg_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.BigInteger(), nullable=False),
        sa.Column("key_id", sa.String(16), nullable=False),
        sa.Column("primary_key_id", sa.String(16), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_unix", sa.BigInteger(), nullable=False),
        sa.Column("expires_unix", sa.BigInteger(), nullable=True),
        sa.Column("added_unix", sa.BigInteger(), nullable=False),
        sa.Column("emails", sa.JSON(), nullable=False),
        sa.Column("can_sign", sa.Boolean(), nullable=False),
        sa.Column("can_encrypt_comms", sa.Boolean(), nullable=False),
        sa.Column("can_encrypt_storage", sa.Boolean(), nullable=False),
        sa.Column("can_certify", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("key_id"),
    )
    op.create_index("ix_gpg_keys_owner_id", "gpg_keys", ["owner_id"])
    op.create_index("ix_gpg_keys_primary_key_id", "gpg_keys", ["primary_key_id"])

    op.create_table(
        "email_addresses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.BigInteger(), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("is_activated", sa.Boolean(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_email_addresses_owner_id", "email_addresses", ["owner_id"])


def downgrade() -> None:
    op.drop_index("ix_email_addresses_owner_id", table_name="email_addresses")
    op.drop_table("email_addresses")
    op.drop_index("ix_gpg_keys_primary_key_id", table_name="gpg_keys")
    op.drop_index("ix_gpg_keys_owner_id", table_name="gpg_keys")
    op.drop_table("gpg_keys")
