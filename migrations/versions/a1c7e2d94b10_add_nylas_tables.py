"""add nylas accounts and events tables

Revision ID: a1c7e2d94b10
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "a1c7e2d94b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "nylas_accounts",
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index(
        op.f("ix_nylas_accounts_account_id"), "nylas_accounts", ["account_id"], unique=False
    )

    # No foreign key to nylas_accounts: revocation cleanup deletes events first
    op.create_table(
        "nylas_events",
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("calendar_id", sa.String(length=255), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("when_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("when_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("when_data", json_type, nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("metadata", json_type, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("event_id"),
    )
    op.create_index(op.f("ix_nylas_events_user_id"), "nylas_events", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_nylas_events_account_id"), "nylas_events", ["account_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_nylas_events_account_id"), table_name="nylas_events")
    op.drop_index(op.f("ix_nylas_events_user_id"), table_name="nylas_events")
    op.drop_table("nylas_events")
    op.drop_index(op.f("ix_nylas_accounts_account_id"), table_name="nylas_accounts")
    op.drop_table("nylas_accounts")
