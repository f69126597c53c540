"""create devices and usage records tables

Revision ID: 3c1f9a2b7d40
Revises:
Create Date: 2025-07-12 09:14:31.204518

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision = '3c1f9a2b7d40'
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "devices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("device_id", sa.String(255), nullable=False, unique=True),
        sa.Column("device_name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("devices_device_id_idx", "devices", ["device_id"])
    op.create_index("devices_created_at_idx", "devices", ["created_at"])

    op.create_table(
        "usage_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("device_id", sa.String(255), nullable=False),
        sa.Column("agent_type", sa.String(50), nullable=False, server_default="claude-code"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("input_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("output_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cache_creation_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cache_read_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_cost", sa.DECIMAL(10, 4), nullable=False, server_default="0"),
        sa.Column("credits", sa.DECIMAL(10, 4), nullable=True, server_default="0"),
        sa.Column("models_used", JSONType, nullable=False, server_default="[]"),
        sa.Column("raw_data", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("usage_records_device_id_idx", "usage_records", ["device_id"])
    op.create_index("usage_records_date_idx", "usage_records", ["date"])
    op.create_index("usage_records_agent_type_idx", "usage_records", ["agent_type"])
    op.create_index("usage_records_created_at_idx", "usage_records", ["created_at"])
    op.create_index(
        "usage_records_unique_device_date_agent_idx",
        "usage_records",
        ["device_id", "date", "agent_type"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_table("usage_records")
    op.drop_table("devices")
