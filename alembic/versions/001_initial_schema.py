"""initial schema — help sessions, chat messages, notifications

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- help_sessions ---
    op.create_table(
        "help_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("offer_id", UUID(as_uuid=True), nullable=True),
        sa.Column("request_id", UUID(as_uuid=True), nullable=True),
        sa.Column("requester_id", UUID(as_uuid=True), nullable=False),
        sa.Column("helper_id", UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("result", sa.String(16), nullable=False, server_default="undefined"),
        sa.Column("finalized_by", sa.String(16), nullable=False, server_default="none"),
        sa.Column("rating_pending", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), server_default=""),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint("requester_id <> helper_id", name="ck_help_sessions_two_parties"),
        sa.CheckConstraint("offer_id IS NULL OR request_id IS NULL", name="ck_help_sessions_single_origin"),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 5)",
            name="ck_help_sessions_rating_range",
        ),
    )
    op.create_index("ix_help_sessions_requester_id", "help_sessions", ["requester_id"])
    op.create_index("ix_help_sessions_helper_id", "help_sessions", ["helper_id"])
    op.create_index("ix_help_sessions_status", "help_sessions", ["status"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("resource_model", sa.String(32), nullable=True),
        sa.Column("resource_id", UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.Text(), server_default=""),
        sa.Column("message", sa.Text(), server_default=""),
        sa.Column("type", sa.String(16), nullable=False, server_default="system"),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("dedupe_key", sa.String(128), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index(
        "ix_notifications_addressee_resource",
        "notifications",
        ["user_id", "resource_model", "resource_id", "is_read"],
    )

    # --- chat_messages ---
    op.create_table(
        "chat_messages",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("session_id", UUID(as_uuid=True), sa.ForeignKey("help_sessions.id"), nullable=False),
        sa.Column("sender_id", UUID(as_uuid=True), nullable=False),
        sa.Column("receiver_id", UUID(as_uuid=True), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("attachment_urls", JSONB(), nullable=False, server_default="[]"),
        sa.Column("attachment_handles", JSONB(), nullable=False, server_default="[]"),
        sa.Column("notif_id", UUID(as_uuid=True), sa.ForeignKey("notifications.id"), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("edited", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("sender_id <> receiver_id", name="ck_chat_messages_two_parties"),
    )
    op.create_index("ix_chat_messages_notif_id", "chat_messages", ["notif_id"])
    op.create_index(
        "ix_chat_messages_thread_order",
        "chat_messages",
        ["session_id", "created_at", "id"],
    )
    op.create_index(
        "ix_chat_messages_unread_by_receiver",
        "chat_messages",
        ["session_id", "receiver_id", "is_read"],
    )


def downgrade() -> None:
    op.drop_table("chat_messages")
    op.drop_table("notifications")
    op.drop_table("help_sessions")
