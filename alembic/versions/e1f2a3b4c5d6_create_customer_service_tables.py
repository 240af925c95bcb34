"""create conversation messages and auto reply rules

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "e1f2a3b4c5d6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "auto_reply_rules",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("trigger_words", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("response", sa.Text(), nullable=False),
        sa.Column("variables", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_auto_reply_rules_tenant_priority",
        "auto_reply_rules",
        ["tenant_id", "priority"],
    )

    op.create_table(
        "conversation_messages",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("intent", sa.String(length=50), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("web_session_id", sa.String(length=128), nullable=True),
        sa.Column("participant_name", sa.String(length=255), nullable=True),
        sa.Column(
            "source",
            sa.Enum("WHATSAPP", "WEB", name="messagesource"),
            nullable=False,
        ),
        sa.Column(
            "sender",
            sa.Enum("CUSTOMER", "BOT", "AGENT", name="senderrole"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "delivery_status",
            sa.Enum("RECEIVED", "SENT", "FAILED", name="deliverystatus"),
            nullable=False,
        ),
        sa.Column("rule_id", sa.UUID(), nullable=True),
        sa.Column("response_time", sa.Float(), nullable=True),
        sa.Column("message_type", sa.String(length=50), nullable=True),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("external_id", sa.String(length=100), nullable=True),
        sa.Column("extra_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("synchronized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "(phone_number IS NULL) <> (web_session_id IS NULL)",
            name="ck_conversation_messages_one_participant",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_conversation_messages_scope_created",
        "conversation_messages",
        ["tenant_id", "intent", "created_at"],
    )
    op.create_index(
        "ix_conversation_messages_phone",
        "conversation_messages",
        ["tenant_id", "intent", "phone_number"],
    )
    op.create_index(
        "ix_conversation_messages_web_session",
        "conversation_messages",
        ["tenant_id", "intent", "web_session_id"],
    )
    op.create_index(
        "ix_conversation_messages_unsynced",
        "conversation_messages",
        ["tenant_id", "intent", "synchronized_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_conversation_messages_unsynced", table_name="conversation_messages")
    op.drop_index("ix_conversation_messages_web_session", table_name="conversation_messages")
    op.drop_index("ix_conversation_messages_phone", table_name="conversation_messages")
    op.drop_index("ix_conversation_messages_scope_created", table_name="conversation_messages")
    op.drop_table("conversation_messages")
    op.drop_index("ix_auto_reply_rules_tenant_priority", table_name="auto_reply_rules")
    op.drop_table("auto_reply_rules")
    sa.Enum(name="deliverystatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="senderrole").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="messagesource").drop(op.get_bind(), checkfirst=True)
