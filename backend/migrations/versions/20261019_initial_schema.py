"""Initial registration schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "tier_pass_registrations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.String(32), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("contact_phone", sa.String(32), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_transaction_id", sa.String(128), nullable=False),
        sa.Column("payment_screenshot_path", sa.String(512), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("tier_pass_registrations", schema=None) as batch_op:
        batch_op.create_index("ix_tier_pass_registrations_group_id", ["group_id"], unique=False)
        batch_op.create_index("ix_tier_pass_registrations_contact_email", ["contact_email"], unique=False)
        batch_op.create_index("ix_tier_pass_registrations_payment_transaction_id", ["payment_transaction_id"], unique=False)
        batch_op.create_index("ix_tier_pass_registrations_status", ["status"], unique=False)
        batch_op.create_index("ix_tier_pass_registrations_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "tier_pass_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.String(32), nullable=False),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("college", sa.String(255), nullable=False),
        sa.Column("college_location", sa.String(255), nullable=True),
        sa.Column("selection_type", sa.String(8), nullable=False),
        sa.Column("tier", sa.String(64), nullable=True),
        sa.Column("pass_type", sa.String(64), nullable=True),
        sa.Column("pass_tier", sa.String(32), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("member_order", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["tier_pass_registrations.group_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_tier_pass_member_group_user"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("tier_pass_members", schema=None) as batch_op:
        batch_op.create_index("ix_tier_pass_members_group_id", ["group_id"], unique=False)
        batch_op.create_index("ix_tier_pass_members_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_tier_pass_members_email", ["email"], unique=False)
        batch_op.create_index("ix_tier_pass_members_phone", ["phone"], unique=False)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("events", schema=None) as batch_op:
        batch_op.create_index("ix_events_is_active", ["is_active"], unique=False)

    op.create_table(
        "event_registrations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.String(32), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("event_name", sa.String(255), nullable=False),
        sa.Column("event_price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("contact_user_id", sa.String(32), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("contact_phone", sa.String(32), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_transaction_id", sa.String(128), nullable=False),
        sa.Column("payment_screenshot_path", sa.String(512), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("event_registrations", schema=None) as batch_op:
        batch_op.create_index("ix_event_registrations_group_id", ["group_id"], unique=False)
        batch_op.create_index("ix_event_registrations_event_id", ["event_id"], unique=False)
        batch_op.create_index("ix_event_registrations_contact_email", ["contact_email"], unique=False)
        batch_op.create_index("ix_event_registrations_payment_transaction_id", ["payment_transaction_id"], unique=False)
        batch_op.create_index("ix_event_registrations_status", ["status"], unique=False)
        batch_op.create_index("ix_event_registrations_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "event_registration_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.String(32), nullable=False),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("original_group_id", sa.String(32), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("college", sa.String(255), nullable=False),
        sa.Column("member_order", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["event_registrations.group_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_event_member_group_user"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("event_registration_members", schema=None) as batch_op:
        batch_op.create_index("ix_event_registration_members_group_id", ["group_id"], unique=False)
        batch_op.create_index("ix_event_registration_members_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_event_registration_members_email", ["email"], unique=False)

    op.create_table(
        "email_templates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("last_edited_by", sa.String(255), nullable=True),
        sa.Column("last_edited", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "email_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.String(32), nullable=True),
        sa.Column("email_type", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("message_id", sa.String(255), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("email_logs", schema=None) as batch_op:
        batch_op.create_index("ix_email_logs_group_id", ["group_id"], unique=False)
        batch_op.create_index("ix_email_logs_type_sent", ["email_type", "sent_at"], unique=False)

    op.create_table(
        "admin_users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="coordinator"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("admin_users", schema=None) as batch_op:
        batch_op.create_index("ix_admin_users_email", ["email"], unique=False)

    op.create_table(
        "admin_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(255), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["admin_users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("admin_sessions", schema=None) as batch_op:
        batch_op.create_index("ix_admin_sessions_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_admin_sessions_token_hash", ["token_hash"], unique=False)
        batch_op.create_index("ix_admin_sessions_expires_at", ["expires_at"], unique=False)
        batch_op.create_index("ix_admin_sessions_user_active", ["user_id", "is_revoked"], unique=False)


def downgrade():
    op.drop_table("admin_sessions")
    op.drop_table("admin_users")
    op.drop_table("email_logs")
    op.drop_table("email_templates")
    op.drop_table("event_registration_members")
    op.drop_table("event_registrations")
    op.drop_table("events")
    op.drop_table("tier_pass_members")
    op.drop_table("tier_pass_registrations")
