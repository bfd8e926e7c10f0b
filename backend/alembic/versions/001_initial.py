"""Initial schema: users, classes, notifications_sent, reminder_responses, push_subscriptions

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "classes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("class_type", sa.String(16), nullable=False),
        sa.Column("instructor", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("date_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recurring_day", sa.Integer(), nullable=True),
        sa.Column("recurring_time", sa.Time(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(is_recurring AND date_time IS NULL AND recurring_day IS NOT NULL AND recurring_time IS NOT NULL)"
            " OR (NOT is_recurring AND date_time IS NOT NULL AND recurring_day IS NULL AND recurring_time IS NULL)",
            name="ck_classes_recurrence_exclusive",
        ),
        sa.CheckConstraint(
            "recurring_day IS NULL OR (recurring_day >= 0 AND recurring_day <= 6)",
            name="ck_classes_recurring_day",
        ),
    )
    op.create_index("ix_classes_user_id", "classes", ["user_id"], unique=False)
    op.create_index("ix_classes_is_cancelled", "classes", ["is_cancelled"], unique=False)
    op.create_index("ix_classes_date_time", "classes", ["date_time"], unique=False)
    op.create_index("ix_classes_recurring_day", "classes", ["recurring_day"], unique=False)

    op.create_table(
        "notifications_sent",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("class_id", sa.Integer(), nullable=False),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["class_id"], ["classes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("class_id", "target_date", name="uq_notifications_sent_class_target_date"),
    )
    op.create_index("ix_notifications_sent_class_id", "notifications_sent", ["class_id"], unique=False)
    op.create_index("ix_notifications_sent_target_date", "notifications_sent", ["target_date"], unique=False)

    op.create_table(
        "reminder_responses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("notification_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("class_id", sa.Integer(), nullable=False),
        sa.Column("response", sa.String(8), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["notification_id"], ["notifications_sent.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["class_id"], ["classes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("notification_id"),
    )
    op.create_index("ix_reminder_responses_user_id", "reminder_responses", ["user_id"], unique=False)
    op.create_index("ix_reminder_responses_class_id", "reminder_responses", ["class_id"], unique=False)

    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("endpoint", sa.Text(), nullable=False),
        sa.Column("p256dh", sa.String(255), nullable=False),
        sa.Column("auth", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_push_subscriptions_user_id", "push_subscriptions", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_push_subscriptions_user_id", table_name="push_subscriptions")
    op.drop_table("push_subscriptions")
    op.drop_index("ix_reminder_responses_class_id", table_name="reminder_responses")
    op.drop_index("ix_reminder_responses_user_id", table_name="reminder_responses")
    op.drop_table("reminder_responses")
    op.drop_index("ix_notifications_sent_target_date", table_name="notifications_sent")
    op.drop_index("ix_notifications_sent_class_id", table_name="notifications_sent")
    op.drop_table("notifications_sent")
    op.drop_index("ix_classes_recurring_day", table_name="classes")
    op.drop_index("ix_classes_date_time", table_name="classes")
    op.drop_index("ix_classes_is_cancelled", table_name="classes")
    op.drop_index("ix_classes_user_id", table_name="classes")
    op.drop_table("classes")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
