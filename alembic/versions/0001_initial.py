"""Initial schema: collaborator tables, notifications digest and updates cursor

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(120), nullable=False, unique=True),
        sa.Column("is_demo", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(80), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(80), nullable=False, server_default=""),
        sa.Column("role", sa.String(50)),
        sa.Column("url_root", sa.String(255)),
        *_timestamps(),
    )
    op.create_table(
        "cc_elements",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("narrative", sa.Text),
        *_timestamps(),
    )
    op.create_table(
        "feed_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("author_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("cc_element_id", sa.Integer, sa.ForeignKey("cc_elements.id")),
        sa.Column("feed_type", sa.String(20), nullable=False),
        sa.Column("story", sa.Text),
        sa.Column("note", sa.Text),
        sa.Column("mentions_ids", sa.JSON),
        sa.Column("recipient_ids", sa.JSON),
        sa.Column("created_at", sa.DateTime, nullable=False, index=True),
    )
    op.create_table(
        "comments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("feed_item_id", sa.Integer, sa.ForeignKey("feed_items.id"), nullable=False, index=True),
        sa.Column("author_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("body", sa.Text),
        *_timestamps(),
    )
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("type", sa.String(50)),
        sa.Column("sent_to", sa.String(255)),
        sa.Column("subject", sa.String(255)),
        sa.Column("provider_message_id", sa.String(255)),
        sa.Column("status", sa.String(20)),
        sa.Column("error", sa.Text),
        sa.Column("sent_at", sa.DateTime),
        *_timestamps(),
    )
    op.create_table(
        "notifications_digest",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("notification_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("new_recognitions", sa.JSON, nullable=False),
        sa.Column("new_comments", sa.JSON, nullable=False),
        sa.Column("new_likes_feed_item", sa.JSON, nullable=False),
        sa.Column("new_likes_comment", sa.JSON, nullable=False),
        sa.Column("new_mentions_feed_item", sa.JSON, nullable=False),
        sa.Column("new_mentions_comment", sa.JSON, nullable=False),
        sa.Column("busy", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("trigger_at", sa.DateTime, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "org_id", name="uq_notifications_digest_user_org"),
        sa.CheckConstraint("notification_count >= 0", name="ck_notifications_digest_count"),
    )
    op.create_table(
        "updates_digest",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("last_sent_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )


def downgrade() -> None:
    for name in ("updates_digest", "notifications_digest", "notifications", "comments",
                 "feed_items", "cc_elements", "users", "organizations"):
        op.drop_table(name)
