"""Initial schema: platform tables, cold calling, news, newsletter.

Revision ID: a0c1d2e3f4a5
Revises:
Create Date: 2025-11-01
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a0c1d2e3f4a5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(128), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("key"),
    )
    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(128), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("key"),
    )
    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "role_id"),
    )
    op.create_table(
        "role_permissions",
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("permission_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permission_id"], ["permissions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("role_id", "permission_id"),
    )
    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("actor_user_email", sa.String(320), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )

    op.create_table(
        "cold_calling_rows",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tab_name", sa.String(128), nullable=False),
        sa.Column("concern_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("company_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("destination", sa.String(255), nullable=False, server_default=""),
        sa.Column("phone1", sa.String(64), nullable=False, server_default=""),
        sa.Column("phone2", sa.String(64), nullable=False, server_default=""),
        sa.Column("sujata", sa.String(512), nullable=False, server_default=""),
        sa.Column("follow_up_date", sa.String(64), nullable=False, server_default=""),
        sa.Column("rating", sa.String(64), nullable=False, server_default=""),
        sa.Column("broadcast", sa.String(8), nullable=False, server_default=""),
        sa.Column("status", sa.String(16), nullable=False, server_default=""),
        sa.Column("row_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("background_color", sa.String(32), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_cold_calling_tab", "cold_calling_rows", ["tab_name"])
    op.create_index("idx_cold_calling_tab_row", "cold_calling_rows", ["tab_name", "row_number"])
    op.create_index("idx_cold_calling_tab_created", "cold_calling_rows", ["tab_name", "created_at"])

    op.create_table(
        "news_posts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(255), nullable=True),
        sa.Column("excerpt", sa.String(500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(128), nullable=False, server_default="General"),
        sa.Column("author", sa.String(128), nullable=False, server_default="OCL Team"),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("image", sa.String(512), nullable=False, server_default=""),
        sa.Column("image_key", sa.String(255), nullable=False, server_default=""),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("idx_news_published", "news_posts", ["published", "published_at"])
    op.create_index("idx_news_category", "news_posts", ["category"])
    op.create_index("idx_news_featured", "news_posts", ["featured"])
    op.create_index("idx_news_created", "news_posts", ["created_at"])

    op.create_table(
        "news_emails",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("subscribed_at", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_news_emails_active", "news_emails", ["is_active"])
    op.create_index("idx_news_emails_created", "news_emails", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_news_emails_created", table_name="news_emails")
    op.drop_index("idx_news_emails_active", table_name="news_emails")
    op.drop_table("news_emails")

    op.drop_index("idx_news_created", table_name="news_posts")
    op.drop_index("idx_news_featured", table_name="news_posts")
    op.drop_index("idx_news_category", table_name="news_posts")
    op.drop_index("idx_news_published", table_name="news_posts")
    op.drop_table("news_posts")

    op.drop_index("idx_cold_calling_tab_created", table_name="cold_calling_rows")
    op.drop_index("idx_cold_calling_tab_row", table_name="cold_calling_rows")
    op.drop_index("idx_cold_calling_tab", table_name="cold_calling_rows")
    op.drop_table("cold_calling_rows")

    op.drop_table("audit_events")
    op.drop_table("role_permissions")
    op.drop_table("user_roles")
    op.drop_table("permissions")
    op.drop_table("roles")
    op.drop_table("users")
