"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:12:44.318205

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  op.create_table(
    "users",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("username", sa.String(), nullable=False),
    sa.Column("full_name", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_users_username", "users", ["username"], unique=True)

  op.create_table(
    "projects",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("owner_id", sa.String(), nullable=False),
    sa.Column("bucket", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("bucket"),
  )
  op.create_index("ix_projects_owner_id", "projects", ["owner_id"])

  op.create_table(
    "project_files",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("filename", sa.String(), nullable=False),
    sa.Column("object_name", sa.String(), nullable=False),
    sa.Column("project_id", sa.String(), nullable=False),
    sa.Column("size", sa.BigInteger(), nullable=False),
    sa.Column("content_type", sa.String(), nullable=False),
    sa.Column("uploaded_by", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
    sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"]),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("object_name"),
  )
  op.create_index("idx_project_files_project_id", "project_files", ["project_id"])
  op.create_index("idx_project_files_uploaded_by", "project_files", ["uploaded_by"])

  op.create_table(
    "project_api_keys",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("project_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("key_hash", sa.String(), nullable=False),
    sa.Column("lookup_prefix", sa.String(), nullable=False),
    sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_project_api_keys_project_id", "project_api_keys", ["project_id"])
  op.create_index("ix_project_api_keys_user_id", "project_api_keys", ["user_id"])
  op.create_index(
    "ix_project_api_keys_lookup_prefix", "project_api_keys", ["lookup_prefix"]
  )
  op.create_index(
    "idx_project_api_keys_prefix_revoked",
    "project_api_keys",
    ["lookup_prefix", "revoked_at"],
  )

  op.create_table(
    "compensation_tasks",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("action", sa.String(), nullable=False),
    sa.Column("bucket", sa.String(), nullable=False),
    sa.Column("object_name", sa.String(), nullable=True),
    sa.Column("operation", sa.String(), nullable=False),
    sa.Column("resource_id", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("attempts", sa.Integer(), nullable=False),
    sa.Column("last_error", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(
    "idx_compensation_tasks_status_created",
    "compensation_tasks",
    ["status", "created_at"],
  )


def downgrade() -> None:
  op.drop_index("idx_compensation_tasks_status_created", table_name="compensation_tasks")
  op.drop_table("compensation_tasks")
  op.drop_index("idx_project_api_keys_prefix_revoked", table_name="project_api_keys")
  op.drop_index("ix_project_api_keys_lookup_prefix", table_name="project_api_keys")
  op.drop_index("ix_project_api_keys_user_id", table_name="project_api_keys")
  op.drop_index("ix_project_api_keys_project_id", table_name="project_api_keys")
  op.drop_table("project_api_keys")
  op.drop_index("idx_project_files_uploaded_by", table_name="project_files")
  op.drop_index("idx_project_files_project_id", table_name="project_files")
  op.drop_table("project_files")
  op.drop_index("ix_projects_owner_id", table_name="projects")
  op.drop_table("projects")
  op.drop_index("ix_users_username", table_name="users")
  op.drop_table("users")
