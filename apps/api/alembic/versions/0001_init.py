"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
  return [
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  ]


def upgrade() -> None:
  op.create_table(
    "users",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("user_name", sa.String(), nullable=False),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("password_hash", sa.String(), nullable=False),
    sa.Column("image", sa.String(), nullable=True),
    *_timestamps(),
  )
  op.create_index("ix_users_user_name", "users", ["user_name"], unique=True)
  op.create_index("ix_users_email", "users", ["email"], unique=True)

  op.create_table(
    "boards",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("visibility", sa.String(), nullable=False),
    sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
    *_timestamps(),
  )
  op.create_index("ix_boards_owner_id", "boards", ["owner_id"], unique=False)

  op.create_table(
    "board_members",
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), primary_key=True),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), primary_key=True),
    sa.Column("role", sa.String(), nullable=False),
    sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
  )

  op.create_table(
    "invites",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), nullable=False),
    sa.Column("sender_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("recipient_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("role", sa.String(), nullable=False),
    sa.Column("status_invite", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.UniqueConstraint("board_id", "recipient_id", name="ux_invite_board_recipient"),
  )
  op.create_index("ix_invites_board_id", "invites", ["board_id"], unique=False)
  op.create_index("ix_invites_recipient_id", "invites", ["recipient_id"], unique=False)

  op.create_table(
    "lists",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("external_id", sa.String(), nullable=True),
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False),
    sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
    *_timestamps(),
  )
  op.create_index("ix_lists_board_id", "lists", ["board_id"], unique=False)

  op.create_table(
    "tasks",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("external_id", sa.String(), nullable=True),
    sa.Column("list_id", sa.String(36), sa.ForeignKey("lists.id"), nullable=False),
    sa.Column("creator_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
    sa.Column("assigned_to_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("position", sa.Integer(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
  )
  op.create_index("ix_tasks_list_id", "tasks", ["list_id"], unique=False)

  op.create_table(
    "jobs",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("payload", sa.JSON(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="1"),
    sa.Column("last_error", sa.Text(), nullable=True),
    sa.Column("result", sa.JSON(), nullable=True),
    sa.Column("run_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
  )
  op.create_index("ix_jobs_name", "jobs", ["name"], unique=False)
  op.create_index("ix_jobs_status", "jobs", ["status"], unique=False)


def downgrade() -> None:
  op.drop_table("jobs")
  op.drop_table("tasks")
  op.drop_table("lists")
  op.drop_table("invites")
  op.drop_table("board_members")
  op.drop_table("boards")
  op.drop_table("users")
