"""
initial schema: users, chats (+participants, messages, read receipts),
run events (+participants, join requests), ratings, activity_log
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels = None
depends_on = None


ENUMS = {
    "chat_type": ("direct", "group"),
    "message_type": ("text", "image", "file", "system"),
    "run_event_status": ("open", "full", "in-progress", "completed", "cancelled"),
    "report_reason": ("late", "inappropriate_behavior", "safety_concern", "misrepresentation", "other"),
}


def _enum(name: str) -> sa.types.TypeEngine:
    # PostgreSQL types are created once up front; message_type is shared by two tables
    values = ENUMS[name]
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def _json() -> sa.types.TypeEngine:
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("profile_photo", sa.String(512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_active", sa.DateTime(), nullable=True),
        sa.Column("rating_average", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rating_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rating_level", sa.String(32), nullable=False, server_default="Ny löpare"),
        sa.Column("rating_badge", sa.String(32), nullable=True),
        sa.Column("rating_updated_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # chats.run_event_id FK is added after run_events exists (the two tables reference each other)
    op.create_table(
        "chats",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chat_type", _enum("chat_type"), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("avatar", sa.String(512), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("direct_key", sa.String(64), nullable=True, unique=True),
        sa.Column("last_message_content", sa.String(1000), nullable=True),
        sa.Column("last_message_sender_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("last_message_type", _enum("message_type"), nullable=True),
        sa.Column("last_message_at", sa.DateTime(), nullable=True),
        sa.Column("last_activity", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("run_event_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_chats_id", "chats", ["id"])
    op.create_index("ix_chats_last_activity", "chats", ["last_activity"])
    op.create_index("ix_chats_run_event_id", "chats", ["run_event_id"])

    op.create_table(
        "chat_participants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chat_id", sa.Integer(), sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("left_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("chat_id", "user_id", name="uq_chat_participants_chat_user"),
    )
    op.create_index("ix_chat_participants_id", "chat_participants", ["id"])
    op.create_index("ix_chat_participants_chat_id", "chat_participants", ["chat_id"])
    op.create_index("ix_chat_participants_user_id", "chat_participants", ["user_id"])
    op.create_index("ix_chat_participants_user_active", "chat_participants", ["user_id", "left_at"])

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chat_id", sa.Integer(), sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.String(1000), nullable=False),
        sa.Column("message_type", _enum("message_type"), nullable=False, server_default="text"),
        sa.Column("reply_to_id", sa.Integer(), sa.ForeignKey("chat_messages.id"), nullable=True),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edited_at", sa.DateTime(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_chat_messages_id", "chat_messages", ["id"])
    op.create_index("ix_chat_messages_chat_id", "chat_messages", ["chat_id"])
    op.create_index("ix_chat_messages_sender_id", "chat_messages", ["sender_id"])
    op.create_index("ix_chat_messages_chat_deleted", "chat_messages", ["chat_id", "is_deleted"])

    op.create_table(
        "message_reads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("message_id", sa.Integer(), sa.ForeignKey("chat_messages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("message_id", "user_id", name="uq_message_reads_message_user"),
    )
    op.create_index("ix_message_reads_id", "message_reads", ["id"])
    op.create_index("ix_message_reads_message_id", "message_reads", ["message_id"])
    op.create_index("ix_message_reads_user_id", "message_reads", ["user_id"])

    op.create_table(
        "run_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("location_name", sa.String(255), nullable=False),
        sa.Column("location_lat", sa.Float(), nullable=True),
        sa.Column("location_lng", sa.Float(), nullable=True),
        sa.Column("distance", sa.Float(), nullable=False, comment="km"),
        sa.Column("pace", sa.Integer(), nullable=False, comment="seconds per km"),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("status", _enum("run_event_status"), nullable=False, server_default="open"),
        sa.Column("chat_id", sa.Integer(), sa.ForeignKey("chats.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("distance > 0", name="ck_run_events_distance_positive"),
        sa.CheckConstraint("pace > 0", name="ck_run_events_pace_positive"),
        sa.CheckConstraint("max_participants >= 2", name="ck_run_events_max_participants"),
    )
    op.create_index("ix_run_events_id", "run_events", ["id"])
    op.create_index("ix_run_events_host_id", "run_events", ["host_id"])
    op.create_index("ix_run_events_date", "run_events", ["date"])
    op.create_index("ix_run_events_status_date", "run_events", ["status", "date"])

    if bind.dialect.name != "sqlite":
        op.create_foreign_key("fk_chats_run_event_id", "chats", "run_events", ["run_event_id"], ["id"])

    for table, uq in (
        ("run_event_participants", "uq_run_event_participants_event_user"),
        ("run_event_requests", "uq_run_event_requests_event_user"),
    ):
        stamp = "joined_at" if table == "run_event_participants" else "requested_at"
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "run_event_id",
                sa.Integer(),
                sa.ForeignKey("run_events.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column(stamp, sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint("run_event_id", "user_id", name=uq),
        )
        op.create_index(f"ix_{table}_id", table, ["id"])
        op.create_index(f"ix_{table}_run_event_id", table, ["run_event_id"])
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rater_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("ratee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("run_event_id", sa.Integer(), sa.ForeignKey("run_events.id"), nullable=False),
        *[
            sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.false())
            for name in (
                "punctual",
                "fitting_pace",
                "good_communication",
                "motivating",
                "knowledgeable",
                "friendly",
                "well_prepared",
                "flexible",
            )
        ],
        sa.Column("comment", sa.String(500), nullable=True),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("has_report", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("report_reason", _enum("report_reason"), nullable=True),
        sa.Column("report_details", sa.String(1000), nullable=True),
        sa.Column("report_handled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("rater_id", "ratee_id", "run_event_id", name="uq_ratings_rater_ratee_event"),
        sa.CheckConstraint("overall_rating BETWEEN 1 AND 5", name="ck_ratings_overall_1_5"),
        sa.CheckConstraint("rater_id <> ratee_id", name="ck_ratings_not_self"),
    )
    op.create_index("ix_ratings_id", "ratings", ["id"])
    op.create_index("ix_ratings_rater_id", "ratings", ["rater_id"])
    op.create_index("ix_ratings_run_event_id", "ratings", ["run_event_id"])
    op.create_index("ix_ratings_ratee_approved", "ratings", ["ratee_id", "is_approved"])

    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("target_user_id", sa.Integer(), nullable=True),
        sa.Column("run_event_id", sa.Integer(), nullable=True),
        sa.Column("chat_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("data", _json(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("idempotency_key", sa.String(128), nullable=True),
        sa.UniqueConstraint("idempotency_key", name="uq_activity_log_idempotency_key"),
    )
    op.create_index("ix_activity_log_id", "activity_log", ["id"])
    op.create_index("ix_activity_log_actor", "activity_log", ["actor_id"])
    op.create_index("ix_activity_log_target", "activity_log", ["target_user_id"])
    op.create_index("ix_activity_log_run_event", "activity_log", ["run_event_id"])


def downgrade() -> None:
    bind = op.get_bind()

    op.drop_table("activity_log")
    op.drop_table("ratings")
    op.drop_table("run_event_requests")
    op.drop_table("run_event_participants")
    if bind.dialect.name != "sqlite":
        op.drop_constraint("fk_chats_run_event_id", "chats", type_="foreignkey")
    op.drop_table("run_events")
    op.drop_table("message_reads")
    op.drop_table("chat_messages")
    op.drop_table("chat_participants")
    op.drop_table("chats")
    op.drop_table("users")

    if bind.dialect.name == "postgresql":
        for name, values in reversed(list(ENUMS.items())):
            postgresql.ENUM(*values, name=name).drop(bind, checkfirst=True)
