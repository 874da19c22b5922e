"""
run logs, training points on users, user blocks
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0002_run_logs_points_blocks"
down_revision: str | None = "0001_initial"
branch_labels = None
depends_on = None


ENUMS = {
    "run_type": ("easy", "tempo", "interval", "long", "recovery", "race", "hill", "track"),
    "run_source": ("manual", "strava", "garmin", "polar", "fitbit", "app", "apple_health"),
    "run_log_status": ("draft", "completed", "paused"),
}


def _enum(name: str) -> sa.types.TypeEngine:
    values = ENUMS[name]
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    with op.batch_alter_table("users") as batch:
        batch.add_column(sa.Column("points", sa.Integer(), nullable=False, server_default="0"))
        batch.add_column(sa.Column("level", sa.Integer(), nullable=False, server_default="1"))

    op.create_table(
        "run_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("run_type", _enum("run_type"), nullable=False),
        sa.Column("distance", sa.Float(), nullable=False, comment="km"),
        sa.Column("duration", sa.Integer(), nullable=False, comment="seconds"),
        sa.Column("average_pace", sa.Float(), nullable=True, comment="seconds per km"),
        sa.Column("average_speed", sa.Float(), nullable=True, comment="km/h"),
        sa.Column("elevation_gain", sa.Float(), nullable=False, server_default="0", comment="meters"),
        sa.Column("calories", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_heart_rate", sa.Integer(), nullable=True),
        sa.Column("max_heart_rate", sa.Integer(), nullable=True),
        sa.Column("location_name", sa.String(255), nullable=True),
        sa.Column("location_lat", sa.Float(), nullable=True),
        sa.Column("location_lng", sa.Float(), nullable=True),
        sa.Column("source", _enum("run_source"), nullable=False, server_default="manual"),
        sa.Column("status", _enum("run_log_status"), nullable=False, server_default="completed"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("distance > 0", name="ck_run_logs_distance_positive"),
        sa.CheckConstraint("duration > 0", name="ck_run_logs_duration_positive"),
    )
    op.create_index("ix_run_logs_id", "run_logs", ["id"])
    op.create_index("ix_run_logs_user_start", "run_logs", ["user_id", "start_time"])

    op.create_table(
        "user_blocks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("blocker_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("blocked_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_user_blocks_pair"),
        sa.CheckConstraint("blocker_id <> blocked_id", name="ck_user_blocks_not_self"),
    )
    op.create_index("ix_user_blocks_blocker_id", "user_blocks", ["blocker_id"])
    op.create_index("ix_user_blocks_blocked_id", "user_blocks", ["blocked_id"])


def downgrade() -> None:
    bind = op.get_bind()

    op.drop_table("user_blocks")
    op.drop_table("run_logs")
    with op.batch_alter_table("users") as batch:
        batch.drop_column("level")
        batch.drop_column("points")

    if bind.dialect.name == "postgresql":
        for name, values in reversed(list(ENUMS.items())):
            postgresql.ENUM(*values, name=name).drop(bind, checkfirst=True)
