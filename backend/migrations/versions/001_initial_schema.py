"""Initial schema — all tables, CHECK-backed enums, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-18

Creates the complete Pulse v1 SQLite schema.

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. Tables in FK dependency order (users, sports → groups → group_members,
     user_ratings, flag_reports)
  2. Indexes

SQLite has no enum type. Every enum column is VARCHAR with a named
CHECK (... IN (...)) constraint, matching models/base.py:str_enum().

ON DELETE policy: every FK is RESTRICT. Nothing in Pulse is hard-deleted
except a member's own group_members row on leave.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration, no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _in_check(column: str, values: tuple[str, ...], name: str) -> sa.CheckConstraint:
    quoted = ", ".join(f"'{v}'" for v in values)
    return sa.CheckConstraint(f"{column} IN ({quoted})", name=name)


def upgrade() -> None:

    # ── Step 1: users ──────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(5), nullable=False, server_default="user"),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_ratings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("flags", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(9), nullable=False, server_default="active"),
        sa.Column(
            "join_date",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("LENGTH(TRIM(username)) > 0", name="ck_users_username_nonempty"),
        sa.CheckConstraint("email LIKE '%@%'", name="ck_users_email_format"),
        sa.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_users_rating_range"),
        sa.CheckConstraint("total_ratings >= 0", name="ck_users_total_ratings_nonneg"),
        sa.CheckConstraint("flags >= 0", name="ck_users_flags_nonneg"),
        _in_check("role", ("admin", "user"), "user_role_enum"),
        _in_check("status", ("active", "suspended", "pending"), "user_status_enum"),
    )

    # ── Step 2: sports ─────────────────────────────────────────────────────
    op.create_table(
        "sports",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("icon", sa.String(16), nullable=False),
        sa.Column("slug", sa.String(60), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("group_count", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name="pk_sports"),
        sa.UniqueConstraint("name", name="uq_sports_name"),
        sa.UniqueConstraint("slug", name="uq_sports_slug"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_sports_name_nonempty"),
        sa.CheckConstraint("group_count >= 0", name="ck_sports_group_count_nonneg"),
    )

    # ── Step 3: groups ─────────────────────────────────────────────────────
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(150), nullable=False),
        sa.Column("details", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "sport_id",
            sa.Integer(),
            sa.ForeignKey("sports.id", ondelete="RESTRICT", name="fk_groups_sport"),
            nullable=False,
        ),
        sa.Column(
            "organizer_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_groups_organizer"),
            nullable=False,
        ),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("date_time", sa.DateTime(), nullable=False),
        sa.Column("privacy", sa.String(7), nullable=False, server_default="PUBLIC"),
        sa.Column("max_members", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(9), nullable=False, server_default="upcoming"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_groups_title_nonempty"),
        sa.CheckConstraint("max_members > 0", name="ck_groups_max_members_positive"),
        _in_check("privacy", ("PUBLIC", "FRIENDS", "INVITE", "PRIVATE"), "privacy_enum"),
        _in_check(
            "status",
            ("upcoming", "active", "completed", "cancelled"),
            "group_status_enum",
        ),
    )

    # ── Step 4: group_members ──────────────────────────────────────────────
    # UNIQUE(group_id, user_id): a racing duplicate join fails here.
    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_group_members_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_group_members_user"),
            nullable=False,
        ),
        sa.Column("role", sa.String(9), nullable=False, server_default="member"),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_group_members"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
        _in_check("role", ("organizer", "member"), "member_role_enum"),
    )

    # ── Step 5: user_ratings ───────────────────────────────────────────────
    op.create_table(
        "user_ratings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "rated_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_user_ratings_rated"),
            nullable=False,
        ),
        sa.Column(
            "rater_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_user_ratings_rater"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_user_ratings_group"),
            nullable=False,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_user_ratings"),
        sa.UniqueConstraint(
            "rated_user_id",
            "rater_user_id",
            "group_id",
            name="uq_user_ratings_rated_rater_group",
        ),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_user_ratings_rating_range"),
        sa.CheckConstraint(
            "rated_user_id <> rater_user_id",
            name="ck_user_ratings_no_self_rating",
        ),
    )

    # ── Step 6: flag_reports ───────────────────────────────────────────────
    op.create_table(
        "flag_reports",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "reporter_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_flag_reports_reporter"),
            nullable=False,
        ),
        sa.Column(
            "reported_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_flag_reports_reported"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_flag_reports_group"),
            nullable=False,
        ),
        sa.Column("type", sa.String(22), nullable=False),
        sa.Column("reason", sa.String(100), nullable=False),
        sa.Column("details", sa.Text(), nullable=False, server_default=""),
        sa.Column("severity", sa.String(6), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(12), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "reviewed_by_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_flag_reports_reviewer"),
            nullable=True,
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("action_taken", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_flag_reports"),
        sa.CheckConstraint("reporter_id <> reported_id", name="ck_flag_reports_no_self_flag"),
        _in_check(
            "type",
            (
                "harassment", "bad_sportsmanship", "cheating",
                "no_show", "inappropriate_behavior", "other",
            ),
            "flag_type_enum",
        ),
        _in_check("severity", ("low", "medium", "high"), "flag_severity_enum"),
        _in_check(
            "status",
            ("pending", "reviewed", "dismissed", "action_taken"),
            "flag_status_enum",
        ),
    )

    # ── Step 7: indexes ────────────────────────────────────────────────────
    op.create_index("idx_groups_status_date_time", "groups", ["status", "date_time"])
    op.create_index("ix_groups_sport_id", "groups", ["sport_id"])
    op.create_index("ix_groups_organizer_id", "groups", ["organizer_id"])
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])
    op.create_index("ix_user_ratings_rated_user_id", "user_ratings", ["rated_user_id"])
    op.create_index(
        "idx_flag_reports_reported_status",
        "flag_reports",
        ["reported_id", "status"],
    )


def downgrade() -> None:
    """Drop everything in reverse dependency order."""
    op.drop_index("idx_flag_reports_reported_status", table_name="flag_reports")
    op.drop_index("ix_user_ratings_rated_user_id", table_name="user_ratings")
    op.drop_index("ix_group_members_user_id", table_name="group_members")
    op.drop_index("ix_group_members_group_id", table_name="group_members")
    op.drop_index("ix_groups_organizer_id", table_name="groups")
    op.drop_index("ix_groups_sport_id", table_name="groups")
    op.drop_index("idx_groups_status_date_time", table_name="groups")

    op.drop_table("flag_reports")
    op.drop_table("user_ratings")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("sports")
    op.drop_table("users")
