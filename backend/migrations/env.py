"""
backend/migrations/env.py — Alembic environment.

Uses the same database URL the app would: DATABASE_URL (or
TEST_DATABASE_URL when TEST_RUN=1), falling back to the development
SQLite file from backend/config.py.

SQLite cannot ALTER most constraints in place, so migrations run in
batch mode (copy-and-move tables).
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# ── Import the app's metadata for autogenerate support ────────────────────
# Add the project root to sys.path so `from backend.pulse...` works when
# alembic is run from inside backend/.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from backend.config import DevelopmentConfig, TestingConfig  # noqa: E402  (loads .env)
from backend.pulse.extensions import db  # noqa: E402
from backend.pulse.models import (  # noqa: E402,F401
    flag_report,
    group,
    group_member,
    sport,
    user,
    user_rating,
)

target_metadata = db.metadata

# ── Pick the right database URL ───────────────────────────────────────────
if os.getenv("TEST_RUN"):
    db_url = TestingConfig.SQLALCHEMY_DATABASE_URI
else:
    db_url = DevelopmentConfig.SQLALCHEMY_DATABASE_URI

# ── Alembic config ────────────────────────────────────────────────────────
config = context.config
config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
