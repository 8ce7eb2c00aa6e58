"""
squareup/migrations/env.py — Alembic environment.

Uses DATABASE_URL, or TEST_DATABASE_URL when TEST_RUN is set, from the
environment / .env file. Run from the repository root:

    alembic upgrade head
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from squareup.config import normalise_database_url
from squareup.app.extensions import db
from squareup.app.models import (  # noqa: F401
    contribution,
    delete_vote,
    friend,
    group,
    membership,
    one_time_code,
    receiver_share,
    refresh_token,
    user,
)

target_metadata = db.metadata

# Importing squareup.config has already loaded .env.
db_url = normalise_database_url(
    os.environ["TEST_DATABASE_URL"] if os.getenv("TEST_RUN") else os.environ["DATABASE_URL"]
)

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
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
