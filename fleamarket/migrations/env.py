"""
fleamarket/migrations/env.py: Alembic environment.

The database URL comes from the same config classes the app uses, chosen
by FLASK_ENV (default "development"), so migrations and the running app
never disagree about which database they target.

    FLASK_ENV=production alembic upgrade head
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from fleamarket.app.extensions import db
from fleamarket.app.models import BlacklistedToken, Item, User  # noqa: F401
from fleamarket.config import config_by_name

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

_config_class = config_by_name.get(os.getenv("FLASK_ENV", "development"), config_by_name["development"])
database_url = _config_class.SQLALCHEMY_DATABASE_URI
if not database_url:
    raise RuntimeError("No database URL configured; set DATABASE_URL.")

migration_options = {
    "target_metadata": db.metadata,
    "compare_type": True,
    # SQLite cannot ALTER most constraints in place.
    "render_as_batch": database_url.startswith("sqlite"),
}


def run_migrations_offline() -> None:
    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **migration_options)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
