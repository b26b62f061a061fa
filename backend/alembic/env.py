"""
Alembic environment for the food ordering schema.

The database URL always comes from the application settings, never from
alembic.ini, so migrations hit the same database the API serves. Run from
``backend/``: ``alembic upgrade head`` or
``alembic revision --autogenerate -m "..."``.
"""
import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

sys.path.insert(0, os.path.realpath(os.path.join(os.path.dirname(__file__), "..")))

from config import settings
from database import Base

# Registers users, catalog, carts, orders, payments and audit logs on Base.metadata
import models.users
import models.catalog
import models.cart
import models.order
import models.payment
import models.log

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL.replace("postgres://", "postgresql://", 1))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Batch mode lets ALTER-style migrations run on SQLite; compare_type picks up
# changed string lengths such as order codes and transaction ids
MIGRATION_OPTIONS = {
    "target_metadata": target_metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
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
        context.configure(connection=connection, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
