# backend/alembic/env.py
"""
Migrations run against DATABASE_URL from planner settings, unless a URL is
given on the command line:  alembic -x url=sqlite:///./other.db upgrade head
"""
import os
import sys
from logging.config import fileConfig

from alembic import context

# backend root on sys.path so 'planner' imports without an install
BACKEND_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from planner.core.config import build_engine, settings
from planner.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("url") or settings.DATABASE_URL


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


if context.is_offline_mode():
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = build_engine(_database_url())
    with engine.connect() as connection:
        # SQLite cannot ALTER constraints in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()
