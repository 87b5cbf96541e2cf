"""Alembic environment for the beershop schema (users, beers, loves, sessions)."""

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from beershop.core.config import settings
from beershop.core.logging_config import configure_logging

# Registers every table on Base.metadata.
from beershop.models import Base, Beer, SessionRecord, User, beer_users  # noqa: F401

configure_logging(settings.LOG_LEVEL)

target_metadata = Base.metadata


def _configure_options(url: str) -> dict:
    # SQLite cannot ALTER most constraints in place; batch mode copies the table.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit SQL for settings.DATABASE_URL without connecting."""
    url = settings.DATABASE_URL
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = settings.DATABASE_URL
    connectable = create_engine(url, poolclass=NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
