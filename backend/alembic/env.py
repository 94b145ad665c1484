"""
Migration environment for the comedy club schema.

The app talks to PostgreSQL through asyncpg; migrations run on a plain sync
driver. DATABASE_URL_SYNC wins when set, otherwise the async driver suffix is
stripped from DATABASE_URL.

    alembic upgrade head          # apply
    alembic upgrade head --sql    # print the SQL instead
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from comedy_club.db.base import Base
from comedy_club.models import Event, BookingSettings, Booking  # noqa: F401 - registers tables on Base.metadata
from comedy_club.core.config import get_settings

_ASYNC_DRIVERS = {"+asyncpg": "", "+aiosqlite": ""}


def migration_url() -> str:
    settings = get_settings()
    if settings.DATABASE_URL_SYNC:
        return settings.DATABASE_URL_SYNC
    url = settings.DATABASE_URL
    for driver, replacement in _ASYNC_DRIVERS.items():
        url = url.replace(driver, replacement, 1)
    return url


config = context.config
config.set_main_option("sqlalchemy.url", migration_url())

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite cannot ALTER constraints in place
        "render_as_batch": url.startswith("sqlite"),
    }


def run_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    url = config.get_main_option("sqlalchemy.url")
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
