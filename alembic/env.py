"""
Alembic environment.

Connection settings come from the same DB_* variables as the application.
The async driver in the app URL is swapped for its sync counterpart:
asyncpg -> psycopg2, psycopg stays psycopg (v3 has both modes),
aiosqlite -> pysqlite.
"""

import sys
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import URL, make_url
from alembic import context
from dotenv import load_dotenv

from pipeline_docs.db.models import DbBaseModel
from common.config import DatabaseConfig, SslMode
from common.config.initialize_config import (
    get_config,
    initialize_config,
    ConfigurationError,
)

SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg2",
    "postgresql+psycopg": "postgresql+psycopg",
    "sqlite+aiosqlite": "sqlite",
}

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    print(f"FATAL: Configuration error:\n{e}")
    sys.exit(1)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = DbBaseModel.metadata


def get_db_config() -> DatabaseConfig:
    db_config = get_config().database
    if db_config is None:
        raise RuntimeError("Database configuration not found in environment (DB_HOST unset)")
    return db_config


def get_sync_url(db_config: DatabaseConfig) -> URL:
    async_url = make_url(db_config.get_connection_url(include_password=True))
    return async_url.set(drivername=SYNC_DRIVERS[async_url.drivername])


def get_connect_args(db_config: DatabaseConfig) -> dict:
    """libpq SSL parameters equivalent to what DbManager sets up for asyncpg."""
    if db_config.is_sqlite or db_config.ssl_mode is None:
        return {}

    connect_args = {"sslmode": db_config.ssl_mode.value}
    if db_config.ssl_mode == SslMode.DISABLE:
        return connect_args

    for key, path in (
        ("sslrootcert", db_config.ssl_ca_path),
        ("sslcert", db_config.ssl_cert_path),
        ("sslkey", db_config.ssl_key_path),
    ):
        if path:
            connect_args[key] = str(path)
    return connect_args


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    url = get_sync_url(get_db_config())

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.get_backend_name() == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    db_config = get_db_config()

    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_sync_url(db_config).render_as_string(hide_password=False)

    # Migrations are a one-shot process
    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=get_connect_args(db_config),
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite needs table rebuilds for ALTER
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
