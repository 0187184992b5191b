# pipeline_docs/db/db_manager.py
"""
Database manager focused on connection management and session handling.
Schema migrations are handled separately via Alembic CLI.

Design principles:
- Single responsibility: Connection/session management only
- Fail fast: Invalid configuration crashes on startup
- Explicit over implicit: No magic auto-migrations
"""

import ssl as ssl_module
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Any, Optional, Union

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine,
)
from common import DatabaseConfig, DatabaseError, logger, request_timer_context_var


def _attach_sql_timing(engine: AsyncEngine) -> None:
    """
    Feed SQL execution time and statement count into the current request's
    RequestTimer. Outside a request there is no timer and nothing is recorded.
    """

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        started = conn.info["query_start_time"].pop()
        timer = request_timer_context_var.get()
        if timer is not None:
            timer.record("sql", (time.perf_counter() - started) * 1000)
            timer.increment("query_count")


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DbManager:
    """
    Database connection and session manager.

    Responsibilities:
    - Async engine/connection pool management
    - Session lifecycle management
    - Health checks and per-request SQL timing

    NOT responsible for:
    - Schema creation/migration (use Alembic CLI)

    Usage:
        db_manager = DbManager.from_config(config.database)
        await db_manager.verify_connection()

        async with db_manager.session() as session:
            result = await session.execute(...)

        await db_manager.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        echo: bool = False,
        connect_args: Optional[dict[str, Any]] = None,
    ):
        """
        Args:
            url: Database URL (postgresql+asyncpg://, postgresql+psycopg://
                 or sqlite+aiosqlite://)
            pool_size: Number of persistent connections
            max_overflow: Additional connections beyond pool_size
            pool_timeout: Seconds to wait for connection from pool
            pool_recycle: Recycle connections after N seconds
            pool_pre_ping: Test connections before using
            echo: Log all SQL statements
            connect_args: Driver-specific connection arguments (SSL, etc.)
        """
        self._validate_url(url)

        self._config: dict[str, Union[str, int]] = {
            "url": url.split("@")[-1],
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
        }

        self.engine: AsyncEngine = create_async_engine(
            url=url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=pool_pre_ping,
            connect_args=connect_args or {},
        )

        if self.dialect_name == "sqlite":
            _enable_sqlite_foreign_keys(self.engine)
        _attach_sql_timing(self.engine)

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )


        logger.info(
            "DbManager initialized",
            dialect=self.dialect_name,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pre_ping=pool_pre_ping,
        )

    @classmethod
    def from_config(
        cls,
        config: DatabaseConfig,
        **kwargs: Any,
    ) -> "DbManager":
        """
        Create DbManager from DatabaseConfig, including asyncpg SSL setup.

        Example:
            db_manager = DbManager.from_config(config.database)
        """
        connect_args = kwargs.pop("connect_args", {})

        if config.ssl_mode and config.driver.value == "asyncpg":
            ssl_mode = config.ssl_mode.value
            if ssl_mode == "disable":
                connect_args["ssl"] = False
            elif config.requires_ssl():
                connect_args["ssl"] = cls._build_ssl_context(
                    ssl_mode,
                    ca_path=config.ssl_ca_path,
                    cert_path=config.ssl_cert_path,
                    key_path=config.ssl_key_path,
                )

        return cls(
            url=config.get_connection_url(include_password=True),
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            connect_args=connect_args,
            **kwargs,
        )

    @staticmethod
    def _build_ssl_context(
        ssl_mode: str,
        *,
        ca_path: Optional[Path],
        cert_path: Optional[Path],
        key_path: Optional[Path],
    ) -> ssl_module.SSLContext:
        ssl_context = ssl_module.create_default_context()
        if ca_path:
            ssl_context.load_verify_locations(cafile=str(ca_path))
        if cert_path and key_path:
            ssl_context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))

        if ssl_mode == "verify-full":
            ssl_context.check_hostname = True
            ssl_context.verify_mode = ssl_module.CERT_REQUIRED
        elif ssl_mode == "require":
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl_module.CERT_NONE
        return ssl_context

    @staticmethod
    def _validate_url(url: str) -> None:
        if not url or not url.startswith(
            ("postgresql+asyncpg://", "postgresql+psycopg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "Invalid database URL. Expected postgresql+asyncpg://, "
                f"postgresql+psycopg:// or sqlite+aiosqlite://, got: {url[:20]}..."
            )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def verify_connection(self) -> None:
        """
        Verify database connection on startup.

        Raises:
            DatabaseError: If the database cannot be reached
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
        except Exception as e:
            logger.error("Database connection failed", error=str(e))
            raise DatabaseError(f"Failed to connect to database: {e}") from e

    async def verify_migrations_current(self) -> str:
        """
        Check that Alembic has stamped the database.

        Returns:
            Current revision id

        Raises:
            DatabaseError: If alembic_version table is missing or empty
        """

        def _has_version_table(sync_conn: Connection) -> bool:
            return inspect(sync_conn).has_table("alembic_version")

        async with self.engine.connect() as conn:
            if not await conn.run_sync(_has_version_table):
                raise DatabaseError(
                    "alembic_version table not found. "
                    "Have you run 'alembic upgrade head'?"
                )

            result = await conn.execute(text("SELECT version_num FROM alembic_version"))
            current_version = result.scalar()

        if current_version is None:
            raise DatabaseError("alembic_version is empty; run 'alembic upgrade head'")

        logger.info("Current migration version", revision=current_version)
        return current_version

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional database session.

        Commits on success, rolls back and re-raises on exception. Session
        lifetime is attributed to the request timer as "db".
        """
        timer = request_timer_context_var.get()
        started = time.perf_counter()
        session = self.session_maker()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error("Session error, rolled back", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            await session.close()
            if timer is not None:
                timer.record("db", (time.perf_counter() - started) * 1000)

    async def health_check(self) -> dict[str, Any]:
        """
        Round-trip a SELECT 1 and report pool status.

        Returns:
            {"healthy": bool, "response_time_ms": float, "pool_status": str}
            or {"healthy": False, "error": str}
        """
        start = time.perf_counter()

        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Database health check failed", error=str(e))
            return {"healthy": False, "error": str(e)}

        return {
            "healthy": True,
            "dialect": self.dialect_name,
            "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
            "pool_status": self.engine.pool.status(),
        }

    async def dispose(self) -> None:
        """Dispose of all connections. Call on application shutdown."""
        await self.engine.dispose()
        logger.info("Database connections disposed")

    def get_config_snapshot(self) -> dict[str, Any]:
        """Current configuration without credentials."""
        return self._config.copy()


__all__ = ["DbManager"]
