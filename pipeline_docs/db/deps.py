# pipeline_docs/db/deps.py
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator
from .db_manager import DbManager

# Note: No import from main.py here!


def get_db_manager(request: Request) -> DbManager:
    """
    Pulls the manager from app.state to support multiple app instances.
    """
    manager = getattr(request.app.state, "db_manager", None)

    if not manager:
        # This handles cases where the dependency is called but lifespan didn't run
        raise RuntimeError(
            "DbManager not found in app.state. Ensure lifespan is configured."
        )
    return manager


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Commits when the handler returns, rolls back
    on error. Handlers that audit commit explicitly first.
    """
    async with get_db_manager(request).session() as session:
        yield session


__all__ = ["get_db", "get_db_manager"]
