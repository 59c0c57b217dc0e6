"""Wiring of the menu service for a database session."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import db_manager
from app.repositories.menu_repository import MenuRepository
from app.repositories.transaction import SQLAlchemyTransactionManager
from app.services.menu_service import MenuService


def get_menu_service(session: AsyncSession) -> MenuService:
    """Build a menu service whose repository and transactions share ``session``."""
    return MenuService(
        repository=MenuRepository(session),
        transactions=SQLAlchemyTransactionManager(session),
    )


@asynccontextmanager
async def menu_service_scope() -> AsyncGenerator[MenuService, None]:
    """
    Menu service bound to a fresh session from the global manager.

    Everything done through the service commits when the block exits and
    rolls back if it raises.

    Usage:
        async with menu_service_scope() as service:
            menu = await service.create(Menu(name="Settings"))
    """
    async with db_manager.session_scope() as session:
        yield get_menu_service(session)
