"""Transaction manager backed by an SQLAlchemy async session."""
import logging
from typing import Awaitable, Callable, TypeVar
from sqlalchemy.ext.asyncio import AsyncSession
from app.interfaces.transaction import ITransactionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLAlchemyTransactionManager(ITransactionManager):
    """Runs units of work on one session.

    A unit started on an idle session commits on success. A unit started
    while the session already has a transaction open runs in a savepoint, so
    it still rolls back on its own and commits with the outer transaction.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._session.in_transaction():
            async with self._session.begin_nested():
                return await fn()

        async with self._session.begin():
            result = await fn()
        logger.debug("Transaction committed")
        return result
