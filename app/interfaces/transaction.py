from abc import ABC, abstractmethod
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class ITransactionManager(ABC):
    @abstractmethod
    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` as one unit of work.

        Commits when ``fn`` returns and rolls back when it raises (including
        task cancellation). Calls made from inside ``fn`` join the same unit
        and observe each other's writes.

        Args:
            fn: Coroutine function performing the work

        Returns:
            Whatever ``fn`` returned
        """
        pass
