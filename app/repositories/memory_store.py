"""In-memory menu store and transaction manager."""

from __future__ import annotations

import asyncio
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

from app.interfaces.menu import IMenuRepository
from app.interfaces.transaction import ITransactionManager
from app.schemas.menu import (
    Menu,
    MenuQueryOptions,
    MenuQueryParam,
    MenuQueryResult,
    PaginationResult,
    is_under_path,
)

T = TypeVar("T")

# record_id -> value before the unit first wrote it (None: did not exist)
Journal = dict[str, Menu | None]


class MemoryMenuRepository(IMenuRepository):
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._menus: dict[str, Menu] = {}
        self._journal: ContextVar[Journal | None] = ContextVar(
            f"memory_journal_{id(self)}", default=None
        )

    @staticmethod
    def _shape(menu: Menu, options: MenuQueryOptions | None) -> Menu:
        updates = {}
        if not (options and options.include_actions):
            updates["actions"] = []
        if not (options and options.include_resources):
            updates["resources"] = []
        return menu.model_copy(update=updates) if updates else menu

    def _remember(self, record_id: str) -> None:
        journal = self._journal.get()
        if journal is not None and record_id not in journal:
            journal[record_id] = self._menus.get(record_id)

    async def get(
        self,
        record_id: str,
        options: MenuQueryOptions | None = None,
        for_update: bool = False,
    ) -> Menu | None:
        async with self._lock:
            menu = self._menus.get(record_id)
            return self._shape(menu, options) if menu else None

    async def create(self, menu: Menu) -> None:
        async with self._lock:
            if menu.record_id in self._menus:
                raise ValueError(f"Menu {menu.record_id} already exists")
            self._remember(menu.record_id)
            created_at = menu.created_at or datetime.now(timezone.utc)
            self._menus[menu.record_id] = menu.model_copy(update={"created_at": created_at})

    async def update(self, record_id: str, menu: Menu) -> None:
        async with self._lock:
            old = self._menus.get(record_id)
            if not old:
                return
            self._remember(record_id)
            self._menus[record_id] = menu.model_copy(
                update={
                    "record_id": record_id,
                    "creator": old.creator,
                    "created_at": old.created_at,
                }
            )

    async def update_parent_path(self, record_id: str, parent_path: str) -> None:
        async with self._lock:
            old = self._menus.get(record_id)
            if old:
                self._remember(record_id)
                self._menus[record_id] = old.model_copy(update={"parent_path": parent_path})

    async def query(
        self, params: MenuQueryParam, options: MenuQueryOptions | None = None
    ) -> MenuQueryResult:
        async with self._lock:
            menus = list(self._menus.values())

        if params.record_ids is not None:
            wanted = set(params.record_ids)
            menus = [m for m in menus if m.record_id in wanted]
        if params.name:
            menus = [m for m in menus if params.name in m.name]
        if params.hidden is not None:
            menus = [m for m in menus if m.hidden == params.hidden]
        if params.parent_id is not None:
            menus = [m for m in menus if m.parent_id == params.parent_id]
        if params.prefix_parent_path:
            menus = [m for m in menus if is_under_path(m.parent_path, params.prefix_parent_path)]

        menus.sort(key=lambda m: (-m.sequence, m.record_id))

        page_param = options.page_param if options else None
        page_result = None
        if page_param:
            page_result = PaginationResult(
                total=len(menus),
                current=page_param.page_index,
                page_size=page_param.page_size,
            )
            if not page_param.is_unbounded:
                start = (page_param.page_index - 1) * page_param.page_size
                menus = menus[start:start + page_param.page_size]

        return MenuQueryResult(
            data=[self._shape(m, options) for m in menus],
            page_result=page_result,
        )

    async def delete(self, record_id: str) -> None:
        async with self._lock:
            if record_id in self._menus:
                self._remember(record_id)
                del self._menus[record_id]

    async def snapshot(self) -> dict[str, Menu]:
        async with self._lock:
            return dict(self._menus)

    @property
    def in_journal(self) -> bool:
        return self._journal.get() is not None

    def start_journal(self) -> tuple[Journal, Token]:
        """Record the prior value of every record written from the current context."""
        journal: Journal = {}
        return journal, self._journal.set(journal)

    def stop_journal(self, token: Token) -> None:
        self._journal.reset(token)

    async def undo(self, journal: Journal) -> None:
        """Put back the records a unit wrote; writes by other units are kept."""
        async with self._lock:
            for record_id, old in journal.items():
                if old is None:
                    self._menus.pop(record_id, None)
                else:
                    self._menus[record_id] = old


class MemoryTransactionManager(ITransactionManager):
    """Undo-journal transactions over a MemoryMenuRepository.

    Writes are visible to other tasks before commit (no isolation). A
    rollback only reverts the records written inside the failed unit.
    """

    def __init__(self, repository: MemoryMenuRepository) -> None:
        self._repository = repository

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._repository.in_journal:
            return await fn()

        journal, token = self._repository.start_journal()
        try:
            return await fn()
        except BaseException:
            await self._repository.undo(journal)
            raise
        finally:
            self._repository.stop_journal(token)
