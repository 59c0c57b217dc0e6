"""
Menu tree service.

Maintains the materialized ``parent_path`` of every menu:
1. A path is always derived from the currently persisted parent
2. Reparenting rewrites the whole subtree with one prefix query
3. A menu with children cannot be deleted

Multi-record mutations run inside one transaction so a half-moved subtree
is never visible.
"""

import logging
import uuid
from typing import Callable, Optional

from app.core.constants import PAGE_SIZE_ALL
from app.core.exceptions import (
    InvalidParentException,
    NotAllowDeleteException,
    NotAllowSelfException,
    NotFoundException,
)
from app.interfaces.menu import IMenuRepository
from app.interfaces.transaction import ITransactionManager
from app.schemas.menu import (
    Menu,
    MenuQueryOptions,
    MenuQueryParam,
    MenuQueryResult,
    MenuTree,
    PaginationParam,
    build_menu_trees,
    join_path,
    split_parent_path,
)

logger = logging.getLogger(__name__)

_WITH_RELATED = MenuQueryOptions(include_actions=True, include_resources=True)


def new_record_id() -> str:
    return str(uuid.uuid4())


class MenuService:
    """Create, move and delete menus while keeping parent paths consistent."""

    def __init__(
        self,
        repository: IMenuRepository,
        transactions: ITransactionManager,
        id_factory: Callable[[], str] = new_record_id,
    ):
        self.repository = repository
        self.transactions = transactions
        self.id_factory = id_factory

    async def query(
        self, params: MenuQueryParam, options: Optional[MenuQueryOptions] = None
    ) -> MenuQueryResult:
        return await self.repository.query(params, options)

    async def get(
        self,
        record_id: str,
        include_actions: bool = False,
        include_resources: bool = False,
    ) -> Menu:
        menu = await self.repository.get(
            record_id,
            MenuQueryOptions(include_actions=include_actions, include_resources=include_resources),
        )
        if menu is None:
            raise NotFoundException(record_id)
        return menu

    async def compute_parent_path(self, parent_id: str, lock: bool = False) -> str:
        """
        Derive the parent path for a menu placed under ``parent_id``.

        Args:
            parent_id: Parent record id, empty for a root menu
            lock: Lock the parent row for the current transaction

        Returns:
            The parent's path with the parent's own id appended

        Raises:
            InvalidParentException: If the parent does not exist
        """
        if not parent_id:
            return ""

        parent = await self.repository.get(parent_id, for_update=lock)
        if parent is None:
            logger.warning(f"Rejected parent {parent_id}: not found")
            raise InvalidParentException(parent_id)
        return join_path(parent.parent_path, parent.record_id)

    async def _get_with_related(self, record_id: str) -> Menu:
        return await self.get(record_id, include_actions=True, include_resources=True)

    async def create(self, menu: Menu) -> Menu:
        """Store a new menu under its declared parent and return it."""

        async def _create() -> str:
            parent_path = await self.compute_parent_path(menu.parent_id, lock=True)
            item = menu.model_copy(
                update={"record_id": self.id_factory(), "parent_path": parent_path}
            )
            await self.repository.create(item)
            return item.record_id

        record_id = await self.transactions.execute(_create)
        logger.info(f"Created menu {record_id} under '{menu.parent_id}'")
        return await self._get_with_related(record_id)

    async def update(self, record_id: str, menu: Menu) -> Menu:
        """
        Update a menu, moving its subtree when the parent changes.

        Raises:
            NotAllowSelfException: If the menu names itself as parent
            NotFoundException: If the menu does not exist
            InvalidParentException: If the new parent does not exist
        """
        if menu.parent_id == record_id:
            logger.warning(f"Rejected update of menu {record_id}: own parent")
            raise NotAllowSelfException(record_id)

        async def _update() -> None:
            old = await self.repository.get(record_id, _WITH_RELATED)
            if old is None:
                raise NotFoundException(record_id)

            parent_path = old.parent_path
            if menu.parent_id != old.parent_id:
                parent_path = await self.compute_parent_path(menu.parent_id)
                if record_id in split_parent_path(parent_path):
                    logger.warning(f"Rejected move of menu {record_id} under its descendant {menu.parent_id}")
                    raise InvalidParentException(menu.parent_id)
                moved = await self._move_descendants(
                    old_prefix=old.full_path,
                    new_prefix=join_path(parent_path, record_id),
                )
                logger.info(
                    f"Moved menu {record_id} from '{old.parent_id}' to '{menu.parent_id}' "
                    f"with {moved} descendants"
                )

            item = menu.model_copy(update={"record_id": record_id, "parent_path": parent_path})
            await self.repository.update(record_id, item)

        await self.transactions.execute(_update)
        return await self._get_with_related(record_id)

    async def _move_descendants(self, old_prefix: str, new_prefix: str) -> int:
        result = await self.repository.query(MenuQueryParam(prefix_parent_path=old_prefix))
        for descendant in result.data:
            suffix = descendant.parent_path[len(old_prefix):]
            await self.repository.update_parent_path(descendant.record_id, new_prefix + suffix)
        logger.debug(f"Rewrote {len(result.data)} paths from '{old_prefix}' to '{new_prefix}'")
        return len(result.data)

    async def delete(self, record_id: str) -> None:
        """Delete a childless menu."""

        async def _delete() -> None:
            if await self.repository.get(record_id) is None:
                raise NotFoundException(record_id)

            result = await self.repository.query(
                MenuQueryParam(parent_id=record_id),
                MenuQueryOptions(page_param=PaginationParam(page_size=PAGE_SIZE_ALL)),
            )
            children = result.page_result.total if result.page_result else len(result.data)
            if children > 0:
                logger.warning(f"Rejected delete of menu {record_id}: {children} children")
                raise NotAllowDeleteException(record_id, children)

            await self.repository.delete(record_id)

        await self.transactions.execute(_delete)
        logger.info(f"Deleted menu {record_id}")

    async def query_tree(self, params: Optional[MenuQueryParam] = None) -> list[MenuTree]:
        """Query menus and nest them by parent."""
        result = await self.repository.query(params or MenuQueryParam())
        return build_menu_trees(result.data)

    async def get_ancestors(self, record_id: str) -> list[Menu]:
        """Return the ancestors of a menu, root first."""
        menu = await self.get(record_id)
        ancestor_ids = split_parent_path(menu.parent_path)
        if not ancestor_ids:
            return []

        result = await self.repository.query(MenuQueryParam(record_ids=ancestor_ids))
        by_id = {m.record_id: m for m in result.data}
        return [by_id[i] for i in ancestor_ids if i in by_id]
