from abc import ABC, abstractmethod
from typing import Optional

from app.schemas.menu import Menu, MenuQueryOptions, MenuQueryParam, MenuQueryResult


class IMenuRepository(ABC):
    @abstractmethod
    async def get(
        self,
        record_id: str,
        options: Optional[MenuQueryOptions] = None,
        for_update: bool = False,
    ) -> Optional[Menu]:
        """Retrieve a menu by record id.

        Args:
            record_id: Menu record id
            options: Eager-load flags for actions and resources
            for_update: Lock the row for the rest of the current transaction

        Returns:
            The menu if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, menu: Menu) -> None:
        """Persist a new menu together with its actions and resources."""
        pass

    @abstractmethod
    async def update(self, record_id: str, menu: Menu) -> None:
        """Overwrite a menu's fields and replace its actions and resources."""
        pass

    @abstractmethod
    async def update_parent_path(self, record_id: str, parent_path: str) -> None:
        """Rewrite only the parent path of a menu."""
        pass

    @abstractmethod
    async def query(
        self, params: MenuQueryParam, options: Optional[MenuQueryOptions] = None
    ) -> MenuQueryResult:
        """Query menus.

        Args:
            params: Filters; ``prefix_parent_path`` selects a whole subtree
            options: Paging and eager-load flags. Without a page param, or
                with a page size of -1, every match is returned.

        Returns:
            Matching menus, plus the page result when paging was requested
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """Delete a menu with its actions and resources."""
        pass
