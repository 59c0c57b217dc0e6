"""Menu repository implementation using SQLAlchemy."""
from typing import Optional
from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.core.constants import PATH_SEPARATOR
from app.interfaces.menu import IMenuRepository
from app.models.menu import Menu as MenuModel, MenuAction, MenuResource
from app.schemas.menu import (
    Menu,
    MenuQueryOptions,
    MenuQueryParam,
    MenuQueryResult,
    PaginationResult,
)


class MenuRepository(IMenuRepository):
    """SQL implementation of the menu record store using SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _with_loaders(stmt: Select, options: Optional[MenuQueryOptions]) -> Select:
        if options and options.include_actions:
            stmt = stmt.options(selectinload(MenuModel.actions))
        if options and options.include_resources:
            stmt = stmt.options(selectinload(MenuModel.resources))
        # Rows may already sit in the identity map with stale columns after bulk path updates
        return stmt.execution_options(populate_existing=True)

    @staticmethod
    def _to_schema(model: MenuModel, options: Optional[MenuQueryOptions]) -> Menu:
        return Menu.model_validate(
            model.to_dict(
                include_actions=bool(options and options.include_actions),
                include_resources=bool(options and options.include_resources),
            )
        )

    async def get(
        self,
        record_id: str,
        options: Optional[MenuQueryOptions] = None,
        for_update: bool = False,
    ) -> Optional[Menu]:
        """Retrieve a menu by record id."""
        stmt = self._with_loaders(
            select(MenuModel).where(MenuModel.record_id == record_id), options
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        menu = result.scalar_one_or_none()
        return self._to_schema(menu, options) if menu else None

    async def create(self, menu: Menu) -> None:
        """Persist a new menu with its actions and resources."""
        model = MenuModel(
            record_id=menu.record_id,
            name=menu.name,
            sequence=menu.sequence,
            icon=menu.icon,
            router=menu.router,
            hidden=menu.hidden,
            parent_id=menu.parent_id,
            parent_path=menu.parent_path,
            creator=menu.creator,
            actions=[MenuAction(code=a.code, name=a.name) for a in menu.actions],
            resources=[
                MenuResource(code=r.code, name=r.name, method=r.method, path=r.path)
                for r in menu.resources
            ],
        )
        if menu.created_at is not None:
            model.created_at = menu.created_at

        self._session.add(model)
        await self._session.flush()

    async def update(self, record_id: str, menu: Menu) -> None:
        """Overwrite a menu; record_id, creator and created_at are kept."""
        stmt = (
            select(MenuModel)
            .where(MenuModel.record_id == record_id)
            .options(selectinload(MenuModel.actions), selectinload(MenuModel.resources))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            return

        model.name = menu.name
        model.sequence = menu.sequence
        model.icon = menu.icon
        model.router = menu.router
        model.hidden = menu.hidden
        model.parent_id = menu.parent_id
        model.parent_path = menu.parent_path
        model.actions = [MenuAction(code=a.code, name=a.name) for a in menu.actions]
        model.resources = [
            MenuResource(code=r.code, name=r.name, method=r.method, path=r.path)
            for r in menu.resources
        ]
        await self._session.flush()

    async def update_parent_path(self, record_id: str, parent_path: str) -> None:
        """Rewrite only the parent path of a menu."""
        stmt = (
            update(MenuModel)
            .where(MenuModel.record_id == record_id)
            .values(parent_path=parent_path)
        )
        await self._session.execute(stmt)

    async def query(
        self, params: MenuQueryParam, options: Optional[MenuQueryOptions] = None
    ) -> MenuQueryResult:
        """Query menus ordered by sequence (descending)."""
        stmt = select(MenuModel)

        if params.record_ids is not None:
            stmt = stmt.where(MenuModel.record_id.in_(params.record_ids))
        if params.name:
            stmt = stmt.where(MenuModel.name.contains(params.name, autoescape=True))
        if params.hidden is not None:
            stmt = stmt.where(MenuModel.hidden == params.hidden)
        if params.parent_id is not None:
            stmt = stmt.where(MenuModel.parent_id == params.parent_id)
        if params.prefix_parent_path:
            prefix = params.prefix_parent_path
            stmt = stmt.where(
                or_(
                    MenuModel.parent_path == prefix,
                    MenuModel.parent_path.startswith(prefix + PATH_SEPARATOR, autoescape=True),
                )
            )

        page_param = options.page_param if options else None
        page_result = None
        if page_param:
            count_stmt = select(func.count()).select_from(stmt.subquery())
            total = (await self._session.execute(count_stmt)).scalar_one()
            page_result = PaginationResult(
                total=total,
                current=page_param.page_index,
                page_size=page_param.page_size,
            )

        stmt = stmt.order_by(MenuModel.sequence.desc(), MenuModel.record_id)
        if page_param and not page_param.is_unbounded:
            stmt = stmt.offset((page_param.page_index - 1) * page_param.page_size).limit(
                page_param.page_size
            )

        stmt = self._with_loaders(stmt, options)
        result = await self._session.execute(stmt)
        data = [self._to_schema(menu, options) for menu in result.scalars().all()]
        return MenuQueryResult(data=data, page_result=page_result)

    async def delete(self, record_id: str) -> None:
        """Delete a menu together with its actions and resources."""
        await self._session.execute(delete(MenuAction).where(MenuAction.menu_id == record_id))
        await self._session.execute(delete(MenuResource).where(MenuResource.menu_id == record_id))
        await self._session.execute(delete(MenuModel).where(MenuModel.record_id == record_id))
        await self._session.flush()
