import logging
import tempfile
import unittest
from unittest.mock import patch


from app.core.config import settings
from app.core.database import DatabaseManager, close_db, db_manager, init_db, lifespan
from app.core.dependencies import get_menu_service, menu_service_scope
from app.core.exceptions import NotAllowDeleteException
from app.repositories.menu_repository import MenuRepository
from app.repositories.transaction import SQLAlchemyTransactionManager
from app.schemas.menu import (
    Menu,
    MenuAction,
    MenuQueryOptions,
    MenuQueryParam,
    MenuResource,
    PaginationParam,
)
from app.services.menu_service import MenuService


class FailingMenuRepository(MenuRepository):
    def __init__(self, session, fail_on: int):
        super().__init__(session)
        self.fail_on = fail_on
        self.calls = 0

    async def update_parent_path(self, record_id: str, parent_path: str) -> None:
        self.calls += 1
        if self.calls == self.fail_on:
            raise RuntimeError("connection lost")
        await super().update_parent_path(record_id, parent_path)


class SQLiteTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.db = DatabaseManager()
        self.db.init(f"sqlite+aiosqlite:///{self._tmp.name}/menus.db", pool_size=0)
        await self.db.create_all()

    async def asyncTearDown(self):
        await self.db.close()
        self._tmp.cleanup()

    async def call(self, fn):
        """Run ``fn(service)`` on its own session, one session per request."""
        async with self.db.session_factory() as session:
            return await fn(get_menu_service(session))


class TestMenuRepository(SQLiteTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        async with self.db.session_factory() as session:
            repository = MenuRepository(session)
            for record_id, parent_path, sequence in [
                ("a", "", 3),
                ("ab", "", 2),
                ("x", "a", 1),
                ("y", "a/x", 0),
                ("z", "ab", 0),
            ]:
                await repository.create(
                    Menu(
                        record_id=record_id,
                        name=record_id.upper(),
                        parent_id=parent_path.rsplit("/", 1)[-1],
                        parent_path=parent_path,
                        sequence=sequence,
                        actions=[MenuAction(code=f"{record_id}-view", name="View")],
                        resources=[MenuResource(code="q", name="Query", method="GET", path="/q")],
                    )
                )
            await session.commit()

    async def test_connection_is_healthy(self):
        self.assertTrue(await self.db.check_connection())

    async def test_prefix_query_selects_subtree_only(self):
        async with self.db.session_factory() as session:
            result = await MenuRepository(session).query(MenuQueryParam(prefix_parent_path="a"))

        self.assertEqual(sorted(m.record_id for m in result.data), ["x", "y"])
        self.assertIsNone(result.page_result)

    async def test_unbounded_page_reports_total(self):
        async with self.db.session_factory() as session:
            result = await MenuRepository(session).query(
                MenuQueryParam(),
                MenuQueryOptions(page_param=PaginationParam(page_size=-1)),
            )

        self.assertEqual(len(result.data), 5)
        self.assertEqual(result.page_result.total, 5)

    async def test_paging(self):
        async with self.db.session_factory() as session:
            result = await MenuRepository(session).query(
                MenuQueryParam(),
                MenuQueryOptions(page_param=PaginationParam(page_index=2, page_size=2)),
            )

        self.assertEqual(result.page_result.total, 5)
        # ordered by sequence desc, then id
        self.assertEqual([m.record_id for m in result.data], ["x", "y"])

    async def test_filters(self):
        async with self.db.session_factory() as session:
            repository = MenuRepository(session)
            by_parent = await repository.query(MenuQueryParam(parent_id="a"))
            by_ids = await repository.query(MenuQueryParam(record_ids=["z", "a"]))
            by_name = await repository.query(MenuQueryParam(name="B"))

        self.assertEqual([m.record_id for m in by_parent.data], ["x"])
        self.assertEqual([m.record_id for m in by_ids.data], ["a", "z"])
        self.assertEqual([m.record_id for m in by_name.data], ["ab"])

    async def test_get_loads_related_on_request(self):
        async with self.db.session_factory() as session:
            repository = MenuRepository(session)
            plain = await repository.get("x")
            full = await repository.get(
                "x", MenuQueryOptions(include_actions=True, include_resources=True)
            )
            missing = await repository.get("nope")

        self.assertEqual(plain.actions, [])
        self.assertEqual([a.code for a in full.actions], ["x-view"])
        self.assertEqual(full.resources[0].method, "GET")
        self.assertIsNone(missing)

    async def test_update_parent_path_touches_only_path(self):
        async with self.db.session_factory() as session:
            repository = MenuRepository(session)
            await repository.update_parent_path("y", "b/x")
            await session.commit()

        async with self.db.session_factory() as session:
            menu = await MenuRepository(session).get("y", MenuQueryOptions(include_actions=True))

        self.assertEqual(menu.parent_path, "b/x")
        self.assertEqual(menu.name, "Y")
        self.assertEqual(menu.parent_id, "x")
        self.assertEqual(len(menu.actions), 1)

    async def test_delete_removes_related_rows(self):
        async with self.db.session_factory() as session:
            await MenuRepository(session).delete("y")
            await session.commit()

        async with self.db.session_factory() as session:
            self.assertIsNone(await MenuRepository(session).get("y"))


class TestMenuServiceOnSQLite(SQLiteTestCase):
    async def test_create_move_and_delete(self):
        r1 = await self.call(lambda s: s.create(Menu(name="R1")))
        c1 = await self.call(
            lambda s: s.create(
                Menu(
                    name="C1",
                    parent_id=r1.record_id,
                    actions=[MenuAction(code="add", name="Add")],
                )
            )
        )
        g = await self.call(lambda s: s.create(Menu(name="G", parent_id=c1.record_id)))
        r2 = await self.call(lambda s: s.create(Menu(name="R2")))

        self.assertEqual(g.parent_path, f"{r1.record_id}/{c1.record_id}")
        self.assertEqual([a.code for a in c1.actions], ["add"])

        moved = await self.call(
            lambda s: s.update(c1.record_id, c1.model_copy(update={"parent_id": r2.record_id}))
        )
        self.assertEqual(moved.parent_path, r2.record_id)
        self.assertEqual([a.code for a in moved.actions], ["add"])

        g_after = await self.call(lambda s: s.get(g.record_id))
        self.assertEqual(g_after.parent_path, f"{r2.record_id}/{c1.record_id}")

        with self.assertRaises(NotAllowDeleteException):
            await self.call(lambda s: s.delete(r2.record_id))

        await self.call(lambda s: s.delete(g.record_id))
        await self.call(lambda s: s.delete(c1.record_id))
        await self.call(lambda s: s.delete(r2.record_id))
        result = await self.call(lambda s: s.query(MenuQueryParam()))
        self.assertEqual([m.record_id for m in result.data], [r1.record_id])

    async def test_failed_move_inside_open_transaction(self):
        async with self.db.session_factory() as session:
            service = get_menu_service(session)
            r1 = await service.create(Menu(name="R1"))
            c1 = await service.create(Menu(name="C1", parent_id=r1.record_id))
            for name in ("G1", "G2"):
                await service.create(Menu(name=name, parent_id=c1.record_id))
            r2 = await service.create(Menu(name="R2"))
            await session.commit()

            before = await service.query(MenuQueryParam())
            self.assertTrue(session.in_transaction())

            repository = FailingMenuRepository(session, fail_on=2)
            failing = MenuService(repository, SQLAlchemyTransactionManager(session))
            with self.assertRaises(RuntimeError):
                await failing.update(
                    c1.record_id, c1.model_copy(update={"parent_id": r2.record_id, "name": "Moved"})
                )
            self.assertEqual(repository.calls, 2)

            # the outer transaction survives the failed unit
            await service.update(r2.record_id, r2.model_copy(update={"name": "R2 renamed"}))
            await session.commit()

        after = await self.call(lambda s: s.query(MenuQueryParam()))
        expected = [
            (m.record_id, "R2 renamed" if m.record_id == r2.record_id else m.name, m.parent_path)
            for m in before.data
        ]
        self.assertEqual([(m.record_id, m.name, m.parent_path) for m in after.data], expected)

    async def test_failed_move_rolls_back(self):
        r1 = await self.call(lambda s: s.create(Menu(name="R1")))
        c1 = await self.call(lambda s: s.create(Menu(name="C1", parent_id=r1.record_id)))
        for name in ("G1", "G2"):
            await self.call(lambda s, name=name: s.create(Menu(name=name, parent_id=c1.record_id)))
        r2 = await self.call(lambda s: s.create(Menu(name="R2")))
        before = await self.call(lambda s: s.query(MenuQueryParam()))

        async with self.db.session_factory() as session:
            repository = FailingMenuRepository(session, fail_on=2)
            service = MenuService(repository, SQLAlchemyTransactionManager(session))
            with self.assertRaises(RuntimeError):
                await service.update(
                    c1.record_id, c1.model_copy(update={"parent_id": r2.record_id, "name": "Moved"})
                )
            self.assertEqual(repository.calls, 2)

        after = await self.call(lambda s: s.query(MenuQueryParam()))
        self.assertEqual(
            [(m.record_id, m.name, m.parent_path) for m in after.data],
            [(m.record_id, m.name, m.parent_path) for m in before.data],
        )


class TestDatabaseLifespan(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._root_level = logging.getLogger().level
        self._tmp = tempfile.TemporaryDirectory()
        self._patches = [
            patch.object(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{self._tmp.name}/app.db"),
            patch.object(settings, "DB_POOL_SIZE", 0),
            patch.object(settings, "DB_ECHO", False),
            patch.object(settings, "LOG_LEVEL", "INFO"),
        ]
        for p in self._patches:
            p.start()

    async def asyncTearDown(self):
        await db_manager.close()
        for p in reversed(self._patches):
            p.stop()
        logging.getLogger().setLevel(self._root_level)
        self._tmp.cleanup()

    async def test_lifespan_initializes_from_settings(self):
        async with lifespan(create_tables=True) as manager:
            self.assertIs(manager, db_manager)
            self.assertTrue(db_manager.is_initialized)
            self.assertTrue(await db_manager.check_connection())
            async with menu_service_scope() as service:
                created = await service.create(Menu(name="Scoped"))
            async with menu_service_scope() as service:
                fetched = await service.get(created.record_id)

        self.assertEqual(fetched.name, "Scoped")
        self.assertFalse(db_manager.is_initialized)

    async def test_scope_rolls_back_when_block_raises(self):
        await init_db(create_tables=True)
        try:
            with self.assertRaises(RuntimeError):
                async with menu_service_scope() as service:
                    root = await service.create(Menu(name="R"))
                    await service.create(Menu(name="C", parent_id=root.record_id))
                    raise RuntimeError("request failed")

            async with menu_service_scope() as service:
                result = await service.query(MenuQueryParam())
        finally:
            await close_db()

        self.assertEqual(result.data, [])

    async def test_scope_requires_init(self):
        with self.assertRaises(RuntimeError):
            async with menu_service_scope():
                pass


if __name__ == "__main__":
    unittest.main()
