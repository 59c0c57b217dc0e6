"""Database configuration and session management."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.core.config import configure_logging, normalize_database_url, settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself on SQLite.

    The sqlite3 driver defers BEGIN until the first DML statement, so a
    SAVEPOINT opened after a plain SELECT would start (and on RELEASE,
    commit) its own transaction.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self):
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._initialized = False

    def init(self, database_url: str, echo: bool = False, pool_size: int = 5) -> None:
        """
        Initialize the database engine and session factory.

        Args:
            database_url: SQLAlchemy async connection URL
            echo: Enable SQL query logging
            pool_size: Connection pool size (0 for NullPool)
        """
        if self._initialized:
            logger.warning("Database already initialized, skipping re-initialization")
            return

        database_url = normalize_database_url(database_url)

        logger.info("Initializing database connection...")

        if pool_size == 0:
            self._engine = create_async_engine(
                database_url,
                echo=echo,
                poolclass=NullPool,
            )
        else:
            self._engine = create_async_engine(
                database_url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=300,
            )

        if self._engine.dialect.name == "sqlite":
            _enable_sqlite_transactions(self._engine)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

        self._initialized = True
        logger.info("Database connection initialized successfully")

    async def close(self) -> None:
        """Close the database engine and dispose of connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._initialized = False
            logger.info("Database connection closed")

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if not self._initialized or not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    async def create_all(self) -> None:
        """Create all tables known to the metadata. Used for local runs and tests."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")

        # Register the models on Base.metadata
        import app.models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session for one unit of work: commits on exit, rolls back on error.

        Usage:
            async with db_manager.session_scope() as session:
                menu = await MenuRepository(session).get(record_id)
        """
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def check_connection(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            bool: True if connection is healthy, False otherwise
        """
        if not self._initialized or not self._engine:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    @property
    def is_initialized(self) -> bool:
        """Check if database is initialized."""
        return self._initialized


# Global database manager instance
db_manager = DatabaseManager()


async def init_db(create_tables: bool = False) -> None:
    """Configure logging and initialize the global database manager from settings."""
    configure_logging()
    try:
        db_manager.init(
            database_url=settings.database_url_computed,
            echo=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE
        )
        if create_tables:
            await db_manager.create_all()
        logger.info("Database connection initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    await db_manager.close()


@asynccontextmanager
async def lifespan(create_tables: bool = False) -> AsyncGenerator[DatabaseManager, None]:
    """
    Startup and shutdown of the database layer.

    Usage:
        async with lifespan():
            async with menu_service_scope() as service:
                await service.create(Menu(name="Settings"))
    """
    logger.info("Starting up...")
    await init_db(create_tables=create_tables)
    try:
        yield db_manager
    finally:
        logger.info("Shutting down...")
        await close_db()
