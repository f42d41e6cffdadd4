"""SQLite backend - one held-open connection shared by every build."""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from dbseed.backends.base import StoreBackend, StoreConnection, hold_connection

logger = logging.getLogger(__name__)


class SqliteBackend(StoreBackend):
    """
    A single SQLite database bound to one open connection.

    With no path the database lives in that connection's memory and is
    destroyed when the connection closes; with a path it is a file on disk.
    The engine is created on first use and reused by later builds, so they
    all see the same store until the builder is reconfigured.

    Args:
        path: Database file, or None for a private in-memory database
    """

    kind = "sqlite"

    def __init__(self, path: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.path = path
        self._engine: AsyncEngine | None = None

    @property
    def url(self) -> str:
        if self.path is None:
            return "sqlite+aiosqlite://"
        return f"sqlite+aiosqlite:///{self.path}"

    @property
    def store_name(self) -> str:
        return self.path or ":memory:"

    async def open_store(self) -> StoreConnection:
        if self._engine is None:
            self._engine = self._create_engine(self.url)
            logger.debug("Opened SQLite store %s", self.store_name)
        await hold_connection(self._engine)
        return StoreConnection(engine=self._engine, name=self.store_name, owns_engine=False)

    async def open_handle(self, store: StoreConnection) -> StoreConnection:
        return StoreConnection(engine=store.engine, name=store.name, owns_engine=False)

    async def dispose(self) -> None:
        """Close the held connection; an in-memory database is destroyed."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
