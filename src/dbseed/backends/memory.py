"""In-memory backend - a named SQLite memory database per build."""

import logging
from uuid import uuid4

from dbseed.backends.base import StoreBackend, StoreConnection, hold_connection

logger = logging.getLogger(__name__)


class InMemoryBackend(StoreBackend):
    """
    Each build gets its own shared-cache in-memory database.

    The database is keyed by a generated name and lives as long as at least
    one connection to it is open, so the seeding connection can be closed
    once the handle's connection is open. Repeated builds never share data.
    """

    kind = "in_memory"

    @staticmethod
    def url_for(name: str) -> str:
        return f"sqlite+aiosqlite:///file:{name}?mode=memory&cache=shared&uri=true"

    async def open_store(self) -> StoreConnection:
        name = f"dbseed-{uuid4().hex}"
        engine = self._create_engine(self.url_for(name))
        await hold_connection(engine)
        logger.debug("Opened in-memory store %s", name)
        return StoreConnection(engine=engine, name=name, owns_engine=True)

    async def open_handle(self, store: StoreConnection) -> StoreConnection:
        engine = self._create_engine(self.url_for(store.name))
        await hold_connection(engine)
        return StoreConnection(engine=engine, name=store.name, owns_engine=True)
