"""Backend interface and SQLite engine factory."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool


@dataclass
class StoreConnection:
    """
    An engine bound to one physical store.

    Attributes:
        engine: Async engine holding the store's connection
        name: Store name (database name, file path or ``:memory:``)
        owns_engine: Whether disposing the handle may dispose the engine
    """

    engine: AsyncEngine
    name: str
    owns_engine: bool = True


def create_sqlite_engine(
    url: str,
    *,
    echo: bool = False,
    foreign_keys: bool = False,
    engine_options: Mapping[str, Any] | None = None,
) -> AsyncEngine:
    """
    Create an async SQLite engine holding a single open connection.

    Args:
        url: ``sqlite+aiosqlite://`` URL
        echo: If ``True``, log all SQL
        foreign_keys: Enforce foreign keys (``PRAGMA foreign_keys``)
        engine_options: Extra ``create_async_engine`` arguments; the pool and
            connection settings below always win

    Returns:
        AsyncEngine using ``StaticPool``
    """
    options = {"echo": echo, **(engine_options or {})}
    connect_args = dict(options.pop("connect_args", None) or {})

    # One connection per engine: closing it destroys an in-memory store
    connect_args["check_same_thread"] = False
    options["connect_args"] = connect_args
    options["poolclass"] = StaticPool

    engine = create_async_engine(url, **options)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA foreign_keys={'ON' if foreign_keys else 'OFF'}")
        cursor.close()

    return engine


async def hold_connection(engine: AsyncEngine) -> None:
    """Open the engine's pooled connection so the store exists from now on."""
    async with engine.connect():
        pass


class StoreBackend(ABC):
    """Opens physical stores for the orchestrator."""

    kind: str = ""

    def __init__(
        self,
        echo: bool = False,
        foreign_keys: bool = False,
        engine_options: Mapping[str, Any] | None = None,
    ):
        self.echo = echo
        self.foreign_keys = foreign_keys
        self.engine_options = dict(engine_options or {})

    def _create_engine(self, url: str) -> AsyncEngine:
        return create_sqlite_engine(
            url,
            echo=self.echo,
            foreign_keys=self.foreign_keys,
            engine_options=self.engine_options,
        )

    @abstractmethod
    async def open_store(self) -> StoreConnection:
        """Open the store a build creates its schema in."""
        pass

    @abstractmethod
    async def open_handle(self, store: StoreConnection) -> StoreConnection:
        """Open a second, independent connection to an existing store."""
        pass

    async def release(self, store: StoreConnection) -> None:
        """Release a connection obtained from this backend."""
        if store.owns_engine:
            await store.engine.dispose()
