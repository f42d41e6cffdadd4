"""Handle over a built store, with a unit of work for seeding."""

import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from dbseed.backends.base import StoreConnection
from dbseed.exceptions import ValidationError
from dbseed.fields import describe_fields
from dbseed.models import ColumnDescriptor, SchemaModel, TableDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SeedStore:
    """
    A ready-to-query store built by ``SeedOrchestrator``.

    Records added with ``add``/``add_all`` are tracked until
    ``save_changes`` inserts them in a single transaction, principal tables
    first. A freshly built store has nothing pending.

    Attributes:
        model: Translated schema model the store was created from
        metadata: SQLAlchemy tables as created in SQLite
    """

    def __init__(self, connection: StoreConnection, model: SchemaModel, metadata: MetaData):
        self._connection = connection
        self.model = model
        self.metadata = metadata
        self._pending: list[Any] = []

    @property
    def engine(self) -> AsyncEngine:
        return self._connection.engine

    @property
    def store_name(self) -> str:
        return self._connection.name

    @property
    def pending(self) -> tuple[Any, ...]:
        """Records waiting for ``save_changes``."""
        return tuple(self._pending)

    def has_changes(self) -> bool:
        return bool(self._pending)

    def add(self, record: Any) -> None:
        """
        Track a record for insertion.

        Raises:
            ValidationError: If record is None
            UnknownRecordTypeError: If the record's type is not bound to a table
        """
        if record is None:
            raise ValidationError("record", "Cannot add None to the store")
        self.model.table_for(type(record))
        self._pending.append(record)

    def add_all(self, records: Iterable[Any]) -> None:
        """Track several records for insertion."""
        if records is None:
            raise ValidationError("records", "Cannot add None to the store")
        for record in records:
            self.add(record)

    async def save_changes(self) -> int:
        """
        Insert all pending records in one transaction.

        Generated primary keys are written back to the records. Nothing is
        kept pending after success; on failure the transaction is rolled back
        and the records stay pending. Tables in a foreign key cycle are
        inserted in provider order, which only matters when foreign keys are
        enforced.

        Returns:
            Number of records inserted
        """
        if not self._pending:
            return 0

        by_table: dict[str, list[Any]] = {}
        for record in self._pending:
            by_table.setdefault(self.model.table_for(type(record)).key, []).append(record)

        async with self.engine.begin() as conn:
            for table_info in self.model.sorted_tables(allow_cycles=True):
                for record in by_table.get(table_info.key, []):
                    await self._insert(conn, table_info, record)

        saved = len(self._pending)
        self._pending.clear()
        logger.debug("Saved %d records to store %s", saved, self.store_name)
        return saved

    def table_for(self, record_type: type) -> Table:
        """SQLAlchemy table a record type is stored in."""
        return self.metadata.tables[self.model.table_for(record_type).name]

    async def fetch_all(self, record_type: type[T]) -> list[T]:
        """Load every stored record of a type, in primary key order."""
        table_info = self.model.table_for(record_type)
        table = self.metadata.tables[table_info.name]
        field_names = {f.name for f in describe_fields(record_type)}

        async with self.engine.connect() as conn:
            result = await conn.execute(select(table).order_by(*table.primary_key.columns))
            rows = result.mappings().all()

        return [
            record_type(
                **{
                    col.attribute: row[col.name]
                    for col in table_info.columns
                    if col.attribute in field_names
                }
            )
            for row in rows
        ]

    async def count(self, record_type: type) -> int:
        """Number of stored records of a type."""
        table = self.table_for(record_type)
        async with self.engine.connect() as conn:
            result = await conn.execute(select(func.count()).select_from(table))
            return result.scalar_one()

    def connect(self) -> AsyncConnection:
        """Raw connection to the store, for use as ``async with store.connect()``."""
        return self.engine.connect()

    async def dispose(self) -> None:
        """
        Close the handle.

        Stores whose connection is shared with the builder (the ``sqlite``
        engine kind) stay open; dispose the builder's backend to close them.
        """
        if self._connection.owns_engine:
            await self.engine.dispose()

    async def __aenter__(self) -> "SeedStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.dispose()

    async def _insert(
        self, conn: AsyncConnection, table_info: TableDescriptor, record: Any
    ) -> None:
        table = self.metadata.tables[table_info.name]
        values = {}
        for col in table_info.columns:
            if col.computed:
                continue
            value = getattr(record, col.attribute, None)
            if value is None and _engine_fills(table_info, col):
                continue
            values[col.name] = value

        result = await conn.execute(table.insert().values(values))

        inserted_pk = result.inserted_primary_key or ()
        for col, value in zip(table_info.pk_columns, inserted_pk):
            if value is not None and getattr(record, col.attribute, None) is None:
                try:
                    setattr(record, col.attribute, value)
                except AttributeError:
                    logger.debug(
                        "Cannot write generated key %s back to immutable %s",
                        col.name,
                        type(record).__name__,
                    )


def _engine_fills(table_info: TableDescriptor, col: ColumnDescriptor) -> bool:
    """Whether SQLite supplies the column's value when it is omitted."""
    if col.default_value is not None:
        return True
    pk_columns = table_info.pk_columns
    return len(pk_columns) == 1 and pk_columns[0] is col and col.autoincrement in (True, "auto")
