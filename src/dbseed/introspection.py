"""Schema-model provider over SQLAlchemy metadata, with caching."""

import logging
from collections.abc import Mapping

from sqlalchemy import MetaData, Table
from sqlalchemy.schema import DefaultClause

from dbseed.exceptions import TableNotFoundError
from dbseed.fields import navigation_count
from dbseed.models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    SchemaModel,
    TableDescriptor,
)

logger = logging.getLogger(__name__)


def _sql_text(clause) -> str | None:
    """Render a server default or computed expression as SQL."""
    if clause is None:
        return None
    if isinstance(clause, str):
        # Plain strings are literal values, not SQL
        return "'" + clause.replace("'", "''") + "'"
    text = getattr(clause, "text", None)
    if isinstance(text, str):
        return text
    return str(clause.compile(compile_kwargs={"literal_binds": True}))


class SchemaIntrospector:
    """
    Introspect a production SQLAlchemy ``MetaData`` into a ``SchemaModel``.

    Args:
        metadata: Production schema (tables may carry schemas, SQL Server
            server defaults and computed columns)
        bindings: Record type -> table key (``"Sales.Customer"``, or just
            ``"Customer"`` for tables without a schema)

    Raises:
        TableNotFoundError: If a binding names a table missing from metadata
    """

    def __init__(self, metadata: MetaData, bindings: Mapping[type, str] | None = None):
        self.metadata = metadata
        self.bindings = dict(bindings or {})
        self._table_cache: dict[str, TableDescriptor] = {}

        for record_type, key in self.bindings.items():
            if key not in self.metadata.tables:
                raise TableNotFoundError(key)
            logger.debug("Bound record type %s to table %s", record_type.__name__, key)

        self._record_types = {key: record_type for record_type, key in self.bindings.items()}

    def get_tables(self) -> list[TableDescriptor]:
        """Get all tables in declaration order (cached)."""
        return [self.get_table_info(key) for key in self.metadata.tables]

    def get_table_info(self, key: str) -> TableDescriptor:
        """
        Get complete table information (cached).

        Raises:
            TableNotFoundError: If metadata has no table with that key
        """
        if key in self._table_cache:
            return self._table_cache[key]

        table = self.metadata.tables.get(key)
        if table is None:
            raise TableNotFoundError(key)

        record_type = self._record_types.get(key)
        table_info = TableDescriptor(
            name=table.name,
            schema=table.schema,
            columns=self.get_columns(table),
            foreign_keys=self.get_foreign_keys(table),
            navigation_count=navigation_count(record_type),
            record_type=record_type,
            key=key,
        )
        self._table_cache[key] = table_info
        return table_info

    def get_columns(self, table: Table) -> list[ColumnDescriptor]:
        """Get all columns for a table."""
        columns = []
        for col in table.columns:
            computed = col.computed.sqltext if col.computed is not None else None
            # Computed and Identity also occupy server_default
            default = col.server_default
            default_value = default.arg if isinstance(default, DefaultClause) else None

            columns.append(
                ColumnDescriptor(
                    name=col.name,
                    type_=col.type,
                    nullable=bool(col.nullable),
                    primary_key=col.primary_key,
                    unique=bool(col.unique),
                    autoincrement=col.autoincrement,
                    default_value=_sql_text(default_value),
                    computed=_sql_text(computed),
                    attribute=col.key,
                )
            )
        return columns

    def get_foreign_keys(self, table: Table) -> list[ForeignKeyDescriptor]:
        """Get all foreign keys for a table."""
        return [
            ForeignKeyDescriptor(
                columns=[col.name for col in constraint.columns],
                principal=constraint.referred_table.fullname,
                referenced_columns=[el.column.name for el in constraint.elements],
                table=table.fullname,
            )
            for constraint in sorted(
                table.foreign_key_constraints,
                key=lambda c: [col.name for col in c.columns],
            )
        ]

    def build_model(self) -> SchemaModel:
        """Build a fresh ``SchemaModel``; callers may mutate it freely."""
        model = SchemaModel([table.copy() for table in self.get_tables()])
        logger.debug("Built schema model with %d tables", len(model))
        return model

    def clear_cache(self) -> None:
        """Clear cached introspection data."""
        self._table_cache.clear()
