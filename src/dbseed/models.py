"""Data models and type definitions."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from dbseed.dependency import DependencyGraph
from dbseed.exceptions import TableNotFoundError, UnknownRecordTypeError

RenameRule = Callable[[str | None, str], str]
"""``(schema, table) -> new table name``. Must be idempotent."""

DefaultValueMapping = Mapping[str, str]
"""Source dialect default expression -> target dialect expression."""


@dataclass
class ColumnDescriptor:
    """
    Column metadata from the schema model.

    Attributes:
        name: Column name
        type_: SQLAlchemy type of the column
        nullable: Whether column allows NULL values
        primary_key: Whether column is part of the primary key
        unique: Whether column has a single-column UNIQUE constraint
        autoincrement: SQLAlchemy autoincrement setting for the column
        default_value: Server default expression in the source dialect (if any)
        computed: Computed-value expression in the source dialect (if any)
        attribute: Record attribute holding the column value (defaults to name)
    """

    name: str
    type_: Any
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    autoincrement: bool | str = "auto"
    default_value: str | None = None
    computed: str | None = None
    attribute: str | None = None

    def __post_init__(self):
        if self.attribute is None:
            self.attribute = self.name

    @property
    def is_generated(self) -> bool:
        """True when the engine fills the value (computed or server default)."""
        return self.computed is not None or self.default_value is not None


@dataclass
class ForeignKeyDescriptor:
    """
    Foreign key relationship metadata.

    Attributes:
        columns: Foreign key columns in the dependent table
        principal: Key of the referenced (principal) table
        referenced_columns: Columns in the principal table (usually the PK)
        table: Key of the dependent table owning this foreign key
    """

    columns: list[str]
    principal: str
    referenced_columns: list[str]
    table: str = ""

    @property
    def is_self_referencing(self) -> bool:
        """Whether this FK references the table that owns it."""
        return self.principal == self.table


@dataclass
class TableDescriptor:
    """
    Table metadata.

    ``key`` is the identity the provider assigned (``Schema.Table``); it is
    never rewritten, so foreign keys keep resolving after the table has been
    renamed during translation.

    Attributes:
        name: Table name
        schema: Schema (namespace) name, None for the default schema
        columns: Ordered column metadata
        foreign_keys: Foreign key relationships
        navigation_count: Navigation properties on the bound record type
        record_type: Record type persisted into this table (if any)
        key: Stable table identity
    """

    name: str
    schema: str | None = None
    columns: list[ColumnDescriptor] = field(default_factory=list)
    foreign_keys: list[ForeignKeyDescriptor] = field(default_factory=list)
    navigation_count: int = 0
    record_type: type | None = None
    key: str = ""

    def __post_init__(self):
        if not self.key:
            self.key = self.qualified_name
        for fk in self.foreign_keys:
            if not fk.table:
                fk.table = self.key

    @property
    def qualified_name(self) -> str:
        """``schema.name`` or just ``name`` for schema-less tables."""
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name

    @property
    def pk_columns(self) -> list[ColumnDescriptor]:
        """Primary key columns in declaration order."""
        return [col for col in self.columns if col.primary_key]

    def get_column(self, name: str) -> ColumnDescriptor:
        """
        Get a column by name.

        Raises:
            KeyError: If the table has no such column
        """
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"No column '{name}' in table '{self.qualified_name}'")

    def get_self_referencing_fks(self) -> list[ForeignKeyDescriptor]:
        """Get all self-referencing foreign keys."""
        return [fk for fk in self.foreign_keys if fk.is_self_referencing]

    def copy(self) -> "TableDescriptor":
        """Deep working copy; types and record classes are shared."""
        return replace(
            self,
            columns=[replace(col) for col in self.columns],
            foreign_keys=[
                replace(
                    fk,
                    columns=list(fk.columns),
                    referenced_columns=list(fk.referenced_columns),
                )
                for fk in self.foreign_keys
            ],
        )


class SchemaModel:
    """
    In-memory description of tables, columns and relationships.

    Tables are kept in the order the provider produced them.
    """

    def __init__(self, tables: list[TableDescriptor] | None = None):
        self._tables: dict[str, TableDescriptor] = {}
        for table in tables or []:
            self.add_table(table)

    def add_table(self, table: TableDescriptor) -> None:
        """Add a table, replacing any table with the same key."""
        self._tables[table.key] = table

    @property
    def tables(self) -> list[TableDescriptor]:
        """All tables in provider order."""
        return list(self._tables.values())

    def get_table(self, key: str) -> TableDescriptor:
        """
        Get a table by its key.

        Raises:
            TableNotFoundError: If no table has that key
        """
        try:
            return self._tables[key]
        except KeyError:
            raise TableNotFoundError(key) from None

    def table_for(self, record_type: type) -> TableDescriptor:
        """
        Get the table a record type is persisted into.

        Raises:
            UnknownRecordTypeError: If the type is not bound to a table
        """
        for table in self._tables.values():
            if table.record_type is record_type:
                return table
        raise UnknownRecordTypeError(record_type)

    def principal_of(self, fk: ForeignKeyDescriptor) -> TableDescriptor:
        """Get the table a foreign key points at."""
        return self.get_table(fk.principal)

    def sorted_tables(self, allow_cycles: bool = False) -> list[TableDescriptor]:
        """
        Tables in dependency order (principals before dependents).

        With allow_cycles, tables caught in a foreign key cycle follow the
        others in provider order.

        Raises:
            CircularDependencyError: If foreign keys form a cycle and
                allow_cycles is False
        """
        graph = DependencyGraph()
        for table in self._tables.values():
            graph.add_table(table.key)
            for fk in table.foreign_keys:
                graph.add_dependency(table.key, fk.principal)
        return [self._tables[key] for key in graph.topological_sort(allow_cycles)]

    def copy(self) -> "SchemaModel":
        """Deep working copy of the model."""
        return SchemaModel([table.copy() for table in self._tables.values()])

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self):
        return iter(self._tables.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaModel):
            return NotImplemented
        return self.tables == other.tables
