"""
Dialect adapter: rewrite a production schema model for SQLite.

SQLite has no schemas (namespaces), does not know SQL Server functions such as
``getdate()`` or ``newid()`` and evaluates computed columns with its own
function set. ``DialectAdapter`` rewrites a ``SchemaModel`` so SQLite accepts
it:

1. Tables are renamed by folding the schema into the name
   (``Sales.Customer`` -> ``Sales_Customer``, ``Customer`` -> ``dbo_Customer``).
2. Server default expressions are mapped to SQLite equivalents.
3. Computed-column expressions are stripped.
4. Many-to-many join tables are renamed after the two tables they link.

Each step is a policy that is either the default heuristic or a custom
function supplied when the adapter is created. Adapters are immutable; use
``with_overrides`` to derive a variant.

Example:
    >>> adapter = DialectAdapter.for_mssql()
    >>> adapter.translate_default_value("(GETDATE())")
    "(datetime('now'))"
    >>> adapter.rename_table("Person", "Address")
    'Person_Address'
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from sqlalchemy import Column, Computed, ForeignKeyConstraint, MetaData, Table, text
from sqlalchemy.types import SchemaType

from dbseed.exceptions import ConfigurationError, SchemaCreationError, ValidationError
from dbseed.models import ColumnDescriptor, SchemaModel, TableDescriptor

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "dbo"

MSSQL_DEFAULT_VALUES: Mapping[str, str] = MappingProxyType(
    {
        "(newid())": "(lower(hex(randomblob(16))))",
        "(getdate())": "(datetime('now'))",
    }
)


class PolicyKind(str, Enum):
    """Whether a heuristic runs its built-in behavior or a supplied function."""

    DEFAULT = "default"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Policy:
    """
    A heuristic choice fixed at configuration time.

    Use ``Policy.default()`` for the built-in behavior or
    ``Policy.custom(fn)`` to replace it.
    """

    kind: PolicyKind = PolicyKind.DEFAULT
    function: Callable[..., Any] | None = None

    @classmethod
    def default(cls) -> "Policy":
        return cls()

    @classmethod
    def custom(cls, function: Callable[..., Any], parameter: str = "function") -> "Policy":
        """
        Raises:
            ValidationError: If function is not callable
        """
        if function is None or not callable(function):
            raise ValidationError(parameter, "A custom policy requires a callable")
        return cls(kind=PolicyKind.CUSTOM, function=function)

    @property
    def is_custom(self) -> bool:
        return self.kind is PolicyKind.CUSTOM


class UnmappedDefaults(str, Enum):
    """What happens to server defaults missing from the default-value mapping."""

    PASSTHROUGH = "passthrough"
    NULL = "null"


_POLICY_FIELDS = (
    "rename_policy",
    "default_value_policy",
    "computed_column_policy",
    "join_table_policy",
)


def _as_policy(value: Policy | Callable[..., Any] | None, parameter: str) -> Policy:
    if value is None:
        return Policy.default()
    if isinstance(value, Policy):
        return value
    return Policy.custom(value, parameter)


@dataclass(frozen=True)
class DialectAdapter:
    """
    Produce a SQLite-valid ``SchemaModel`` from a production one.

    Args:
        default_schema: Schema used in the table prefix when a table has none
        default_values: Source expression -> SQLite expression; keys compare
            case-insensitively
        unmapped_defaults: ``"passthrough"`` keeps unmapped server defaults,
            ``"null"`` drops them
        rename_policy: Replaces ``rename_table``; ``fn(schema, table) -> name``
        default_value_policy: Replaces ``translate_default_value``;
            ``fn(expression) -> expression | None``
        computed_column_policy: Replaces the stripping of computed columns;
            ``fn(expression) -> expression | None``
        join_table_policy: Replaces ``detect_join_table``;
            ``fn(table) -> bool``

    Plain callables are accepted wherever a ``Policy`` is expected.
    """

    default_schema: str = DEFAULT_SCHEMA
    default_values: Mapping[str, str] = field(default_factory=dict)
    unmapped_defaults: UnmappedDefaults = UnmappedDefaults.PASSTHROUGH
    rename_policy: Policy = field(default_factory=Policy.default)
    default_value_policy: Policy = field(default_factory=Policy.default)
    computed_column_policy: Policy = field(default_factory=Policy.default)
    join_table_policy: Policy = field(default_factory=Policy.default)

    def __post_init__(self):
        if not self.default_schema:
            raise ValidationError("default_schema", "Default schema cannot be empty")
        if self.default_values is None:
            raise ValidationError("default_values", "Default value mapping cannot be None")
        try:
            unmapped = UnmappedDefaults(self.unmapped_defaults)
        except ValueError:
            raise ValidationError(
                "unmapped_defaults",
                f"Expected one of {[u.value for u in UnmappedDefaults]}, "
                f"got {self.unmapped_defaults!r}",
            ) from None

        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "unmapped_defaults", unmapped)
        object.__setattr__(
            self,
            "default_values",
            MappingProxyType(
                {key.casefold(): value for key, value in self.default_values.items()}
            ),
        )
        for name in _POLICY_FIELDS:
            object.__setattr__(self, name, _as_policy(getattr(self, name), name))

    @classmethod
    def for_sqlite(cls, **kwargs: Any) -> "DialectAdapter":
        """Generic adapter: schema folding, computed stripping, no default mapping."""
        return cls(**kwargs)

    @classmethod
    def for_mssql(cls, **kwargs: Any) -> "DialectAdapter":
        """
        Adapter for models written for Microsoft SQL Server.

        Maps ``(newid())`` and ``(getdate())`` to SQLite equivalents. Other
        server defaults such as ``((0))`` pass through; pass
        ``unmapped_defaults="null"`` to drop them instead.
        """
        kwargs.setdefault("default_values", MSSQL_DEFAULT_VALUES)
        return cls(**kwargs)

    def with_overrides(self, **changes: Any) -> "DialectAdapter":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def rename_table(self, schema: str | None, table: str | None) -> str:
        """
        Fold the schema into the table name.

        The default prefixes the table with ``schema`` (``default_schema`` when
        None) and an underscore, unless the name already carries that prefix,
        so applying it twice returns the same name.

        Raises:
            ConfigurationError: If the table has no name, or a custom rule
                returns no name
        """
        if not table:
            raise ConfigurationError(
                f"Table in schema '{schema}' has no name; cannot rename it for SQLite"
            )

        if self.rename_policy.is_custom:
            new_name = self.rename_policy.function(schema, table)
            if not new_name:
                raise ConfigurationError(
                    f"Custom rename rule returned no name for table '{table}' "
                    f"in schema '{schema}'"
                )
            return new_name

        prefix = f"{schema or self.default_schema}_"
        if table.casefold().startswith(prefix.casefold()):
            return table
        return f"{prefix}{table}"

    def translate_default_value(self, expression: str | None) -> str | None:
        """
        Map a server default expression to its SQLite equivalent.

        Lookup ignores case. Unmapped expressions pass through unchanged, or
        become None when ``unmapped_defaults`` is ``"null"``.
        """
        if self.default_value_policy.is_custom:
            return self.default_value_policy.function(expression)

        if expression is None:
            return None

        mapped = self.default_values.get(expression.casefold())
        if mapped is not None:
            return mapped
        if self.unmapped_defaults is UnmappedDefaults.NULL:
            return None
        return expression

    def strip_computed_column(self, column: ColumnDescriptor) -> ColumnDescriptor:
        """
        Rewrite a column's computed-value expression.

        The default removes it: computed expressions are assumed to use
        functions SQLite does not have. Columns without an expression are
        returned as they are; the custom policy only sees real expressions.
        """
        if column.computed is None:
            return column
        # TODO: keep computed expressions built only from portable operators
        # once there is an inspectable allow-list for them.
        if self.computed_column_policy.is_custom:
            computed = self.computed_column_policy.function(column.computed)
        else:
            computed = None
        return replace(column, computed=computed or None)

    def detect_join_table(self, table: TableDescriptor) -> bool:
        """True iff the table has exactly two foreign keys and no navigations."""
        if self.join_table_policy.is_custom:
            return bool(self.join_table_policy.function(table))
        return len(table.foreign_keys) == 2 and table.navigation_count == 0

    def translate(self, model: SchemaModel) -> SchemaModel:
        """
        Translate a schema model; the input is left untouched.

        Raises:
            ConfigurationError: If a table cannot be renamed
            SchemaCreationError: If two tables end up with the same name
        """
        working = model.copy()

        for table in working:
            new_name = self.rename_table(table.schema, table.name)
            if new_name != table.name or table.schema is not None:
                logger.debug("Renaming table %s -> %s", table.qualified_name, new_name)
            table.name = new_name
            table.schema = None
            table.columns = [self._translate_column(table, col) for col in table.columns]

        # Join tables take the translated names of both principals
        for table in working:
            if not self.detect_join_table(table):
                continue
            if len(table.foreign_keys) != 2:
                logger.warning(
                    "Table %s was detected as a join table but has %d foreign keys; "
                    "keeping its name",
                    table.name,
                    len(table.foreign_keys),
                )
                continue
            left, right = (working.principal_of(fk) for fk in table.foreign_keys)
            join_name = f"{left.name}_{right.name}"
            logger.debug("Renaming join table %s -> %s", table.name, join_name)
            table.name = join_name

        self._check_unique_names(working)
        return working

    def to_metadata(self, model: SchemaModel) -> MetaData:
        """Build SQLAlchemy tables for a translated schema model."""
        metadata = MetaData()
        for table in model:
            columns = [self._build_column(col) for col in table.columns]
            constraints = [
                ForeignKeyConstraint(
                    fk.columns,
                    [f"{model.principal_of(fk).name}.{col}" for col in fk.referenced_columns],
                )
                for fk in table.foreign_keys
            ]
            Table(table.name, metadata, *columns, *constraints)
        return metadata

    def _translate_column(
        self, table: TableDescriptor, column: ColumnDescriptor
    ) -> ColumnDescriptor:
        translated = self.strip_computed_column(column)
        if column.computed and translated.computed != column.computed:
            logger.debug(
                "Computed column %s.%s: %r -> %r",
                table.qualified_name,
                column.name,
                column.computed,
                translated.computed,
            )

        default_value = self.translate_default_value(column.default_value)
        if default_value != column.default_value:
            logger.debug(
                "Default value %s.%s: %r -> %r",
                table.qualified_name,
                column.name,
                column.default_value,
                default_value,
            )
        return replace(translated, default_value=default_value or None)

    @staticmethod
    def _build_column(col: ColumnDescriptor) -> Column:
        type_ = _portable_type(col.type_)
        args = [Computed(col.computed)] if col.computed else []
        default = _default_clause(col.default_value) if col.default_value else None
        return Column(
            col.name,
            type_,
            *args,
            primary_key=col.primary_key,
            nullable=col.nullable,
            unique=col.unique or None,
            autoincrement=col.autoincrement,
            server_default=text(default) if default else None,
        )

    @staticmethod
    def _check_unique_names(model: SchemaModel) -> None:
        seen: dict[str, str] = {}
        for table in model:
            # SQLite compares identifiers case-insensitively
            folded = table.name.casefold()
            if folded in seen:
                raise SchemaCreationError(
                    ValueError(
                        f"Tables '{seen[folded]}' and '{table.key}' both translate "
                        f"to '{table.name}'"
                    )
                )
            seen[folded] = table.key


def _portable_type(type_: Any) -> Any:
    """Replace dialect-specific types (e.g. ``mssql.NVARCHAR``) with generic ones."""
    if type(type_).__module__.startswith("sqlalchemy.dialects."):
        try:
            type_ = type_.as_generic()
        except NotImplementedError:
            return type_
    if isinstance(type_, SchemaType):
        # Schema types attach to their column; each table gets its own copy
        return type_.copy()
    return type_


_KEYWORD_LITERALS = ("NULL", "TRUE", "FALSE", "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP")


def _default_clause(expression: str) -> str:
    """
    SQLite only accepts literals or parenthesized expressions after DEFAULT.

    >>> _default_clause("lower(hex(randomblob(16)))")
    '(lower(hex(randomblob(16))))'
    >>> _default_clause("(datetime('now'))")
    "(datetime('now'))"
    """
    expression = expression.strip()
    if _is_literal(expression) or _is_enclosed(expression):
        return expression
    return f"({expression})"


def _is_literal(expression: str) -> bool:
    if expression.upper() in _KEYWORD_LITERALS:
        return True
    if len(expression) >= 2 and expression[0] == expression[-1] == "'":
        return "'" not in expression[1:-1].replace("''", "")
    try:
        float(expression)
    except ValueError:
        return False
    return True


def _is_enclosed(expression: str) -> bool:
    """True when the outermost parentheses wrap the whole expression."""
    if not (expression.startswith("(") and expression.endswith(")")):
        return False
    depth = 0
    for index, char in enumerate(expression):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and index < len(expression) - 1:
                return False
    return depth == 0
