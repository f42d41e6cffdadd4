"""Custom exceptions with helpful error messages."""

from sqlalchemy.exc import DBAPIError

# Connection and transport failures from the embedded engine are never wrapped
# or retried; callers catch the driver's own exception type.
RuntimeEngineError = DBAPIError


class DbSeedError(Exception):
    """Base exception for dbseed errors."""

    pass


class ValidationError(DbSeedError, ValueError):
    """A configuration argument violates its contract."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(f"{message} (parameter '{parameter}')")


class CountOutOfRangeError(ValidationError):
    """Requested record count is below 1."""

    def __init__(self, count: int, parameter: str = "count"):
        self.count = count
        super().__init__(parameter, f"Value cannot be less than 1, got {count}")


class ConfigurationError(DbSeedError):
    """Builder is missing a required setting or names an unsupported one."""

    pass


class SchemaCreationError(DbSeedError):
    """The embedded engine rejected the translated schema."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(
            f"Could not create the schema in the embedded engine: {cause}\n\n"
            f"Suggestions:\n"
            f"1. Install a custom dialect adapter:\n"
            f"   builder.use_dialect_adapter(DialectAdapter.for_mssql())\n\n"
            f"2. Override the policy that produced the invalid DDL:\n"
            f"   builder.use_default_value_mapping({{'(getdate())': \"(datetime('now'))\"}})\n"
            f"   builder.use_computed_column_policy(lambda expr: None)\n"
            f"   builder.use_rename_rule(lambda schema, table: f'{{schema}}_{{table}}')"
        )


class TableNotFoundError(DbSeedError):
    """Table does not exist in the schema model."""

    def __init__(self, table: str):
        super().__init__(
            f"Table '{table}' not found in schema model.\n\n"
            f"Suggestions:\n"
            f"1. Check table name spelling (use 'Schema.Table' for schema-qualified tables)\n"
            f"2. Use SchemaIntrospector.get_tables() to see available tables\n"
            f"3. Ensure the table is declared on the MetaData passed to the introspector"
        )


class UnknownRecordTypeError(DbSeedError):
    """Record type is not bound to any table."""

    def __init__(self, record_type: type):
        super().__init__(
            f"Record type '{record_type.__name__}' is not bound to a table.\n\n"
            f"Suggestions:\n"
            f"1. Add a binding: SchemaIntrospector(metadata, {{{record_type.__name__}: "
            f"'Schema.Table'}})\n"
            f"2. Check that seeded records are instances of bound types"
        )


class CircularDependencyError(DbSeedError):
    """Circular dependency detected in table relationships."""

    def __init__(self, tables: set[str]):
        tables_str = ", ".join(sorted(tables))
        super().__init__(
            f"Circular dependency detected involving tables: {tables_str}\n\n"
            f"Suggestions:\n"
            f"1. Check foreign key relationships for cycles\n"
            f"2. Make one of the foreign key columns nullable and seed it afterwards"
        )
