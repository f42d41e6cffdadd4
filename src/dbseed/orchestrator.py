"""SeedOrchestrator: configure and build seeded SQLite stores."""

import copy
import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any, Protocol

from sqlalchemy import MetaData

from dbseed.backends import InMemoryBackend, SqliteBackend, StoreBackend, StoreConnection
from dbseed.config import DialectConfig, Settings
from dbseed.dialect import DialectAdapter, Policy
from dbseed.exceptions import (
    ConfigurationError,
    CountOutOfRangeError,
    DbSeedError,
    SchemaCreationError,
    ValidationError,
)
from dbseed.fields import describe_fields
from dbseed.generators import FakerRecordGenerator, RandomRecordGenerator
from dbseed.models import SchemaModel
from dbseed.store import SeedStore

logger = logging.getLogger(__name__)

ENGINE_KINDS = ("in_memory", "sqlite")


class SchemaModelProvider(Protocol):
    """Anything that can produce a fresh schema model (e.g. ``SchemaIntrospector``)."""

    def build_model(self) -> SchemaModel: ...


class BuildState(str, Enum):
    """Stages of ``SeedOrchestrator.build``."""

    CONFIGURING = "configuring"
    CONNECTING = "connecting"
    SCHEMA_CREATION = "schema_creation"
    SEEDING = "seeding"
    FINALIZING = "finalizing"
    READY = "ready"


class SeedOrchestrator:
    """
    Fluent builder for seeded test databases.

    Configuration methods validate their arguments and return ``self``; when
    a setting is given twice the last value wins. ``build`` then creates a
    fresh store, translates the production schema into it and inserts the
    requested records.

    Example:
        >>> builder = (
        ...     SeedOrchestrator(SchemaIntrospector(metadata, bindings))
        ...     .use_in_memory()
        ...     .use_dialect_adapter(DialectAdapter.for_mssql())
        ...     .seed_with_random(Customer, 10)
        ... )
        >>> async with await builder.build() as store:
        ...     customers = await store.fetch_all(Customer)

    Args:
        model_provider: Produces the production ``SchemaModel`` for each build
        settings: Defaults for engine, dialect and generator (environment and
            built-in defaults when omitted)

    Raises:
        ValidationError: If model_provider cannot build schema models
        ConfigurationError: If settings name an unknown dialect preset
    """

    def __init__(self, model_provider: SchemaModelProvider, settings: Settings | None = None):
        if model_provider is None or not callable(getattr(model_provider, "build_model", None)):
            raise ValidationError(
                "model_provider", "A model provider with a build_model() method is required"
            )

        self.model_provider = model_provider
        self.settings = settings if settings is not None else Settings()

        engine = self.settings.engine
        self._engine_kind: str | None = engine.kind
        self._sqlite_path: str | None = engine.path
        self._engine_options: dict[str, Any] = {}
        self._backend: StoreBackend | None = None
        self._retired_backends: list[StoreBackend] = []

        self._adapter = _adapter_from_settings(self.settings.dialect)
        self._generator: RandomRecordGenerator | None = None
        self._seeds: list[Any] = []

        self.last_state = BuildState.CONFIGURING

    # Engine selection

    def use_in_memory(self) -> "SeedOrchestrator":
        """Build each store in its own in-memory database."""
        return self._select_engine("in_memory", None)

    def use_sqlite(self, path: str | None = None) -> "SeedOrchestrator":
        """
        Build into one SQLite database shared by every build of this builder.

        Args:
            path: Database file; None keeps the database in memory for as long
                as the builder's connection is open
        """
        if path is not None and not str(path):
            raise ValidationError("path", "Database path cannot be empty")
        return self._select_engine("sqlite", str(path) if path is not None else None)

    def use_engine_options(self, **options: Any) -> "SeedOrchestrator":
        """
        Pass extra arguments to ``create_async_engine``.

        Options accumulate across calls. The pool class and connection
        arguments needed to keep the store alive always override them.
        """
        self._engine_options.update(options)
        self._retire_backend()
        return self

    # Dialect adaptation

    def use_dialect_adapter(self, adapter: DialectAdapter) -> "SeedOrchestrator":
        """Replace the dialect adapter, including any policies set before."""
        if not isinstance(adapter, DialectAdapter):
            raise ValidationError("adapter", "Expected a DialectAdapter instance")
        self._adapter = adapter
        return self

    def use_rename_rule(self, rule: Callable[[str | None, str], str]) -> "SeedOrchestrator":
        """Rename tables with ``rule(schema, table)``; the rule must be idempotent."""
        self._adapter = self._adapter.with_overrides(
            rename_policy=Policy.custom(rule, "rule")
        )
        return self

    def use_default_value_mapping(
        self,
        mapping: Mapping[str, str],
        unmapped: str = "passthrough",
    ) -> "SeedOrchestrator":
        """
        Map server default expressions to SQLite expressions.

        Args:
            mapping: Source expression -> SQLite expression (case-insensitive keys)
            unmapped: ``"passthrough"`` keeps other defaults, ``"null"`` drops them
        """
        if mapping is None or not isinstance(mapping, Mapping):
            raise ValidationError("mapping", "Expected a mapping of expressions")
        self._adapter = self._adapter.with_overrides(
            default_values=mapping,
            unmapped_defaults=unmapped,
            default_value_policy=Policy.default(),
        )
        return self

    def use_computed_column_policy(
        self, policy: Callable[[str | None], str | None]
    ) -> "SeedOrchestrator":
        """Rewrite computed-column expressions with ``policy(expression)``."""
        self._adapter = self._adapter.with_overrides(
            computed_column_policy=Policy.custom(policy, "policy")
        )
        return self

    # Seeding

    def use_random_generator(self, generator: RandomRecordGenerator) -> "SeedOrchestrator":
        """Synthesize records of later ``seed_with_random`` calls with another generator."""
        if not isinstance(generator, RandomRecordGenerator):
            raise ValidationError("generator", "Expected a RandomRecordGenerator instance")
        self._generator = generator
        return self

    def seed_with(self, *records: Any) -> "SeedOrchestrator":
        """
        Insert these records into every built store.

        Nested lists, tuples and sets are flattened.

        Raises:
            ValidationError: If any element is None, a string or any other
                scalar instead of a record
        """
        flat = list(_flatten(records))
        for record in flat:
            _check_record(record)
        self._seeds.extend(flat)
        return self

    def seed_with_random(
        self,
        record_type: type,
        count: int,
        transform: Callable[..., Any] | None = None,
    ) -> "SeedOrchestrator":
        """
        Insert ``count`` random records of ``record_type`` into every built store.

        Records are synthesized now and join the pending seeds, so every build
        inserts the same records.

        Args:
            record_type: Record type bound to a table of the model
            count: Number of records, at least 1
            transform: ``transform(record)`` or ``transform(record, index)``;
                its return value replaces the record unless it is None

        Raises:
            CountOutOfRangeError: If count is less than 1
            ValidationError: If record_type is not a class or transform is not
                callable
        """
        if not isinstance(record_type, type):
            raise ValidationError("record_type", "A record type must be a class")
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError("count", f"Expected an integer, got {count!r}")
        if count < 1:
            raise CountOutOfRangeError(count)
        if transform is not None and not callable(transform):
            raise ValidationError("transform", "Transform must be callable")

        self._seeds.extend(self._generate(record_type, count, transform))
        return self

    # Build

    async def build(self) -> SeedStore:
        """
        Create, populate and return a new store.

        Returns:
            Handle on the store with nothing pending

        Raises:
            ConfigurationError: If no supported engine is selected
            SchemaCreationError: If the engine rejects the translated schema
            RuntimeEngineError: If the engine cannot be opened or rejects data
        """
        self._enter(BuildState.CONFIGURING)
        backend = self._get_backend()

        self._enter(BuildState.CONNECTING)
        connection = await backend.open_store()

        try:
            self._enter(BuildState.SCHEMA_CREATION)
            model, metadata = await self._create_schema(connection)

            self._enter(BuildState.SEEDING)
            seeding = SeedStore(connection, model, metadata)
            # Copies keep generated keys out of the seeds shared by later builds
            seeding.add_all(copy.copy(record) for record in self._seeds)
            saved = await seeding.save_changes()

            self._enter(BuildState.FINALIZING)
            handle = await backend.open_handle(connection)
        finally:
            await backend.release(connection)

        self._enter(BuildState.READY)
        logger.info(
            "Built %s store %s: %d tables, %d records",
            backend.kind,
            handle.name,
            len(model),
            saved,
        )
        return SeedStore(handle, model, metadata)

    async def dispose(self) -> None:
        """Close connections held by the builder (``sqlite`` engine kind)."""
        backends = self._retired_backends + ([self._backend] if self._backend else [])
        for backend in backends:
            if isinstance(backend, SqliteBackend):
                await backend.dispose()
        self._retired_backends.clear()
        self._backend = None

    async def __aenter__(self) -> "SeedOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.dispose()

    @property
    def adapter(self) -> DialectAdapter:
        """Dialect adapter used by the next build."""
        return self._adapter

    @property
    def engine_kind(self) -> str | None:
        return self._engine_kind

    def _enter(self, state: BuildState) -> None:
        self.last_state = state
        logger.debug("Build state: %s", state.value)

    def _select_engine(self, kind: str, path: str | None) -> "SeedOrchestrator":
        self._engine_kind = kind
        self._sqlite_path = path
        self._retire_backend()
        return self

    def _retire_backend(self) -> None:
        # Handles from a retired sqlite backend stay usable until dispose()
        if self._backend is not None:
            self._retired_backends.append(self._backend)
            self._backend = None

    def _get_backend(self) -> StoreBackend:
        if self._backend is not None:
            return self._backend

        kind = self._engine_kind
        if not kind:
            raise ConfigurationError(
                "No engine selected.\n\n"
                "Suggestions:\n"
                "1. Call builder.use_in_memory() or builder.use_sqlite()\n"
                "2. Set [engine] kind in dbseed.toml or DBSEED_ENGINE__KIND"
            )

        options = {
            "echo": self.settings.engine.echo,
            "foreign_keys": self.settings.engine.foreign_keys,
            "engine_options": self._engine_options,
        }
        if kind == "in_memory":
            self._backend = InMemoryBackend(**options)
        elif kind == "sqlite":
            self._backend = SqliteBackend(self._sqlite_path, **options)
        else:
            raise ConfigurationError(
                f"Unsupported engine kind '{kind}'. Supported kinds: {', '.join(ENGINE_KINDS)}"
            )
        return self._backend

    async def _create_schema(self, connection: StoreConnection) -> tuple[SchemaModel, MetaData]:
        try:
            model = self._adapter.translate(self.model_provider.build_model())
            metadata = self._adapter.to_metadata(model)
            async with connection.engine.begin() as conn:
                await conn.run_sync(metadata.create_all, checkfirst=True)
        except DbSeedError:
            raise
        except Exception as e:
            logger.error("Schema creation failed in store %s: %s", connection.name, e)
            raise SchemaCreationError(e) from e

        logger.debug("Created %d tables in store %s", len(metadata.tables), connection.name)
        return model, metadata

    def _generate(
        self,
        record_type: type,
        count: int,
        transform: Callable[..., Any] | None,
    ) -> list[Any]:
        if self._generator is None:
            self._generator = FakerRecordGenerator(
                seed=self.settings.generator.seed,
                locale=self.settings.generator.locale,
            )

        records = self._generator.generate(record_type, count)
        if transform is None:
            return records

        with_index = _accepts_index(transform)
        transformed = []
        for index, record in enumerate(records):
            result = transform(record, index) if with_index else transform(record)
            transformed.append(record if result is None else result)
        return transformed


def _adapter_from_settings(config: DialectConfig) -> DialectAdapter:
    kwargs: dict[str, Any] = {"default_schema": config.default_schema}
    if config.unmapped_defaults is not None:
        kwargs["unmapped_defaults"] = config.unmapped_defaults

    if config.preset == "mssql":
        return DialectAdapter.for_mssql(**kwargs)
    if config.preset == "sqlite":
        return DialectAdapter.for_sqlite(**kwargs)
    raise ConfigurationError(
        f"Unsupported dialect preset '{config.preset}'. Supported presets: sqlite, mssql"
    )


def _flatten(items: Iterable[Any]) -> Iterable[Any]:
    for item in items:
        if isinstance(item, (list, tuple, set, frozenset)):
            yield from _flatten(item)
        else:
            yield item


def _check_record(record: Any) -> None:
    if record is None:
        raise ValidationError("records", "Seed records cannot contain None")
    try:
        describe_fields(type(record))
    except ValidationError:
        raise ValidationError(
            "records", f"Expected record objects, got {type(record).__name__} {record!r}"
        ) from None


def _accepts_index(transform: Callable[..., Any]) -> bool:
    """Whether a transform takes ``(record, index)`` rather than ``(record)``."""
    try:
        params = inspect.signature(transform).parameters.values()
    except (TypeError, ValueError):
        return False

    positional = 0
    for param in params:
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= 2
