"""
dbseed - Seeded SQLite Test Databases from Production Schemas

Translates schema models written for a production engine (schemas, SQL Server
defaults, computed columns) into SQLite and builds fresh stores seeded with
explicit or Faker-generated records.
"""

from dbseed.config import Settings
from dbseed.decorators import seed_data
from dbseed.dialect import DialectAdapter, Policy, UnmappedDefaults
from dbseed.exceptions import (
    ConfigurationError,
    CountOutOfRangeError,
    DbSeedError,
    RuntimeEngineError,
    SchemaCreationError,
    TableNotFoundError,
    UnknownRecordTypeError,
    ValidationError,
)
from dbseed.fields import FieldDescriptor, describe_fields, navigation, register_fields
from dbseed.generators import FakerRecordGenerator, RandomRecordGenerator
from dbseed.introspection import SchemaIntrospector
from dbseed.models import SchemaModel
from dbseed.orchestrator import BuildState, SeedOrchestrator
from dbseed.store import SeedStore

__version__ = "0.1.0"

__all__ = [
    "SeedOrchestrator",
    "BuildState",
    "SeedStore",
    "Settings",
    "seed_data",
    "DialectAdapter",
    "Policy",
    "UnmappedDefaults",
    "SchemaIntrospector",
    "SchemaModel",
    "FieldDescriptor",
    "describe_fields",
    "navigation",
    "register_fields",
    "RandomRecordGenerator",
    "FakerRecordGenerator",
    "DbSeedError",
    "ValidationError",
    "CountOutOfRangeError",
    "ConfigurationError",
    "SchemaCreationError",
    "TableNotFoundError",
    "UnknownRecordTypeError",
    "RuntimeEngineError",
]
