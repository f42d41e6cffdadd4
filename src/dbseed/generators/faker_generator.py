"""Faker-based record generator."""

import enum
import logging
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, TypeVar

from faker import Faker

from dbseed.exceptions import CountOutOfRangeError, ValidationError
from dbseed.fields import FieldDescriptor, describe_fields
from dbseed.generators.base import RandomRecordGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Items created for owned (non-navigation) collections
COLLECTION_SIZE = 3

_OMIT = object()


class ColumnValueGenerator:
    """Generate realistic scalar values using Faker."""

    def __init__(self, faker: Faker):
        self.fake = faker
        fake = faker

        # Field name → Faker method mapping (applies to str fields)
        self.column_mappings = {
            "email": lambda: fake.email(),
            "first_name": lambda: fake.first_name(),
            "last_name": lambda: fake.last_name(),
            "middle_name": lambda: fake.first_name(),
            "name": lambda: fake.name(),
            "company": lambda: fake.company(),
            "phone": lambda: fake.phone_number(),
            "phone_number": lambda: fake.phone_number(),
            "address": lambda: fake.address(),
            "street": lambda: fake.street_address(),
            "city": lambda: fake.city(),
            "state": lambda: fake.state(),
            "country": lambda: fake.country(),
            "zip": lambda: fake.zipcode(),
            "zipcode": lambda: fake.zipcode(),
            "postal_code": lambda: fake.postcode(),
            "url": lambda: fake.url(),
            "description": lambda: fake.text(max_nb_chars=200),
            "bio": lambda: fake.text(max_nb_chars=300),
        }

        # Type-based fallbacks
        self.type_fallbacks = {
            str: lambda: fake.text(max_nb_chars=50),
            int: lambda: fake.unique.random_int(min=1, max=2_147_483_647),
            float: lambda: fake.pyfloat(min_value=0, max_value=10000),
            Decimal: lambda: fake.pydecimal(left_digits=6, right_digits=2, positive=True),
            bool: lambda: fake.boolean(),
            datetime: lambda: fake.date_time_this_year(),
            date: lambda: fake.date_this_year(),
            time: lambda: fake.time_object(),
            uuid.UUID: lambda: uuid.UUID(fake.uuid4()),
            bytes: lambda: fake.binary(length=16),
        }

    def supports(self, type_: Any) -> bool:
        """Whether a value of this type can be generated."""
        return type_ in self.type_fallbacks or _is_enum(type_)

    def generate(self, field_name: str, type_: Any) -> Any:
        """Generate a value for a field based on name and type."""
        # Try field name mapping first
        if type_ is str and field_name.lower() in self.column_mappings:
            return self.column_mappings[field_name.lower()]()

        if _is_enum(type_):
            return self.fake.random_element(list(type_))

        return self.type_fallbacks[type_]()


class FakerRecordGenerator(RandomRecordGenerator):
    """
    Synthesize populated records with Faker.

    Scalar fields get values by field name, then by type. Navigation fields
    keep their default so seeded graphs stay shallow. Owned nested records are
    built recursively; a type that is already under construction is omitted
    instead of recursed into, so cyclic type graphs terminate.

    Args:
        faker: Faker instance to draw values from (created when omitted)
        seed: Seed for reproducible output
        locale: Faker locale, used when ``faker`` is omitted
    """

    def __init__(
        self,
        faker: Faker | None = None,
        seed: int | None = None,
        locale: str | None = None,
    ):
        self.faker = faker if faker is not None else Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)
        self.values = ColumnValueGenerator(self.faker)
        self._in_progress: set[type] = set()

    def generate(self, record_type: type[T], count: int) -> list[T]:
        """
        Create ``count`` random instances of ``record_type``.

        Raises:
            CountOutOfRangeError: If count is less than 1
            ValidationError: If the record type has no field descriptors
        """
        if count < 1:
            raise CountOutOfRangeError(count)
        if not isinstance(record_type, type):
            raise ValidationError("record_type", "A record type must be a class")

        records = [self._create(record_type) for _ in range(count)]
        logger.debug("Generated %d random %s records", count, record_type.__name__)
        return records

    def _create(self, record_type: type) -> Any:
        if record_type in self._in_progress:
            return _OMIT

        self._in_progress.add(record_type)
        try:
            values = {}
            for f in describe_fields(record_type):
                value = self._value_for(f)
                if value is not _OMIT:
                    values[f.name] = value
                elif not f.has_default:
                    values[f.name] = f.default_value()
            return record_type(**values)
        finally:
            self._in_progress.discard(record_type)

    def _value_for(self, f: FieldDescriptor) -> Any:
        if f.is_navigation:
            return _OMIT

        if f.is_collection:
            item_type = f.item_type
            items = [self._single_value(f.name, item_type) for _ in range(COLLECTION_SIZE)]
            items = [item for item in items if item is not _OMIT]
            if not items:
                return _OMIT
            container = f.container_type
            return container(items)

        return self._single_value(f.name, f.type_)

    def _single_value(self, name: str, type_: Any) -> Any:
        if self.values.supports(type_):
            return self.values.generate(name, type_)
        if _is_record_type(type_):
            return self._create(type_)
        return _OMIT


def _is_enum(type_: Any) -> bool:
    return isinstance(type_, type) and issubclass(type_, enum.Enum)


def _is_record_type(type_: Any) -> bool:
    if not isinstance(type_, type):
        return False
    try:
        describe_fields(type_)
    except ValidationError:
        return False
    return True
