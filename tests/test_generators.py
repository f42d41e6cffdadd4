"""Tests for random record generators."""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

import pytest
from faker import Faker

from dbseed import FakerRecordGenerator, RandomRecordGenerator
from dbseed.exceptions import CountOutOfRangeError, ValidationError
from dbseed.generators import ColumnValueGenerator

from conftest import Customer, Order


class Status(enum.Enum):
    ACTIVE = "active"
    RETIRED = "retired"


@dataclass
class Address:
    street: str = ""
    city: str = ""
    zipcode: str = ""


@dataclass
class Profile:
    email: str = ""
    first_name: str = ""
    age: int = 0
    score: float = 0.0
    balance: Decimal = Decimal("0")
    active: bool = False
    born: date | None = None
    seen_at: datetime | None = None
    token: uuid.UUID | None = None
    status: Status | None = None
    address: Address | None = None
    tags: list[str] = field(default_factory=list)
    internal: str = field(default="fixed", init=False)


@dataclass
class TreeNode:
    label: str = ""
    child: "TreeNode | None" = None


@dataclass
class Husband:
    name: str = ""
    wife: "Wife | None" = None


@dataclass
class Wife:
    name: str = ""
    husband: Husband | None = None


class Opaque:
    pass


@dataclass
class WithOpaque:
    name: str = ""
    handle: Opaque | None = None


def test_generates_requested_count():
    """Should create exactly count records."""
    records = FakerRecordGenerator(seed=1).generate(Customer, 7)

    assert len(records) == 7
    assert all(isinstance(record, Customer) for record in records)


@pytest.mark.parametrize("count", [0, -1])
def test_count_below_one_rejected(count):
    """Should raise CountOutOfRangeError for counts below 1."""
    with pytest.raises(CountOutOfRangeError) as exc_info:
        FakerRecordGenerator().generate(Customer, count)

    assert exc_info.value.parameter == "count"
    assert isinstance(exc_info.value, ValidationError)


def test_fills_fields_by_name_and_type():
    """Should use name mappings for strings and type fallbacks otherwise."""
    profile = FakerRecordGenerator(seed=42).generate(Profile, 1)[0]

    assert "@" in profile.email
    assert profile.first_name
    assert isinstance(profile.age, int)
    assert isinstance(profile.score, float)
    assert isinstance(profile.balance, Decimal)
    assert isinstance(profile.active, bool)
    assert isinstance(profile.born, date)
    assert isinstance(profile.seen_at, datetime)
    assert isinstance(profile.token, uuid.UUID)
    assert profile.status in set(Status)


def test_builds_owned_records_and_collections():
    """Should synthesize nested records and collections of scalars."""
    profile = FakerRecordGenerator(seed=42).generate(Profile, 1)[0]

    assert isinstance(profile.address, Address)
    assert profile.address.city
    assert len(profile.tags) == 3
    assert all(isinstance(tag, str) for tag in profile.tags)


def test_skips_fields_without_init():
    """Should leave init=False fields to the dataclass."""
    profile = FakerRecordGenerator().generate(Profile, 1)[0]

    assert profile.internal == "fixed"


def test_navigation_fields_stay_empty():
    """Should leave navigation properties at their defaults."""
    customers = FakerRecordGenerator().generate(Customer, 3)
    orders = FakerRecordGenerator().generate(Order, 3)

    assert all(customer.orders == [] for customer in customers)
    assert all(order.customer is None for order in orders)


def test_self_referencing_type_terminates():
    """Should not recurse into a type already under construction."""
    node = FakerRecordGenerator().generate(TreeNode, 1)[0]

    assert node.label
    assert node.child is None


def test_mutually_cyclic_types_terminate():
    """Should stop at the first type seen twice on the current path."""
    husband = FakerRecordGenerator().generate(Husband, 1)[0]

    assert isinstance(husband.wife, Wife)
    assert husband.wife.husband is None


def test_unknown_types_keep_default():
    """Should leave fields of unsupported types alone."""
    record = FakerRecordGenerator().generate(WithOpaque, 2)[0]

    assert record.name
    assert record.handle is None


def test_seed_is_reproducible():
    """Should generate the same values for the same seed."""
    first = FakerRecordGenerator(seed=99).generate(Customer, 3)
    second = FakerRecordGenerator(seed=99).generate(Customer, 3)

    assert [c.name for c in first] == [c.name for c in second]
    assert [c.email for c in first] == [c.email for c in second]


def test_accepts_faker_instance():
    """Should draw values from a supplied Faker instance."""
    faker = Faker("de_DE")
    generator = FakerRecordGenerator(faker=faker)

    assert generator.faker is faker


def test_rejects_non_dataclass():
    """Should raise ValidationError for types without field descriptors."""
    with pytest.raises(ValidationError):
        FakerRecordGenerator().generate(Opaque, 1)


def test_column_value_generator_supports():
    values = ColumnValueGenerator(Faker())

    assert values.supports(str)
    assert values.supports(Status)
    assert not values.supports(Opaque)


def test_custom_generator_subclass():
    """Custom generators plug in by subclassing RandomRecordGenerator."""

    class SequentialCustomers(RandomRecordGenerator):
        def generate(self, record_type, count):
            if count < 1:
                raise CountOutOfRangeError(count)
            return [record_type(name=f"Customer {i}") for i in range(1, count + 1)]

    records = SequentialCustomers().generate(Customer, 2)

    assert [c.name for c in records] == ["Customer 1", "Customer 2"]
