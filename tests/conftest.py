"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import (
    Column,
    Computed,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    text,
)

from dbseed import SchemaIntrospector, SeedOrchestrator, Settings, navigation
from dbseed.fields import clear_field_registry


# Domain record types


@dataclass
class Customer:
    customer_id: int | None = None
    name: str = ""
    email: str | None = None
    created_at: datetime | None = None
    orders: list["Order"] = navigation(default_factory=list)


@dataclass
class Order:
    order_id: int | None = None
    customer_id: int | None = None
    quantity: int = 0
    unit_price: float = 0.0
    line_total: float | None = None
    customer: Customer | None = navigation()


@dataclass
class Person:
    business_entity_id: int | None = None
    first_name: str = ""
    last_name: str = ""
    rowguid: str | None = None
    modified_date: datetime | None = None
    manager_id: int | None = None
    manager: "Person | None" = navigation()


@dataclass
class Student:
    student_id: int | None = None
    name: str = ""
    courses: list["Course"] = navigation(default_factory=list)


@dataclass
class Course:
    course_id: int | None = None
    title: str = ""


@dataclass
class Enrollment:
    student_id: int = 0
    course_id: int = 0


def build_production_metadata() -> MetaData:
    """
    A schema written for SQL Server.

    Tables live in the ``Sales`` and ``Person`` schemas or in the default one,
    and use ``getdate()``/``newid()`` defaults and a computed column.
    """
    metadata = MetaData()

    Table(
        "Customer",
        metadata,
        Column("CustomerId", Integer, primary_key=True, key="customer_id"),
        Column("Name", String(100), nullable=False, key="name"),
        Column("Email", String(200), key="email"),
        Column("CreatedAt", DateTime, server_default=text("(getdate())"), key="created_at"),
        schema="Sales",
    )
    Table(
        "Order",
        metadata,
        Column("OrderId", Integer, primary_key=True, key="order_id"),
        Column(
            "CustomerId",
            Integer,
            ForeignKey("Sales.Customer.customer_id"),
            key="customer_id",
        ),
        Column("Quantity", Integer, nullable=False, key="quantity"),
        Column("UnitPrice", Float, nullable=False, key="unit_price"),
        Column("LineTotal", Float, Computed("[Quantity]*[UnitPrice]"), key="line_total"),
        schema="Sales",
    )
    Table(
        "Person",
        metadata,
        Column("BusinessEntityId", Integer, primary_key=True, key="business_entity_id"),
        Column("FirstName", String(50), nullable=False, key="first_name"),
        Column("LastName", String(50), nullable=False, key="last_name"),
        Column("rowguid", String(36), server_default=text("(NEWID())"), key="rowguid"),
        Column(
            "ModifiedDate", DateTime, server_default=text("(getdate())"), key="modified_date"
        ),
        Column(
            "ManagerId",
            Integer,
            ForeignKey("Person.Person.business_entity_id"),
            key="manager_id",
        ),
        schema="Person",
    )
    Table(
        "Student",
        metadata,
        Column("student_id", Integer, primary_key=True),
        Column("name", String(100)),
    )
    Table(
        "Course",
        metadata,
        Column("course_id", Integer, primary_key=True),
        Column("title", String(100)),
    )
    Table(
        "Enrollment",
        metadata,
        Column("student_id", Integer, ForeignKey("Student.student_id"), primary_key=True),
        Column("course_id", Integer, ForeignKey("Course.course_id"), primary_key=True),
    )
    return metadata


BINDINGS = {
    Customer: "Sales.Customer",
    Order: "Sales.Order",
    Person: "Person.Person",
    Student: "Student",
    Course: "Course",
    Enrollment: "Enrollment",
}


@pytest.fixture(autouse=True)
def _clear_field_registry():
    """Isolate tests that register field descriptors."""
    yield
    clear_field_registry()


@pytest.fixture
def production_metadata() -> MetaData:
    return build_production_metadata()


@pytest.fixture
def introspector(production_metadata: MetaData) -> SchemaIntrospector:
    return SchemaIntrospector(production_metadata, BINDINGS)


@pytest.fixture
def settings() -> Settings:
    """Settings for SQL Server models with reproducible random data."""
    return Settings(dialect={"preset": "mssql"}, generator={"seed": 1234})


@pytest.fixture
def builder(introspector: SchemaIntrospector, settings: Settings) -> SeedOrchestrator:
    return SeedOrchestrator(introspector, settings).use_in_memory()


@pytest_asyncio.fixture
async def seeded_store(request, builder: SeedOrchestrator):
    """
    Fixture for seeded stores - works with @seed_data() decorator.

    The decorator populates this fixture by reading _seed_plans from the test function.
    """
    for plan in getattr(request.function, "_seed_plans", []):
        builder.seed_with_random(
            plan["record_type"],
            plan["count"],
            transform=plan["transform"],
        )

    store = await builder.build()
    yield store

    # Cleanup
    await store.dispose()
    await builder.dispose()
