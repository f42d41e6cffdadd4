"""Tests for @seed_data() pytest decorator."""

import pytest

from dbseed import seed_data
from dbseed.decorators import get_seed_plans
from dbseed.exceptions import CountOutOfRangeError

from conftest import Course, Customer, Student


@pytest.mark.asyncio
@seed_data(Customer, count=5)
async def test_decorator_basic(seeded_store):
    """Should seed the store handed to the test."""
    assert await seeded_store.count(Customer) == 5


@pytest.mark.asyncio
@seed_data(Student, count=3)
@seed_data(Course, count=4)
async def test_decorator_multiple_types(seeded_store):
    """Should handle multiple @seed_data decorators."""
    assert await seeded_store.count(Student) == 3
    assert await seeded_store.count(Course) == 4


@pytest.mark.asyncio
@seed_data(Customer, count=2, transform=lambda c: setattr(c, "email", "fixed@example.com"))
async def test_decorator_with_transform(seeded_store):
    customers = await seeded_store.fetch_all(Customer)

    assert {c.email for c in customers} == {"fixed@example.com"}


@pytest.mark.asyncio
async def test_without_decorator(seeded_store):
    """Without plans the fixture should build an empty store."""
    assert await seeded_store.count(Customer) == 0
    assert not seeded_store.has_changes()


def test_plans_recorded_in_order():
    @seed_data(Student, count=1)
    @seed_data(Course, count=2)
    def target():
        pass

    plans = get_seed_plans(target)

    assert [(p["record_type"], p["count"]) for p in plans] == [(Course, 2), (Student, 1)]


def test_invalid_count_rejected_at_decoration():
    with pytest.raises(CountOutOfRangeError):
        seed_data(Customer, count=0)
