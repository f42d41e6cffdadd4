"""Pytest decorators for seeded test stores."""

from collections.abc import Callable
from typing import Any

from dbseed.exceptions import CountOutOfRangeError


def seed_data(
    record_type: type,
    count: int,
    transform: Callable[..., Any] | None = None,
):
    """
    Decorator to request random records for a pytest test function.

    Usage:
        @seed_data(Customer, count=5)
        async def test_customers(seeded_store):
            assert await seeded_store.count(Customer) == 5

    The decorator works with a ``seeded_store`` fixture defined in
    conftest.py, which passes each plan to ``SeedOrchestrator.seed_with_random``.
    Decorators stack; plans apply bottom-up, in decoration order.
    """
    if count < 1:
        raise CountOutOfRangeError(count)

    def decorator(func: Callable) -> Callable:
        # Get existing seed plans or create new list
        if not hasattr(func, "_seed_plans"):
            func._seed_plans = []

        func._seed_plans.append(
            {
                "record_type": record_type,
                "count": count,
                "transform": transform,
            }
        )

        # Return original function (fixture will handle execution)
        return func

    return decorator


def get_seed_plans(func: Callable) -> list[dict[str, Any]]:
    """Seed plans attached to a test function by ``seed_data``."""
    return list(getattr(func, "_seed_plans", []))
