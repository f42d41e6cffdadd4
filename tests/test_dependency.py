"""Tests for table dependency ordering."""

import pytest

from dbseed.dependency import DependencyGraph
from dbseed.exceptions import CircularDependencyError


def test_principals_sort_first():
    graph = DependencyGraph()
    graph.add_dependency("Order", "Customer")
    graph.add_dependency("OrderLine", "Order")
    graph.add_dependency("OrderLine", "Product")

    order = graph.topological_sort()

    assert order.index("Customer") < order.index("Order") < order.index("OrderLine")
    assert order.index("Product") < order.index("OrderLine")


def test_ties_keep_insertion_order():
    """Independent tables should come out in the order they were added."""
    graph = DependencyGraph()
    for table in ["Zeta", "Alpha", "Mid"]:
        graph.add_table(table)

    assert graph.topological_sort() == ["Zeta", "Alpha", "Mid"]


def test_self_reference_adds_no_edge():
    graph = DependencyGraph()
    graph.add_dependency("Employee", "Employee")

    assert graph.get_dependencies("Employee") == []
    assert graph.topological_sort() == ["Employee"]


def test_dependencies_and_dependents():
    graph = DependencyGraph()
    graph.add_dependency("Enrollment", "Student")
    graph.add_dependency("Enrollment", "Course")
    graph.add_dependency("Enrollment", "Course")

    assert graph.get_dependencies("Enrollment") == ["Course", "Student"]
    assert graph.get_dependents("Course") == ["Enrollment"]
    assert len(graph) == 3
    assert "Student" in graph


def test_cycle_detected():
    """Should name every table caught in the cycle."""
    graph = DependencyGraph()
    graph.add_table("Standalone")
    graph.add_dependency("A", "B")
    graph.add_dependency("B", "C")
    graph.add_dependency("C", "A")

    with pytest.raises(CircularDependencyError) as exc_info:
        graph.topological_sort()

    assert "A, B, C" in str(exc_info.value)
    assert "Standalone" not in str(exc_info.value)


def test_cycle_allowed_appends_remainder_in_insertion_order():
    """With allow_cycles the cyclic tables should follow the sorted ones."""
    graph = DependencyGraph()
    graph.add_table("Standalone")
    graph.add_dependency("Employee", "Department")
    graph.add_dependency("Department", "Employee")
    graph.add_dependency("Badge", "Employee")

    assert graph.topological_sort(allow_cycles=True) == [
        "Standalone",
        "Employee",
        "Department",
        "Badge",
    ]
