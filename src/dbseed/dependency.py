"""Foreign key ordering of tables for DDL and inserts."""

from collections import deque
import logging

from dbseed.exceptions import CircularDependencyError

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Principal -> dependent edges between table keys.

    Tables keep the order they were added in; that order breaks ties, so
    sorting the same graph always gives the same result.
    """

    def __init__(self):
        self._principals: dict[str, set[str]] = {}
        self._dependents: dict[str, list[str]] = {}

    def add_table(self, table: str) -> None:
        """Add a table without edges (no-op if already present)."""
        if table not in self._principals:
            self._principals[table] = set()
            self._dependents[table] = []

    def add_dependency(self, dependent: str, principal: str) -> None:
        """
        Record that ``dependent`` holds a foreign key to ``principal``.

        A table referencing itself adds no edge; its rows are ordered by the
        engine, not by table order.
        """
        self.add_table(dependent)
        self.add_table(principal)
        if dependent == principal or principal in self._principals[dependent]:
            return
        self._principals[dependent].add(principal)
        self._dependents[principal].append(dependent)

    def get_dependencies(self, table: str) -> list[str]:
        """Principals of a table, sorted by name."""
        return sorted(self._principals.get(table, ()))

    def get_dependents(self, table: str) -> list[str]:
        """Tables with a foreign key to ``table``, in the order they were added."""
        return list(self._dependents.get(table, ()))

    def topological_sort(self, allow_cycles: bool = False) -> list[str]:
        """
        Order tables so every principal comes before its dependents (Kahn).

        Args:
            allow_cycles: Append tables caught in a cycle, and their dependents,
                in the order they were added instead of raising

        Raises:
            CircularDependencyError: If foreign keys form a cycle and
                allow_cycles is False
        """
        remaining = {table: len(principals) for table, principals in self._principals.items()}
        ready = deque(table for table, count in remaining.items() if count == 0)
        ordered: list[str] = []

        while ready:
            table = ready.popleft()
            ordered.append(table)
            for dependent in self._dependents[table]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    ready.append(dependent)

        if len(ordered) < len(remaining):
            done = set(ordered)
            cyclic = [table for table in self._principals if table not in done]
            if not allow_cycles:
                raise CircularDependencyError(set(cyclic))
            logger.warning("Foreign key cycle between tables: %s", ", ".join(cyclic))
            ordered.extend(cyclic)
        return ordered

    def __len__(self) -> int:
        return len(self._principals)

    def __contains__(self, table: object) -> bool:
        return table in self._principals
