"""Base generator interface."""

from abc import ABC, abstractmethod
from typing import TypeVar

T = TypeVar("T")


class RandomRecordGenerator(ABC):
    """
    Base class for random record generators.

    Subclass this to plug a different synthesizer into the orchestrator.

    Example:
        >>> class SequentialCustomers(RandomRecordGenerator):
        ...     def generate(self, record_type, count):
        ...         if count < 1:
        ...             raise CountOutOfRangeError(count)
        ...         return [record_type(name=f"Customer {i}") for i in range(1, count + 1)]
        >>>
        >>> builder.use_random_generator(SequentialCustomers())
    """

    @abstractmethod
    def generate(self, record_type: type[T], count: int) -> list[T]:
        """
        Create ``count`` populated instances of ``record_type``.

        Args:
            record_type: Record type to instantiate
            count: Number of records (must be at least 1)

        Returns:
            Newly created records

        Raises:
            CountOutOfRangeError: If count is less than 1
        """
        pass
