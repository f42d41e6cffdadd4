"""
Field descriptors for record types.

Record construction and persistence never reflect over arbitrary objects.
Every record type exposes its writable fields through ``FieldDescriptor``
objects, derived from dataclass declarations or registered explicitly.

Navigation properties (a related record, or a collection of related records)
are declared with :func:`navigation`:

    >>> @dataclass
    ... class Customer:
    ...     customer_id: int | None = None
    ...     name: str = ""
    ...     orders: list["Order"] = navigation(default_factory=list)
"""

import dataclasses
import types
import typing
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from dbseed.exceptions import ValidationError

NAVIGATION_MARKER = "dbseed.navigation"

_COLLECTION_ORIGINS = (list, set, frozenset, tuple)


class _NoDefault:
    """Marks a field without a declared default or default factory."""

    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class FieldDescriptor:
    """
    A writable field of a record type.

    Attributes:
        name: Attribute name on the record
        type_: Declared type with Optional[...] removed (``list[X]`` for collections)
        is_navigation: Field references other records instead of holding a value
        default: Declared default, ``NO_DEFAULT`` when there is none
        default_factory: Declared default factory, ``NO_DEFAULT`` when none
    """

    name: str
    type_: Any = Any
    is_navigation: bool = False
    default: Any = NO_DEFAULT
    default_factory: Any = NO_DEFAULT

    @property
    def is_collection(self) -> bool:
        """Field holds a collection (list, set, frozenset, tuple)."""
        return typing.get_origin(self.type_) in _COLLECTION_ORIGINS or (
            self.type_ in _COLLECTION_ORIGINS
        )

    @property
    def container_type(self) -> type:
        """Concrete collection class (list, set, ...) for collections."""
        return typing.get_origin(self.type_) or self.type_

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT or self.default_factory is not NO_DEFAULT

    @property
    def item_type(self) -> Any:
        """Element type for collections, None otherwise."""
        if not self.is_collection:
            return None
        args = typing.get_args(self.type_)
        return args[0] if args else Any

    def default_value(self) -> Any:
        """Value a field takes when the generator leaves it alone."""
        if self.default_factory is not NO_DEFAULT:
            return self.default_factory()
        if self.default is not NO_DEFAULT:
            return self.default
        if self.is_collection:
            return self.container_type()
        return None


_registry: dict[type, tuple[FieldDescriptor, ...]] = {}


def navigation(**field_kwargs: Any) -> Any:
    """
    Declare a dataclass field as a navigation property.

    Accepts the same keyword arguments as ``dataclasses.field``. Without a
    default the field defaults to None.
    """
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[NAVIGATION_MARKER] = True
    if "default" not in field_kwargs and "default_factory" not in field_kwargs:
        field_kwargs["default"] = None
    return dataclasses.field(metadata=metadata, **field_kwargs)


def register_fields(record_type: type, descriptors: Iterable[FieldDescriptor]) -> None:
    """
    Register field descriptors for a record type.

    Registered descriptors take precedence over dataclass declarations, which
    makes this the way to seed types that are not dataclasses. Such types must
    accept every registered field as a keyword argument.

    Raises:
        ValidationError: If record_type is not a class
    """
    if not isinstance(record_type, type):
        raise ValidationError("record_type", "A record type must be a class")
    _registry[record_type] = tuple(descriptors)


def clear_field_registry() -> None:
    """Clear all registered field descriptors (for testing)."""
    _registry.clear()


def unwrap_optional(annotation: Any) -> Any:
    """``Optional[X]`` / ``X | None`` -> ``X``; other annotations unchanged."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        remaining = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(remaining) == 1:
            return remaining[0]
    return annotation


def describe_fields(record_type: type) -> tuple[FieldDescriptor, ...]:
    """
    Get the field descriptors of a record type.

    Fields declared with ``init=False`` are skipped.

    Raises:
        ValidationError: If the type is neither registered nor a dataclass
    """
    if record_type in _registry:
        return _registry[record_type]

    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        name = getattr(record_type, "__name__", repr(record_type))
        raise ValidationError(
            "record_type",
            f"Cannot describe fields of '{name}'. Declare it as a dataclass "
            f"or call register_fields({name}, [...])",
        )

    try:
        hints = typing.get_type_hints(record_type)
    except NameError:
        # Unresolvable forward reference; use the raw annotations
        hints = {}

    return tuple(
        FieldDescriptor(
            name=f.name,
            type_=unwrap_optional(hints.get(f.name, f.type)),
            is_navigation=bool(f.metadata.get(NAVIGATION_MARKER, False)),
            default=_declared(f.default),
            default_factory=_declared(f.default_factory),
        )
        for f in dataclasses.fields(record_type)
        if f.init
    )


def _declared(value: Any) -> Any:
    return NO_DEFAULT if value is dataclasses.MISSING else value


def navigation_count(record_type: type | None) -> int:
    """Number of navigation properties a record type declares."""
    if record_type is None:
        return 0
    return sum(1 for f in describe_fields(record_type) if f.is_navigation)
