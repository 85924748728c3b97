"""
confcat.shape
-------------

Type-shape introspection for dataclass records.

A record is any dataclass class. Its constructor parameters are read with
`inspect.signature` and their types resolved with `typing.get_type_hints`,
so string annotations (``from __future__ import annotations``) work.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any

from .exceptions import MissingConstructor, PropertyNotFound

_LIST_ORIGINS = (list, collections.abc.Sequence)


@dataclass(frozen=True)
class ParameterShape:
    """One constructor parameter of a record.

    Attributes:
        name: Parameter name as declared.
        kind: Resolved type with ``Optional`` removed.
        optional: Whether the declared type accepts None.
        has_default: Whether the constructor supplies a default.
    """

    name: str
    kind: Any
    optional: bool
    has_default: bool


def is_record(kind: Any) -> bool:
    """Return True if `kind` is a dataclass class (not an instance)."""
    return isinstance(kind, type) and dataclasses.is_dataclass(kind)


def unwrap_optional(kind: Any) -> tuple[Any, bool]:
    """Strip ``None`` from an ``Optional[X]`` annotation.

    Returns:
        ``(X, True)`` for ``Optional[X]``, otherwise ``(kind, False)``.
        Unions of several non-None types are returned unchanged.
    """
    args = typing.get_args(kind)
    if args and type(None) in args and _is_union(kind):
        remaining = [arg for arg in args if arg is not type(None)]
        if len(remaining) == 1:
            return remaining[0], True
    return kind, False


def _is_union(kind: Any) -> bool:
    return typing.get_origin(kind) is typing.Union or isinstance(kind, types.UnionType)


def list_element_kind(kind: Any) -> Any | None:
    """Return the element type of a list annotation, or None if `kind` is not a list.

    ``list[X]``, ``typing.List[X]`` and ``typing.Sequence[X]`` are lists.
    A bare ``list`` has no recoverable element type and yields ``Any``.
    """
    if kind is list:
        return Any
    origin = typing.get_origin(kind)
    if origin in _LIST_ORIGINS:
        args = typing.get_args(kind)
        return args[0] if args else Any
    return None


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError) as e:
        raise MissingConstructor(
            f"Cannot resolve annotations of {cls.__name__}: {e}"
        ) from e


def constructor_parameters(cls: Any) -> list[ParameterShape]:
    """
    List the constructor parameters of a record in declared order.

    Raises:
        MissingConstructor: If `cls` is not a dataclass class.
    """
    if not is_record(cls):
        name = getattr(cls, "__name__", repr(cls))
        raise MissingConstructor(f"Dataclass constructor is required for {name}.")

    hints = _type_hints(cls)
    parameters = []
    for parameter in inspect.signature(cls).parameters.values():
        declared = hints.get(parameter.name, parameter.annotation)
        if isinstance(declared, dataclasses.InitVar):
            declared = declared.type
        kind, optional = unwrap_optional(declared)
        parameters.append(
            ParameterShape(
                name=parameter.name,
                kind=kind,
                optional=optional,
                has_default=parameter.default is not inspect.Parameter.empty,
            )
        )
    return parameters


def find_field_kind(cls: type, name: str) -> Any:
    """
    Find the field of `cls` named like `name` (ignoring case) and return its type.

    The field's resolved type carries the element type of list fields.

    Raises:
        PropertyNotFound: If no dataclass field matches, e.g. for an ``InitVar``.
    """
    hints = _type_hints(cls)
    for field in dataclasses.fields(cls):
        if field.name.lower() == name.lower():
            kind, _ = unwrap_optional(hints.get(field.name, field.type))
            return kind
    raise PropertyNotFound(f"Property '{name}' not found in '{cls.__name__}'.")
