"""
confcat.coercion
----------------

Turns raw configuration text into typed Python values.

Supported target kinds are ``str``, ``bool``, ``int``, ``float`` and any
``enum.Enum`` subclass. Parsing is strict: ``"True"`` is not a bool and
``" 8080"`` is not an int. Lists written as a single delimited string are
split with `split_delimited`, which leaves delimiters inside single quotes
alone.
"""

import enum
import re
from typing import Any, List, Optional

from .exceptions import EnumValueNotFound, InvalidValue, UnsupportedType

DEFAULT_DELIMITER = ","

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

_BOOL_LITERALS = {"true": True, "false": False}


def _delimiter_pattern(delimiter: str) -> "re.Pattern[str]":
    if len(delimiter) != 1:
        raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
    # Split only where the remainder holds balanced single quotes.
    return re.compile(re.escape(delimiter) + r"(?=(?:[^']*'[^']*')*[^']*$)")


def split_delimited(text: str, delimiter: str = DEFAULT_DELIMITER) -> List[str]:
    """
    Split a single-string list into its elements.

    Delimiters inside a single-quoted span are not split points. Each
    segment is stripped of whitespace and then of one surrounding single
    quote on either side; empty segments are dropped.

    Examples:
        >>> split_delimited("a,'b,c',d")
        ['a', 'b,c', 'd']
        >>> split_delimited(" x , , y ")
        ['x', 'y']
    """
    segments = []
    for part in _delimiter_pattern(delimiter).split(text):
        part = part.strip()
        if part.startswith("'"):
            part = part[1:]
        if part.endswith("'"):
            part = part[:-1]
        if part:
            segments.append(part)
    return segments


def coerce_enum(key_path: str, raw: str, enum_type: type) -> Optional[enum.Enum]:
    """
    Resolve a single token to a member of `enum_type`, ignoring case.

    Blank tokens and the literal ``null`` resolve to None.

    Raises:
        EnumValueNotFound: If the token matches no member name.
    """
    token = raw.strip()
    if not token or token.lower() == "null":
        return None

    for member in enum_type:
        if member.name.lower() == token.lower():
            return member

    raise EnumValueNotFound(
        f"Enum value '{token}' not found for type: {enum_type.__name__}. Found in path: {key_path}",
        key_path=key_path,
    )


def coerce_value(key_path: str, raw: str, kind: Any, delimiter: str = DEFAULT_DELIMITER) -> Any:
    """
    Convert raw configuration text into a value of `kind`.

    An enum value containing the delimiter is itself treated as a list and
    yields a list of members, which lets enum lists be written as one string.

    Args:
        key_path: Dotted key the text was read from, used in error messages.
        raw: The raw text.
        kind: Target type (``str``, ``bool``, ``int``, ``float`` or an Enum).
        delimiter: List delimiter used for the enum shorthand.

    Returns:
        The coerced value, None for a blank/``null`` enum token, or a list of
        enum members.

    Raises:
        InvalidValue: If the text is not a valid literal for `kind`.
        EnumValueNotFound: If an enum token matches no member.
        UnsupportedType: If `kind` is not a supported kind.
    """
    key = f"{key_path}: {raw}"

    if kind is str:
        return raw

    if kind is bool:
        if raw not in _BOOL_LITERALS:
            raise InvalidValue(f"Invalid bool value in: '{key}'", key_path=key_path)
        return _BOOL_LITERALS[raw]

    if kind is int:
        if not _INT_PATTERN.fullmatch(raw):
            raise InvalidValue(f"Invalid int value in: '{key}'", key_path=key_path)
        value = int(raw)
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise InvalidValue(f"Int value out of 64-bit range in: '{key}'", key_path=key_path)
        return value

    if kind is float:
        if "_" in raw or raw != raw.strip():
            raise InvalidValue(f"Invalid float value in: '{key}'", key_path=key_path)
        try:
            return float(raw)
        except ValueError:
            raise InvalidValue(f"Invalid float value in: '{key}'", key_path=key_path) from None

    if isinstance(kind, type) and issubclass(kind, enum.Enum):
        if delimiter in raw:
            members = (coerce_enum(key_path, part, kind) for part in raw.split(delimiter))
            return [member for member in members if member is not None]
        return coerce_enum(key_path, raw, kind)

    kind_name = getattr(kind, "__name__", repr(kind))
    raise UnsupportedType(f"Unsupported type '{kind_name}' in '{key}'", key_path=key_path)
