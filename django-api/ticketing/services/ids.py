"""Parsing of identifiers received from callers."""

from typing import TypeVar

from ticketing.domain.errors import InvalidIdError

T = TypeVar("T")


def parse_id(id_type: type[T], value: object, field: str) -> T:
    """Build an id value object, mapping malformed input to InvalidIdError."""
    if isinstance(value, id_type):
        return value
    try:
        return id_type.from_string(str(value))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdError(field) from None
