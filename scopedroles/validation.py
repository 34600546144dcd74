"""Argument normalization and precondition checks."""

from typing import Any, Iterable, List, Union

from scopedroles.exceptions import MissingArgumentError


def is_empty(value: Any) -> bool:
    """Return True for None, empty strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def require(value: Any, name: str) -> Any:
    """Raise MissingArgumentError if ``value`` is absent or empty.

    Args:
        value: Argument to check
        name: Parameter name reported in the error

    Returns:
        The unchanged value
    """
    if is_empty(value):
        raise MissingArgumentError(name)
    return value


def as_list(value: Union[str, Iterable[str]]) -> List[str]:
    """Normalize a single string or an iterable of strings to a list.

    Duplicates are dropped while keeping first-seen order.
    """
    if isinstance(value, str):
        return [value]
    return list(dict.fromkeys(value))


def require_list(value: Union[str, Iterable[str], None], name: str) -> List[str]:
    """Validate and normalize a one-or-many argument.

    Empty strings inside the iterable are rejected too, so a call can
    never reach the store with a blank identifier, permission or scope.
    """
    require(value, name)
    items = as_list(value)  # type: ignore[arg-type]
    if not items or any(is_empty(item) for item in items):
        raise MissingArgumentError(name, details={"received": items})
    return items


__all__ = ["is_empty", "require", "as_list", "require_list"]
