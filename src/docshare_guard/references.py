"""Dynamic ``$path`` references and the ``UNDEFINED`` sentinel.

A reference is a string beginning with ``$`` whose remainder is a
dot-separated path, e.g. ``"$params.id"`` or ``"$user.id"``.  Walking a
path that does not exist produces :data:`UNDEFINED`, which compares
unequal to every value, itself included, so an unresolved reference can
never satisfy a condition.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping

from docshare_guard.errors import InvalidReferenceError

REFERENCE_PREFIX = "$"

DEFAULT_REFERENCE_ROOTS: frozenset[str] = frozenset(["user", "params", "query", "body"])


class _Undefined:
    """Singleton type of :data:`UNDEFINED`."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __eq__(self, other: object) -> bool:
        return False

    def __ne__(self, other: object) -> bool:
        return True

    def __hash__(self) -> int:
        return id(self)

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def is_reference(value: object) -> bool:
    """Return True if *value* is a ``$``-prefixed reference string."""
    return isinstance(value, str) and value.startswith(REFERENCE_PREFIX)


def reference_path(value: str) -> list[str]:
    """Split ``"$a.b.c"`` into ``["a", "b", "c"]``."""
    return value[len(REFERENCE_PREFIX):].split(".")


def walk_path(root: object, parts: Iterable[str]) -> object:
    """Walk *parts* through nested mappings, returning UNDEFINED on a miss.

    ``None`` values along the way are treated as missing.  A stored
    ``None`` at the final segment is returned as ``None``.
    """
    current: object = root
    for part in parts:
        if not isinstance(current, Mapping) or part not in current:
            return UNDEFINED
        current = current[part]
        if current is UNDEFINED:
            return UNDEFINED
    return current


def validate_reference(
    value: str,
    allowed_roots: Iterable[str] = DEFAULT_REFERENCE_ROOTS,
) -> None:
    """Reject a reference whose root is not permitted.

    Raises
    ------
    InvalidReferenceError
        If the path is empty, has an empty segment, or its first segment
        is not one of *allowed_roots*.
    """
    roots = frozenset(allowed_roots)
    parts = reference_path(value)
    if any(not part for part in parts):
        raise InvalidReferenceError(
            f"Reference {value!r} has an empty path segment.", value
        )
    if parts[0] not in roots:
        raise InvalidReferenceError(
            f"Reference {value!r} must start with one of {sorted(roots)}.", value
        )
