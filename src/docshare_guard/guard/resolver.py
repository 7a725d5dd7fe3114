"""Materialise ``$path`` references in requirement conditions.

Every condition value that is a string starting with ``$`` is walked
through the request context (``user``, ``params``, ``query``, ``body``).
A path that does not resolve becomes :data:`UNDEFINED`, which never
equals a real attribute, so the affected rule simply does not apply.
Resolution performs no I/O and never raises.

Example
-------
>>> ctx = RequestContext(params={"id": "55"})
>>> resolve({"userId": "$params.id", "isPublic": True}, ctx)
{'userId': '55', 'isPublic': True}
>>> resolve({"userId": "$params.missing"}, ctx)
{'userId': UNDEFINED}
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from docshare_guard.guard.requirements import RequestContext
from docshare_guard.references import UNDEFINED, is_reference, reference_path, walk_path

logger = logging.getLogger(__name__)


def lookup(reference: str, ctx: RequestContext) -> object:
    """Resolve a single ``$path`` reference against *ctx*."""
    value = walk_path(ctx.as_reference_root(), reference_path(reference))
    if value is UNDEFINED:
        logger.debug("Reference %s did not resolve", reference)
    return value


def resolve(conditions: Mapping[str, object] | None, ctx: RequestContext) -> dict[str, object]:
    """Return a copy of *conditions* with every reference replaced by its value."""
    if not conditions:
        return {}
    root = ctx.as_reference_root()
    resolved: dict[str, object] = {}
    for key, value in conditions.items():
        if is_reference(value):
            resolved[key] = walk_path(root, reference_path(value))  # type: ignore[arg-type]
            if resolved[key] is UNDEFINED:
                logger.debug("Condition %s: reference %s did not resolve", key, value)
        else:
            resolved[key] = value
    return resolved


class DynamicReferenceResolver:
    """Object wrapper around :func:`resolve` for injection into the guard."""

    def resolve(
        self,
        conditions: Mapping[str, object] | None,
        ctx: RequestContext,
    ) -> dict[str, object]:
        return resolve(conditions, ctx)
