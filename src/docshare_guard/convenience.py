"""Convenience API for docshare-guard: one-call ability checks.

Example
-------
::

    from docshare_guard import can_principal
    can_principal({"id": "u1", "role": {"name": "user"}}, "delete", "Document", {"uploaderId": "u1"})

"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from docshare_guard.rules.builder import build_ability
from docshare_guard.rules.model import Ability, Action, Principal, Subject


def _as_principal(user: Principal | Mapping[str, Any] | None) -> Principal | None:
    if user is None or isinstance(user, Principal):
        return user
    return Principal.from_dict(user)


def can_principal(
    user: Principal | Mapping[str, Any] | None,
    action: Action | str,
    subject: Subject | str,
    instance: Mapping[str, Any] | None = None,
) -> bool:
    """Build the ability for *user* and check a single request.

    *user* may be a :class:`Principal`, a user record mapping or ``None``
    for an anonymous caller.
    """
    return build_ability(_as_principal(user)).can(action, subject, instance)


def abilities_for(user: Principal | Mapping[str, Any] | None) -> Ability:
    """Return the composed ability for *user*."""
    return build_ability(_as_principal(user))
