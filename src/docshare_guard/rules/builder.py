"""Compose a principal's Ability from baseline, stored and role rules.

The ability is the union (concatenation) of three rule groups:

1. a fixed baseline granting public read access, always present;
2. the principal's stored permissions, copied verbatim;
3. the role override rules for the principal's role name.

An anonymous principal, or one with no role, gets the baseline only.
Stored permissions that are not a list of permission records are logged
and skipped; the decision then rests on the baseline and overrides.

Example
-------
>>> ability = AbilityBuilder().build(Principal(id="u1", role_name="user"))
>>> ability.can("delete", "Document", {"uploaderId": "u1"})
True
>>> ability.can("delete", "Document", {"uploaderId": "u2"})
False
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from docshare_guard.errors import MalformedPermissionData
from docshare_guard.rules.model import Ability, Action, Principal, Rule, Subject
from docshare_guard.rules.role_table import RoleTable, default_role_table

logger = logging.getLogger(__name__)

BASELINE_RULES: tuple[Rule, ...] = (
    Rule(Action.READ, Subject.DOCUMENT, {"isPublic": True}),
    Rule(Action.READ, Subject.CATEGORY),
    Rule(Action.READ, Subject.FILE, {"isPublic": True}),
)


def parse_stored_permissions(raw: object) -> list[Rule]:
    """Convert a stored permission list into rules.

    ``None`` is treated as an empty list.

    Raises
    ------
    MalformedPermissionData
        If *raw* is not a list/tuple, or any entry is not a valid
        permission record.
    """
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise MalformedPermissionData(
            f"Stored permissions must be a list; got {type(raw).__name__}."
        )

    rules: list[Rule] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            raise MalformedPermissionData(
                f"Stored permission at index {index} is not a mapping: {entry!r}."
            )
        try:
            rules.append(Rule.from_dict(entry))
        except (ValueError, TypeError) as exc:
            raise MalformedPermissionData(
                f"Stored permission at index {index} is invalid: {exc}"
            ) from exc
    return rules


class AbilityBuilder:
    """Builds a fresh :class:`Ability` per authorization check.

    Parameters
    ----------
    role_table:
        Role override table.  Defaults to the bundled table.
    baseline:
        Rules granted to every caller, anonymous included.
    """

    def __init__(
        self,
        role_table: RoleTable | None = None,
        baseline: tuple[Rule, ...] = BASELINE_RULES,
    ) -> None:
        self._role_table = role_table if role_table is not None else default_role_table()
        self._baseline = tuple(baseline)

    @property
    def role_table(self) -> RoleTable:
        return self._role_table

    def build(self, principal: Principal | None) -> Ability:
        """Compose the ability for *principal* (``None`` means anonymous)."""
        rules: list[Rule] = list(self._baseline)

        if principal is None or not principal.role_name:
            return Ability(tuple(rules), principal.id if principal else None)

        try:
            rules.extend(parse_stored_permissions(principal.stored_permissions))
        except MalformedPermissionData as exc:
            logger.warning(
                "Ignoring malformed stored permissions for principal=%s role=%s: %s",
                principal.id,
                principal.role_name,
                exc,
            )

        overrides = self._role_table.rules_for(principal.role_name, principal)
        if not overrides:
            logger.debug("No role overrides for role=%s", principal.role_name)
        rules.extend(overrides)

        return Ability(tuple(rules), principal.id)


_DEFAULT_BUILDER = AbilityBuilder()


def build_ability(principal: Principal | None) -> Ability:
    """Build an ability with the bundled role table."""
    return _DEFAULT_BUILDER.build(principal)
