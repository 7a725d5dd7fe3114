"""Static role override table.

Each role name maps to the extra rules every principal with that role
receives, on top of the baseline and the principal's stored permissions.
The table is authored as YAML, parsed and validated once at import time,
and is read-only afterwards.

Owner-scoped conditions use ``$user.<field>`` placeholders which are
bound to the principal when an ability is built.  ``user`` is the only
reference root permitted inside the table.

Example
-------
>>> table = default_role_table()
>>> sorted(table.role_names)
['admin', 'moderator', 'publisher', 'user']
>>> [str(r) for r in table.rules_for("admin", Principal(id="a1", role_name="admin"))]
['manage all']
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import yaml

from docshare_guard.errors import InvalidReferenceError, RoleTableError
from docshare_guard.references import is_reference, reference_path, validate_reference, walk_path
from docshare_guard.rules.model import Principal, Rule

logger = logging.getLogger(__name__)

_TABLE_REFERENCE_ROOTS: frozenset[str] = frozenset(["user"])

# ---------------------------------------------------------------------------
# Bundled table
# ---------------------------------------------------------------------------

DEFAULT_ROLE_TABLE_YAML = """\
# Role override table
# -------------------
# Extra rules granted by role name.  Rules only ever grant access.

roles:
  admin:
    - {action: manage, subject: all}

  moderator:
    - {action: read, subject: all}
    - {action: update, subject: Document}
    - {action: approve, subject: Document}
    - {action: moderate, subject: Comment}
    - {action: moderate, subject: User}

  publisher:
    - {action: create, subject: Document}
    - {action: read, subject: Document}
    - {action: update, subject: Document, conditions: {uploaderId: $user.id}}
    - {action: delete, subject: Document, conditions: {uploaderId: $user.id}}
    - {action: upload, subject: File}
    - {action: read, subject: File, conditions: {uploaderId: $user.id}}

  user:
    # Documents
    - {action: read, subject: Document, conditions: {isPublic: true, isApproved: true}}
    - {action: read, subject: Document, conditions: {uploaderId: $user.id}}
    - {action: create, subject: Document}
    - {action: update, subject: Document, conditions: {uploaderId: $user.id}}
    - {action: delete, subject: Document, conditions: {uploaderId: $user.id}}
    - {action: share, subject: Document, conditions: {uploaderId: $user.id}}
    - {action: download, subject: Document, conditions: {isPublic: true, isApproved: true}}
    - {action: download, subject: Document, conditions: {uploaderId: $user.id}}
    # Files and categories
    - {action: upload, subject: File}
    - {action: read, subject: File, conditions: {isPublic: true}}
    - {action: read, subject: File, conditions: {uploaderId: $user.id}}
    - {action: read, subject: Category}
    # Comments, ratings, bookmarks
    - {action: create, subject: Comment}
    - {action: update, subject: Comment, conditions: {userId: $user.id}}
    - {action: delete, subject: Comment, conditions: {userId: $user.id}}
    - {action: create, subject: Rating}
    - {action: update, subject: Rating, conditions: {userId: $user.id}}
    - {action: create, subject: Bookmark}
    - {action: read, subject: Bookmark, conditions: {userId: $user.id}}
    - {action: delete, subject: Bookmark, conditions: {userId: $user.id}}
    # Notifications and own profile
    - {action: read, subject: Notification, conditions: {userId: $user.id}}
    - {action: update, subject: Notification, conditions: {userId: $user.id}}
    - {action: delete, subject: Notification, conditions: {userId: $user.id}}
    - {action: read, subject: User, conditions: {id: $user.id}}
    - {action: update, subject: User, conditions: {id: $user.id}}
"""


# ---------------------------------------------------------------------------
# RoleTable
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoleTable:
    """Read-only mapping of role name to rule templates.

    Templates may contain ``$user.<field>`` placeholders in their
    condition values; :meth:`rules_for` binds them to a principal.
    """

    roles: Mapping[str, tuple[Rule, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {name: tuple(rules) for name, rules in self.roles.items()}
        object.__setattr__(self, "roles", MappingProxyType(frozen))

    @property
    def role_names(self) -> list[str]:
        return list(self.roles)

    def templates_for(self, role_name: str) -> tuple[Rule, ...]:
        """Return the unbound templates of *role_name* (empty when unknown)."""
        return self.roles.get(role_name, ())

    def rules_for(self, role_name: str, principal: Principal) -> list[Rule]:
        """Return the override rules of *role_name* bound to *principal*."""
        view = {"user": principal.as_reference_view()}
        bound: list[Rule] = []
        for template in self.templates_for(role_name):
            if not template.conditions:
                bound.append(template)
                continue
            conditions = {
                key: walk_path(view, reference_path(value)) if is_reference(value) else value
                for key, value in template.conditions.items()
            }
            bound.append(Rule(template.action, template.subject, conditions))
        return bound


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _parse_role_rules(role_name: str, raw_rules: object) -> tuple[Rule, ...]:
    if not isinstance(raw_rules, list):
        raise RoleTableError(f"Role {role_name!r} must map to a list of rules.")

    rules: list[Rule] = []
    for index, raw_rule in enumerate(raw_rules):
        try:
            rule = Rule.from_dict(raw_rule)
            for value in rule.conditions.values():
                if is_reference(value):
                    validate_reference(value, _TABLE_REFERENCE_ROOTS)  # type: ignore[arg-type]
        except InvalidReferenceError as exc:
            raise RoleTableError(
                f"Role {role_name!r} rule {index}: {exc}"
            ) from exc
        except (ValueError, TypeError) as exc:
            raise RoleTableError(
                f"Role {role_name!r} rule {index} is invalid: {exc}"
            ) from exc
        rules.append(rule)
    return tuple(rules)


def load_role_table(yaml_text: str, source: str = "<string>") -> RoleTable:
    """Parse and validate a role override table.

    Parameters
    ----------
    yaml_text:
        YAML document with a top-level ``roles`` mapping.
    source:
        Identifier used in log and error messages.

    Raises
    ------
    RoleTableError
        If the YAML cannot be parsed or any rule is invalid.
    """
    try:
        raw = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError as exc:
        raise RoleTableError(f"[{source}] Failed to parse role table: {exc}") from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("roles"), dict):
        raise RoleTableError(f"[{source}] Role table must contain a 'roles' mapping.")

    roles = {
        str(name): _parse_role_rules(str(name), raw_rules)
        for name, raw_rules in raw["roles"].items()
    }
    logger.info(
        "Loaded role table from %s: %s",
        source,
        ", ".join(f"{name}={len(rules)}" for name, rules in roles.items()),
    )
    return RoleTable(roles=roles)


_DEFAULT_TABLE = load_role_table(DEFAULT_ROLE_TABLE_YAML, source="<bundled>")


def default_role_table() -> RoleTable:
    """Return the bundled role table (shared, immutable)."""
    return _DEFAULT_TABLE
