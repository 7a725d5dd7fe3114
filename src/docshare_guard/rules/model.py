"""Typed rule vocabulary: actions, subjects, rules, principals and abilities.

Everything here is an immutable value.  A :class:`Rule` grants one
action on one subject kind, optionally restricted by field-equality
conditions.  An :class:`Ability` is the ordered tuple of rules composed
for one principal for the duration of one authorization check.

Example
-------
::

    rule = Rule.from_dict(
        {"action": "update", "subject": "Document", "conditions": {"uploaderId": "u1"}}
    )
    assert rule.action is Action.UPDATE
    assert rule.conditions["uploaderId"] == "u1"
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Action(str, Enum):
    """Operations a rule can grant.  ``MANAGE`` stands for every action."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"
    APPROVE = "approve"
    MODERATE = "moderate"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    COMMENT = "comment"
    RATE = "rate"
    BOOKMARK = "bookmark"
    SHARE = "share"


class Subject(str, Enum):
    """Resource kinds a rule can target.  ``ALL`` stands for every kind."""

    USER = "User"
    DOCUMENT = "Document"
    FILE = "File"
    CATEGORY = "Category"
    COMMENT = "Comment"
    RATING = "Rating"
    BOOKMARK = "Bookmark"
    NOTIFICATION = "Notification"
    SYSTEM_SETTING = "SystemSetting"
    ALL = "all"


_EMPTY: Mapping[str, object] = MappingProxyType({})


def freeze_mapping(values: Mapping[str, object] | None) -> Mapping[str, object]:
    """Return a read-only copy of *values* (shared empty proxy for ``None``)."""
    if not values:
        return _EMPTY
    return MappingProxyType(dict(values))


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """A single grant of *action* on *subject*.

    Attributes
    ----------
    action:
        The granted action.  ``Action.MANAGE`` matches any requested action.
    subject:
        The subject kind.  ``Subject.ALL`` matches any requested kind.
    conditions:
        Field-equality constraints.  Empty means the rule applies to every
        instance of the subject.
    """

    action: Action
    subject: Subject
    conditions: Mapping[str, object] = field(default_factory=dict)

    # Conditions are read-only mappings, so instances are unhashable.
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        object.__setattr__(self, "action", Action(self.action))
        object.__setattr__(self, "subject", Subject(self.subject))
        object.__setattr__(self, "conditions", freeze_mapping(self.conditions))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Rule:
        """Build a rule from the stored ``{action, subject, conditions?}`` shape.

        Raises
        ------
        ValueError
            If the action or subject is unknown, or ``conditions`` is not
            a mapping.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Permission entry must be a mapping; got {data!r}.")

        conditions = data.get("conditions")
        if conditions is not None and not isinstance(conditions, Mapping):
            raise ValueError(
                f"Permission conditions must be a mapping; got {conditions!r}."
            )
        return cls(
            action=Action(data.get("action")),
            subject=Subject(data.get("subject")),
            conditions=conditions,  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, object]:
        """Render the rule in its stored shape."""
        data: dict[str, object] = {
            "action": self.action.value,
            "subject": self.subject.value,
        }
        if self.conditions:
            data["conditions"] = dict(self.conditions)
        return data

    def __str__(self) -> str:
        text = f"{self.action.value} {self.subject.value}"
        if self.conditions:
            pairs = ", ".join(f"{k}={v!r}" for k, v in self.conditions.items())
            text = f"{text} where {pairs}"
        return text


Permission = Rule
"""Stored permissions and composed rules share one representation."""


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Principal:
    """An authenticated actor as supplied by the surrounding layer.

    Attributes
    ----------
    id:
        The principal's identifier.
    role_name:
        Name of the principal's role, or ``None`` when it has none.
    stored_permissions:
        Permissions read from the role record, untouched.  May be
        malformed; the ability builder validates it.
    attributes:
        Additional profile fields addressable by ``$user.<field>``.
    """

    id: str | int
    role_name: str | None = None
    stored_permissions: object = ()
    attributes: Mapping[str, object] = field(default_factory=dict)

    # Attributes are read-only mappings, so instances are unhashable.
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", freeze_mapping(self.attributes))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Principal:
        """Build a principal from a user record.

        Accepts either the nested ``{"id", "role": {"name", "permissions"}}``
        shape or the flat ``{"id", "roleName", "permissions"}`` shape.  All
        other keys become attributes.  The id is kept as stored so owner
        conditions compare against the same type the records carry.

        Raises
        ------
        ValueError
            If the record has no ``id``.
        """
        principal_id = data.get("id")
        if principal_id is None or principal_id == "":
            raise ValueError(f"Principal record has no 'id': {dict(data)!r}.")

        role = data.get("role")
        if isinstance(role, Mapping):
            role_name = role.get("name")
            stored = role.get("permissions", ())
        else:
            role_name = data.get("roleName", role)
            stored = data.get("permissions", data.get("storedPermissions", ()))

        reserved = {"id", "role", "roleName", "permissions", "storedPermissions"}
        attributes = {k: v for k, v in data.items() if k not in reserved}
        return cls(
            id=principal_id,
            role_name=str(role_name) if role_name else None,
            stored_permissions=stored,
            attributes=attributes,
        )

    def as_reference_view(self) -> dict[str, object]:
        """Return the fields that ``$user.<path>`` references may address.

        Role fields are omitted for a principal without a role so that
        ``$user.roleName`` resolves to ``UNDEFINED`` rather than ``None``.
        """
        view: dict[str, object] = dict(self.attributes)
        view["id"] = self.id
        if self.role_name is not None:
            view["roleName"] = self.role_name
            view["role"] = {"name": self.role_name}
        return view


# ---------------------------------------------------------------------------
# Ability
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ability:
    """The immutable, ordered rule set composed for one principal.

    Attributes
    ----------
    rules:
        Rules in composition order: baseline, stored, role overrides.
    principal_id:
        Identifier of the principal the ability was built for, or ``None``
        for an anonymous caller.
    """

    rules: tuple[Rule, ...] = ()
    principal_id: str | int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def can(
        self,
        action: Action | str,
        subject: Subject | str,
        instance: Mapping[str, object] | None = None,
    ) -> bool:
        """Shortcut for :func:`docshare_guard.rules.matcher.can`."""
        from docshare_guard.rules.matcher import can

        return can(self, Action(action), Subject(subject), instance)
