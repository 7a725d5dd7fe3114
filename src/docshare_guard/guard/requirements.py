"""Policy requirements, request context and the operation registry.

Operations declare, at registration time, the requirements a caller must
satisfy.  Requirements are looked up by operation id at request time;
an operation with no entry is public.

Example
-------
::

    registry = RequirementRegistry()
    registry.register(
        "users.update",
        PolicyRequirement(Action.UPDATE, Subject.USER, {"id": "$params.id"}),
    )
    registry.requirements_for("users.update")
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from docshare_guard.errors import InvalidReferenceError, RequirementConfigError
from docshare_guard.references import (
    DEFAULT_REFERENCE_ROOTS,
    is_reference,
    validate_reference,
)
from docshare_guard.rules.model import Action, Principal, Subject, freeze_mapping

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# PolicyRequirement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicyRequirement:
    """One ``{action, subject, conditions?}`` requirement of an operation.

    Condition values are literals or ``$``-prefixed references resolved
    against the request context at decision time.
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
    def from_dict(cls, data: Mapping[str, object]) -> PolicyRequirement:
        """Build a requirement from ``{"action", "subject", "conditions"?}``.

        Raises
        ------
        ValueError
            If the action or subject is unknown or ``conditions`` is not a
            mapping.
        """
        conditions = data.get("conditions")
        if conditions is not None and not isinstance(conditions, Mapping):
            raise ValueError(f"Requirement conditions must be a mapping; got {conditions!r}.")
        return cls(
            action=Action(data.get("action")),
            subject=Subject(data.get("subject")),
            conditions=conditions or {},  # type: ignore[arg-type]
        )

    def references(self) -> list[str]:
        """Return the dynamic references among the condition values."""
        return [v for v in self.conditions.values() if is_reference(v)]  # type: ignore[misc]

    def __str__(self) -> str:
        text = f"{self.action.value} {self.subject.value}"
        if self.conditions:
            pairs = ", ".join(f"{k}={v!r}" for k, v in self.conditions.items())
            text = f"{text} where {pairs}"
        return text


# ---------------------------------------------------------------------------
# RequestContext
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestContext:
    """Read-only view of the request used to resolve references."""

    user: Principal | None = None
    params: Mapping[str, object] = field(default_factory=dict)
    query: Mapping[str, object] = field(default_factory=dict)
    body: Mapping[str, object] = field(default_factory=dict)

    # Request mappings are read-only mappings, so instances are unhashable.
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        for name in ("params", "query", "body"):
            object.__setattr__(self, name, freeze_mapping(getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> RequestContext:
        """Build a context from ``{"user"?, "params"?, "query"?, "body"?}``.

        ``user`` may be a :class:`Principal`, a user record mapping or
        ``None``.
        """
        user = data.get("user")
        if isinstance(user, Mapping):
            user = Principal.from_dict(user)
        elif user is not None and not isinstance(user, Principal):
            raise TypeError(f"Unsupported user value: {user!r}")
        return cls(
            user=user,
            params=data.get("params") or {},  # type: ignore[arg-type]
            query=data.get("query") or {},  # type: ignore[arg-type]
            body=data.get("body") or {},  # type: ignore[arg-type]
        )

    def as_reference_root(self) -> dict[str, object]:
        """Return the nested mapping that ``$path`` references are walked through."""
        return {
            "user": self.user.as_reference_view() if self.user is not None else None,
            "params": self.params,
            "query": self.query,
            "body": self.body,
        }


# ---------------------------------------------------------------------------
# RequirementRegistry
# ---------------------------------------------------------------------------


class RequirementRegistry:
    """Explicit table of operation id to requirements and required roles.

    References are validated when an operation is registered, so a typo
    such as ``"$param.id"`` fails at start-up instead of silently denying
    every request.

    Parameters
    ----------
    reference_roots:
        Top-level context keys references may start with.
    """

    def __init__(self, reference_roots: Iterable[str] = DEFAULT_REFERENCE_ROOTS) -> None:
        self._reference_roots = frozenset(reference_roots)
        self._requirements: dict[str, tuple[PolicyRequirement, ...]] = {}
        self._roles: dict[str, tuple[str, ...]] = {}

    def register(
        self,
        operation_id: str,
        *requirements: PolicyRequirement,
        roles: Iterable[str] = (),
    ) -> None:
        """Register the requirements (and optionally roles) of an operation.

        Raises
        ------
        RequirementConfigError
            If *operation_id* is already registered.
        InvalidReferenceError
            If any requirement references an unsupported root.
        """
        if operation_id in self._requirements:
            raise RequirementConfigError(f"Operation {operation_id!r} is already registered.")

        for requirement in requirements:
            for reference in requirement.references():
                validate_reference(reference, self._reference_roots)

        self._requirements[operation_id] = tuple(requirements)
        role_names = tuple(roles)
        if role_names:
            self._roles[operation_id] = role_names
        logger.debug(
            "Registered operation %s with %d requirement(s), roles=%s",
            operation_id,
            len(requirements),
            list(role_names),
        )

    def requirements_for(self, operation_id: str) -> tuple[PolicyRequirement, ...]:
        """Return the requirements of *operation_id*; ``()`` means public."""
        return self._requirements.get(operation_id, ())

    def roles_for(self, operation_id: str) -> tuple[str, ...]:
        """Return the role names required by *operation_id*, if any."""
        return self._roles.get(operation_id, ())

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._requirements

    def __len__(self) -> int:
        return len(self._requirements)

    @property
    def operations(self) -> list[str]:
        return sorted(self._requirements)

    def load_from_dict(
        self,
        operations: Mapping[str, Mapping[str, object]],
        config_path: str | None = None,
    ) -> None:
        """Register every operation of a ``{op_id: {requirements, roles}}`` mapping.

        Raises
        ------
        RequirementConfigError
            If an entry is malformed or references an unsupported root.
        """
        for operation_id, entry in operations.items():
            if not isinstance(entry, Mapping):
                raise RequirementConfigError(
                    f"Operation {operation_id!r} must be a mapping.", config_path
                )
            raw_requirements = entry.get("requirements", [])
            if not isinstance(raw_requirements, list):
                raise RequirementConfigError(
                    f"Operation {operation_id!r}: 'requirements' must be a list.",
                    config_path,
                )
            try:
                requirements = [PolicyRequirement.from_dict(r) for r in raw_requirements]
                self.register(
                    operation_id,
                    *requirements,
                    roles=[str(r) for r in entry.get("roles", []) or []],  # type: ignore[union-attr]
                )
            except InvalidReferenceError as exc:
                raise RequirementConfigError(
                    f"Operation {operation_id!r}: {exc}", config_path
                ) from exc
            except RequirementConfigError:
                raise
            except (ValueError, TypeError, AttributeError) as exc:
                raise RequirementConfigError(
                    f"Operation {operation_id!r} is invalid: {exc}", config_path
                ) from exc

        logger.info(
            "Loaded %d protected operation(s) from %s",
            len(operations),
            config_path or "<dict>",
        )
