"""Decision values returned by the guard."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from docshare_guard.guard.requirements import PolicyRequirement


class Decision(str, Enum):
    """Outcome of an authorization check."""

    ALLOWED = "allowed"
    DENIED_UNAUTHENTICATED = "denied_unauthenticated"
    DENIED_FORBIDDEN = "denied_forbidden"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOWED

    @property
    def status_code(self) -> int:
        """HTTP status the request layer conventionally maps this to."""
        return _STATUS_CODES[self]


_STATUS_CODES: dict[Decision, int] = {
    Decision.ALLOWED: 200,
    Decision.DENIED_UNAUTHENTICATED: 401,
    Decision.DENIED_FORBIDDEN: 403,
}


@dataclass(frozen=True)
class GuardResult:
    """Immutable result of a guard evaluation.

    Attributes
    ----------
    decision:
        The outcome.
    reason:
        Human-readable explanation of the outcome.
    failed_requirement:
        The first requirement that was not satisfied, or ``None``.
    """

    decision: Decision
    reason: str
    failed_requirement: PolicyRequirement | None = None

    def __bool__(self) -> bool:
        """Return True if the request is allowed."""
        return self.decision is Decision.ALLOWED
