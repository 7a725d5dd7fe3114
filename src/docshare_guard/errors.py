"""Exception hierarchy for docshare-guard.

Denials are never exceptions: the guard returns a :class:`Decision`
value for both the unauthenticated and forbidden outcomes.  The classes
below cover configuration faults (fatal at start-up) and the one
recoverable data-quality problem the ability builder handles locally.
"""
from __future__ import annotations


class GuardError(Exception):
    """Base class for all docshare-guard errors."""


class RoleTableError(GuardError, ValueError):
    """Raised when the role override table is malformed.

    This is detected when the table is loaded, so a corrupted table stops
    the process at start-up instead of failing individual requests.
    """


class InvalidReferenceError(GuardError, ValueError):
    """Raised when a requirement declares an unsupported ``$`` reference.

    Attributes
    ----------
    reference:
        The offending reference string, e.g. ``"$session.id"``.
    """

    def __init__(self, message: str, reference: str) -> None:
        self.reference = reference
        super().__init__(message)


class RequirementConfigError(GuardError, ValueError):
    """Raised when a requirement declaration is structurally invalid.

    Attributes
    ----------
    config_path:
        The configuration source that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class MalformedPermissionData(GuardError, ValueError):
    """Raised when a principal's stored permission list has the wrong shape.

    The ability builder catches this, logs it and continues with the
    baseline and role override rules only.
    """
