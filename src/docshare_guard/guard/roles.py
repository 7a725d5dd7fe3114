"""Role-name gate for operations restricted to specific roles."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from docshare_guard.guard.decision import Decision
from docshare_guard.guard.requirements import RequestContext

logger = logging.getLogger(__name__)

ADMIN_ONLY: tuple[str, ...] = ("admin",)
USER_ONLY: tuple[str, ...] = ("user",)
ADMIN_OR_USER: tuple[str, ...] = ("admin", "user")


def check_roles(required_roles: Iterable[str], ctx: RequestContext) -> Decision:
    """Allow only principals whose role name is in *required_roles*.

    An empty role list allows everyone.  A missing principal is
    unauthenticated; a principal without a listed role is forbidden.
    """
    roles = tuple(required_roles)
    if not roles:
        return Decision.ALLOWED
    if ctx.user is None:
        return Decision.DENIED_UNAUTHENTICATED
    if ctx.user.role_name not in roles:
        logger.debug(
            "Role gate denied principal=%s role=%s required=%s",
            ctx.user.id,
            ctx.user.role_name,
            list(roles),
        )
        return Decision.DENIED_FORBIDDEN
    return Decision.ALLOWED
