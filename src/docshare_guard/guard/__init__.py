"""Request-time authorization: requirements, reference resolution, decisions."""
from __future__ import annotations

from docshare_guard.guard.decision import Decision, GuardResult
from docshare_guard.guard.policy_guard import PolicyGuard, decide
from docshare_guard.guard.requirements import (
    PolicyRequirement,
    RequestContext,
    RequirementRegistry,
)
from docshare_guard.guard.resolver import DynamicReferenceResolver, lookup, resolve
from docshare_guard.guard.roles import ADMIN_ONLY, ADMIN_OR_USER, USER_ONLY, check_roles

__all__ = [
    "Decision",
    "GuardResult",
    "PolicyGuard",
    "decide",
    "PolicyRequirement",
    "RequestContext",
    "RequirementRegistry",
    "DynamicReferenceResolver",
    "lookup",
    "resolve",
    "ADMIN_ONLY",
    "ADMIN_OR_USER",
    "USER_ONLY",
    "check_roles",
]
