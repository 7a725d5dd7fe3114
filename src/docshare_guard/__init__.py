"""docshare-guard: Attribute-based access control for document sharing services.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import docshare_guard as dg
>>> dg.__version__
'0.1.0'
>>> ctx = dg.RequestContext(user=dg.Principal(id="u1", role_name="user"), params={"id": "u1"})
>>> requirement = dg.PolicyRequirement("update", "User", {"id": "$params.id"})
>>> dg.decide([requirement], ctx)
<Decision.ALLOWED: 'allowed'>
"""
from __future__ import annotations

__version__: str = "0.1.0"

from docshare_guard.convenience import abilities_for, can_principal

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from docshare_guard.errors import (
    GuardError,
    InvalidReferenceError,
    MalformedPermissionData,
    RequirementConfigError,
    RoleTableError,
)

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
from docshare_guard.rules.model import Ability, Action, Permission, Principal, Rule, Subject
from docshare_guard.rules.matcher import ConditionMatcher, can
from docshare_guard.rules.builder import AbilityBuilder, build_ability
from docshare_guard.rules.role_table import RoleTable, default_role_table, load_role_table

# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------
from docshare_guard.references import UNDEFINED
from docshare_guard.guard.decision import Decision, GuardResult
from docshare_guard.guard.requirements import (
    PolicyRequirement,
    RequestContext,
    RequirementRegistry,
)
from docshare_guard.guard.resolver import DynamicReferenceResolver, resolve
from docshare_guard.guard.policy_guard import PolicyGuard, decide
from docshare_guard.guard.roles import check_roles

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from docshare_guard.config.loader import ConfigLoader, GuardConfig, build_guard

__all__ = [
    "__version__",
    "abilities_for",
    "can_principal",
    # Errors
    "GuardError",
    "InvalidReferenceError",
    "MalformedPermissionData",
    "RequirementConfigError",
    "RoleTableError",
    # Rules
    "Ability",
    "AbilityBuilder",
    "Action",
    "ConditionMatcher",
    "Permission",
    "Principal",
    "RoleTable",
    "Rule",
    "Subject",
    "build_ability",
    "can",
    "default_role_table",
    "load_role_table",
    # Guard
    "Decision",
    "DynamicReferenceResolver",
    "GuardResult",
    "PolicyGuard",
    "PolicyRequirement",
    "RequestContext",
    "RequirementRegistry",
    "UNDEFINED",
    "check_roles",
    "decide",
    "resolve",
    # Configuration
    "ConfigLoader",
    "GuardConfig",
    "build_guard",
]
