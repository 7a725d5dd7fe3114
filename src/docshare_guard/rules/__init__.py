"""Rule model, ability composition and condition matching.

Example
-------
::

    from docshare_guard.rules import AbilityBuilder, Action, Principal, Subject, can

    ability = AbilityBuilder().build(Principal(id="u1", role_name="user"))
    assert can(ability, Action.UPDATE, Subject.USER, {"id": "u1"})
"""
from __future__ import annotations

from docshare_guard.rules.builder import (
    BASELINE_RULES,
    AbilityBuilder,
    build_ability,
    parse_stored_permissions,
)
from docshare_guard.rules.matcher import ConditionMatcher, can, explain, relevant_rules
from docshare_guard.rules.model import Ability, Action, Permission, Principal, Rule, Subject
from docshare_guard.rules.role_table import (
    DEFAULT_ROLE_TABLE_YAML,
    RoleTable,
    default_role_table,
    load_role_table,
)

__all__ = [
    # Model
    "Ability",
    "Action",
    "Permission",
    "Principal",
    "Rule",
    "Subject",
    # Matching
    "ConditionMatcher",
    "can",
    "explain",
    "relevant_rules",
    # Composition
    "BASELINE_RULES",
    "AbilityBuilder",
    "build_ability",
    "parse_stored_permissions",
    # Role table
    "DEFAULT_ROLE_TABLE_YAML",
    "RoleTable",
    "default_role_table",
    "load_role_table",
]
