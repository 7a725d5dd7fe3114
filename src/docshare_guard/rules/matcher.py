"""Evaluate an action on a subject (and optional instance) against an Ability.

A rule is a candidate when its subject is the requested subject or
``all`` and its action is the requested action or ``manage``.  A
candidate without conditions is satisfied outright; otherwise every
condition must equal the corresponding attribute of the instance.  Rules
are ORed: the first satisfied candidate allows the request.

Example
-------
>>> ability = Ability((Rule(Action.READ, Subject.DOCUMENT, {"isPublic": True}),))
>>> can(ability, Action.READ, Subject.DOCUMENT, {"isPublic": True})
True
>>> can(ability, Action.READ, Subject.DOCUMENT, {"isPublic": False})
False
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from docshare_guard.rules.model import Ability, Action, Rule, Subject

logger = logging.getLogger(__name__)


def _subject_matches(rule: Rule, subject: Subject) -> bool:
    return rule.subject is subject or rule.subject is Subject.ALL


def _action_matches(rule: Rule, action: Action) -> bool:
    return rule.action is action or rule.action is Action.MANAGE


def values_equal(actual: object, expected: object) -> bool:
    """Strict equality: booleans only ever equal booleans.

    ``1 == True`` holds in Python, so ``{"isPublic": True}`` would
    otherwise accept an instance storing ``1`` or ``1.0``.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


def conditions_satisfied(
    conditions: Mapping[str, object],
    instance: Mapping[str, object] | None,
) -> bool:
    """Return True when *instance* carries every condition value.

    Empty conditions are always satisfied.  A missing attribute never
    matches, not even a ``None`` condition value.
    """
    if not conditions:
        return True
    if instance is None:
        return False
    for key, expected in conditions.items():
        if key not in instance:
            return False
        if not values_equal(instance[key], expected):
            return False
    return True


def relevant_rules(ability: Ability, action: Action, subject: Subject) -> list[Rule]:
    """Return the rules of *ability* that apply to (action, subject)."""
    return [
        rule
        for rule in ability.rules
        if _subject_matches(rule, subject) and _action_matches(rule, action)
    ]


def explain(
    ability: Ability,
    action: Action,
    subject: Subject,
    instance: Mapping[str, object] | None = None,
) -> Rule | None:
    """Return the first rule that allows the request, or ``None``."""
    for rule in relevant_rules(ability, action, subject):
        if conditions_satisfied(rule.conditions, instance):
            return rule
    return None


def can(
    ability: Ability,
    action: Action,
    subject: Subject,
    instance: Mapping[str, object] | None = None,
) -> bool:
    """Decide whether *ability* permits *action* on *subject*.

    Parameters
    ----------
    ability:
        The composed rule set.
    action:
        The requested action.
    subject:
        The requested subject kind.
    instance:
        Attributes of the targeted record, or ``None`` for a type-level
        check.  Conditional rules never match a ``None`` instance.

    Returns
    -------
    bool
    """
    matched = explain(ability, action, subject, instance)
    if matched is None:
        logger.debug(
            "No rule allows %s on %s for principal=%s",
            action.value,
            subject.value,
            ability.principal_id,
        )
        return False
    logger.debug(
        "Allowed %s on %s for principal=%s by rule [%s]",
        action.value,
        subject.value,
        ability.principal_id,
        matched,
    )
    return True


class ConditionMatcher:
    """Object wrapper around :func:`can` for injection into the guard."""

    def can(
        self,
        ability: Ability,
        action: Action,
        subject: Subject,
        instance: Mapping[str, object] | None = None,
    ) -> bool:
        return can(ability, action, subject, instance)

    def explain(
        self,
        ability: Ability,
        action: Action,
        subject: Subject,
        instance: Mapping[str, object] | None = None,
    ) -> Rule | None:
        return explain(ability, action, subject, instance)
