"""PolicyGuard: turn declared requirements into an allow/deny decision.

For each protected operation the guard runs a single pass:

1. no requirements → ``ALLOWED`` (public operation);
2. no principal → ``DENIED_UNAUTHENTICATED``;
3. build the principal's ability once;
4. for every requirement, resolve its ``$`` references against the
   request context and ask the matcher; the first unsatisfied
   requirement yields ``DENIED_FORBIDDEN``;
5. otherwise ``ALLOWED``.

The guard holds no per-request state and is safe to share across
threads.

Example
-------
::

    guard = PolicyGuard()
    ctx = RequestContext(user=Principal(id="u1", role_name="user"), params={"id": "u1"})
    requirement = PolicyRequirement(Action.UPDATE, Subject.USER, {"id": "$params.id"})
    assert guard.decide([requirement], ctx) is Decision.ALLOWED
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from docshare_guard.guard.decision import Decision, GuardResult
from docshare_guard.guard.requirements import (
    PolicyRequirement,
    RequestContext,
    RequirementRegistry,
)
from docshare_guard.guard.resolver import DynamicReferenceResolver
from docshare_guard.guard.roles import check_roles
from docshare_guard.rules.builder import AbilityBuilder
from docshare_guard.rules.matcher import ConditionMatcher

logger = logging.getLogger(__name__)


class PolicyGuard:
    """Orchestrates ability building, reference resolution and matching.

    Parameters
    ----------
    builder:
        Composes the principal's ability.  Defaults to the bundled role
        table.
    resolver:
        Resolves ``$path`` references in requirement conditions.
    matcher:
        Evaluates requirements against the ability.
    registry:
        Operation table used by :meth:`decide_operation`.
    """

    def __init__(
        self,
        builder: AbilityBuilder | None = None,
        resolver: DynamicReferenceResolver | None = None,
        matcher: ConditionMatcher | None = None,
        registry: RequirementRegistry | None = None,
    ) -> None:
        self._builder = builder or AbilityBuilder()
        self._resolver = resolver or DynamicReferenceResolver()
        self._matcher = matcher or ConditionMatcher()
        self._registry = registry if registry is not None else RequirementRegistry()

    @property
    def registry(self) -> RequirementRegistry:
        return self._registry

    @property
    def builder(self) -> AbilityBuilder:
        return self._builder

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate(
        self,
        requirements: Sequence[PolicyRequirement],
        ctx: RequestContext,
    ) -> GuardResult:
        """Evaluate *requirements* (ANDed) for the request in *ctx*."""
        if not requirements:
            return GuardResult(Decision.ALLOWED, "Operation declares no requirements.")

        if ctx.user is None:
            logger.debug("Denied: %d requirement(s) but no principal", len(requirements))
            return GuardResult(
                Decision.DENIED_UNAUTHENTICATED,
                "Authentication required.",
                failed_requirement=requirements[0],
            )

        ability = self._builder.build(ctx.user)

        for requirement in requirements:
            instance = self._resolver.resolve(requirement.conditions, ctx)
            # A requirement without conditions is a type-level check.
            ok = self._matcher.can(
                ability,
                requirement.action,
                requirement.subject,
                instance if requirement.conditions else None,
            )
            if not ok:
                logger.debug(
                    "Denied principal=%s: requirement [%s] not satisfied",
                    ctx.user.id,
                    requirement,
                )
                return GuardResult(
                    Decision.DENIED_FORBIDDEN,
                    f"Not permitted to {requirement.action.value} "
                    f"{requirement.subject.value}.",
                    failed_requirement=requirement,
                )

        logger.debug(
            "Allowed principal=%s: %d requirement(s) satisfied",
            ctx.user.id,
            len(requirements),
        )
        return GuardResult(Decision.ALLOWED, "All requirements satisfied.")

    def decide(
        self,
        requirements: Sequence[PolicyRequirement],
        ctx: RequestContext,
    ) -> Decision:
        """Return only the :class:`Decision` of :meth:`evaluate`."""
        return self.evaluate(requirements, ctx).decision

    def evaluate_operation(self, operation_id: str, ctx: RequestContext) -> GuardResult:
        """Evaluate a registered operation: role gate first, then requirements."""
        role_decision = check_roles(self._registry.roles_for(operation_id), ctx)
        if role_decision is not Decision.ALLOWED:
            reason = (
                "Authentication required."
                if role_decision is Decision.DENIED_UNAUTHENTICATED
                else f"Requires one of the roles: {', '.join(self._registry.roles_for(operation_id))}."
            )
            return GuardResult(role_decision, reason)
        return self.evaluate(self._registry.requirements_for(operation_id), ctx)

    def decide_operation(self, operation_id: str, ctx: RequestContext) -> Decision:
        """Return the :class:`Decision` for a registered operation."""
        return self.evaluate_operation(operation_id, ctx).decision


_DEFAULT_GUARD = PolicyGuard()


def decide(requirements: Sequence[PolicyRequirement], ctx: RequestContext) -> Decision:
    """Decide with the bundled role table and default collaborators."""
    return _DEFAULT_GUARD.decide(requirements, ctx)
