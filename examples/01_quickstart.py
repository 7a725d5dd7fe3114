#!/usr/bin/env python3
"""Example: Quickstart

Declares two protected operations, then decides a few requests against
them.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install docshare-guard
"""
from __future__ import annotations

import docshare_guard as dg


def main() -> None:
    print(f"docshare-guard version: {dg.__version__}")

    registry = dg.RequirementRegistry()
    registry.register(
        "users.update",
        dg.PolicyRequirement(dg.Action.UPDATE, dg.Subject.USER, {"id": "$params.id"}),
    )
    registry.register(
        "settings.update",
        dg.PolicyRequirement(dg.Action.UPDATE, dg.Subject.SYSTEM_SETTING),
        roles=["admin"],
    )
    guard = dg.PolicyGuard(registry=registry)

    alice = dg.Principal(id="u1", role_name="user")
    admin = dg.Principal(id="a1", role_name="admin")

    requests = [
        ("users.update", dg.RequestContext(user=alice, params={"id": "u1"})),
        ("users.update", dg.RequestContext(user=alice, params={"id": "u9"})),
        ("users.update", dg.RequestContext(params={"id": "u1"})),
        ("settings.update", dg.RequestContext(user=alice)),
        ("settings.update", dg.RequestContext(user=admin)),
    ]
    for operation_id, ctx in requests:
        result = guard.evaluate_operation(operation_id, ctx)
        who = ctx.user.id if ctx.user else "anonymous"
        print(f"  {operation_id:<16} {who:<10} -> {result.decision.value} ({result.decision.status_code})")


if __name__ == "__main__":
    main()
