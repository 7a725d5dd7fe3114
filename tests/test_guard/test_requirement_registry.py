"""Tests for PolicyRequirement, RequestContext and RequirementRegistry."""
from __future__ import annotations

import pytest

from docshare_guard.errors import InvalidReferenceError, RequirementConfigError
from docshare_guard.guard.requirements import (
    PolicyRequirement,
    RequestContext,
    RequirementRegistry,
)
from docshare_guard.rules.model import Action, Principal, Subject


@pytest.fixture()
def registry() -> RequirementRegistry:
    return RequirementRegistry()


class TestPolicyRequirement:
    def test_from_dict(self) -> None:
        requirement = PolicyRequirement.from_dict(
            {"action": "update", "subject": "User", "conditions": {"id": "$params.id"}}
        )
        assert requirement.action is Action.UPDATE
        assert requirement.subject is Subject.USER
        assert requirement.references() == ["$params.id"]

    def test_from_dict_without_conditions(self) -> None:
        requirement = PolicyRequirement.from_dict({"action": "read", "subject": "Bookmark"})
        assert dict(requirement.conditions) == {}
        assert requirement.references() == []

    def test_unknown_action_raises(self) -> None:
        with pytest.raises(ValueError):
            PolicyRequirement.from_dict({"action": "obliterate", "subject": "User"})

    def test_str(self) -> None:
        requirement = PolicyRequirement(Action.DELETE, Subject.BOOKMARK, {"userId": "$user.id"})
        assert str(requirement) == "delete Bookmark where userId='$user.id'"


class TestRequestContext:
    def test_from_dict_with_user_record(self) -> None:
        ctx = RequestContext.from_dict(
            {"user": {"id": "u1", "role": {"name": "user"}}, "params": {"id": "u1"}}
        )
        assert ctx.user is not None
        assert ctx.user.role_name == "user"
        assert ctx.params["id"] == "u1"
        assert dict(ctx.query) == {}

    def test_from_dict_anonymous(self) -> None:
        assert RequestContext.from_dict({}).user is None

    def test_from_dict_rejects_unsupported_user(self) -> None:
        with pytest.raises(TypeError):
            RequestContext.from_dict({"user": "u1"})

    def test_mappings_are_read_only(self) -> None:
        ctx = RequestContext(params={"id": "1"})
        with pytest.raises(TypeError):
            ctx.params["id"] = "2"  # type: ignore[index]

    def test_reference_root(self) -> None:
        ctx = RequestContext(user=Principal(id="u1", role_name="user"))
        root = ctx.as_reference_root()
        assert set(root) == {"user", "params", "query", "body"}
        assert root["user"]["id"] == "u1"  # type: ignore[index]


class TestRequirementRegistry:
    def test_register_and_lookup(self, registry: RequirementRegistry) -> None:
        requirement = PolicyRequirement(Action.UPDATE, Subject.USER, {"id": "$params.id"})
        registry.register("users.update", requirement)
        assert registry.requirements_for("users.update") == (requirement,)
        assert "users.update" in registry
        assert len(registry) == 1

    def test_unknown_operation_is_public(self, registry: RequirementRegistry) -> None:
        assert registry.requirements_for("health") == ()
        assert registry.roles_for("health") == ()

    def test_roles_registered(self, registry: RequirementRegistry) -> None:
        registry.register("roles.list", roles=["admin"])
        assert registry.roles_for("roles.list") == ("admin",)

    def test_duplicate_registration_rejected(self, registry: RequirementRegistry) -> None:
        registry.register("docs.read", PolicyRequirement(Action.READ, Subject.DOCUMENT))
        with pytest.raises(RequirementConfigError, match="already registered"):
            registry.register("docs.read")

    def test_invalid_reference_rejected_at_registration(
        self, registry: RequirementRegistry
    ) -> None:
        requirement = PolicyRequirement(Action.READ, Subject.USER, {"id": "$param.id"})
        with pytest.raises(InvalidReferenceError):
            registry.register("users.read", requirement)
        assert "users.read" not in registry

    def test_restricted_roots(self) -> None:
        registry = RequirementRegistry(reference_roots=["user", "params"])
        requirement = PolicyRequirement(Action.READ, Subject.USER, {"id": "$query.id"})
        with pytest.raises(InvalidReferenceError):
            registry.register("users.read", requirement)

    def test_operations_sorted(self, registry: RequirementRegistry) -> None:
        registry.register("b")
        registry.register("a")
        assert registry.operations == ["a", "b"]


class TestRegistryLoadFromDict:
    def test_loads_operations(self, registry: RequirementRegistry) -> None:
        registry.load_from_dict(
            {
                "users.update": {
                    "requirements": [
                        {"action": "update", "subject": "User", "conditions": {"id": "$params.id"}}
                    ]
                },
                "settings.read": {
                    "roles": ["admin"],
                    "requirements": [{"action": "read", "subject": "SystemSetting"}],
                },
            }
        )
        assert len(registry) == 2
        assert registry.roles_for("settings.read") == ("admin",)

    def test_bad_reference_wrapped(self, registry: RequirementRegistry) -> None:
        with pytest.raises(RequirementConfigError, match="users.update") as exc_info:
            registry.load_from_dict(
                {
                    "users.update": {
                        "requirements": [
                            {"action": "update", "subject": "User", "conditions": {"id": "$session.id"}}
                        ]
                    }
                },
                config_path="guard.yaml",
            )
        assert exc_info.value.config_path == "guard.yaml"

    def test_bad_subject_wrapped(self, registry: RequirementRegistry) -> None:
        with pytest.raises(RequirementConfigError, match="invalid"):
            registry.load_from_dict({"x": {"requirements": [{"action": "read", "subject": "Invoice"}]}})

    def test_requirements_must_be_list(self, registry: RequirementRegistry) -> None:
        with pytest.raises(RequirementConfigError, match="must be a list"):
            registry.load_from_dict({"x": {"requirements": {"action": "read"}}})

    def test_entry_must_be_mapping(self, registry: RequirementRegistry) -> None:
        with pytest.raises(RequirementConfigError, match="mapping"):
            registry.load_from_dict({"x": ["read"]})  # type: ignore[dict-item]
