"""Tests for AbilityBuilder and stored permission parsing."""
from __future__ import annotations

import logging

import pytest

from docshare_guard.errors import MalformedPermissionData
from docshare_guard.rules.builder import (
    BASELINE_RULES,
    AbilityBuilder,
    build_ability,
    parse_stored_permissions,
)
from docshare_guard.rules.model import Action, Principal, Rule, Subject
from docshare_guard.rules.role_table import load_role_table


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def builder() -> AbilityBuilder:
    return AbilityBuilder()


def _user(role: str | None = "user", user_id: str = "u1", stored: object = ()) -> Principal:
    return Principal(id=user_id, role_name=role, stored_permissions=stored)


# ---------------------------------------------------------------------------
# Anonymous and role-less principals
# ---------------------------------------------------------------------------


class TestBaseline:
    def test_anonymous_gets_baseline_only(self, builder: AbilityBuilder) -> None:
        ability = builder.build(None)
        assert ability.rules == BASELINE_RULES
        assert ability.principal_id is None

    def test_anonymous_reads_public_document(self, builder: AbilityBuilder) -> None:
        ability = builder.build(None)
        assert ability.can(Action.READ, Subject.DOCUMENT, {"isPublic": True}) is True

    def test_anonymous_cannot_read_private_document(self, builder: AbilityBuilder) -> None:
        ability = builder.build(None)
        assert ability.can(Action.READ, Subject.DOCUMENT, {"isPublic": False}) is False

    def test_anonymous_reads_categories(self, builder: AbilityBuilder) -> None:
        assert builder.build(None).can(Action.READ, Subject.CATEGORY) is True

    def test_principal_without_role_gets_baseline_only(self, builder: AbilityBuilder) -> None:
        stored = [{"action": "manage", "subject": "all"}]
        ability = builder.build(_user(role=None, stored=stored))
        assert ability.rules == BASELINE_RULES
        assert ability.principal_id == "u1"


# ---------------------------------------------------------------------------
# Role overrides
# ---------------------------------------------------------------------------


class TestRoleOverrides:
    def test_user_deletes_own_document(self, builder: AbilityBuilder) -> None:
        ability = builder.build(_user())
        assert ability.can(Action.DELETE, Subject.DOCUMENT, {"uploaderId": "u1"}) is True

    def test_user_cannot_delete_foreign_document(self, builder: AbilityBuilder) -> None:
        ability = builder.build(_user())
        assert ability.can(Action.DELETE, Subject.DOCUMENT, {"uploaderId": "u2"}) is False

    def test_user_updates_own_profile_only(self, builder: AbilityBuilder) -> None:
        ability = builder.build(_user())
        assert ability.can(Action.UPDATE, Subject.USER, {"id": "u1"}) is True
        assert ability.can(Action.UPDATE, Subject.USER, {"id": "u9"}) is False

    def test_user_downloads_public_approved_document(self, builder: AbilityBuilder) -> None:
        ability = builder.build(_user())
        instance = {"isPublic": True, "isApproved": True, "uploaderId": "u7"}
        assert ability.can(Action.DOWNLOAD, Subject.DOCUMENT, instance) is True

    def test_user_cannot_download_unapproved_foreign_document(
        self, builder: AbilityBuilder
    ) -> None:
        ability = builder.build(_user())
        instance = {"isPublic": True, "isApproved": False, "uploaderId": "u7"}
        assert ability.can(Action.DOWNLOAD, Subject.DOCUMENT, instance) is False

    def test_user_creates_comments_unconditionally(self, builder: AbilityBuilder) -> None:
        assert builder.build(_user()).can(Action.CREATE, Subject.COMMENT) is True

    def test_user_cannot_manage_settings(self, builder: AbilityBuilder) -> None:
        assert builder.build(_user()).can(Action.UPDATE, Subject.SYSTEM_SETTING) is False

    def test_admin_wildcard(self, builder: AbilityBuilder) -> None:
        ability = builder.build(_user(role="admin", user_id="a1"))
        assert ability.can(Action.DELETE, Subject.DOCUMENT, {"uploaderId": "anything"}) is True
        assert ability.can(Action.UPDATE, Subject.SYSTEM_SETTING) is True

    def test_moderator_moderates_comments(self, builder: AbilityBuilder) -> None:
        ability = builder.build(_user(role="moderator", user_id="m1"))
        assert ability.can(Action.MODERATE, Subject.COMMENT) is True
        assert ability.can(Action.APPROVE, Subject.DOCUMENT) is True
        assert ability.can(Action.READ, Subject.NOTIFICATION) is True
        assert ability.can(Action.DELETE, Subject.DOCUMENT, {"uploaderId": "x"}) is False

    def test_unknown_role_gets_baseline_and_stored(self, builder: AbilityBuilder) -> None:
        stored = [{"action": "read", "subject": "Notification"}]
        ability = builder.build(_user(role="auditor", stored=stored))
        assert ability.rules == BASELINE_RULES + (Rule(Action.READ, Subject.NOTIFICATION),)

    def test_rule_order_is_baseline_stored_overrides(self) -> None:
        table = load_role_table("roles:\n  user:\n    - {action: share, subject: Document}\n")
        builder = AbilityBuilder(role_table=table)
        stored = [{"action": "rate", "subject": "Document"}]
        ability = builder.build(_user(stored=stored))
        assert ability.rules == BASELINE_RULES + (
            Rule(Action.RATE, Subject.DOCUMENT),
            Rule(Action.SHARE, Subject.DOCUMENT),
        )


# ---------------------------------------------------------------------------
# Stored permissions
# ---------------------------------------------------------------------------


class TestStoredPermissions:
    def test_stored_conditions_carried_verbatim(self, builder: AbilityBuilder) -> None:
        stored = [{"action": "approve", "subject": "Document", "conditions": {"categoryId": "c1"}}]
        ability = builder.build(_user(role="auditor", stored=stored))
        assert ability.can(Action.APPROVE, Subject.DOCUMENT, {"categoryId": "c1"}) is True
        assert ability.can(Action.APPROVE, Subject.DOCUMENT, {"categoryId": "c2"}) is False

    def test_string_instead_of_list_is_skipped(self, builder: AbilityBuilder) -> None:
        plain = builder.build(_user(stored=()))
        malformed = builder.build(_user(stored="manage all"))
        assert malformed.rules == plain.rules

    def test_malformed_entry_skips_whole_list(self, builder: AbilityBuilder) -> None:
        stored = [{"action": "manage", "subject": "all"}, {"action": "fly", "subject": "User"}]
        ability = builder.build(_user(stored=stored))
        assert ability.can(Action.UPDATE, Subject.SYSTEM_SETTING) is False

    def test_malformed_data_is_logged(
        self, builder: AbilityBuilder, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="docshare_guard.rules.builder"):
            builder.build(_user(stored={"action": "read"}))
        assert "malformed stored permissions" in caplog.text

    def test_parse_none_is_empty(self) -> None:
        assert parse_stored_permissions(None) == []

    def test_parse_rejects_non_list(self) -> None:
        with pytest.raises(MalformedPermissionData):
            parse_stored_permissions("not-a-list")

    def test_parse_rejects_non_mapping_entry(self) -> None:
        with pytest.raises(MalformedPermissionData, match="index 0"):
            parse_stored_permissions(["read Document"])

    def test_build_ability_uses_bundled_table(self) -> None:
        ability = build_ability(_user(role="admin"))
        assert ability.can(Action.SHARE, Subject.FILE) is True
