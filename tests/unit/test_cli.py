"""Tests for the docshare-guard CLI."""
from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from docshare_guard.cli.main import cli

_CONFIG_YAML = textwrap.dedent(
    """\
    version: "1"
    operations:
      users.update:
        requirements:
          - action: update
            subject: User
            conditions: {id: $params.id}
    """
)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "guard.yaml"
    path.write_text(_CONFIG_YAML, encoding="utf-8")
    return path


class TestVersionAndRules:
    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "docshare-guard" in result.output

    def test_rules_anonymous(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["rules"])
        assert result.exit_code == 0
        assert "Total rules: 3" in result.output

    def test_rules_for_admin(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["rules", "--role", "admin", "--user-id", "a1"])
        assert result.exit_code == 0
        assert "manage" in result.output


class TestCheckCommand:
    def test_allowed_exits_zero(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            [
                "check", "--action", "delete", "--subject", "Document",
                "--instance", json.dumps({"uploaderId": "u1"}),
                "--role", "user", "--user-id", "u1",
            ],
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output

    def test_denied_exits_one(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            [
                "check", "--action", "delete", "--subject", "Document",
                "--instance", json.dumps({"uploaderId": "u2"}),
                "--role", "user", "--user-id", "u1",
            ],
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output

    def test_invalid_instance_json(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["check", "--action", "read", "--subject", "Document", "--instance", "{oops"]
        )
        assert result.exit_code == 2

    def test_unknown_action_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["check", "--action", "fly", "--subject", "Document"])
        assert result.exit_code != 0


class TestDecideCommand:
    def test_allowed(self, runner: CliRunner, config_file: Path) -> None:
        context = {"user": {"id": "u1", "role": {"name": "user"}}, "params": {"id": "u1"}}
        result = runner.invoke(
            cli,
            ["decide", "-c", str(config_file), "-o", "users.update", "-x", json.dumps(context)],
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output
        assert "200" in result.output

    def test_forbidden(self, runner: CliRunner, config_file: Path) -> None:
        context = {"user": {"id": "u1", "role": {"name": "user"}}, "params": {"id": "u9"}}
        result = runner.invoke(
            cli,
            ["decide", "-c", str(config_file), "-o", "users.update", "-x", json.dumps(context)],
        )
        assert result.exit_code == 1
        assert "forbidden" in result.output
        assert "403" in result.output

    def test_unauthenticated(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["decide", "-c", str(config_file), "-o", "users.update"])
        assert result.exit_code == 1
        assert "401" in result.output


class TestValidateCommand:
    def test_valid_config(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["validate", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "users.update" in result.output

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "guard.yaml"
        path.write_text(
            "operations:\n  x:\n    requirements:\n      - {action: read, subject: User, conditions: {id: $session.id}}\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["validate", "-c", str(path)])
        assert result.exit_code == 1

    def test_yaml_syntax_error_reported(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "guard.yaml"
        path.write_text("operations: [unclosed", encoding="utf-8")
        result = runner.invoke(cli, ["validate", "-c", str(path)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_missing_role_table_reported(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "guard.yaml"
        path.write_text("role_table_path: nope.yaml\n", encoding="utf-8")
        result = runner.invoke(cli, ["validate", "-c", str(path)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_decide_with_broken_config_exits_two(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "guard.yaml"
        path.write_text("operations: [unclosed", encoding="utf-8")
        result = runner.invoke(cli, ["decide", "-c", str(path), "-o", "users.update"])
        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)
