"""Guard configuration loader with Pydantic v2 validation.

Loads a ``guard.yaml`` file into a typed :class:`GuardConfig` and
assembles a ready-to-use :class:`PolicyGuard` from it.

Schema
------
::

    version: "1"
    role_table_path: ./roles.yaml      # optional, bundled table otherwise
    reference_roots: [user, params, query, body]
    operations:
      users.update:
        requirements:
          - action: update
            subject: User
            conditions: {id: $params.id}
      settings.read:
        roles: [admin]
        requirements:
          - {action: read, subject: SystemSetting}

Example
-------
>>> config = ConfigLoader().load(Path("guard.yaml"))
>>> guard = build_guard(config)
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from docshare_guard.guard.policy_guard import PolicyGuard
from docshare_guard.guard.requirements import RequirementRegistry
from docshare_guard.references import DEFAULT_REFERENCE_ROOTS
from docshare_guard.rules.builder import AbilityBuilder
from docshare_guard.rules.role_table import load_role_table

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1", "1.0"])


class RequirementSpec(BaseModel):
    """One declared requirement of an operation."""

    model_config = {"extra": "forbid"}

    action: str
    subject: str
    conditions: dict[str, object] = Field(default_factory=dict)


class OperationSpec(BaseModel):
    """Requirements and required roles of one operation."""

    model_config = {"extra": "forbid"}

    requirements: list[RequirementSpec] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)


class GuardConfig(BaseModel):
    """Top-level guard configuration.  All sections are optional."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    role_table_path: Path | None = Field(default=None)
    reference_roots: list[str] = Field(
        default_factory=lambda: sorted(DEFAULT_REFERENCE_ROOTS)
    )
    operations: dict[str, OperationSpec] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, value: object) -> str:
        value = str(value)
        if value not in _SUPPORTED_VERSIONS:
            raise ValueError(
                f"Unsupported config version {value!r}. Supported: {sorted(_SUPPORTED_VERSIONS)}"
            )
        return value

    @field_validator("reference_roots")
    @classmethod
    def validate_reference_roots(cls, values: list[str]) -> list[str]:
        unknown = set(values) - DEFAULT_REFERENCE_ROOTS
        if unknown:
            raise ValueError(
                f"Unknown reference roots {sorted(unknown)}. "
                f"Valid: {sorted(DEFAULT_REFERENCE_ROOTS)}"
            )
        return values


def _parse_yaml(yaml_content: str, source: str) -> dict[str, object]:
    try:
        return yaml.safe_load(yaml_content) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"[{source}] Failed to parse guard config: {exc}") from exc


class ConfigLoader:
    """Loads and validates guard YAML configuration.

    Example
    -------
    >>> loader = ConfigLoader()
    >>> config = loader.load(Path("guard.yaml"))
    """

    def load(self, config_path: Path) -> GuardConfig:
        """Load and validate a guard YAML file.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ValueError:
            When the file is not valid YAML or fails Pydantic validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Guard config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw = _parse_yaml(fh.read(), source=str(config_path))

        config = GuardConfig.model_validate(raw)
        # Relative role table paths are relative to the config file.
        if config.role_table_path is not None and not config.role_table_path.is_absolute():
            config.role_table_path = config_path.parent / config.role_table_path
        logger.info("Loaded guard config from %s", config_path)
        return config

    def load_string(self, yaml_content: str) -> GuardConfig:
        """Load and validate a YAML string directly."""
        raw = _parse_yaml(yaml_content, source="<string>")
        return GuardConfig.model_validate(raw)

    def defaults(self) -> GuardConfig:
        """Return a config with every field at its default."""
        return GuardConfig()


def build_registry(config: GuardConfig, config_path: str | None = None) -> RequirementRegistry:
    """Build the operation registry declared by *config*.

    Raises
    ------
    RequirementConfigError
        If an operation has an unknown action/subject or a bad reference.
    """
    registry = RequirementRegistry(reference_roots=config.reference_roots)
    registry.load_from_dict(
        {name: op.model_dump() for name, op in config.operations.items()},
        config_path=config_path,
    )
    return registry


def build_guard(config: GuardConfig, config_path: str | None = None) -> PolicyGuard:
    """Assemble a :class:`PolicyGuard` from *config*.

    Raises
    ------
    RoleTableError
        If a custom role table is configured and is malformed.
    RequirementConfigError
        If an operation declaration is invalid.
    """
    builder: AbilityBuilder | None = None
    if config.role_table_path is not None:
        table_path = Path(config.role_table_path)
        table = load_role_table(table_path.read_text(encoding="utf-8"), source=str(table_path))
        builder = AbilityBuilder(role_table=table)

    return PolicyGuard(builder=builder, registry=build_registry(config, config_path))
