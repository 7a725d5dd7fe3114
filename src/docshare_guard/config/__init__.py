"""Configuration models and loader for docshare-guard."""
from __future__ import annotations

from docshare_guard.config.loader import (
    ConfigLoader,
    GuardConfig,
    OperationSpec,
    RequirementSpec,
    build_guard,
    build_registry,
)

__all__ = [
    "ConfigLoader",
    "GuardConfig",
    "OperationSpec",
    "RequirementSpec",
    "build_guard",
    "build_registry",
]
