"""validatebag -- Shared primitives."""

from validatebag.primitives.common import (
    HealthStatus,
    InfoPackageType,
    VBBaseModel,
)
from validatebag.primitives.report import RuleViolationEntry, ValidationReport

__all__ = [
    "HealthStatus",
    "InfoPackageType",
    "RuleViolationEntry",
    "VBBaseModel",
    "ValidationReport",
]
