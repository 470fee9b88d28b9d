"""
validatebag -- Common Primitives

Shared enums and base classes used across the service.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel


# ─── Enums ────────────────────────────────────────────────────────


class InfoPackageType(enum.StrEnum):
    """The two compliance profiles a bag can be validated against."""

    SIP = "SIP"  # Submission Information Package
    AIP = "AIP"  # Archival Information Package

    @classmethod
    def parse(cls, value: str) -> InfoPackageType:
        """Strict, case-sensitive lookup. Raises ValueError on anything else."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"invalid InfoPackageType '{value}'") from None


class HealthStatus(enum.StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


# ─── Base Models ──────────────────────────────────────────────────


class VBBaseModel(BaseModel):
    """Base model for all validatebag primitives."""

    model_config = {"populate_by_name": True}
