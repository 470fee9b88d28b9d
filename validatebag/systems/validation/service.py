"""
validatebag -- Validation Service

Single entry point for validating a bag: resolves the bag location, reads the
declared profile version, builds a fresh TargetBag and runs the catalog.

The service holds only immutable state (the catalog and its bound
collaborators) and a request counter, so one instance serves concurrent
requests.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import structlog

from validatebag.primitives.common import HealthStatus, InfoPackageType
from validatebag.primitives.report import ValidationReport
from validatebag.systems.validation.engine import evaluate
from validatebag.systems.validation.errors import (
    BagNotFoundError,
    InvalidInfoPackageTypeError,
    RuleEvaluationError,
    UnsupportedProfileVersionError,
)
from validatebag.systems.validation.target import TargetBag, profile_version_from_bag_info
from validatebag.systems.validation.types import SUPPORTED_PROFILE_VERSIONS, NumberedRule
from validatebag.telemetry.logging import validation_context

logger = structlog.get_logger()


def bag_dir_from_location(location: str | Path) -> Path:
    """
    Local directory for a ``file:`` URI or a plain path.

    Raises BagNotFoundError for other URI schemes and for locations that are
    not an existing directory.
    """
    if isinstance(location, Path):
        path = location
    else:
        parts = urlsplit(location)
        if parts.scheme == "file":
            path = Path(unquote(parts.path))
        elif parts.scheme and len(parts.scheme) > 1:
            raise BagNotFoundError(f"Bag does not exist: only file: URIs are supported ({location})")
        else:
            path = Path(location)
    if not path.is_dir():
        raise BagNotFoundError(f"Bag does not exist: {location}")
    return path.absolute()


def parse_info_package_type(value: InfoPackageType | str) -> InfoPackageType:
    if isinstance(value, InfoPackageType):
        return value
    try:
        return InfoPackageType.parse(value)
    except ValueError as e:
        raise InvalidInfoPackageTypeError(str(e)) from None


class ValidationService:
    """Validates bags against the DANS BagIt profile."""

    system_id: str = "validation"

    def __init__(self, catalog: list[NumberedRule]) -> None:
        self._catalog = catalog
        self._lock = threading.Lock()
        self._total_validations = 0
        self._total_fatal = 0

    @property
    def catalog(self) -> list[NumberedRule]:
        return self._catalog

    def validate(
        self,
        location: str | Path,
        info_package_type: InfoPackageType | str = InfoPackageType.SIP,
    ) -> ValidationReport:
        """
        Validate one bag. Returns the report for compliant and non-compliant
        bags alike; raises for input errors and fatal rule outcomes.
        """
        package_type = parse_info_package_type(info_package_type)
        bag_dir = bag_dir_from_location(location)
        profile_version = profile_version_from_bag_info(bag_dir)
        if profile_version not in SUPPORTED_PROFILE_VERSIONS:
            raise UnsupportedProfileVersionError(
                f"Profile version {profile_version} is not supported; "
                f"supported versions: {sorted(SUPPORTED_PROFILE_VERSIONS)}"
            )

        target = TargetBag(bag_dir, profile_version)
        bag_uri = location if isinstance(location, str) and location.startswith("file:") else ""
        try:
            with validation_context(bag_dir.name, str(package_type)):
                logger.info("validation_started", profile_version=profile_version)
                report = evaluate(self._catalog, target, package_type, bag_uri=bag_uri)
        except RuleEvaluationError:
            with self._lock:
                self._total_validations += 1
                self._total_fatal += 1
            raise
        with self._lock:
            self._total_validations += 1
        return report

    def health(self) -> dict[str, Any]:
        with self._lock:
            return {
                "status": HealthStatus.HEALTHY if self._catalog else HealthStatus.UNHEALTHY,
                "rule_count": len(self._catalog),
                "total_validations": self._total_validations,
                "total_fatal": self._total_fatal,
            }
