"""validatebag -- Validation: rule catalog, engine and service."""

from validatebag.systems.validation.engine import evaluate
from validatebag.systems.validation.profiles import build_catalog
from validatebag.systems.validation.service import ValidationService
from validatebag.systems.validation.target import TargetBag

__all__ = [
    "TargetBag",
    "ValidationService",
    "build_catalog",
    "evaluate",
]
