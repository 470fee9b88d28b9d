"""
validatebag -- Rule Type Definitions

The uniform shape of every conformance check: a numbered rule whose check
function maps a TargetBag to exactly one of three outcomes.

  RuleSuccess    the bag satisfies the rule
  RuleViolation  expected non-compliance, reported under the rule number
  RuleFatal      the rule could not reach a verdict (I/O, unreachable store)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from validatebag.primitives.common import InfoPackageType

if TYPE_CHECKING:
    from validatebag.systems.validation.target import TargetBag


# ─── Outcomes ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class RuleSuccess:
    pass


@dataclass(frozen=True)
class RuleViolation:
    message: str


@dataclass(frozen=True)
class RuleFatal:
    message: str
    cause: BaseException | None = field(default=None, compare=False)


RuleOutcome: TypeAlias = RuleSuccess | RuleViolation | RuleFatal
RuleCheck: TypeAlias = Callable[["TargetBag"], RuleOutcome]

SUCCESS = RuleSuccess()


def violation(message: str) -> RuleViolation:
    return RuleViolation(message)


def fatal(message: str, cause: BaseException | None = None) -> RuleFatal:
    return RuleFatal(message, cause)


# ─── Rules ────────────────────────────────────────────────────────

ALL_PACKAGE_TYPES: frozenset[InfoPackageType] = frozenset(InfoPackageType)
AIP_ONLY: frozenset[InfoPackageType] = frozenset({InfoPackageType.AIP})
SUPPORTED_PROFILE_VERSIONS: frozenset[int] = frozenset({0, 1})


@dataclass(frozen=True)
class NumberedRule:
    """
    A catalog entry.

    number:
        Stable, human-facing profile section number, e.g. "1.2.4(a)".
    check:
        The conformance check. Collaborators (schema validators, the bag
        store) are bound into it when the catalog is built.
    info_package_types:
        Package types the rule applies to.
    profile_versions:
        Profile versions the rule applies to.
    depends_on:
        Numbers of rules that must have succeeded in this pass; otherwise the
        rule is skipped and never reported.
    """

    number: str
    check: RuleCheck
    info_package_types: frozenset[InfoPackageType] = ALL_PACKAGE_TYPES
    profile_versions: frozenset[int] = SUPPORTED_PROFILE_VERSIONS
    depends_on: tuple[str, ...] = ()

    def applies_to(self, profile_version: int, info_package_type: InfoPackageType) -> bool:
        return (
            profile_version in self.profile_versions
            and info_package_type in self.info_package_types
        )
