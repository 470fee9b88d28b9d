"""
validatebag -- Rule Engine

Walks a catalog over one TargetBag and builds the report.

  - rules not applicable to the bag's profile version or the requested
    package type are left out entirely
  - a rule runs only if every prerequisite ran and succeeded; otherwise it is
    skipped silently
  - a violation is recorded and marks the rule failed
  - a fatal outcome, or any exception escaping a check, aborts the pass with
    RuleEvaluationError; no partial report is returned
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from validatebag.primitives.common import InfoPackageType
from validatebag.primitives.report import RuleViolationEntry, ValidationReport
from validatebag.systems.validation.errors import RuleEvaluationError
from validatebag.systems.validation.target import TargetBag
from validatebag.systems.validation.types import (
    NumberedRule,
    RuleFatal,
    RuleOutcome,
    RuleSuccess,
    RuleViolation,
)

logger = structlog.get_logger()


def _run(rule: NumberedRule, target: TargetBag) -> RuleOutcome:
    try:
        return rule.check(target)
    except Exception as e:
        logger.error(
            "rule_check_error",
            rule=rule.number,
            bag=target.name,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise RuleEvaluationError(rule.number, str(e)) from e


def evaluate(
    catalog: Iterable[NumberedRule],
    target: TargetBag,
    info_package_type: InfoPackageType,
    bag_uri: str = "",
) -> ValidationReport:
    succeeded: set[str] = set()
    violations: list[RuleViolationEntry] = []
    log = logger.bind(bag=target.name, profile_version=target.profile_version)

    for rule in catalog:
        if not rule.applies_to(target.profile_version, info_package_type):
            continue
        if not all(dep in succeeded for dep in rule.depends_on):
            log.debug("rule_skipped", rule=rule.number, depends_on=list(rule.depends_on))
            continue

        outcome = _run(rule, target)
        match outcome:
            case RuleSuccess():
                succeeded.add(rule.number)
            case RuleViolation(message=message):
                log.debug("rule_violated", rule=rule.number)
                violations.append(RuleViolationEntry(rule_number=rule.number, message=message))
            case RuleFatal(message=message, cause=cause):
                log.error("rule_fatal", rule=rule.number, error=message)
                raise RuleEvaluationError(rule.number, message) from cause

    report = ValidationReport(
        bag_uri=bag_uri or target.bag_dir.as_uri(),
        bag=target.name,
        info_package_type=info_package_type,
        profile_version=target.profile_version,
        rule_violations=violations,
    )
    log.info(
        "bag_evaluated",
        info_package_type=str(info_package_type),
        compliant=report.is_compliant,
        violations=len(violations),
    )
    return report
