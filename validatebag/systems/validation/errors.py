"""
validatebag -- Validation Error Hierarchy

All exceptions raised within the validation pipeline.

Two tiers must never be mixed:
  RuleViolation outcomes -> expected non-compliance, collected in the report
  ValidationError subclasses -> the request cannot produce a report

Severity guide:
  BagNotFoundError / InvalidInfoPackageTypeError /
  UnsupportedProfileVersionError   INPUT -- caller error, HTTP 400
  DocumentParseError               FATAL -- raised inside a rule, aborts the pass
  RuleEvaluationError              FATAL -- raised by the engine, HTTP 500
"""

from __future__ import annotations


class ValidationError(RuntimeError):
    """Base for all validation pipeline errors."""


class BagNotFoundError(ValidationError):
    """The bag location does not exist or is not a directory."""


class InvalidInfoPackageTypeError(ValidationError, ValueError):
    """The requested information-package type is neither SIP nor AIP."""


class UnsupportedProfileVersionError(ValidationError):
    """The bag declares a profile version no catalog exists for."""


class DocumentParseError(ValidationError):
    """
    A metadata document is missing or is not well-formed XML.

    Raised (again) every time a rule consults the document. The engine turns
    it into a fatal outcome: no compliance statement can be made about a
    document that cannot be read.
    """

    def __init__(self, relative_path: str, reason: str) -> None:
        super().__init__(f"Could not read {relative_path}: {reason}")
        self.relative_path = relative_path
        self.reason = reason


class RuleEvaluationError(ValidationError):
    """
    A rule ended in a fatal outcome and the evaluation was aborted.

    Carries the number of the rule that was being evaluated. No partial report
    is produced.
    """

    def __init__(self, rule_number: str, message: str) -> None:
        super().__init__(f"Rule {rule_number} could not be evaluated: {message}")
        self.rule_number = rule_number
        self.detail = message
