"""
validatebag -- Validation Report

The structured result handed to the serving layer. Field names follow the
JSON contract of the service (camelCase aliases); Python code uses the
snake_case attributes.
"""

from __future__ import annotations

from pydantic import Field, computed_field

from validatebag.primitives.common import InfoPackageType, VBBaseModel


class RuleViolationEntry(VBBaseModel):
    """One (rule number, message) pair in a report."""

    rule_number: str = Field(alias="ruleNumber")
    message: str


class ValidationReport(VBBaseModel):
    """
    Outcome of evaluating the rule catalog against one bag.

    ``is_compliant`` is derived from ``rule_violations`` so the two can never
    disagree.
    """

    bag_uri: str = Field(alias="bagUri")
    bag: str
    info_package_type: InfoPackageType = Field(alias="infoPackageType")
    profile_version: int = Field(alias="profileVersion")
    rule_violations: list[RuleViolationEntry] = Field(
        default_factory=list, alias="ruleViolations"
    )

    @computed_field(alias="isCompliant")  # type: ignore[prop-decorator]
    @property
    def is_compliant(self) -> bool:
        return not self.rule_violations

    def to_json_dict(self) -> dict[str, object]:
        """Serialise with the public field names; violations are always a list."""
        return self.model_dump(mode="json", by_alias=True)

    def to_text(self) -> str:
        lines = [
            f"Bag: {self.bag}",
            f"Bag URI: {self.bag_uri}",
            f"Information package type: {self.info_package_type.value}",
            f"Profile version: {self.profile_version}",
            f"Is compliant: {str(self.is_compliant).lower()}",
        ]
        if self.rule_violations:
            lines.append("Rule violations:")
            for entry in self.rule_violations:
                lines.append(f"  - [{entry.rule_number}] {entry.message}")
        return "\n".join(lines)
