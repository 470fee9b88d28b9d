"""
validatebag -- XML Schema Rules

Schema conformance of metadata files. files.xml is only handed to its XSD when
the document element declares the current files namespace; documents in the
legacy (namespace-less) form are checked by the catalog rules in files_xml.py
instead. Which path a bag takes is visible in the report, so the namespace
switch is part of the contract.
"""

from __future__ import annotations

from typing import BinaryIO, Protocol

import structlog

from validatebag.clients.xml_validator import XmlSchemaViolation
from validatebag.systems.validation.rules.xmlutil import FILES_XML_NAMESPACE, namespace_of
from validatebag.systems.validation.target import FILES_XML_FILE, TargetBag, ensure_bag_relative
from validatebag.systems.validation.types import SUCCESS, RuleCheck, RuleOutcome, violation

logger = structlog.get_logger()


class SchemaValidator(Protocol):
    """Minimal interface of a pre-bound XML Schema validator."""

    def validate(self, source: BinaryIO) -> None: ...


def xml_file_conforms_to_schema(
    xml_file: str,
    schema_name: str,
    validator: SchemaValidator,
) -> RuleCheck:
    relative = ensure_bag_relative(xml_file)

    def check(t: TargetBag) -> RuleOutcome:
        with t.resolve(relative).open("rb") as stream:
            try:
                validator.validate(stream)
            except XmlSchemaViolation as e:
                return violation(f"{relative} does not conform to {schema_name}: {e}")
        return SUCCESS

    return check


def xml_file_if_exists_conforms_to_schema(
    xml_file: str,
    schema_name: str,
    validator: SchemaValidator,
) -> RuleCheck:
    relative = ensure_bag_relative(xml_file)
    conforms = xml_file_conforms_to_schema(relative, schema_name, validator)

    def check(t: TargetBag) -> RuleOutcome:
        if not t.exists(relative):
            return SUCCESS
        return conforms(t)

    return check


def files_xml_conforms_to_schema_if_files_namespace_declared(
    validator: SchemaValidator,
) -> RuleCheck:
    conforms = xml_file_conforms_to_schema(FILES_XML_FILE, "files.xml", validator)

    def check(t: TargetBag) -> RuleOutcome:
        root = t.files_xml().getroot()
        if namespace_of(root) == FILES_XML_NAMESPACE:
            logger.debug("files_xml_schema_validation", bag=t.name)
            return conforms(t)
        logger.info(
            "files_xml_schema_skipped",
            bag=t.name,
            reason=f"files.xml does not declare namespace {FILES_XML_NAMESPACE}",
        )
        return SUCCESS

    return check
