"""
validatebag -- files.xml Rules

Structural and completeness checks on metadata/files.xml. When the document
element is in the current files namespace, the structural checks that the XSD
already enforces are skipped here.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

import structlog
from lxml import etree

from validatebag.systems.validation.aggregation import collect_results
from validatebag.systems.validation.rules.xmlutil import (
    DC_NAMESPACE,
    DCTERMS_NAMESPACE,
    FILES_XML_NAMESPACE,
    display_name,
    element_children,
    local_name,
    namespace_of,
    text_of,
)
from validatebag.systems.validation.target import TargetBag
from validatebag.systems.validation.types import SUCCESS, RuleOutcome, violation

logger = structlog.get_logger()

ALLOWED_FILE_CHILD_NAMESPACES = frozenset({DC_NAMESPACE, DCTERMS_NAMESPACE})
ALLOWED_ACCESS_RIGHTS = ("ANONYMOUS", "RESTRICTED_REQUEST", "NONE")


def _file_elements(root: etree._Element) -> list[etree._Element]:
    return element_children(root, "file")


def _format_set(paths: Iterable[str]) -> str:
    return "{" + ", ".join(sorted(paths)) + "}"


# ─── Structure ────────────────────────────────────────────────────


def files_xml_has_document_element_files(t: TargetBag) -> RuleOutcome:
    if local_name(t.files_xml().getroot()) != "files":
        return violation("files.xml: document element must be 'files'")
    return SUCCESS


def files_xml_has_only_files(t: TargetBag) -> RuleOutcome:
    root = t.files_xml().getroot()
    if namespace_of(root) == FILES_XML_NAMESPACE:
        logger.debug("files_xml_rule_covered_by_schema", rule="files_xml_has_only_files")
        return SUCCESS
    non_files = [child for child in element_children(root) if local_name(child) != "file"]
    if non_files:
        names = ", ".join(display_name(e) for e in non_files)
        return violation(
            "files.xml: children of document element must only be 'file'. "
            f"Found non-file elements: {names}"
        )
    return SUCCESS


def files_xml_file_elements_all_have_filepath_attribute(t: TargetBag) -> RuleOutcome:
    missing = [f for f in _file_elements(t.files_xml().getroot()) if f.get("filepath") is None]
    if missing:
        return violation(f"{len(missing)} 'file' element(s) don't have a 'filepath' attribute")
    return SUCCESS


def files_xml_file_elements_in_original_file_paths(t: TargetBag) -> RuleOutcome:
    """Every filepath must be an original path listed in original-filepaths.txt (if present)."""
    mapping = t.original_to_physical_paths()
    if mapping is None:
        return SUCCESS
    filepaths = {
        f.get("filepath")
        for f in _file_elements(t.files_xml().getroot())
        if f.get("filepath") is not None
    }
    unknown = sorted(filepaths - mapping.keys())
    if unknown:
        return violation(
            f"{len(unknown)} 'filepath' attributes are not found in 'original-filepaths.txt' "
            f"{', '.join(unknown)}."
        )
    return SUCCESS


# ─── Completeness ─────────────────────────────────────────────────


def files_xml_no_duplicates_and_matches_with_payload_plus_pre_staged_files(
    t: TargetBag,
) -> RuleOutcome:
    """
    The filepaths in files.xml are unique and equal payload + pre-staged files.

    Skipped for bags with original-filepaths.txt; those are checked by
    files_xml_file_elements_in_original_file_paths instead.
    """
    if t.has_original_filepaths_file:
        return SUCCESS

    listed = [f.get("filepath", "") for f in _file_elements(t.files_xml().getroot())]
    duplicates = {path for path, n in Counter(listed).items() if n > 1}
    in_files_xml = set(listed)
    payload = set(t.payload_paths())
    pre_staged = set(t.pre_staged_paths())
    expected = payload | pre_staged

    if not duplicates and in_files_xml == expected:
        return SUCCESS

    def only_in(name: str, left: set[str], right: set[str]) -> str:
        diff = left - right
        return f"only in {name}: {_format_set(diff)}" if diff else ""

    message = ""
    if duplicates:
        message += f"   - Duplicate filepaths found: {_format_set(duplicates)}\n"
    if in_files_xml != expected:
        message += (
            "   - Filepaths in files.xml not equal to files found in data folder. Difference - "
            f"{only_in('bag', payload, in_files_xml)} "
            f"{only_in('pre-staged.csv', pre_staged, in_files_xml)} "
            f"{only_in('files.xml', in_files_xml, expected)}"
        )
    logger.debug(
        "files_xml_mismatch",
        bag=t.name,
        duplicates=len(duplicates),
        only_in_bag=len(payload - in_files_xml),
        only_in_files_xml=len(in_files_xml - expected),
    )
    return violation(f"files.xml: errors in filepath-attributes:\n{message}")


# ─── File children ────────────────────────────────────────────────


def files_xml_all_files_have_format(t: TargetBag) -> RuleOutcome:
    for f in _file_elements(t.files_xml().getroot()):
        has_format = any(
            local_name(child) == "format" and namespace_of(child) == DCTERMS_NAMESPACE
            for child in element_children(f)
        )
        if not has_format:
            return violation("files.xml: not all <file> elements contain a <dcterms:format>")
    return SUCCESS


def files_xml_files_have_only_allowed_namespaces(t: TargetBag) -> RuleOutcome:
    root = t.files_xml().getroot()
    if namespace_of(root) == FILES_XML_NAMESPACE:
        logger.debug(
            "files_xml_rule_covered_by_schema",
            rule="files_xml_files_have_only_allowed_namespaces",
        )
        return SUCCESS
    for f in _file_elements(root):
        for child in element_children(f):
            if namespace_of(child) not in ALLOWED_FILE_CHILD_NAMESPACES:
                return violation("files.xml: non-dc/dcterms elements found in some file elements")
    return SUCCESS


def _validate_access_rights(file_element: etree._Element, rights: etree._Element) -> RuleOutcome:
    value = text_of(rights)
    if value in ALLOWED_ACCESS_RIGHTS:
        return SUCCESS
    return violation(
        f"files.xml: invalid access rights '{value}' in accessRights element for file: "
        f"'{file_element.get('filepath', '')}' (allowed values {', '.join(ALLOWED_ACCESS_RIGHTS)})"
    )


def files_xml_files_have_only_allowed_access_rights(t: TargetBag) -> RuleOutcome:
    return collect_results(
        _validate_access_rights(f, rights)
        for f in _file_elements(t.files_xml().getroot())
        for rights in element_children(f, "accessRights")
    )
