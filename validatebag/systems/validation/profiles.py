"""
validatebag -- Profile Rule Catalogs

The ordered rule catalog for BagIt profile versions 0 and 1. The catalog is
built once at startup with its collaborators bound in, and shared read-only
by all requests.

Order matters: the engine walks the catalog front to back and a rule only
runs when all of its prerequisites have already succeeded in the same pass.
"""

from __future__ import annotations

from collections.abc import Iterable

from validatebag.systems.validation.rules import (
    bagit,
    ddm,
    files_xml,
    schema,
    sequence,
    structure,
)
from validatebag.systems.validation.target import (
    BAG_INFO_FILE,
    DDM_FILE,
    FILES_XML_FILE,
    PAYLOAD_DIR,
    PROFILE_VERSION_LABEL,
    TargetBag,
)
from validatebag.systems.validation.types import (
    AIP_ONLY,
    NumberedRule,
    RuleCheck,
)

PROFILE_URI_LABEL = "BagIt-Profile-URI"
CREATED_LABEL = "Created"
SHA1_MANIFEST_FILE = "manifest-sha1.txt"
METADATA_DIR = "metadata"
AGREEMENTS_FILE = "metadata/depositor-info/agreements.xml"
MESSAGE_FROM_DEPOSITOR_FILE = "metadata/depositor-info/message-from-depositor.txt"
PROVENANCE_FILE = "metadata/provenance.xml"

PROFILE_URIS: dict[int, str] = {
    0: "doi:10.17026/dans-zf3-q34p",
    1: "doi:10.17026/dans-z52-ybfe",
}

ALLOWED_METADATA_ENTRIES: tuple[str, ...] = (
    "metadata/dataset.xml",
    "metadata/files.xml",
    PROVENANCE_FILE,
    "metadata/pre-staged.csv",
    "metadata/license.txt",
    "metadata/license.pdf",
    "metadata/license.html",
    "metadata/depositor-info",
    "metadata/depositor-info/agreements.xml",
    "metadata/depositor-info/message-from-depositor.txt",
    "metadata/depositor-info/depositor-agreement.pdf",
)

V1_ONLY: frozenset[int] = frozenset({1})


class CatalogError(ValueError):
    """The catalog is inconsistent (duplicate numbers, misordered prerequisites)."""


def _profile_version_value(t: TargetBag) -> str:
    return f"{t.profile_version}.0.0"


def _profile_uri_value(t: TargetBag) -> str:
    return PROFILE_URIS.get(t.profile_version, "")


def check_catalog(catalog: Iterable[NumberedRule]) -> list[NumberedRule]:
    """
    Verify rule numbers are unique and every prerequisite precedes its
    dependent. Returns the catalog as a list.
    """
    rules = list(catalog)
    seen: set[str] = set()
    for rule in rules:
        if rule.number in seen:
            raise CatalogError(f"Duplicate rule number: {rule.number}")
        missing = [dep for dep in rule.depends_on if dep not in seen]
        if missing:
            raise CatalogError(
                f"Rule {rule.number} depends on {', '.join(missing)}, "
                "which must precede it in the catalog"
            )
        seen.add(rule.number)
    return rules


def build_catalog(
    allowed_licenses: Iterable[str],
    ddm_validator: schema.SchemaValidator,
    files_validator: schema.SchemaValidator,
    bag_store: sequence.BagStore,
    agreements_validator: schema.SchemaValidator | None = None,
    provenance_validator: schema.SchemaValidator | None = None,
) -> list[NumberedRule]:
    """Assemble the rule catalog with its collaborators bound in."""

    def rule(
        number: str,
        check: RuleCheck,
        *depends_on: str,
        info_package_types=None,
        profile_versions=None,
    ) -> NumberedRule:
        kwargs = {}
        if info_package_types is not None:
            kwargs["info_package_types"] = info_package_types
        if profile_versions is not None:
            kwargs["profile_versions"] = profile_versions
        return NumberedRule(number, check, depends_on=depends_on, **kwargs)

    catalog: list[NumberedRule] = [
        # ── BagIt ──
        rule("1.1.1", bagit.bag_is_valid),
        rule("1.1.2", structure.contains_dir(PAYLOAD_DIR)),
        # ── bag-info.txt ──
        rule("1.2.1", structure.contains_file(BAG_INFO_FILE)),
        rule("1.2.2(a)", structure.bag_info_contains_at_most_one_of(PROFILE_VERSION_LABEL), "1.2.1"),
        rule(
            "1.2.2(b)",
            structure.bag_info_element_if_exists_has_value(
                PROFILE_VERSION_LABEL, _profile_version_value
            ),
            "1.2.2(a)",
        ),
        rule("1.2.3(a)", structure.bag_info_contains_at_most_one_of(PROFILE_URI_LABEL), "1.2.1"),
        rule(
            "1.2.3(b)",
            structure.bag_info_element_if_exists_has_value(PROFILE_URI_LABEL, _profile_uri_value),
            "1.2.3(a)",
        ),
        rule("1.2.4(a)", structure.bag_info_contains_exactly_one_of(CREATED_LABEL), "1.2.1"),
        rule("1.2.4(b)", structure.bag_info_created_element_is_iso8601_date, "1.2.4(a)"),
        rule("1.2.5", structure.bag_info_contains_at_most_one_of(sequence.IS_VERSION_OF), "1.2.1"),
        rule(
            "1.2.6(a)",
            structure.bag_info_contains_exactly_one_of(sequence.USER_ACCOUNT),
            "1.2.1",
            info_package_types=AIP_ONLY,
        ),
        # ── Manifests ──
        rule("1.3.1(a)", structure.contains_file(SHA1_MANIFEST_FILE), info_package_types=AIP_ONLY),
        rule(
            "1.3.1(b)",
            bagit.bag_sha1_payload_manifest_contains_all_payload_files,
            "1.1.1",
            "1.3.1(a)",
            info_package_types=AIP_ONLY,
        ),
        # ── Metadata directory ──
        rule("2.1", structure.contains_dir(METADATA_DIR)),
        rule("2.2(a)", structure.contains_file(DDM_FILE), "2.1"),
        rule("2.2(b)", structure.contains_file(FILES_XML_FILE), "2.1"),
        rule(
            "2.5",
            structure.contains_nothing_else_than(METADATA_DIR, ALLOWED_METADATA_ENTRIES),
            "2.1",
        ),
        # ── dataset.xml ──
        rule("3.1.1", schema.xml_file_conforms_to_schema(DDM_FILE, "DANS dataset metadata schema", ddm_validator), "2.2(a)"),
        rule("3.1.2", ddm.ddm_may_contain_dcterms_license_from_list(allowed_licenses), "3.1.1"),
        rule("3.1.3(a)", ddm.ddm_contains_urn_nbn_identifier, "3.1.1", info_package_types=AIP_ONLY),
        rule("3.1.3(b)", ddm.ddm_doi_identifiers_are_valid, "3.1.1"),
        rule("3.1.4", ddm.ddm_dais_are_valid, "3.1.1"),
        rule("3.1.5", ddm.ddm_gml_polygon_pos_list_is_well_formed, "3.1.1"),
        rule("3.1.6", ddm.polygons_in_same_multi_surface_have_same_srs_name, "3.1.1"),
        rule("3.1.7", ddm.points_have_at_least_two_values, "3.1.1"),
        rule("3.1.8", ddm.archis_identifiers_have_at_most_10_characters, "3.1.1"),
        rule("3.1.9", ddm.all_urls_are_valid, "3.1.1"),
        rule("3.1.10", ddm.ddm_must_have_rights_holder, "3.1.1", profile_versions=V1_ONLY),
        # ── files.xml ──
        rule("3.2.1", schema.files_xml_conforms_to_schema_if_files_namespace_declared(files_validator), "2.2(b)"),
        rule("3.2.2", files_xml.files_xml_has_document_element_files, "3.2.1"),
        rule("3.2.3", files_xml.files_xml_has_only_files, "3.2.2"),
        rule("3.2.4", files_xml.files_xml_file_elements_all_have_filepath_attribute, "3.2.3"),
        rule(
            "3.2.5(a)",
            files_xml.files_xml_no_duplicates_and_matches_with_payload_plus_pre_staged_files,
            "3.2.4",
        ),
        rule(
            "3.2.5(b)",
            files_xml.files_xml_file_elements_in_original_file_paths,
            "3.2.4",
            profile_versions=V1_ONLY,
        ),
        rule("3.2.6", files_xml.files_xml_all_files_have_format, "3.2.2"),
        rule("3.2.7", files_xml.files_xml_files_have_only_allowed_namespaces, "3.2.2"),
        rule("3.2.8", files_xml.files_xml_files_have_only_allowed_access_rights, "3.2.2"),
    ]

    # ── Depositor info ──
    if agreements_validator is not None:
        catalog.append(rule(
            "3.3.1",
            schema.xml_file_if_exists_conforms_to_schema(
                AGREEMENTS_FILE, "Agreements metadata schema", agreements_validator
            ),
            "2.1",
        ))
    catalog.append(
        rule("3.4.1", structure.optional_file_is_utf8_decodable(MESSAGE_FROM_DEPOSITOR_FILE), "2.1")
    )
    if provenance_validator is not None:
        catalog.append(rule(
            "3.5.1",
            schema.xml_file_if_exists_conforms_to_schema(
                PROVENANCE_FILE, "DANS provenance schema", provenance_validator
            ),
            "2.1",
        ))

    # ── Is-Version-Of ──
    catalog.extend([
        rule("4.1(a)", sequence.bag_info_is_version_of_if_exists_is_valid, "1.2.5"),
        rule("4.1(b)", sequence.bag_info_is_version_of_points_to_archived_bag(bag_store), "4.1(a)"),
        rule(
            "4.1(c)",
            sequence.store_same_as_in_archived_bag(bag_store),
            "4.1(b)",
            info_package_types=AIP_ONLY,
        ),
        rule(
            "4.1(d)",
            sequence.user_same_as_in_archived_bag(bag_store),
            "4.1(c)",
            "1.2.6(a)",
            info_package_types=AIP_ONLY,
        ),
    ])

    return check_catalog(catalog)
