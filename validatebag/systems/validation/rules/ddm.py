"""
validatebag -- Descriptive Metadata (DDM) Rules

Checks against metadata/dataset.xml: license, identifiers, rights holder,
DAI check digits, GML geometry, Archis identifiers and URL syntax.

Every check that looks at many items of one kind evaluates them all and
reports them together through collect_results().
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from urllib.parse import SplitResult, urlsplit, urlunsplit

import structlog
from lxml import etree

from validatebag.systems.validation.aggregation import collect_results, number_messages
from validatebag.systems.validation.rules.xmlutil import (
    DCTERMS_NAMESPACE,
    DCX_DAI_NAMESPACE,
    GML_NAMESPACE,
    IDENTIFIER_TYPE_NAMESPACE,
    XSI_TYPE,
    descendants,
    element_children,
    has_xsi_type,
    is_element,
    local_name,
    namespace_of,
    text_of,
)
from validatebag.systems.validation.target import TargetBag
from validatebag.systems.validation.types import SUCCESS, RuleCheck, RuleOutcome, violation

logger = structlog.get_logger()

CC0_LICENSE = "http://creativecommons.org/publicdomain/zero/1.0"
DAI_PREFIX = "info:eu-repo/dai/nl/"
RD_SRS_NAME = "http://www.opengis.net/def/crs/EPSG/0/28992"
ARCHIS_ID_TYPE = "id-type:ARCHIS-ZAAK-IDENTIFICATIE"
ARCHIS_MAX_LENGTH = 10

URL_PROTOCOLS = ("http", "https")

DOI_PATTERN = re.compile(r"^10(\.\d+)+/.+")
DOI_URL_PATTERN = re.compile(r"^((https?://(dx\.)?)?doi\.org/(urn:)?(doi:)?)?10(\.\d+)+/.+")
URN_PATTERN = re.compile(r"^urn:[A-Za-z0-9][A-Za-z0-9-]{0,31}:[a-z0-9()+,\-\\.:=@;$_!*'%/?#]+$")

# Characters that may never appear literally in a URI (RFC 3986).
_ILLEGAL_URI_CHARS = re.compile(r"[\s<>\"{}|\\^`]|%(?![0-9A-Fa-f]{2})")
# Plain decimal notation; no underscores, nan or inf as float() would allow.
_DECIMAL_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


# ─── URI helpers ──────────────────────────────────────────────────


def parse_uri(value: str) -> SplitResult | None:
    """Split ``value`` as a URI reference; None if it is not one."""
    if _ILLEGAL_URI_CHARS.search(value):
        return None
    try:
        parts = urlsplit(value)
        parts.port  # noqa: B018 -- raises ValueError on a malformed port
    except ValueError:
        return None
    return parts


def normalize_license_uri(uri: str) -> str:
    """
    Scheme forced to ``http``, trailing slashes stripped from the path.

    Technically not the same URI any more, but good enough to identify a
    license. Idempotent. Raises ValueError for schemes other than http(s).
    """
    parts = urlsplit(uri)
    if parts.scheme not in URL_PROTOCOLS:
        raise ValueError(
            f"Only http or https license URIs allowed. URI scheme found: {parts.scheme}"
        )
    return urlunsplit(("http", parts.netloc, parts.path.rstrip("/"), parts.query, parts.fragment))


def _dcmi_metadata_children(root: etree._Element, name: str) -> list[etree._Element]:
    return [
        child
        for dcmi in element_children(root, "dcmiMetadata")
        for child in element_children(dcmi, name)
    ]


def _identifiers(root: etree._Element, id_type: str) -> list[str]:
    return [
        text_of(e)
        for e in descendants(root, "identifier")
        if has_xsi_type(e, IDENTIFIER_TYPE_NAMESPACE, id_type)
    ]


# ─── License ──────────────────────────────────────────────────────


def ddm_may_contain_dcterms_license_from_list(allowed_licenses: Iterable[str]) -> RuleCheck:
    """
    At most one ``dcterms:license`` of xsi:type ``dcterms:URI``, and if present
    it must be on the list. ``allowed_licenses`` must already be normalised.
    """
    allowed = frozenset(allowed_licenses)

    def check(t: TargetBag) -> RuleOutcome:
        root = t.ddm().getroot()
        licenses = [
            e for e in _dcmi_metadata_children(root, "license")
            if has_xsi_type(e, DCTERMS_NAMESPACE, "URI")
        ]
        logger.debug("ddm_licenses_found", licenses=[text_of(e) for e in licenses])
        if not licenses:
            return SUCCESS
        if len(licenses) > 1:
            return violation(
                f"Found {len(licenses)} dcterms:license elements. Only one license is allowed."
            )

        license_text = text_of(licenses[0])
        parts = parse_uri(license_text)
        if parts is None:
            return violation("License must be a valid URI")
        if parts.scheme not in URL_PROTOCOLS:
            return violation("License URI must have scheme http or https")
        normalized = normalize_license_uri(license_text)
        if normalized not in allowed:
            return violation(f"Found unknown or unsupported license: {license_text}")
        if normalized != CC0_LICENSE and not _dcmi_metadata_children(root, "rightsHolder"):
            return violation("Valid license found, but no rightsHolder specified")
        return SUCCESS

    return check


# ─── Identifiers ──────────────────────────────────────────────────


def ddm_contains_urn_nbn_identifier(t: TargetBag) -> RuleOutcome:
    urns = _identifiers(t.ddm().getroot(), "URN")
    if not any("urn:nbn" in urn for urn in urns):
        return violation("URN:NBN identifier is missing")
    return SUCCESS


def ddm_doi_identifiers_are_valid(t: TargetBag) -> RuleOutcome:
    dois = _identifiers(t.ddm().getroot(), "DOI")
    logger.debug("ddm_dois_to_check", dois=dois)
    invalid = [doi for doi in dois if not DOI_PATTERN.search(doi)]
    if invalid:
        return violation(f"Invalid DOIs: {', '.join(invalid)}")
    return SUCCESS


def ddm_must_have_rights_holder(t: TargetBag) -> RuleOutcome:
    root = t.ddm().getroot()
    # Any <role> anywhere mentioning rightsholder counts.
    roles = "".join(text_of(e) for e in descendants(root, "role")).lower()
    if "rightsholder" not in roles and not _dcmi_metadata_children(root, "rightsHolder"):
        return violation("No rightsHolder")
    return SUCCESS


# ─── DAI ──────────────────────────────────────────────────────────


def dai_check_digit(digits: str, max_weight: int = 9) -> str:
    """
    Check character of a DAI body.

    Weights run 2, 3, ... ``max_weight`` and back to 2, starting at the least
    significant digit. The weighted sum mod 11 gives the check value; 0 maps to
    '0', 10 to 'X'.
    """
    total = 0
    weight = 2
    for char in reversed(digits):
        total += weight * (ord(char) - ord("0"))
        weight += 1
        if weight > max_weight:
            weight = 2
    remainder = total % 11
    if remainder == 0:
        return "0"
    value = 11 - remainder
    return "X" if value == 10 else str(value)


def is_valid_dai(dai: str) -> bool:
    body = dai.removeprefix(DAI_PREFIX)
    if not body:
        return False
    return dai_check_digit(body[:-1]) == body[-1]


def ddm_dais_are_valid(t: TargetBag) -> RuleOutcome:
    dais = [text_of(e) for e in descendants(t.ddm().getroot(), "DAI", DCX_DAI_NAMESPACE)]
    logger.debug("ddm_dais_to_check", dais=dais)
    invalid = [dai.removeprefix(DAI_PREFIX) for dai in dais if not is_valid_dai(dai)]
    if invalid:
        return violation(f"Invalid DAIs: {', '.join(invalid)}")
    return SUCCESS


# ─── GML ──────────────────────────────────────────────────────────


def validate_pos_list(text: str) -> RuleOutcome:
    """A closed ring: even count, at least 4 pairs, first pair equals last pair."""
    values = text.split()
    offending = f"(Offending posList starts with: {', '.join(values[:10])}...)"
    count = len(values)
    if count % 2 != 0:
        return violation(f"Found posList with odd number of values: {count}. {offending}")
    if count < 8:
        return violation(f"Found posList with too few values (fewer than 4 pairs). {offending}")
    if values[:2] != values[-2:]:
        return violation(f"Found posList with unequal first and last pairs. {offending}")
    return SUCCESS


def ddm_gml_polygon_pos_list_is_well_formed(t: TargetBag) -> RuleOutcome:
    root = t.ddm().getroot()
    pos_lists = [
        pos_list
        for polygon in descendants(root, "Polygon", GML_NAMESPACE)
        for pos_list in descendants(polygon, "posList")
    ]
    return collect_results(validate_pos_list(text_of(p)) for p in pos_lists)


def _validate_multi_surface(multi_surface: etree._Element) -> RuleOutcome:
    srs_names = {
        polygon.get("srsName")
        for polygon in descendants(multi_surface, "Polygon", GML_NAMESPACE)
        if polygon.get("srsName") is not None
    }
    if len(srs_names) > 1:
        return violation("Found MultiSurface element containing polygons with different srsNames")
    return SUCCESS


def polygons_in_same_multi_surface_have_same_srs_name(t: TargetBag) -> RuleOutcome:
    root = t.ddm().getroot()
    return collect_results(
        _validate_multi_surface(ms) for ms in descendants(root, "MultiSurface", GML_NAMESPACE)
    )


def is_valid_rd_range(coordinates: list[float]) -> bool:
    """True if (x, y) lies within the Rijksdriehoek bounding box."""
    x, y = coordinates[0], coordinates[1]
    return -7000 <= x <= 300000 and 289000 <= y <= 629000


def validate_point(value: str, is_rd: bool) -> RuleOutcome:
    value = value.strip()
    parts = value.split()
    if not all(_DECIMAL_PATTERN.match(p) for p in parts):
        return violation(f"Point has non numeric coordinates: {value}")
    coordinates = [float(p) for p in parts]
    if len(coordinates) < 2:
        return violation(f"Point has less than two coordinates: {value}")
    if is_rd and not is_valid_rd_range(coordinates):
        return violation(f"Point is outside RD bounds: {value}")
    return SUCCESS


_POINT_ELEMENTS = frozenset({"Point", "lowerCorner", "upperCorner"})


def points_have_at_least_two_values(t: TargetBag) -> RuleOutcome:
    root = t.ddm().getroot()
    outcomes: list[RuleOutcome] = []
    for spatial in descendants(root, "spatial"):
        is_rd = spatial.get("srsName") == RD_SRS_NAME
        for node in spatial.iter():
            if (
                is_element(node)
                and namespace_of(node) == GML_NAMESPACE
                and local_name(node) in _POINT_ELEMENTS
            ):
                outcomes.append(validate_point(text_of(node), is_rd))
    return collect_results(outcomes)


# ─── Archis ───────────────────────────────────────────────────────


def archis_identifiers_have_at_most_10_characters(t: TargetBag) -> RuleOutcome:
    identifiers = [
        text_of(e)
        for e in descendants(t.ddm().getroot(), "identifier")
        if e.get(XSI_TYPE) == ARCHIS_ID_TYPE
    ]
    too_long = [
        f"Archis identifier must be {ARCHIS_MAX_LENGTH} or fewer characters long: {identifier}"
        for identifier in identifiers
        if len(identifier) > ARCHIS_MAX_LENGTH
    ]
    if too_long:
        return violation(number_messages(too_long))
    return SUCCESS


# ─── URLs, DOIs, URNs ─────────────────────────────────────────────


class UrlKind(enum.Enum):
    URL = "url"
    DOI = "doi"
    URN = "urn"


_URL_TYPES = frozenset({"dcterms:URI", "dcterms:URL", "URI", "URL"})


def validate_url(url: str, attribute: str | None = None) -> RuleOutcome:
    parts = parse_uri(url)
    if parts is None:
        return violation(f"{url} is not a valid URI")
    if parts.scheme not in URL_PROTOCOLS:
        source = f" (value of attribute '{attribute}')" if attribute else ""
        return violation(
            f"protocol '{parts.scheme}' in URI '{url}' is not one of the accepted protocols "
            f"[{','.join(URL_PROTOCOLS)}]{source}"
        )
    return SUCCESS


def validate_doi(doi: str) -> RuleOutcome:
    if DOI_URL_PATTERN.search(doi):
        return SUCCESS
    return violation(f"DOI '{doi}' is not valid")


def validate_urn(urn: str) -> RuleOutcome:
    if URN_PATTERN.search(urn):
        return SUCCESS
    return violation(f"URN '{urn}' is not valid")


def _elements_with_attribute_value(
    root: etree._Element,
    attribute: str,
    values: frozenset[str],
    exclude_if_present: tuple[str, ...] = (),
) -> list[str]:
    return [
        text_of(e)
        for e in root.iter()
        if is_element(e)
        and e.get(attribute) in values
        and not any(e.get(a) is not None for a in exclude_if_present)
    ]


def _attribute_values(elements: Iterable[etree._Element], attribute: str) -> list[str]:
    return [
        node.get(attribute)
        for element in elements
        for node in element.iter()
        if is_element(node) and node.get(attribute) is not None
    ]


def _url_candidates(root: etree._Element) -> list[tuple[UrlKind, str | None, list[str]]]:
    subjects = list(descendants(root, "subject"))
    return [
        (UrlKind.DOI, None, _elements_with_attribute_value(
            root, "scheme", frozenset({"DOI", "id-type:DOI"}), exclude_if_present=("href",))),
        (UrlKind.URN, None, _elements_with_attribute_value(
            root, "scheme", frozenset({"URN", "id-type:URN"}), exclude_if_present=("href",))),
        (UrlKind.URL, "href", _attribute_values([root], "href")),
        (UrlKind.URL, "schemeURI", _attribute_values(subjects, "schemeURI")),
        (UrlKind.URL, "valueURI", _attribute_values(subjects, "valueURI")),
        (UrlKind.URL, None, _elements_with_attribute_value(root, XSI_TYPE, _URL_TYPES)),
        (UrlKind.URL, None, _elements_with_attribute_value(root, "scheme", _URL_TYPES)),
    ]


def all_urls_are_valid(t: TargetBag) -> RuleOutcome:
    outcomes: list[RuleOutcome] = []
    for kind, attribute, values in _url_candidates(t.ddm().getroot()):
        for value in values:
            if kind is UrlKind.DOI:
                outcomes.append(validate_doi(value))
            elif kind is UrlKind.URN:
                outcomes.append(validate_urn(value))
            else:
                outcomes.append(validate_url(value, attribute))
    return collect_results(outcomes)
