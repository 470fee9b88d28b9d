"""
Tests for ValidationService -- end-to-end over the full catalog.

Bags are built on disk with bagit-python; schema validators and the bag store
are mocked so no network access is needed.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import bagit
import pytest

from validatebag.primitives.common import HealthStatus, InfoPackageType
from validatebag.systems.validation.errors import (
    BagNotFoundError,
    InvalidInfoPackageTypeError,
    RuleEvaluationError,
    UnsupportedProfileVersionError,
)
from validatebag.systems.validation.profiles import build_catalog
from validatebag.systems.validation.service import (
    ValidationService,
    bag_dir_from_location,
    parse_info_package_type,
)

CC0 = "http://creativecommons.org/publicdomain/zero/1.0"

DATASET_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<ddm:DDM xmlns:ddm="http://easy.dans.knaw.nl/schemas/md/ddm/"
         xmlns:dc="http://purl.org/dc/elements/1.1/"
         xmlns:dcterms="http://purl.org/dc/terms/"
         xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <ddm:profile>
    <dc:title>Opgraving Kerkplein</dc:title>
  </ddm:profile>
  <ddm:dcmiMetadata>
    <dcterms:license xsi:type="dcterms:URI">{CC0}/</dcterms:license>
  </ddm:dcmiMetadata>
</ddm:DDM>
"""

FILES_XML = """<?xml version="1.0" encoding="UTF-8"?>
<files xmlns:dcterms="http://purl.org/dc/terms/">
  <file filepath="data/report.txt"><dcterms:format>text/plain</dcterms:format></file>
  <file filepath="data/images/site.png"><dcterms:format>image/png</dcterms:format></file>
</files>
"""


# ── Fixtures ────────────────────────────────────────────────────────────────


def _make_bag(tmp_path: Path, bag_info: dict[str, str] | None = None) -> Path:
    bag_dir = tmp_path / "bag"
    (bag_dir / "images").mkdir(parents=True)
    (bag_dir / "report.txt").write_text("Excavation report", encoding="utf-8")
    (bag_dir / "images" / "site.png").write_bytes(b"\x89PNG fake")
    info = {"Created": "2018-03-22T21:43:01.000+01:00"}
    info.update(bag_info or {})
    bagit.make_bag(str(bag_dir), bag_info=info, checksums=["sha256"])

    metadata = bag_dir / "metadata"
    metadata.mkdir()
    (metadata / "dataset.xml").write_text(DATASET_XML, encoding="utf-8")
    (metadata / "files.xml").write_text(FILES_XML, encoding="utf-8")
    return bag_dir


def _make_service(bag_store: MagicMock | None = None) -> ValidationService:
    catalog = build_catalog(
        allowed_licenses=[CC0],
        ddm_validator=MagicMock(),
        files_validator=MagicMock(),
        bag_store=bag_store or MagicMock(),
        agreements_validator=MagicMock(),
    )
    return ValidationService(catalog)


def _numbers(report) -> list[str]:
    return [entry.rule_number for entry in report.rule_violations]


# ─── End to end ───────────────────────────────────────────────────


class TestValidate:
    def test_compliant_sip(self, tmp_path: Path):
        report = _make_service().validate(_make_bag(tmp_path))
        assert report.rule_violations == []
        assert report.is_compliant
        assert report.info_package_type == InfoPackageType.SIP
        assert report.profile_version == 0
        assert report.bag == "bag"

    def test_same_bag_as_aip(self, tmp_path: Path):
        report = _make_service().validate(_make_bag(tmp_path), "AIP")
        assert _numbers(report) == ["1.2.6(a)", "1.3.1(a)", "3.1.3(a)"]
        assert report.rule_violations[0].message == (
            "bag-info.txt must contain exactly one 'EASY-User-Account' element; number found: 0"
        )

    def test_missing_payload_file_in_files_xml(self, tmp_path: Path):
        bag_dir = _make_bag(tmp_path)
        (bag_dir / "metadata" / "files.xml").write_text(
            FILES_XML.replace(
                '  <file filepath="data/images/site.png"><dcterms:format>image/png</dcterms:format></file>\n',
                "",
            ),
            encoding="utf-8",
        )
        report = _make_service().validate(bag_dir)
        assert _numbers(report) == ["3.2.5(a)"]
        assert "only in bag: {data/images/site.png}" in report.rule_violations[0].message

    def test_missing_metadata_dir_skips_metadata_rules(self, tmp_path: Path):
        bag_dir = _make_bag(tmp_path)
        for name in ("dataset.xml", "files.xml"):
            (bag_dir / "metadata" / name).unlink()
        (bag_dir / "metadata").rmdir()
        report = _make_service().validate(bag_dir)
        assert _numbers(report) == ["2.1"]

    def test_file_uri_location(self, tmp_path: Path):
        bag_dir = _make_bag(tmp_path)
        uri = bag_dir.as_uri()
        report = _make_service().validate(uri)
        assert report.bag_uri == uri
        assert report.is_compliant

    def test_is_version_of_looked_up(self, tmp_path: Path):
        store = MagicMock()
        store.bag_exists.return_value = False
        bag_dir = _make_bag(
            tmp_path, {"Is-Version-Of": "urn:uuid:75fc6989-1e0f-4c7a-b49d-2e7a7c3d5a11"}
        )
        report = _make_service(store).validate(bag_dir)
        assert _numbers(report) == ["4.1(b)"]

    def test_store_failure_aborts(self, tmp_path: Path):
        store = MagicMock()
        store.bag_exists.side_effect = OSError("connection refused")
        bag_dir = _make_bag(
            tmp_path, {"Is-Version-Of": "urn:uuid:75fc6989-1e0f-4c7a-b49d-2e7a7c3d5a11"}
        )
        service = _make_service(store)
        with pytest.raises(RuleEvaluationError) as exc:
            service.validate(bag_dir)
        assert exc.value.rule_number == "4.1(b)"
        assert service.health()["total_fatal"] == 1


# ─── Input errors ─────────────────────────────────────────────────


class TestInputErrors:
    def test_nonexistent_bag(self, tmp_path: Path):
        with pytest.raises(BagNotFoundError, match="Bag does not exist"):
            _make_service().validate(tmp_path / "nope")

    def test_invalid_package_type(self, tmp_path: Path):
        with pytest.raises(InvalidInfoPackageTypeError, match="invalid InfoPackageType 'DIP'"):
            _make_service().validate(_make_bag(tmp_path), "DIP")

    def test_unsupported_profile_version(self, tmp_path: Path):
        bag_dir = _make_bag(tmp_path, {"BagIt-Profile-Version": "7.0.0"})
        with pytest.raises(UnsupportedProfileVersionError):
            _make_service().validate(bag_dir)


class TestBagDirFromLocation:
    def test_plain_path(self, tmp_path: Path):
        assert bag_dir_from_location(str(tmp_path)) == tmp_path.absolute()

    def test_file_uri_with_escapes(self, tmp_path: Path):
        bag_dir = tmp_path / "my bag"
        bag_dir.mkdir()
        assert bag_dir_from_location(bag_dir.as_uri()) == bag_dir.absolute()

    def test_http_uri_rejected(self):
        with pytest.raises(BagNotFoundError, match="only file: URIs are supported"):
            bag_dir_from_location("http://example.org/bags/1")

    def test_file_is_not_a_bag(self, tmp_path: Path):
        file = tmp_path / "bag.zip"
        file.write_bytes(b"PK")
        with pytest.raises(BagNotFoundError):
            bag_dir_from_location(file)


class TestParseInfoPackageType:
    def test_case_sensitive(self):
        assert parse_info_package_type("AIP") == InfoPackageType.AIP
        with pytest.raises(InvalidInfoPackageTypeError):
            parse_info_package_type("aip")


# ─── Health ───────────────────────────────────────────────────────


class TestHealth:
    def test_counts_validations(self, tmp_path: Path):
        service = _make_service()
        service.validate(_make_bag(tmp_path))
        health = service.health()
        assert health["status"] == HealthStatus.HEALTHY
        assert health["rule_count"] == len(service.catalog)
        assert health["total_validations"] == 1
        assert health["total_fatal"] == 0

    def test_empty_catalog_unhealthy(self):
        health = ValidationService([]).health()
        assert health["status"] == HealthStatus.UNHEALTHY
        assert health["rule_count"] == 0

    def test_only_two_states(self):
        assert [status.value for status in HealthStatus] == ["healthy", "unhealthy"]
