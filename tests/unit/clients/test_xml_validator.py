"""
Tests for XmlSchemaValidator with a small XSD written to tmp_path.
"""

from __future__ import annotations

import io
from pathlib import Path

import httpx
import pytest

from validatebag.clients.xml_validator import (
    SchemaLoadError,
    XmlSchemaValidator,
    XmlSchemaViolation,
)

XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="agreements">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="depositor" type="xs:string"/>
        <xs:element name="signed" type="xs:date"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

VALID = b"<agreements><depositor>user001</depositor><signed>2018-03-22</signed></agreements>"


@pytest.fixture
def validator(tmp_path: Path) -> XmlSchemaValidator:
    xsd = tmp_path / "agreements.xsd"
    xsd.write_text(XSD, encoding="utf-8")
    return XmlSchemaValidator.from_location(xsd, name="agreements")


class TestValidate:
    def test_valid_bytes(self, validator: XmlSchemaValidator):
        assert validator.validate(VALID) is None

    def test_valid_stream(self, validator: XmlSchemaValidator):
        assert validator.validate(io.BytesIO(VALID)) is None

    def test_valid_path(self, validator: XmlSchemaValidator, tmp_path: Path):
        doc = tmp_path / "agreements.xml"
        doc.write_bytes(VALID)
        assert validator.validate(doc) is None

    def test_invalid_reports_first_error(self, validator: XmlSchemaValidator):
        doc = b"<agreements>\n<signed>yesterday</signed>\n</agreements>"
        with pytest.raises(XmlSchemaViolation) as exc:
            validator.validate(doc)
        message = str(exc.value)
        assert message.startswith("line 2: ")
        assert "signed" in message

    def test_not_well_formed(self, validator: XmlSchemaValidator):
        with pytest.raises(XmlSchemaViolation):
            validator.validate(b"<agreements><depositor></agreements>")

    def test_reusable_after_failure(self, validator: XmlSchemaValidator):
        with pytest.raises(XmlSchemaViolation):
            validator.validate(b"<other/>")
        assert validator.validate(VALID) is None


class TestFromLocation:
    def test_missing_schema(self, tmp_path: Path):
        with pytest.raises(SchemaLoadError, match="Could not load schema"):
            XmlSchemaValidator.from_location(tmp_path / "missing.xsd")

    def test_not_a_schema(self, tmp_path: Path):
        bogus = tmp_path / "bogus.xsd"
        bogus.write_text("<notaschema/>", encoding="utf-8")
        with pytest.raises(SchemaLoadError):
            XmlSchemaValidator.from_location(bogus, name="bogus")

    def test_name_kept(self, validator: XmlSchemaValidator):
        assert validator.name == "agreements"


# ── Schemas served over http ──────────────────────────────────────

MAIN_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns:c="http://example.org/common"
           targetNamespace="http://example.org/main"
           elementFormDefault="qualified">
  <xs:import namespace="http://example.org/common" schemaLocation="common.xsd"/>
  <xs:element name="dataset">
    <xs:complexType>
      <xs:sequence>
        <xs:element ref="c:title"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

COMMON_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           targetNamespace="http://example.org/common"
           elementFormDefault="qualified">
  <xs:element name="title" type="xs:string"/>
</xs:schema>
"""

DATASET = (
    b'<dataset xmlns="http://example.org/main" xmlns:c="http://example.org/common">'
    b"<c:title>T</c:title></dataset>"
)


def _make_transport(files: dict[str, str], requested: list[str]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        body = files.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body.encode("utf-8"))

    return httpx.MockTransport(handler)


class TestRemoteSchema:
    def test_schema_and_import_fetched(self):
        requested: list[str] = []
        transport = _make_transport({"/main.xsd": MAIN_XSD, "/common.xsd": COMMON_XSD}, requested)
        validator = XmlSchemaValidator.from_location(
            "http://schemas.test/main.xsd", name="main", transport=transport
        )
        assert requested == ["http://schemas.test/main.xsd", "http://schemas.test/common.xsd"]
        assert validator.validate(DATASET) is None

    def test_imported_declarations_enforced(self):
        transport = _make_transport({"/main.xsd": MAIN_XSD, "/common.xsd": COMMON_XSD}, [])
        validator = XmlSchemaValidator.from_location(
            "http://schemas.test/main.xsd", transport=transport
        )
        with pytest.raises(XmlSchemaViolation):
            validator.validate(
                b'<dataset xmlns="http://example.org/main" xmlns:c="http://example.org/common">'
                b"<c:subtitle>T</c:subtitle></dataset>"
            )

    def test_local_schema_with_remote_import(self, tmp_path: Path):
        main = tmp_path / "main.xsd"
        remote_import = MAIN_XSD.replace(
            'schemaLocation="common.xsd"', 'schemaLocation="http://schemas.test/common.xsd"'
        )
        main.write_text(remote_import, encoding="utf-8")
        transport = _make_transport({"/common.xsd": COMMON_XSD}, [])
        validator = XmlSchemaValidator.from_location(main, transport=transport)
        assert validator.validate(DATASET) is None

    def test_not_found(self):
        transport = _make_transport({}, [])
        with pytest.raises(SchemaLoadError, match="unexpected status 404"):
            XmlSchemaValidator.from_location(
                "http://schemas.test/main.xsd", name="ddm", transport=transport
            )

    def test_missing_import(self):
        transport = _make_transport({"/main.xsd": MAIN_XSD}, [])
        with pytest.raises(SchemaLoadError, match="Could not load schema"):
            XmlSchemaValidator.from_location("http://schemas.test/main.xsd", transport=transport)
