"""
validatebag -- XML Schema Validator

Wraps a pre-bound lxml XMLSchema. One instance per schema is shared by all
requests; validation is serialised behind a lock because lxml schema objects
are not documented as safe for concurrent use.

Schemas are usually published over http(s). libxml2 does not fetch network
resources, so the XSD and every http(s) ``xs:import`` / ``xs:include`` are
downloaded with httpx and handed to lxml through a resolver.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, BinaryIO
from urllib.parse import urlsplit

import httpx
import structlog
from lxml import etree

logger = structlog.get_logger()

_HTTP_SCHEMES = ("http", "https")


class XmlSchemaViolation(Exception):
    """The document is not well-formed or does not satisfy the schema."""


class SchemaLoadError(RuntimeError):
    """The XSD itself could not be loaded or compiled."""


def _is_http_url(location: str) -> bool:
    return urlsplit(location).scheme in _HTTP_SCHEMES


def _fetch(client: httpx.Client, url: str) -> bytes:
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        raise SchemaLoadError(f"GET {url} failed: {e}") from e
    if response.status_code != httpx.codes.OK:
        raise SchemaLoadError(f"GET {url} returned unexpected status {response.status_code}")
    return response.content


class _HttpSchemaResolver(etree.Resolver):
    """Serves http(s) imports and includes of a schema through httpx."""

    def __init__(self, client: httpx.Client) -> None:
        super().__init__()
        self._client = client

    def resolve(self, system_url: str | None, public_id: str | None, context: Any) -> Any:
        if not system_url or not _is_http_url(system_url):
            return None
        try:
            content = _fetch(self._client, system_url)
        except SchemaLoadError as e:
            # libxml2 then reports the unresolvable import itself.
            logger.warning("xml_schema_import_failed", url=system_url, error=str(e))
            return None
        logger.debug("xml_schema_import_fetched", url=system_url, size=len(content))
        return self.resolve_string(content, context, base_url=system_url)


class XmlSchemaValidator:
    """Validates XML documents against one XML Schema."""

    def __init__(self, schema: etree.XMLSchema, name: str = "") -> None:
        self._schema = schema
        self._lock = threading.Lock()
        self.name = name

    @classmethod
    def from_location(
        cls,
        location: str | Path,
        name: str = "",
        timeout_s: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> XmlSchemaValidator:
        """
        Load and compile an XSD from a file path or an http(s) URL.

        Imports and includes in the XSD are resolved relative to ``location``;
        http(s) ones are fetched with the same client as the XSD itself.
        """
        source = str(location)
        logger.info("xml_schema_loading", schema=name, location=source)
        with httpx.Client(timeout=timeout_s, transport=transport, follow_redirects=True) as client:
            parser = etree.XMLParser(resolve_entities=False)
            parser.resolvers.add(_HttpSchemaResolver(client))
            try:
                if _is_http_url(source):
                    root = etree.fromstring(_fetch(client, source), parser, base_url=source)
                    doc = root.getroottree()
                else:
                    doc = etree.parse(source, parser)
                schema = etree.XMLSchema(doc)
            except (
                SchemaLoadError,
                OSError,
                etree.XMLSyntaxError,
                etree.XMLSchemaParseError,
            ) as e:
                raise SchemaLoadError(f"Could not load schema {name or source}: {e}") from e
        return cls(schema, name=name)

    def validate(self, source: BinaryIO | bytes | str | Path) -> None:
        """
        Validate ``source``; returns None on success.

        Raises XmlSchemaViolation with the first schema (or syntax) error
        message. Read errors on ``source`` propagate unchanged.
        """
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            if isinstance(source, bytes):
                doc = etree.fromstring(source, parser).getroottree()
            elif isinstance(source, (str, Path)):
                doc = etree.parse(str(source), parser)
            else:
                doc = etree.parse(source, parser)
        except etree.XMLSyntaxError as e:
            raise XmlSchemaViolation(str(e)) from e

        with self._lock:
            valid = self._schema.validate(doc)
            error_log = self._schema.error_log

        if not valid:
            error = next(iter(error_log), None)
            message = error.message if error is not None else "document is not valid"
            if error is not None and error.line:
                message = f"line {error.line}: {message}"
            raise XmlSchemaViolation(message)
