"""
validatebag -- XML helpers shared by the DDM and files.xml rules.

Element matching is by local name unless a namespace is given, mirroring how
the profile refers to elements ("every identifier", "every file").
"""

from __future__ import annotations

from collections.abc import Iterator

from lxml import etree

XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
XSI_TYPE = f"{{{XSI_NAMESPACE}}}type"

DC_NAMESPACE = "http://purl.org/dc/elements/1.1/"
DCTERMS_NAMESPACE = "http://purl.org/dc/terms/"
GML_NAMESPACE = "http://www.opengis.net/gml"
IDENTIFIER_TYPE_NAMESPACE = "http://easy.dans.knaw.nl/schemas/vocab/identifier-type/"
DCX_DAI_NAMESPACE = "http://easy.dans.knaw.nl/schemas/dcx/dai/"
FILES_XML_NAMESPACE = "http://easy.dans.knaw.nl/schemas/bag/metadata/files/"


def is_element(node: object) -> bool:
    """False for comments and processing instructions."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def namespace_of(element: etree._Element) -> str | None:
    return etree.QName(element).namespace


def display_name(element: etree._Element) -> str:
    """Prefixed tag name as written in the document, e.g. ``dcterms:format``."""
    if element.prefix:
        return f"{element.prefix}:{local_name(element)}"
    return local_name(element)


def text_of(element: etree._Element) -> str:
    """All descendant text, stripped."""
    return "".join(element.itertext()).strip()


def element_children(element: etree._Element, name: str | None = None) -> list[etree._Element]:
    return [
        child for child in element
        if is_element(child) and (name is None or local_name(child) == name)
    ]


def descendants(
    element: etree._Element,
    name: str,
    namespace: str | None = None,
) -> Iterator[etree._Element]:
    """Element itself and all descendants with this local name (and namespace, if given)."""
    for node in element.iter():
        if not is_element(node) or local_name(node) != name:
            continue
        if namespace is not None and namespace_of(node) != namespace:
            continue
        yield node


def has_xsi_type(element: etree._Element, namespace: str, type_name: str) -> bool:
    """
    True if ``xsi:type`` is ``<prefix>:<type_name>`` and the prefix is bound
    to ``namespace`` in the element's scope.
    """
    value = element.get(XSI_TYPE)
    if value is None:
        return False
    parts = value.split(":")
    if len(parts) != 2:
        return False
    prefix, label = parts
    return element.nsmap.get(prefix) == namespace and label == type_name
