"""
validatebag -- External Service Clients

Collaborators consumed by the rule catalog: the XML Schema validator and the
bag-store service client.
"""

from validatebag.clients.bag_store import BagStoreClient, BagStoreError
from validatebag.clients.xml_validator import (
    SchemaLoadError,
    XmlSchemaValidator,
    XmlSchemaViolation,
)

__all__ = [
    "BagStoreClient",
    "BagStoreError",
    "SchemaLoadError",
    "XmlSchemaValidator",
    "XmlSchemaViolation",
]
