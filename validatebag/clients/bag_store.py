"""
validatebag -- Bag Store Client

Blocking HTTP client for the bag-store service, used by the Is-Version-Of
rules to look up previously archived bags.

Endpoints (relative to the service base URL):
  HEAD /bags/{uuid}                    bag exists in any store
  HEAD /stores/{store}/bags/{uuid}     bag exists in the configured store
  GET  /bags/{uuid}/bag-info.txt       bag-info.txt of an archived bag

Timeouts and retries are the client's concern; the rule engine imposes none.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import httpx
import structlog

if TYPE_CHECKING:
    from validatebag.config import BagStoreConfig

logger = structlog.get_logger()


class BagStoreError(OSError):
    """The bag store could not be reached or answered unexpectedly."""


class BagStoreClient:
    """Thin client over the bag-store REST API. Thread-safe (httpx.Client is)."""

    def __init__(
        self,
        base_url: str,
        store_name: str,
        timeout_s: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._store_name = store_name
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: BagStoreConfig) -> BagStoreClient:
        return cls(
            base_url=config.base_url,
            store_name=config.store_name,
            timeout_s=config.timeout_s,
        )

    @property
    def bag_store_url(self) -> str:
        """Base URL of the store new versions must be archived in."""
        return f"{self._base_url}/stores/{self._store_name}"

    def bag_exists(self, uuid: UUID) -> bool:
        """True if a bag with this id exists in any store."""
        return self._exists(f"/bags/{uuid}")

    def bag_exists_in_this_store(self, uuid: UUID) -> bool:
        """True if a bag with this id exists in the configured store."""
        return self._exists(f"/stores/{self._store_name}/bags/{uuid}")

    def get_bag_info_text(self, uuid: UUID) -> str:
        """Raw bag-info.txt of an archived bag."""
        path = f"/bags/{uuid}/bag-info.txt"
        try:
            response = self._client.get(path, headers={"Accept": "text/plain"})
        except httpx.HTTPError as e:
            raise BagStoreError(f"GET {path} failed: {e}") from e
        if response.status_code != httpx.codes.OK:
            raise BagStoreError(
                f"GET {path} returned unexpected status {response.status_code}"
            )
        return response.text

    def _exists(self, path: str) -> bool:
        try:
            response = self._client.head(path)
        except httpx.HTTPError as e:
            logger.warning("bag_store_unreachable", path=path, error=str(e))
            raise BagStoreError(f"HEAD {path} failed: {e}") from e
        if response.status_code == httpx.codes.OK:
            return True
        if response.status_code == httpx.codes.NOT_FOUND:
            return False
        raise BagStoreError(f"HEAD {path} returned unexpected status {response.status_code}")

    def close(self) -> None:
        self._client.close()
