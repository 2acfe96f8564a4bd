"""Storage REST client used for optional bucket provisioning.

The service key only ever lives in the session headers of a `StorageClient`; it
is never logged or written anywhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)

DEFAULT_BUCKETS_PATH = "/rest/v1/storage/buckets"


@dataclass(frozen=True, slots=True)
class BucketSpec:
    name: str
    public: bool = False

    def payload(self) -> dict[str, object]:
        return {"name": self.name, "public": self.public}


BUCKETS: tuple[BucketSpec, ...] = (
    BucketSpec(name="case-files", public=False),
    BucketSpec(name="reports", public=False),
)


@dataclass(frozen=True, slots=True)
class CreatedBucket:
    name: str
    status_code: int


class StorageClient:
    """Create storage buckets through the provider's REST API."""

    def __init__(
        self,
        *,
        endpoint: str,
        service_key: str,
        buckets_path: str = DEFAULT_BUCKETS_PATH,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not endpoint.strip():
            raise ValueError("Storage endpoint is required")
        if not service_key.strip():
            raise ValueError("Storage service key is required")

        self._url = endpoint.strip().rstrip("/") + "/" + buckets_path.lstrip("/")
        self._timeout = timeout_seconds
        # Credentials travel per request so a caller-supplied session is left untouched.
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
            "User-Agent": "repo-provisioner",
        }

    @property
    def url(self) -> str:
        return self._url

    def create_bucket(self, bucket: BucketSpec) -> CreatedBucket:
        """Create one bucket.

        Raises:
            requests.RequestException: on transport errors or a non-2xx response.
        """

        logger.info("Creating storage bucket", extra={"bucket": bucket.name})
        resp = self._session.post(
            self._url, json=bucket.payload(), headers=self._headers, timeout=self._timeout
        )
        resp.raise_for_status()
        return CreatedBucket(name=bucket.name, status_code=resp.status_code)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()
