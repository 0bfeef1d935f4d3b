"""Remote fetch bridge: asynchronous access to the server's REST resources.

The synchronization engine depends only on the ``RemoteFetcher`` Protocol:
``fetch(api_version, path, result_type)`` returns a future of a validated
wire model.  ``HttpFetcher`` is the default implementation on top of
``httpx``; tests substitute an in-memory fetcher.

URL layout::

    {server_url}/guestAuth/app/rest/{version}/{path}   # anonymous
    {server_url}/httpAuth/app/rest/{version}/{path}    # basic auth
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

import httpx
from pydantic import BaseModel, ValidationError

from wallsync.models.api import ApiVersion

if TYPE_CHECKING:
    from wallsync.config import WallSyncConfig
    from wallsync.core.workers import WorkerPool

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class FetchError(RuntimeError):
    """Raised when a remote resource cannot be fetched or decoded."""


@runtime_checkable
class RemoteFetcher(Protocol):
    """Protocol for asynchronous remote snapshot fetchers."""

    def fetch(
        self, api_version: ApiVersion, path: str, result_type: type[M]
    ) -> Future[M]:
        ...


class HttpFetcher:
    """``RemoteFetcher`` backed by a shared ``httpx.Client``.

    Requests run on the given worker pool so callers never block.

    Parameters
    ----------
    server_url:
        Base URL of the CI server.
    pool:
        Worker pool that executes the blocking HTTP calls.
    username, password:
        Basic-auth credentials.  Guest access is used when *username*
        is empty.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional ``httpx`` transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        server_url: str,
        pool: WorkerPool,
        *,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._pool = pool
        self._auth_segment = "httpAuth" if username else "guestAuth"
        self._client = httpx.Client(
            base_url=server_url.rstrip("/"),
            auth=(username, password) if username else None,
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: WallSyncConfig, pool: WorkerPool) -> HttpFetcher:
        return cls(
            config.server_url,
            pool,
            username=config.username,
            password=config.password,
            timeout=config.request_timeout_seconds,
        )

    def url_for(self, api_version: ApiVersion, path: str) -> str:
        return f"/{self._auth_segment}/{api_version.rest_segment}/{path.lstrip('/')}"

    def fetch(
        self, api_version: ApiVersion, path: str, result_type: type[M]
    ) -> Future[M]:
        return self._pool.submit(self.get, api_version, path, result_type)

    def get(self, api_version: ApiVersion, path: str, result_type: type[M]) -> M:
        """Blocking fetch; raises ``FetchError`` on transport or decode failure."""
        url = self.url_for(api_version, path)
        logger.debug("GET %s", url)
        try:
            response = self._client.get(url)
            response.raise_for_status()
            return result_type.model_validate(response.json())
        except httpx.HTTPError as exc:
            raise FetchError(f"Request to {url} failed: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise FetchError(f"Unexpected payload from {url}: {exc}") from exc

    def close(self) -> None:
        self._client.close()
