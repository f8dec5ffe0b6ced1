"""
Client for the IPFS (Kubo) HTTP RPC API.

Only the three calls the vhost registry needs are implemented: reading a path,
adding a blob and publishing an IPNS record.
"""

import logging
from typing import Optional, Protocol

import httpx

from ipfs_vhosts.exceptions import StorageError

log = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Interface the registry uses to reach the storage network."""

    async def cat(self, path: str) -> bytes: ...

    async def add(self, data: bytes) -> str: ...

    async def name_publish(self, cid: str, lifetime: str, key: str) -> None: ...

    async def aclose(self) -> None: ...


class IpfsClient:
    """Async IPFS HTTP API client backed by httpx."""

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            host: API host (e.g. 127.0.0.1).
            port: API port (usually 5001).
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self.base_url = f"http://{host}:{port}/api/v0"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, endpoint: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.post(endpoint, **kwargs)
        except httpx.RequestError as e:
            raise StorageError(f"IPFS API unreachable at {self.base_url}: {e}") from e

        if response.status_code >= 400:
            # The RPC API reports failures as {"Message": ..., "Code": ..., "Type": "error"}
            try:
                message = response.json().get("Message", response.text)
            except ValueError:
                message = response.text
            raise StorageError(f"IPFS API {endpoint} failed ({response.status_code}): {message}")
        return response

    async def cat(self, path: str) -> bytes:
        """Return the bytes stored at an /ipfs/ or /ipns/ path."""
        log.debug("ipfs cat %s", path)
        response = await self._post("/cat", params={"arg": path})
        return response.content

    async def add(self, data: bytes) -> str:
        """Store ``data`` and return its CID."""
        response = await self._post(
            "/add",
            params={"pin": "true"},
            files={"file": ("vhosts.json", data, "application/json")},
        )
        try:
            cid = response.json()["Hash"]
        except (ValueError, KeyError) as e:
            raise StorageError(f"Unexpected response from IPFS add: {response.text!r}") from e
        log.debug("ipfs add -> %s", cid)
        return cid

    async def name_publish(self, cid: str, lifetime: str, key: str) -> None:
        """Point the IPNS name of ``key`` at ``cid``."""
        response = await self._post(
            "/name/publish",
            params={"arg": f"/ipfs/{cid}", "lifetime": lifetime, "key": key},
        )
        log.debug("ipfs name publish %s -> %s", cid, response.text.strip())
