"""
In-memory vhost registry synchronized with a record published on IPNS.

The current mapping is an immutable snapshot. Every refresh or local write
builds a new mapping and swaps the reference, so a reader holding an older
snapshot always sees a consistent (if stale) view.
"""

import asyncio
import json
import logging
from contextlib import suppress
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional

from ipfs_vhosts.exceptions import StorageError, SyncError
from ipfs_vhosts.storage import StorageClient

log = logging.getLogger(__name__)

Snapshot = Mapping[str, str]

DEFAULT_RECORD_LIFETIME = f"{365 * 24}h"
DEFAULT_REFRESH_INTERVAL = 10.0


def decode_record(data: bytes) -> Dict[str, str]:
    """
    Parse the durable record into a name -> CID dict.

    Raises:
        ValueError: If the bytes are not a JSON object of strings.
    """
    mapping = json.loads(data.decode("utf-8"))
    if not isinstance(mapping, dict):
        raise ValueError(f"vhost record must be a JSON object, got {type(mapping).__name__}")
    for name, cid in mapping.items():
        if not name or not isinstance(cid, str):
            raise ValueError(f"invalid vhost entry {name!r}: {cid!r}")
    return mapping


def encode_record(mapping: Snapshot) -> bytes:
    return json.dumps(dict(mapping), sort_keys=True, separators=(",", ":")).encode("utf-8")


class VhostRegistry:
    """Owns the current vhost snapshot and its synchronization with IPNS."""

    def __init__(
        self,
        storage: StorageClient,
        ipns_name: str,
        ipns_key: str,
        lifetime: str = DEFAULT_RECORD_LIFETIME,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        initial: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the registry.

        Args:
            storage: Storage network client.
            ipns_name: IPNS name the record is resolved from.
            ipns_key: Keychain key the record is published with.
            lifetime: Lifetime of published IPNS records.
            refresh_interval: Seconds between background refreshes.
            initial: Mapping served until the first successful refresh.
        """
        self.storage = storage
        self.ipns_name = ipns_name
        self.ipns_key = ipns_key
        self.lifetime = lifetime
        self.refresh_interval = refresh_interval
        self._snapshot: Snapshot = MappingProxyType(dict(initial or {}))
        # Bumped on every local commit; a refresh that started before a commit is stale
        self._generation = 0
        self.refresh_task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> Snapshot:
        """The current mapping. Never mutated; replaced on refresh or write."""
        return self._snapshot

    @property
    def record_path(self) -> str:
        return f"/ipns/{self.ipns_name}"

    def _swap(self, mapping: Dict[str, str]) -> None:
        self._snapshot = MappingProxyType(mapping)

    async def refresh(self, raise_on_error: bool = False) -> bool:
        """
        Reload the mapping from the durable record.

        On failure the previous snapshot stays authoritative.

        Args:
            raise_on_error: Raise SyncError instead of logging and returning False.

        Returns:
            True if the snapshot was replaced.
        """
        generation = self._generation
        try:
            data = await self.storage.cat(self.record_path)
            mapping = decode_record(data)
        except (StorageError, ValueError) as e:
            if raise_on_error:
                raise SyncError(f"Failed to refresh vhosts from {self.record_path}: {e}") from e
            log.warning("Failed to refresh vhosts from %s: %s", self.record_path, e)
            return False

        if generation != self._generation:
            log.debug("Discarding refresh that raced a local write")
            return False

        self._swap(mapping)
        log.debug("Refreshed %d vhosts from %s", len(mapping), self.record_path)
        return True

    async def publish(self, mapping: Snapshot) -> str:
        """
        Store ``mapping`` and point the IPNS record at it.

        Returns:
            CID of the stored record.

        Raises:
            SyncError: If either the add or the name publish fails.
        """
        try:
            cid = await self.storage.add(encode_record(mapping))
            await self.storage.name_publish(cid, lifetime=self.lifetime, key=self.ipns_key)
        except StorageError as e:
            raise SyncError(f"Failed to publish vhosts: {e}") from e
        log.info("Published %d vhosts as /ipfs/%s under key %s", len(mapping), cid, self.ipns_key)
        return cid

    async def apply(self, mutate: Callable[[Dict[str, str]], None]) -> Snapshot:
        """
        Run one control-plane write: refresh, mutate a copy, publish, swap.

        The steps run strictly in that order. There is no lock: two writers
        that interleave can each publish their own copy and the later publish
        wins. The new snapshot only becomes visible once publishing succeeded.

        Raises:
            SyncError: If the refresh or the publish fails.
        """
        await self.refresh(raise_on_error=True)
        mapping = dict(self._snapshot)
        mutate(mapping)
        await self.publish(mapping)
        self._generation += 1
        self._swap(mapping)
        return self._snapshot

    async def start(self) -> None:
        """Load the initial mapping and start the background refresh task."""
        if not await self.refresh():
            log.warning("Starting with %d cached vhosts", len(self._snapshot))
        self.refresh_task = asyncio.create_task(self._refresh_loop())
        log.info("Vhost registry started, refreshing every %ss", self.refresh_interval)

    async def stop(self) -> None:
        """Cancel the background refresh task."""
        if self.refresh_task:
            self.refresh_task.cancel()
            with suppress(asyncio.CancelledError):
                await self.refresh_task
            self.refresh_task = None
        log.info("Vhost registry stopped")

    async def _refresh_loop(self) -> None:
        """Background task that keeps the snapshot in sync with IPNS."""
        while True:
            try:
                await asyncio.sleep(self.refresh_interval)
                await self.refresh()
            except asyncio.CancelledError:
                log.debug("Refresh loop cancelled")
                break
            except Exception as e:
                log.exception(f"Refresh loop error: {e}")
