"""
Control plane for managing vhosts.

Every operation resynchronizes the registry from IPNS first. Writes go
through ``VhostRegistry.apply`` which refreshes, mutates and republishes.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ipfs_vhosts.cid import is_valid
from ipfs_vhosts.exceptions import InvalidCid, NameNotAllowed, SyncError, VhostError, VhostNotFound
from ipfs_vhosts.registry import VhostRegistry

log = logging.getLogger(__name__)

CONTROL_PREFIX = "/api"

# Names that would shadow the control API, raw content access or the gateway namespaces
RESERVED_NAMES = frozenset({"api", "content", "localhost", "ipfs", "ipns"})


class VhostEntry(BaseModel):
    name: str
    cid: str


# Request bodies accept any JSON value so that check_name and check_cid
# decide the error code rather than pydantic.
class VhostCreate(BaseModel):
    name: Any = None
    cid: Any = None


class VhostUpdate(BaseModel):
    cid: Any = None


def check_name(name: Any) -> None:
    if not isinstance(name, str) or not name or name in RESERVED_NAMES or "/" in name:
        raise NameNotAllowed(f"Vhost name {name!r} is not allowed")


def check_cid(cid: Any) -> None:
    if not is_valid(cid):
        raise InvalidCid(f"{cid!r} is not a valid CID")


class VhostService:
    """List/get/create/update/delete operations over a registry."""

    def __init__(self, registry: VhostRegistry):
        self.registry = registry

    async def list(self) -> List[VhostEntry]:
        await self.registry.refresh()
        return [VhostEntry(name=name, cid=cid) for name, cid in self.registry.snapshot.items()]

    async def get(self, name: str) -> VhostEntry:
        await self.registry.refresh()
        cid = self.registry.snapshot.get(name)
        if cid is None:
            raise VhostNotFound(f"Vhost {name!r} not found")
        return VhostEntry(name=name, cid=cid)

    async def create(self, name: str, cid: str) -> None:
        """Insert or replace ``name``."""
        check_name(name)
        check_cid(cid)

        def upsert(mapping: Dict[str, str]) -> None:
            mapping[name] = cid

        await self.registry.apply(upsert)
        log.info("Vhost %s -> %s", name, cid)

    async def update(self, name: str, cid: str) -> None:
        """Point an existing ``name`` at a new CID."""
        check_name(name)
        check_cid(cid)
        await self.get(name)

        def upsert(mapping: Dict[str, str]) -> None:
            mapping[name] = cid

        await self.registry.apply(upsert)
        log.info("Vhost %s -> %s", name, cid)

    async def delete(self, name: str) -> None:
        await self.get(name)

        def remove(mapping: Dict[str, str]) -> None:
            mapping.pop(name, None)

        await self.registry.apply(remove)
        log.info("Vhost %s deleted", name)


def create_control_router(service: VhostService) -> APIRouter:
    """Build the /api/v1/vhosts router around ``service``."""
    router = APIRouter(prefix=f"{CONTROL_PREFIX}/v1/vhosts", tags=["vhosts"])

    @router.get("", response_model=List[VhostEntry])
    async def list_vhosts() -> List[VhostEntry]:
        """List all vhosts"""
        return await service.list()

    @router.get("/{name}", response_model=VhostEntry)
    async def get_vhost(name: str) -> VhostEntry:
        """Get a single vhost"""
        return await service.get(name)

    @router.post("", status_code=201)
    async def create_vhost(req: VhostCreate) -> Response:
        """Create or replace a vhost"""
        await service.create(req.name, req.cid)
        return Response(status_code=201)

    @router.put("/{name}", status_code=201)
    async def update_vhost(name: str, req: VhostUpdate) -> Response:
        """Point an existing vhost at a new CID"""
        await service.update(name, req.cid)
        return Response(status_code=201)

    @router.delete("/{name}")
    async def delete_vhost(name: str) -> Response:
        """Delete a vhost"""
        await service.delete(name)
        return Response(status_code=200)

    return router


async def vhost_error_handler(request: Request, exc: VhostError) -> JSONResponse:
    return JSONResponse({"error": exc.code}, status_code=exc.status_code)


async def sync_error_handler(request: Request, exc: SyncError) -> JSONResponse:
    # A write that could not be durably published must not report success
    log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": "sync_failed"}, status_code=503)


async def body_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Only control-API writes take a body; an absent or unparsable one carries no CID
    log.debug("%s %s rejected body: %s", request.method, request.url.path, exc.errors())
    return JSONResponse({"error": InvalidCid.code}, status_code=InvalidCid.status_code)
