"""
Async IPFS vhosts reverse proxy server using FastAPI.

Resolves each request to a vhost, rewrites it for the configured IPFS gateway
and forwards it. The vhost control API is served under /api/v1/vhosts.
"""

import asyncio
import logging
import signal
from contextlib import asynccontextmanager, contextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from ipfs_vhosts.config import VhostsConfig
from ipfs_vhosts.control import (
    VhostService,
    body_error_handler,
    create_control_router,
    sync_error_handler,
    vhost_error_handler,
)
from ipfs_vhosts.exceptions import SyncError, VhostError
from ipfs_vhosts.filters import filter_request_headers, filter_response_headers
from ipfs_vhosts.registry import VhostRegistry
from ipfs_vhosts.rewriter import gateway_supports_subdomains, plan_rewrite
from ipfs_vhosts.storage import IpfsClient, StorageClient

log = logging.getLogger(__name__)

HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def raw_request_path(request: Request) -> str:
    """
    Return the request path exactly as the client sent it.

    ``request.url.path`` is percent-decoded, so escapes such as ``%3F``,
    ``%23`` and ``%2F`` would change meaning once the path is put back into
    the outbound URL.
    """
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return request.url.path
    return raw_path.decode("latin-1").split("?", 1)[0]


class AsyncReverseProxy:
    """Reverse proxy that maps vhosts onto an IPFS gateway."""

    def __init__(
        self,
        config: VhostsConfig,
        storage: Optional[StorageClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the reverse proxy.

        Args:
            config: Validated proxy configuration.
            storage: Storage client; defaults to the IPFS HTTP API from config.
            transport: Optional httpx transport for gateway requests, used by tests.
        """
        self.config = config
        self.gateway_address = config.ipfs.gateway.address
        self.subdomains = gateway_supports_subdomains(self.gateway_address)
        self.storage = storage or IpfsClient(config.ipfs.api.host, config.ipfs.api.port)
        self.registry = VhostRegistry(
            self.storage,
            ipns_name=config.ipfs.ipns.name,
            ipns_key=config.ipfs.ipns.key,
            lifetime=config.ipfs.record_lifetime,
            refresh_interval=config.ipfs.refresh_interval,
        )
        self.service = VhostService(self.registry)
        self.transport = transport

        # HTTP client for gateway requests
        self.httpx_client: Optional[httpx.AsyncClient] = None

    async def startup(self):
        """Open the gateway client and start the registry."""
        timeout = httpx.Timeout(connect=10.0, read=60.0, write=60.0, pool=60.0)
        limits = httpx.Limits(max_keepalive_connections=100, max_connections=200)
        self.httpx_client = httpx.AsyncClient(
            timeout=timeout,
            limits=limits,
            transport=self.transport,
            # Gateway certificates are not verified
            verify=False,
        )

        await self.registry.start()

        log.info(
            "Proxy started for gateway %s (subdomains %s), %d vhosts",
            self.gateway_address,
            "supported" if self.subdomains else "not supported",
            len(self.registry.snapshot),
        )

    async def shutdown(self):
        """Stop the refresh task and close clients."""
        await self.registry.stop()
        if self.httpx_client:
            await self.httpx_client.aclose()
        await self.storage.aclose()
        log.info("Proxy shutdown")

    async def handle_proxy_request(self, request: Request) -> Response:
        """
        Forward a request to the gateway, rewritten for its vhost if one matches.

        Returns:
            Response mirroring the gateway's status, headers and body, or a
            plain-text 500 when the gateway cannot be reached.
        """
        host_header = request.headers.get("host")
        path = raw_request_path(request)
        rewrite = plan_rewrite(
            self.registry.snapshot,
            host_header,
            path,
            self.gateway_address,
        )
        target_url = rewrite.target_url(self.gateway_address, request.url.query)
        log.debug(
            "Proxying %s %s%s (%s) -> %s",
            request.method,
            host_header,
            path,
            rewrite.kind,
            target_url,
        )

        upstream_headers = filter_request_headers(dict(request.headers))
        upstream_headers["Host"] = rewrite.host

        body = await request.body()

        assert self.httpx_client is not None

        try:
            async with self.httpx_client.stream(
                method=request.method,
                url=target_url,
                headers=upstream_headers,
                content=body or None,
            ) as upstream_response:
                response_headers = filter_response_headers(dict(upstream_response.headers))

                # For HEAD requests, don't stream body
                if request.method.upper() == "HEAD":

                    async def empty_generator():
                        if False:
                            yield b""

                    return StreamingResponse(
                        empty_generator(),
                        status_code=upstream_response.status_code,
                        headers=response_headers,
                    )

                content = await upstream_response.aread()
                return Response(
                    content,
                    status_code=upstream_response.status_code,
                    headers=response_headers,
                )

        except httpx.RequestError as e:
            log.error(f"Gateway error for {request.method} {target_url}: {e}")
            return PlainTextResponse("Something went wrong.", status_code=500)


def create_proxy_app(
    config: VhostsConfig,
    storage: Optional[StorageClient] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI proxy application.

    Args:
        config: VhostsConfig instance.
        storage: Optional storage client override.
        transport: Optional httpx transport for gateway requests.

    Returns:
        Configured FastAPI app ready to run.
    """
    proxy = AsyncReverseProxy(config, storage=storage, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await proxy.startup()
        try:
            yield
        finally:
            await proxy.shutdown()

    app = FastAPI(
        title="IPFS Vhosts Proxy",
        description="Maps human-friendly hostnames to IPFS content",
        # Every other path belongs to the proxied content
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.proxy = proxy

    app.add_exception_handler(VhostError, vhost_error_handler)
    app.add_exception_handler(SyncError, sync_error_handler)
    app.add_exception_handler(RequestValidationError, body_error_handler)

    # ---- Control API ----
    app.include_router(create_control_router(proxy.service))

    # ---- Catch-all proxy endpoint ----
    @app.api_route(
        "/{full_path:path}",
        methods=HTTP_METHODS,
        include_in_schema=False,
    )
    async def proxy_request(full_path: str, request: Request):
        """Proxy HTTP requests to the IPFS gateway."""
        return await proxy.handle_proxy_request(request)

    return app


@contextmanager
def exit_on_hangup(server):
    """
    Stop ``server`` on SIGHUP the same way uvicorn handles SIGINT and SIGTERM,
    so a closed terminal still runs the app shutdown hook.
    """
    hangup = getattr(signal, "SIGHUP", None)
    if hangup is None:
        yield
        return

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(hangup, server.handle_exit, hangup, None)
    try:
        yield
    finally:
        loop.remove_signal_handler(hangup)


async def run_proxy_app(config: VhostsConfig) -> None:
    """
    Run the proxy app using uvicorn until it receives a shutdown signal.

    Args:
        config: VhostsConfig instance.
    """
    import uvicorn

    app = create_proxy_app(config)
    proxy_settings = config.proxy
    port = proxy_settings.listen_port

    ssl_kwargs = {}
    if proxy_settings.ssl:
        ssl_kwargs = {
            "ssl_certfile": proxy_settings.certfile,
            "ssl_keyfile": proxy_settings.keyfile,
        }

    server_cfg = uvicorn.Config(
        app,
        host=proxy_settings.address,
        port=port,
        log_level=config.log_level.lower(),
        loop="asyncio",
        **ssl_kwargs,
    )
    server = uvicorn.Server(server_cfg)

    scheme = "https" if proxy_settings.ssl else "http"
    log.info("Listening at %s://%s:%d", scheme, proxy_settings.address, port)
    log.info("Open %s", proxy_settings.public_url)

    with exit_on_hangup(server):
        await server.serve()
    log.info("Server stopped")
