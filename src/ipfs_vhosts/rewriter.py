"""
Outbound request rewriting for the IPFS gateway.

A resolved vhost is turned into either a gateway path (``/ipfs/<cid>/...``)
or, for gateways that serve subdomains, a ``<cid>.ipfs.<gateway>`` host.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from ipfs_vhosts.cid import to_subdomain_safe
from ipfs_vhosts.resolver import is_ip_address, resolve_from_host, resolve_from_path

log = logging.getLogger(__name__)

RewriteKind = Literal["passthrough", "path", "host"]


def gateway_supports_subdomains(gateway_address: str) -> bool:
    """IP-addressed gateways cannot host content-identifying subdomains."""
    hostname = urlsplit(gateway_address).hostname or ""
    return not is_ip_address(hostname)


@dataclass(frozen=True)
class Rewrite:
    """Where and how a request is forwarded."""

    kind: RewriteKind
    path: str
    host: str
    vhost: Optional[str] = None

    def target_url(self, gateway_address: str, query: str = "") -> str:
        scheme = urlsplit(gateway_address).scheme or "http"
        return urlunsplit((scheme, self.host, self.path, query, ""))


def plan_rewrite(
    snapshot: Mapping[str, str],
    host_header: Optional[str],
    path: str,
    gateway_address: str,
) -> Rewrite:
    """
    Decide how to forward a request to the gateway.

    Host-based resolution is tried first. When it matches, the hostname
    already identifies the content and the path is the content's own path,
    so the path is never used for resolution in that case.

    Args:
        snapshot: Registry snapshot (name -> CID).
        host_header: Host header of the inbound request.
        path: Inbound request path as sent (still percent-encoded), without
            query string.
        gateway_address: Base URL of the gateway.

    Returns:
        Rewrite describing the outbound host and path.
    """
    gateway_host = urlsplit(gateway_address).netloc

    name = resolve_from_host(host_header, snapshot)
    if name is not None:
        cid = snapshot.get(name)
        if cid is None:
            return Rewrite("passthrough", path, gateway_host)
        if gateway_supports_subdomains(gateway_address):
            try:
                subdomain = to_subdomain_safe(cid)
            except ValueError:
                log.warning("Vhost %s maps to an invalid CID %r", name, cid)
                return Rewrite("passthrough", path, gateway_host)
            host = f"{subdomain}.ipfs.{gateway_host}"
            log.debug("rewrite host %s -> %s", host_header, host)
            return Rewrite("host", path, host, vhost=name)
        new_path = f"/ipfs/{cid}{path}"
        log.debug("rewrite host %s path %s -> %s", host_header, path, new_path)
        return Rewrite("path", new_path, gateway_host, vhost=name)

    name = resolve_from_path(path, snapshot)
    if name is not None:
        cid = snapshot.get(name)
        if cid is None:
            return Rewrite("passthrough", path, gateway_host)
        new_path = f"/ipfs/{cid}{path[len(name) + 1:]}"
        log.debug("rewrite path %s -> %s", path, new_path)
        return Rewrite("path", new_path, gateway_host, vhost=name)

    return Rewrite("passthrough", path, gateway_host)
