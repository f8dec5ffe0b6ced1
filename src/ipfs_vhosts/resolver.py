"""
Vhost resolution from the Host header or the request path.

Both strategies are pure functions over a registry snapshot and do no I/O.
"""

import ipaddress
import logging
from typing import Mapping, Optional

log = logging.getLogger(__name__)


def split_host(host_header: str) -> str:
    """Strip any port suffix from a Host header value."""
    host = host_header.strip()
    if host.startswith("["):
        # Bracketed IPv6 literal, e.g. [::1]:8080
        end = host.find("]")
        return host[1:end] if end != -1 else host[1:]
    if host.count(":") > 1:
        # Bare IPv6 literal without a port
        return host
    return host.split(":", 1)[0]


def is_ip_address(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return True


def resolve_from_host(host_header: Optional[str], snapshot: Mapping[str, str]) -> Optional[str]:
    """
    Return the vhost named by the leftmost label of the Host header.

    IP literals never resolve since they cannot carry a subdomain.
    """
    if not host_header or not snapshot:
        return None

    hostname = split_host(host_header)
    if not hostname or is_ip_address(hostname):
        return None

    subdomain = hostname.split(".", 1)[0]
    found = subdomain in snapshot
    log.debug("resolve_from_host host=%s subdomain=%s found=%s", host_header, subdomain, found)
    return subdomain if found else None


def resolve_from_path(path: str, snapshot: Mapping[str, str]) -> Optional[str]:
    """Return the vhost whose name is the first segment of ``path``."""
    for name in snapshot:
        prefix = f"/{name}"
        if path == prefix or path.startswith(prefix + "/"):
            return name
    return None
