"""
Reverse proxy serving IPFS content under human-friendly vhosts.

This package provides a FastAPI-based reverse proxy that:
- Keeps a vhost name -> CID mapping published on IPNS
- Resolves requests to vhosts by subdomain or by path prefix
- Rewrites them for path-only or subdomain-capable IPFS gateways
- Exposes a control API to list, create, update and delete vhosts
"""

from ipfs_vhosts.cid import is_valid, to_subdomain_safe
from ipfs_vhosts.config import VhostsConfig, load_config, load_config_with_env
from ipfs_vhosts.control import RESERVED_NAMES, VhostEntry, VhostService
from ipfs_vhosts.exceptions import (
    ConfigError,
    InvalidCid,
    NameNotAllowed,
    StorageError,
    SyncError,
    VhostError,
    VhostNotFound,
)
from ipfs_vhosts.registry import VhostRegistry
from ipfs_vhosts.resolver import resolve_from_host, resolve_from_path
from ipfs_vhosts.rewriter import Rewrite, gateway_supports_subdomains, plan_rewrite
from ipfs_vhosts.server import AsyncReverseProxy, create_proxy_app, run_proxy_app
from ipfs_vhosts.storage import IpfsClient

__all__ = [
    "RESERVED_NAMES",
    "AsyncReverseProxy",
    "ConfigError",
    "InvalidCid",
    "IpfsClient",
    "NameNotAllowed",
    "Rewrite",
    "StorageError",
    "SyncError",
    "VhostEntry",
    "VhostError",
    "VhostNotFound",
    "VhostRegistry",
    "VhostService",
    "VhostsConfig",
    "create_proxy_app",
    "gateway_supports_subdomains",
    "is_valid",
    "load_config",
    "load_config_with_env",
    "plan_rewrite",
    "resolve_from_host",
    "resolve_from_path",
    "run_proxy_app",
    "to_subdomain_safe",
]
