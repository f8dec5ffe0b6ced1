"""
Command-line entrypoint for running the vhosts proxy.

Loads the configuration file, applies environment overrides and serves the
proxy until interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from ipfs_vhosts.config import DEFAULT_CONFIG_PATH, load_config_with_env
from ipfs_vhosts.exceptions import ConfigError
from ipfs_vhosts.logging_config import configure_logging
from ipfs_vhosts.server import run_proxy_app


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve IPFS content under human-friendly vhosts.")
    parser.add_argument(
        "-c",
        "--config",
        default=os.environ.get("IPFS_VHOSTS_CONFIG", DEFAULT_CONFIG_PATH),
        help="Path to config file in YAML or JSON (or set IPFS_VHOSTS_CONFIG).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default DEBUG when debug is set in the config, INFO otherwise).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint used by `python -m ipfs_vhosts` and `ipfs-vhosts-proxy`."""
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        config = load_config_with_env(args.config)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 1

    configure_logging(args.log_level or config.log_level)
    log = logging.getLogger("ipfs_vhosts")

    try:
        asyncio.run(run_proxy_app(config))
    except KeyboardInterrupt:  # pragma: no cover - runtime signal
        log.info("Proxy shutdown requested by user")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
