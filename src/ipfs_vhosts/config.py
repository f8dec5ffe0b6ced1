"""
Configuration loader and validator for the vhosts proxy.

Handles loading YAML (or JSON) configuration files, applying environment
overrides and validating the result once at startup.
"""

import os
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ipfs_vhosts.exceptions import ConfigError

DEFAULT_CONFIG_PATH = ".ipfs-vhosts-proxy.conf"


class ProxySettings(BaseModel):
    """Listening side of the proxy."""

    model_config = ConfigDict(frozen=True)

    hostname: str = Field("localhost", description="Public hostname shown in the startup banner")
    address: str = Field("0.0.0.0", description="Bind address")
    port: Optional[int] = Field(None, ge=1, le=65535, description="Listen port (default 443 with ssl, 80 otherwise)")
    ssl: bool = Field(False, description="Serve HTTPS")
    keyfile: str = Field("privkey.pem", description="Path to TLS key file")
    certfile: str = Field("fullchain.pem", description="Path to TLS certificate file")

    @model_validator(mode="after")
    def check_tls_files(self) -> "ProxySettings":
        """TLS material must exist on disk when ssl is enabled."""
        if self.ssl:
            if not Path(self.keyfile).is_file():
                raise ValueError(f"proxy.keyfile not found at '{self.keyfile}'")
            if not Path(self.certfile).is_file():
                raise ValueError(f"proxy.certfile not found at '{self.certfile}'")
        return self

    @property
    def listen_port(self) -> int:
        if self.port:
            return self.port
        return 443 if self.ssl else 80

    @property
    def public_url(self) -> str:
        """URL users should open, omitting the port when it is the scheme default."""
        scheme = "https" if self.ssl else "http"
        port = self.listen_port
        default_port = 443 if self.ssl else 80
        suffix = "" if port == default_port else f":{port}"
        return f"{scheme}://{self.hostname}{suffix}/"


class GatewaySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Base URL of the IPFS HTTP gateway")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        parts = urlsplit(v.strip())
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"gateway address must be an http(s) URL, got '{v}'")
        return v.strip().rstrip("/")


class ApiSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1, description="IPFS HTTP API host")
    port: int = Field(..., ge=1, le=65535, description="IPFS HTTP API port")


class IpnsSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Keychain key used to publish the record")
    name: str = Field(..., min_length=1, description="IPNS name the vhost record is resolved from")


class IpfsSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    gateway: GatewaySettings
    api: ApiSettings
    ipns: IpnsSettings
    refresh_interval: float = Field(10.0, gt=0, description="Seconds between background refreshes")
    record_lifetime: str = Field("8760h", description="Lifetime of published IPNS records")


class VhostsConfig(BaseModel):
    """Complete proxy configuration."""

    model_config = ConfigDict(frozen=True)

    debug: bool = False
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    ipfs: IpfsSettings

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.debug else "INFO"


def _format_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        message = error["msg"].removeprefix("Value error, ")
        if error["type"] == "missing":
            messages.append(f"Missing {location} configuration")
        elif location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)
    return "; ".join(messages)


def parse_config(raw_config: dict[str, Any]) -> VhostsConfig:
    """
    Validate a raw configuration mapping.

    Raises:
        ConfigError: If any section or required field is missing or invalid.
    """
    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must contain a mapping")
    if raw_config.get("proxy", {}) is None:
        raw_config = {k: v for k, v in raw_config.items() if k != "proxy"}
    try:
        return VhostsConfig(**raw_config)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e)) from e


def load_config(config_path: str) -> VhostsConfig:
    """
    Load and validate proxy configuration from a YAML or JSON file.

    Args:
        config_path: Path to configuration file.

    Returns:
        VhostsConfig instance with validated settings.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    return parse_config(_read_config_file(config_path))


def _read_config_file(config_path: str) -> dict[str, Any]:
    config_file = Path(config_path)
    if not config_file.is_file():
        raise ConfigError(f"Config file does not exist at '{config_file.resolve()}'")

    # YAML is a superset of JSON, so one parser covers both formats
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file must be in YAML or JSON format: {e}") from e

    if not raw_config:
        raise ConfigError("Config file is empty")
    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must contain a mapping")
    return raw_config


def _set_nested(raw: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = raw
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value


ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "IPFS_VHOSTS_DEBUG": ("debug",),
    "IPFS_VHOSTS_PROXY_PORT": ("proxy", "port"),
    "IPFS_VHOSTS_GATEWAY_ADDRESS": ("ipfs", "gateway", "address"),
    "IPFS_VHOSTS_IPNS_KEY": ("ipfs", "ipns", "key"),
    "IPFS_VHOSTS_IPNS_NAME": ("ipfs", "ipns", "name"),
}


def load_config_with_env(config_path: str) -> VhostsConfig:
    """
    Load configuration and override values from environment variables.

    Overrides are applied to the raw file contents before validation so that
    an environment variable can supply a value the file leaves out.
    """
    raw_config = _read_config_file(config_path)

    for env_name, path in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if not value:
            continue
        if path == ("debug",):
            _set_nested(raw_config, path, value.lower() in {"1", "true", "yes"})
        else:
            _set_nested(raw_config, path, value)

    return parse_config(raw_config)
