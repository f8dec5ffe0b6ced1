"""
Error taxonomy for the vhosts proxy.

Resolution misses are not errors: an unknown host or path is simply forwarded
unchanged. Everything else that can go wrong is one of the classes below.
"""


class VhostsProxyError(Exception):
    """Base class for all proxy errors."""


class ConfigError(VhostsProxyError):
    """Missing or invalid configuration; fatal at startup."""


class StorageError(VhostsProxyError):
    """The IPFS HTTP API could not be reached or answered with an error."""


class SyncError(VhostsProxyError):
    """Refreshing or publishing the durable vhost record failed."""


class VhostError(VhostsProxyError):
    """A control-plane request was rejected."""

    code = "error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class VhostNotFound(VhostError):
    code = "not_found"
    status_code = 404


class NameNotAllowed(VhostError):
    code = "name_not_allowed"
    status_code = 401


class InvalidCid(VhostError):
    code = "invalid_cid"
    status_code = 400
