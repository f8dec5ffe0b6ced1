"""
HTTP header filtering for requests forwarded to the gateway.

Filters hop-by-hop headers and other headers that should not be forwarded.
"""


# RFC 7230: Hop-by-hop headers that must not be forwarded
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "content-length",  # Recomputed by httpx / Starlette
}

# Host is always set to the outbound (gateway or rewritten) host
REQUEST_EXCLUDED_HEADERS = HOP_BY_HOP_HEADERS | {"host"}

# httpx decodes compressed bodies, so the upstream encoding no longer applies
RESPONSE_EXCLUDED_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding"}


def filter_headers(headers: dict[str, str], exclude: set[str]) -> dict[str, str]:
    """Return ``headers`` without the (case-insensitive) names in ``exclude``."""
    return {k: v for k, v in headers.items() if k.lower() not in exclude}


def filter_request_headers(headers: dict[str, str]) -> dict[str, str]:
    """Filter inbound request headers for forwarding to the gateway."""
    return filter_headers(headers, REQUEST_EXCLUDED_HEADERS)


def filter_response_headers(headers: dict[str, str]) -> dict[str, str]:
    """Filter gateway response headers for returning to the client."""
    return filter_headers(headers, RESPONSE_EXCLUDED_HEADERS)
