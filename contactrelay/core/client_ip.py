"""Client IP resolution for requests arriving through proxies."""

from typing import Mapping, Optional

# Checked in order; the first header present wins.
FORWARDED_HEADERS = (
    "CF-Connecting-IP",  # Cloudflare
    "X-Forwarded-For",
    "X-Real-IP",  # nginx
    "X-Client-IP",
)

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str], peer_host: Optional[str] = None) -> str:
    """Get the address used as the rate limiting key.

    Args:
        headers: Request headers (case-insensitive mapping)
        peer_host: Host of the raw connection, used when no proxy header is set

    Returns:
        The first comma-separated value of the first forwarded header present,
        otherwise the peer host, otherwise ``"unknown"``
    """
    for header in FORWARDED_HEADERS:
        value = headers.get(header)
        if value and value.strip():
            first = value.split(",")[0].strip()
            if first:
                return first

    return peer_host or UNKNOWN_CLIENT
