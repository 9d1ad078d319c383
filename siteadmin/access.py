"""IP allow-list, password check and client IP resolution.

Client IP precedence (first match wins):
1. X-Forwarded-For: first entry
2. X-Real-IP
3. the literal "unknown"

The forwarding headers are trusted as-is. The service expects to sit behind
a reverse proxy that sets them; a client talking to it directly can spoof
its IP.
"""

from __future__ import annotations

import hmac
from collections.abc import Iterable, Mapping

UNKNOWN_IP = "unknown"


def parse_allowlist(raw: str | Iterable[str] | None) -> list[str]:
    """Normalise the configured allow-list to a list of trimmed IP strings."""
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = [str(item) for item in raw]
    return [item.strip() for item in items if item.strip()]


def is_allowed_ip(ip: str, allowlist: str | Iterable[str] | None) -> bool:
    """Exact-match membership test.

    An empty allow-list permits every IP. This is the development bypass:
    leaving ALLOWED_IPS unset exposes the login form to anyone.
    """
    allowed = parse_allowlist(allowlist)
    if not allowed:
        return True
    return ip in allowed


def verify_password(candidate: str | None, configured: str | None) -> bool:
    """Compare against the single shared admin password.

    Only a non-empty string candidate can match; a JSON number never equals
    the configured password even when its digits do.
    """
    if not isinstance(candidate, str) or not candidate:
        return False
    if configured is None or configured == "":
        return False
    return hmac.compare_digest(candidate.encode(), str(configured).encode())


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """Extract the client IP from reverse-proxy headers."""
    forwarded = _header(headers, "X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or UNKNOWN_IP

    real_ip = _header(headers, "X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return UNKNOWN_IP
