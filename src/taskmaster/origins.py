from __future__ import annotations

from typing import Iterable, Optional


# PUBLIC_INTERFACE
def normalize_origin(origin: str) -> str:
    """Strip surrounding whitespace and any trailing slashes from an origin."""
    return origin.strip().rstrip("/")


# PUBLIC_INTERFACE
def is_origin_allowed(origin: Optional[str], allowed: Iterable[str]) -> bool:
    """
    Decide whether a request origin may reach the API.

    A missing or blank Origin header (same-origin page, curl, server-to-server)
    is always allowed. Otherwise the normalized origin must exactly equal one
    of the normalized allow-list entries.
    """
    if origin is None or not origin.strip():
        return True
    candidate = normalize_origin(origin)
    return any(candidate == normalize_origin(a) for a in allowed if a and a.strip())
