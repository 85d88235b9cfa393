"""Field validators shared by request schemas."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

ORG_IMAGE_MAX_BYTES = 1024 * 1024
TICKET_IMAGE_MAX_BYTES = 5 * 1024 * 1024

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


def decoded_base64_size(value: str) -> int:
    """Decoded byte count of a base64 string (4 chars carry 3 bytes)."""
    unpadded = value.rstrip("=")
    return (len(unpadded) * 3) // 4


def validate_base64_image(value: str | None, *, max_bytes: int, field_name: str = "Image") -> str | None:
    """
    Check a raw base64 image payload.

    Empty values are treated as "no image". Raises ValueError with a
    message suitable for a field-level validation error.
    """
    if not value:
        return None
    if not _BASE64_RE.match(value):
        raise ValueError(f"{field_name} contains invalid base64 characters")
    size = decoded_base64_size(value)
    if size > max_bytes:
        raise ValueError(
            f"{field_name} exceeds maximum size of {max_bytes} bytes (decoded size: {size} bytes)"
        )
    return value


def normalize_optional_url(value: str | None) -> str | None:
    """
    Accept an http(s) URL or an empty value.

    Returns None for empty input so optional columns are cleared.
    """
    candidate = (value or "").strip()
    if not candidate:
        return None
    parts = urlsplit(candidate)
    if (parts.scheme or "").lower() not in ("http", "https") or not parts.netloc:
        raise ValueError("Invalid URL")
    return candidate


def normalize_optional_text(value: str | None) -> str | None:
    """Trim text and collapse empty strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
