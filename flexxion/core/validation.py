from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from .errors import ValidationError


def clean_text(value: Any, label: str, max_length: int) -> str:
    """Trim ``value`` and enforce it is a non-empty string of bounded length."""
    if not isinstance(value, str):
        raise ValidationError(f"{label} text is required")
    text = value.strip()
    if not text:
        raise ValidationError(f"{label} text is required")
    if len(text) > max_length:
        raise ValidationError(f"{label} text must be at most {max_length} characters")
    return text


def clean_image(value: Any) -> str | None:
    """Empty means no image; anything else must be an absolute http(s) URL."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Image must be a URL")
    ref = value.strip()
    if not ref:
        return None
    parsed = urlparse(ref)
    if parsed.scheme not in ("http", "https") or not parsed.netloc or any(c.isspace() for c in ref):
        raise ValidationError("Image must be an http(s) URL")
    return ref


def coerce_positive_int(value: Any, default: int) -> int:
    """Lenient query parsing: anything that is not a positive integer gives ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
