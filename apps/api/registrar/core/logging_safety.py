"""Log-safe references for identifiers and contact details.

Raw principal ids, profile ids, request ids and emails never reach log
records. Each kind of identifier is hashed under its own prefix so that
references stay correlatable within a kind without colliding across kinds.
"""

from __future__ import annotations

from functools import partial
import hashlib
from typing import Any

_DIGEST_LENGTH = 12


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return ``<prefix>-<sha256[:12]>``, or ``<prefix>-missing`` for blank values."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(f"{prefix}:{text}".encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    return f"{prefix}-{digest}"


principal_ref = partial(safe_log_identifier, prefix="pid")
profile_ref = partial(safe_log_identifier, prefix="prf")
request_ref = partial(safe_log_identifier, prefix="apr")
correlation_ref = partial(safe_log_identifier, prefix="cid")


def mask_email(value: str | None) -> str:
    """Keep the first local-part character and the domain: ``a***@example.com``."""
    text = (value or "").strip()
    local, sep, domain = text.partition("@")
    if not sep or not local:
        return "email-missing" if not text else "email-invalid"
    return f"{local[0]}***@{domain.lower()}"


__all__ = ["correlation_ref", "mask_email", "principal_ref", "profile_ref", "request_ref", "safe_log_identifier"]
