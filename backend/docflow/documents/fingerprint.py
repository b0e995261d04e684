"""
Document fingerprinting — SHA-256 over the content that gets rendered.

Two renders with the same fingerprint for the same enrollment and kind are
the same document.  The hashed payload is:

    kind, template_id, resolved period units, course financial snapshot,
    enrollment commercial terms (subtotal, discount, total)

serialised as canonical JSON (sorted keys, no whitespace, UTF-8).
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json(payload: Any) -> bytes:
    """Deterministic JSON encoding used for hashing."""
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    ).encode("utf-8")


def compute_fingerprint(
    *,
    kind: str,
    template_id: str,
    periods: list[Any],
    financial: dict[str, Any],
    terms: dict[str, Any] | None = None,
) -> str:
    """Hex SHA-256 of the fingerprint payload."""
    payload = {
        "kind": str(kind),
        "template_id": template_id,
        "periods": periods,
        "financial": financial,
        "terms": terms or {},
    }
    return hashlib.sha256(canonical_json(payload)).hexdigest()
