"""
Write-side normalization for course data.

Course financial fields arrive from the admin UI as free text with either
a comma or a dot as decimal separator, and module lists arrive either as
native lists or as JSON strings with stray quotes/backticks pasted in.
Everything here is idempotent: feeding an output back in returns it unchanged.
"""

from __future__ import annotations

import json
import re
from decimal import ROUND_HALF_UP, Decimal, DecimalException, localcontext
from typing import Any

_NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_TICKS = " `\"'\t\n\r"
_CENTS = Decimal("0.01")


def is_numeric(value: Any) -> bool:
    """True for ints/floats and for strings holding a plain decimal number."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == value and value not in (float("inf"), float("-inf"))
    if isinstance(value, str):
        return bool(_NUMERIC_RE.match(value.strip()))
    return False


def normalize_decimal(value: Any) -> str | None:
    """
    Canonical two-decimal string for a money-like value.

    "10,5" -> "10.50", 7 -> "7.00", "abc" -> None, "" -> None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        candidate = value.strip().replace(",", ".")
    elif isinstance(value, bool):
        return None
    else:
        candidate = str(value)

    if not is_numeric(candidate):
        return None
    try:
        amount = Decimal(candidate)
        # Room for every integer digit plus the cents
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, amount.adjusted() + 3)
            return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))
    except DecimalException:
        return None


def coerce_int(value: Any, default: int = 0) -> int:
    """Integer for numeric input (truncating), `default` otherwise."""
    if not is_numeric(value):
        return default
    return int(Decimal(str(value).strip()))


def coerce_limit(value: Any) -> int:
    """Module capacity: non-negative integer, 0 when absent or non-numeric."""
    return max(0, coerce_int(value, default=0))


def strip_ticks(value: str | None) -> str | None:
    """Remove surrounding whitespace, quotes and backticks."""
    if value is None:
        return None
    return value.strip().strip(_TICKS)


def sanitize_strings(value: Any) -> Any:
    """Recursively strip ticks from every string inside dicts/lists."""
    if isinstance(value, dict):
        return {k: sanitize_strings(v) for k, v in value.items()}
    if isinstance(value, list):
        return [sanitize_strings(v) for v in value]
    if isinstance(value, str):
        return strip_ticks(value)
    return value


def decode_json_list(value: Any) -> list | None:
    """Native list as-is, JSON-encoded list decoded, anything else None."""
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value != "":
        try:
            decoded = json.loads(value)
        except ValueError:
            return None
        return decoded if isinstance(decoded, list) else None
    return None


def decode_json_object(value: Any) -> dict | None:
    """Native dict as-is, JSON-encoded object decoded, anything else None."""
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value != "":
        try:
            decoded = json.loads(value)
        except ValueError:
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def sanitize_string_list(value: Any) -> list | None:
    """Aircraft-style lists: decode, then strip ticks element-wise."""
    items = decode_json_list(value)
    if items is None:
        return None
    return [strip_ticks(item) if isinstance(item, str) else item for item in items]


def sanitize_modules(value: Any) -> list[dict[str, Any]] | None:
    """
    Clean a course module list.

    Non-dict entries are dropped, nested strings are stripped,
    `limite` becomes a non-negative int and `aviao` becomes a list.
    """
    modules = decode_json_list(value)
    if modules is None:
        return None

    clean: list[dict[str, Any]] = []
    for module in modules:
        if not isinstance(module, dict):
            continue
        m = sanitize_strings(module)
        m["limite"] = coerce_limit(m.get("limite"))
        if "aviao" in m:
            m["aviao"] = sanitize_string_list(m["aviao"]) or []
        clean.append(m)
    return clean
