"""
Canonical parameter string for request signing.

  1. merge auth metadata, query params, body params (later sources win)
  2. drop None values, stringify the rest
  3. sort keys by code point (ordinal)
  4. percent-encode key and value, join as k=v&k=v

The server recomputes this string from the parameters it receives, so the
output must be byte-exact. Encoding contract (same as JavaScript's
encodeURIComponent): UTF-8 bytes, unreserved set A-Z a-z 0-9 - _ . ! ~ * ' ( ),
everything else as %XX with uppercase hex. Space is %20, never '+'.

No httpx import here: this module is pure and usable on its own.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Mapping
from urllib.parse import quote

from client.errors import EncodingError

KEY_PARAM = "Key"
TIMESTAMP_PARAM = "Timestamp"

# quote() always keeps A-Za-z0-9 and "_.-~"; add the rest of the
# encodeURIComponent unreserved set.
_SAFE_CHARS = "!*'()"

# Outside this range floats only have an exponent form, which the server
# does not parse the same way.
_MIN_FLOAT_MAGNITUDE = 1e-6
_MAX_FLOAT_MAGNITUDE = 1e21


def build_auth_meta(public_key: str, timestamp: int) -> dict[str, Any]:
    """Auth metadata that seeds every parameter set."""
    return {KEY_PARAM: public_key, TIMESTAMP_PARAM: timestamp}


def stringify_value(value: Any, context: str = "value") -> str:
    """
    Convert a scalar parameter to its wire text.

    Raises:
        EncodingError: for non-scalars, NaN/Inf, or floats that would need
            scientific notation.
    """
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _stringify_float(value, context)
    if isinstance(value, str):
        return value
    raise EncodingError(
        f"Cannot sign {context}: unsupported type {type(value).__name__}"
    )


def _stringify_float(value: float, context: str) -> str:
    if math.isnan(value) or math.isinf(value):
        raise EncodingError(f"Cannot sign {context}: non-finite float {value}")
    if value == 0:
        return "0"
    magnitude = abs(value)
    if magnitude >= _MAX_FLOAT_MAGNITUDE or magnitude < _MIN_FLOAT_MAGNITUDE:
        raise EncodingError(
            f"Cannot sign {context}: {value!r} has no positional form"
        )
    if value.is_integer():
        return str(int(value))
    # repr gives the shortest round-trip digits; Decimal lays them out
    # without an exponent.
    return format(Decimal(repr(value)), "f")


def encode_component(text: str) -> str:
    """Percent-encode one key or value."""
    try:
        return quote(text, safe=_SAFE_CHARS, encoding="utf-8", errors="strict")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Cannot encode {text!r} as UTF-8: {e}") from e


def merge_params(
    auth_meta: Mapping[str, Any],
    query: Mapping[str, Any] | None = None,
    body: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """
    Merge the three parameter sources into one stringified mapping.

    Precedence is auth_meta < query < body. A later None overrides an
    earlier value, then the key is excluded.
    """
    merged: dict[str, Any] = {}
    for source in (auth_meta, query, body):
        if source:
            merged.update(source)

    params: dict[str, str] = {}
    for key, value in merged.items():
        if not isinstance(key, str):
            raise EncodingError(f"Parameter names must be strings, got {key!r}")
        if value is None:
            continue
        params[key] = stringify_value(value, context=f"parameter '{key}'")
    return params


def canonical_string(params: Mapping[str, Any]) -> str:
    """Sort and encode an already-merged parameter mapping."""
    for key in params:
        if not isinstance(key, str):
            raise EncodingError(f"Parameter names must be strings, got {key!r}")
    pairs = []
    for key in sorted(params):
        value = params[key]
        if value is None:
            continue
        text = stringify_value(value, context=f"parameter '{key}'")
        pairs.append(f"{encode_component(key)}={encode_component(text)}")
    return "&".join(pairs)


def canonicalize(
    auth_meta: Mapping[str, Any],
    query: Mapping[str, Any] | None = None,
    body: Mapping[str, Any] | None = None,
) -> str:
    """Build the canonical string for one request."""
    return canonical_string(merge_params(auth_meta, query, body))
