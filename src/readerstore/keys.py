"""Cache key derivation for API requests.

A request ``(endpoint, method, params)`` is reduced to one opaque string
that is safe to embed in a composite storage key:

  1. Canonical JSON of ``{"endpoint", "method", "params"}`` with string,
     sorted keys at every depth, sets written as ordered lists and compact
     separators, so the key does not depend on parameter insertion order
     or on the process hash seed.
  2. Base64 of the UTF-8 bytes, with ``+`` and ``/`` mapped to ``-`` and
     ``.`` and the ``=`` padding stripped.
  3. Keys longer than :data:`MAX_KEY_LENGTH` are replaced by the SHA-256
     hex digest of the canonical JSON.

This is a performance cache, so collision resistance only needs to be
practical.
"""

from __future__ import annotations

import base64
import hashlib
import json
from collections.abc import Mapping
from typing import Any

MAX_KEY_LENGTH = 120

_UNSAFE = str.maketrans({"+": "-", "/": ".", "=": None})


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def _canonical(value: Any) -> Any:
    """Plain JSON-shaped copy of *value* with string keys at every depth.

    Sets become lists ordered by their members' canonical JSON, so the
    encoding does not depend on hash seeds.
    """
    if isinstance(value, Mapping):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(v) for v in value), key=_dumps)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    return value


def normalize_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a canonical dict copy of *params*; ``None`` becomes ``{}``."""
    if not params:
        return {}
    return _canonical(params)


def canonical_request(endpoint: str, method: str, params: Mapping[str, Any] | None) -> str:
    """Compact JSON for a request, stable under reordering of *params*."""
    payload = {
        "endpoint": endpoint.strip(),
        "method": method.strip().upper(),
        "params": normalize_params(params),
    }
    return _dumps(payload)


def generate_cache_key(endpoint: str, method: str = "GET", params: Mapping[str, Any] | None = None) -> str:
    """Encode a request into an opaque, storage-safe cache key.

    Parameters
    ----------
    endpoint : str
        Logical API endpoint, e.g. ``"/quotes/recent"``.
    method : str
        HTTP method; case-insensitive.
    params : mapping or None
        Request parameters. Ordering does not affect the key.

    Returns
    -------
    str
        Key made of ``[A-Za-z0-9.-]`` characters.
    """
    canonical = canonical_request(endpoint, method, params)
    encoded = base64.b64encode(canonical.encode("utf-8")).decode("ascii").translate(_UNSAFE)
    if len(encoded) <= MAX_KEY_LENGTH:
        return encoded
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
