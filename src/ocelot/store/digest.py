"""Content digests for change detection.

Plugins pass a node's digest to ``Store.has_node_changed`` to skip
re-creating nodes whose content did not change.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date


def _canonical_default(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, tuple):
        return list(value)
    return str(value)


def content_digest(value: object) -> str:
    """Return a stable hex SHA-256 digest of ``value``.

    Bytes and strings are hashed directly; anything else is hashed through
    canonical JSON (sorted keys, no whitespace), so equal structures give
    equal digests regardless of dict ordering.

    """
    if isinstance(value, bytes):
        data = value
    elif isinstance(value, str):
        data = value.encode("utf-8")
    else:
        data = json.dumps(
            value, sort_keys=True, separators=(",", ":"), default=_canonical_default
        ).encode("utf-8")
    return hashlib.sha256(data).hexdigest()
