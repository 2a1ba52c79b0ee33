from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json(value: Any) -> str:
    # Key order must not matter; anything json can't encode is stringified.
    # ASCII-only output so lone surrogates still hash.
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    )


def fingerprint(definition: Any, params: Any) -> str:
    """
    Stable identity of a (map definition, params) pair.

    Structurally equal inputs produce the same key regardless of dict ordering.
    Keys within one mapping must be mutually sortable (e.g. all strings); mixing
    `int` and `str` keys in the same dict raises `TypeError`.
    """
    text = canonical_json({"definition": definition, "params": params})
    return hashlib.sha256(text.encode("ascii")).hexdigest()
