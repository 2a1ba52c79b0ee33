from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from windshaft.fingerprint import fingerprint


@dataclass(frozen=True)
class Request:
    """
    One instantiation attempt.

    Identity (for dedup) is the fingerprint of `(payload, params)`, taken when the
    request is constructed; `options` never participate.
    """

    payload: Any
    params: dict[str, Any]
    options: Any = field(default=None, compare=False, repr=False)
    fingerprint: str = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fingerprint", fingerprint(self.payload, self.params))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Request):
            return NotImplemented
        return self.fingerprint == other.fingerprint

    def __hash__(self) -> int:
        return hash(self.fingerprint)
