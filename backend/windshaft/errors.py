"""
Normalized Maps API errors.

Everything that can go wrong around an instantiation (building the payload,
hitting the local ceiling, an error response, a transport failure) ends up as a
list of `WindshaftError`s handed to the model updater and the caller's error
callback.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    build = "build"
    limit = "limit"
    backend = "backend"
    network = "network"


@dataclass(frozen=True)
class WindshaftError:
    message: str
    type: str | None = None
    subtype: str | None = None
    layer_id: str | None = None
    analysis_id: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    kind: ErrorKind = ErrorKind.backend

    @classmethod
    def from_context(cls, entry: Any) -> "WindshaftError":
        """
        Build an error from one `errors_with_context` entry, e.g.
        `{"type": "layer", "message": "...", "layer": {"id": "l1", "index": 0}}`.
        """
        if not isinstance(entry, dict):
            return cls(message=str(entry))
        layer = entry.get("layer")
        analysis = entry.get("analysis")
        if not isinstance(layer, dict):
            layer = {}
        if not isinstance(analysis, dict):
            analysis = {}
        return cls(
            message=str(entry.get("message") or ""),
            type=entry.get("type"),
            subtype=entry.get("subtype"),
            layer_id=layer.get("id"),
            analysis_id=analysis.get("node_id") or analysis.get("id"),
            context=dict(entry),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"message": self.message, "kind": self.kind.value}
        for k in ("type", "subtype", "layer_id", "analysis_id"):
            v = getattr(self, k)
            if v is not None:
                out[k] = v
        if self.context:
            out["context"] = self.context
        return out


class BackendResponseError(Exception):
    """
    Raised by backend clients when the Maps API answered with an error payload.
    """

    def __init__(self, response: Any, status_code: int | None = None) -> None:
        self.response = response
        self.status_code = status_code
        super().__init__(f"Maps API error response (status={status_code})")


class InstantiationCeilingReached(Exception):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"Maximum number of subsequent equal requests to the Maps API reached ({limit})"
        )


def errors_from_response(response: Any) -> list[WindshaftError]:
    if not isinstance(response, dict):
        return []
    contextual = response.get("errors_with_context")
    if contextual is not None:
        return [WindshaftError.from_context(e) for e in contextual]
    errors = response.get("errors")
    if errors:
        if isinstance(errors, str):
            errors = [errors]
        # Only the primary error is surfaced.
        return [WindshaftError(message=str(errors[0]))]
    return []


def error_from_exception(exc: BaseException, kind: ErrorKind) -> WindshaftError:
    message = str(exc) or type(exc).__name__
    return WindshaftError(message=message, kind=kind)
