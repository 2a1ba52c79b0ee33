from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _as_dict(v: Any) -> dict[str, Any]:
    return v if isinstance(v, dict) else {}


def _as_list(v: Any) -> list[Any]:
    return list(v) if isinstance(v, (list, tuple)) else []


@dataclass(frozen=True)
class MapMetadata:
    """
    The part of a successful instantiation response we keep around.

    Built in one go from a single response; the owning map swaps the whole object,
    so readers never see layers from one response and dataviews from another.
    """

    layergroupid: str | None = None
    layers: tuple[dict[str, Any], ...] = ()
    dataviews: dict[str, Any] = field(default_factory=dict)
    analyses: tuple[dict[str, Any], ...] = ()
    cdn_url: dict[str, str] | None = None
    last_updated: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "MapMetadata":
        meta = _as_dict(response.get("metadata"))
        cdn_url = response.get("cdn_url")
        return cls(
            layergroupid=response.get("layergroupid"),
            layers=tuple(layer for layer in _as_list(meta.get("layers")) if isinstance(layer, dict)),
            dataviews=_as_dict(meta.get("dataviews")),
            analyses=tuple(a for a in _as_list(meta.get("analyses")) if isinstance(a, dict)),
            cdn_url=dict(cdn_url) if isinstance(cdn_url, dict) else None,
            last_updated=response.get("last_updated"),
            raw=response,
        )

    def layer_indexes_by_type(self, layer_type: str) -> list[int]:
        return [i for i, layer in enumerate(self.layers) if layer.get("type") == layer_type]

    def dataview_metadata(self, dataview_id: str) -> Any:
        if dataview_id in self.dataviews:
            return self.dataviews[dataview_id]

        # Older responses only carry dataviews inside each layer's `widgets` table.
        merged: dict[str, Any] = {}
        for layer in self.layers:
            widgets = layer.get("widgets")
            if widgets:
                merged.update(widgets)
        return merged.get(dataview_id)

    def analysis_node_metadata(self, analysis_id: str) -> Any:
        nodes: dict[str, Any] = {}
        for analysis in self.analyses:
            nodes.update(_as_dict(analysis.get("nodes")))
        return nodes.get(analysis_id)

    def layer_metadata(self, layer_index: int) -> dict[str, Any]:
        if 0 <= layer_index < len(self.layers):
            return self.layers[layer_index].get("meta") or {}
        return {}
