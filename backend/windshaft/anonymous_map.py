from __future__ import annotations

from typing import Any

from windshaft.map_base import WindshaftMap


class AnonymousMap(WindshaftMap):
    """
    A map whose full definition (layers, dataviews, analyses) is sent on every
    instantiation, as opposed to a template stored server-side.
    """

    buffersize: dict[str, int] = {"mvt": 0}

    def to_json(self) -> dict[str, Any]:
        return {
            "buffersize": dict(self.buffersize),
            "layers": [layer.to_json() for layer in self._layers_collection],
            "dataviews": {
                dataview.id: dataview.to_json() for dataview in self._dataviews_collection
            },
            "analyses": [analysis.to_json() for analysis in self._analysis_collection],
        }
