from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from windshaft.errors import WindshaftError

if TYPE_CHECKING:
    from windshaft.map_base import WindshaftMap


@dataclass
class InMemoryModelUpdater:
    """
    Dependent-state updater that just keeps the current state around.

    Stands in for the layer/dataview/analysis models when the orchestrator runs
    behind the HTTP API: a successful instantiation clears the error set and
    snapshots per-layer metadata; a failed one replaces the error set.
    """

    errors: list[WindshaftError] = field(default_factory=list)
    layers_meta: list[dict[str, Any]] = field(default_factory=list)
    last_source_id: str | None = None
    last_force_fetch: bool = False
    updates: int = 0

    def update_models(
        self, windshaft_map: "WindshaftMap", source_id: str | None, force_fetch: bool
    ) -> None:
        metadata = windshaft_map.metadata
        self.layers_meta = [
            windshaft_map.get_layer_metadata(i) for i in range(len(metadata.layers))
        ]
        self.errors = []
        self.last_source_id = source_id
        self.last_force_fetch = bool(force_fetch)
        self.updates += 1

    def set_errors(self, errors: list[WindshaftError]) -> None:
        self.errors = list(errors)
