"""
Collaborator interfaces the orchestrator talks to.

The layer/dataview/analysis models, the dependent-state updater and the backend
client all live outside this package; only their boundary is described here.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Protocol

if TYPE_CHECKING:
    from windshaft.errors import WindshaftError
    from windshaft.map_base import WindshaftMap


class JSONModel(Protocol):
    def to_json(self) -> Any: ...


class DataviewFilter(Protocol):
    def is_empty(self) -> bool: ...

    def to_json(self) -> dict[str, Any]: ...


class Dataview(Protocol):
    id: str
    filter: DataviewFilter | None

    def to_json(self) -> Any: ...


class BackendClient(Protocol):
    """
    Maps API client.

    `instantiate_map` resolves to the success response, raises
    `BackendResponseError` for error payloads and any other exception when the
    call itself could not complete.
    """

    url_template: str
    user_name: str

    async def instantiate_map(
        self, map_definition: Any, params: dict[str, Any]
    ) -> dict[str, Any]: ...


class ModelUpdater(Protocol):
    def update_models(
        self, windshaft_map: "WindshaftMap", source_id: str | None, force_fetch: bool
    ) -> None: ...

    def set_errors(self, errors: list["WindshaftError"]) -> None: ...


LayersCollection = Iterable[JSONModel]
DataviewsCollection = Iterable[Dataview]
AnalysisCollection = Iterable[JSONModel]
