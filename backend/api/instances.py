from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

import duckdb

from telemetry.singleton import get_store
from windshaft.anonymous_map import AnonymousMap
from windshaft.client import HttpBackendClient
from windshaft.config import instantiation_limit, tracker_max_fingerprints
from windshaft.log import get_logger
from windshaft.map_base import (
    INSTANTIATION_FINISHED,
    InstantiationOptions,
    InstantiationOutcome,
)
from windshaft.model_updater import InMemoryModelUpdater
from windshaft.request_tracker import RequestTracker
from windshaft.settings import load_maps_config
from windshaft.types import BackendClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class JsonModel:
    """
    A layer/analysis model that is nothing but its serialized definition.
    """

    definition: dict[str, Any]

    def to_json(self) -> dict[str, Any]:
        return self.definition


@dataclass(frozen=True)
class JsonFilter:
    dataview_id: str
    definition: dict[str, Any] | None

    def is_empty(self) -> bool:
        return not any(v for v in (self.definition or {}).values())

    def to_json(self) -> dict[str, Any]:
        return {self.dataview_id: self.definition or {}}


@dataclass(frozen=True)
class JsonDataview:
    id: str
    definition: dict[str, Any]
    filter: JsonFilter | None = None

    def to_json(self) -> dict[str, Any]:
        return self.definition


@dataclass
class MapSession:
    """
    A long-lived map plus the collections it serializes.

    The collections are mutated in place on each request so the map (and its
    request tracker) survives across requests, the same way UI models change
    under a live map.
    """

    windshaft_map: AnonymousMap
    model_updater: InMemoryModelUpdater
    layers: list[JsonModel] = field(default_factory=list)
    dataviews: list[JsonDataview] = field(default_factory=list)
    analyses: list[JsonModel] = field(default_factory=list)

    def replace_definition(
        self,
        *,
        layers: list[dict[str, Any]],
        dataviews: list[dict[str, Any]],
        analyses: list[dict[str, Any]],
    ) -> None:
        self.layers[:] = [JsonModel(definition=dict(d)) for d in layers]
        self.dataviews[:] = [
            JsonDataview(
                id=str(dv["id"]),
                definition=dict(dv.get("definition") or {}),
                filter=JsonFilter(dataview_id=str(dv["id"]), definition=dv.get("filter"))
                if dv.get("filter") is not None
                else None,
            )
            for dv in dataviews
        ]
        self.analyses[:] = [JsonModel(definition=dict(d)) for d in analyses]


def build_session(client: BackendClient | None = None) -> MapSession:
    cfg = load_maps_config()
    if client is None:
        client = HttpBackendClient(
            user_name=cfg.userName,
            url_template=cfg.urlTemplate,
            timeout_s=cfg.timeoutS,
        )
    tracker = RequestTracker(
        cfg.instantiationLimit or instantiation_limit(),
        max_fingerprints=tracker_max_fingerprints(),
    )
    layers: list[JsonModel] = []
    dataviews: list[JsonDataview] = []
    analyses: list[JsonModel] = []
    updater = InMemoryModelUpdater()
    windshaft_map = AnonymousMap(
        client=client,
        layers_collection=layers,
        dataviews_collection=dataviews,
        analysis_collection=analyses,
        model_updater=updater,
        stat_tag=cfg.statTag,
        api_key=cfg.apiKey,
        auth_token=cfg.authToken,
        request_tracker=tracker,
    )

    def _record(outcome: InstantiationOutcome) -> None:
        try:
            store = get_store()
            if store is not None:
                store.record(user_name=windshaft_map.user_name, outcome=outcome)
        except (duckdb.Error, OSError) as exc:
            logger.warning("Telemetry unavailable, instantiation not recorded: %s", exc)

    windshaft_map.events.on(INSTANTIATION_FINISHED, _record)
    return MapSession(
        windshaft_map=windshaft_map,
        model_updater=updater,
        layers=layers,
        dataviews=dataviews,
        analyses=analyses,
    )


_SESSION: MapSession | None = None
_SESSION_LOCK = threading.RLock()


def get_session() -> MapSession:
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is None:
            _SESSION = build_session()
        return _SESSION


def set_session(session: MapSession | None) -> None:
    global _SESSION
    with _SESSION_LOCK:
        _SESSION = session


def instance_payload(session: MapSession) -> dict[str, Any]:
    m = session.windshaft_map
    metadata = m.metadata
    out: dict[str, Any] = {
        "layergroupid": metadata.layergroupid,
        "lastUpdated": metadata.last_updated,
        "supportedSubdomains": m.get_supported_subdomains(),
        "layers": [
            {"index": i, "type": layer.get("type"), "meta": m.get_layer_metadata(i)}
            for i, layer in enumerate(metadata.layers)
        ],
        "errors": [e.to_dict() for e in session.model_updater.errors],
    }
    if metadata.layergroupid:
        out["baseUrl"] = m.get_base_url()
        out["tiles"] = m.get_tile_url_templates()
    return out


async def create_instance(
    *,
    layers: list[dict[str, Any]],
    dataviews: list[dict[str, Any]] | None = None,
    analyses: list[dict[str, Any]] | None = None,
    include_filters: bool = False,
    source_id: str | None = None,
    force_fetch: bool = False,
) -> dict[str, Any]:
    session = get_session()
    session.replace_definition(
        layers=layers, dataviews=dataviews or [], analyses=analyses or []
    )
    outcome = await session.windshaft_map.create_instance(
        InstantiationOptions(source_id=source_id, force_fetch=force_fetch),
        include_filters=include_filters,
    )
    payload = instance_payload(session)
    payload.update(
        {
            "ok": outcome.ok,
            "sent": outcome.sent,
            "fingerprint": outcome.fingerprint,
            "kind": outcome.kind.value if outcome.kind is not None else None,
            "errors": [e.to_dict() for e in outcome.errors],
        }
    )
    return payload
