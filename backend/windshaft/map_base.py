from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from windshaft.config import instantiation_limit, tracker_max_fingerprints
from windshaft.errors import (
    BackendResponseError,
    ErrorKind,
    InstantiationCeilingReached,
    WindshaftError,
    error_from_exception,
    errors_from_response,
)
from windshaft.events import EventEmitter
from windshaft.host import HostResolver
from windshaft.log import get_logger
from windshaft.metadata import MapMetadata
from windshaft.request import Request
from windshaft.request_tracker import RequestTracker
from windshaft.types import (
    AnalysisCollection,
    BackendClient,
    DataviewsCollection,
    LayersCollection,
    ModelUpdater,
)

logger = get_logger(__name__)

INSTANCE_CREATED = "instance_created"
INSTANTIATION_FINISHED = "instantiation_finished"


@dataclass
class InstantiationOptions:
    success: Callable[["WindshaftMap"], Any] | None = None
    error: Callable[[list[WindshaftError]], Any] | None = None
    # Lets dependent models tell which change triggered the instantiation.
    source_id: str | None = None
    force_fetch: bool = False

    @classmethod
    def coerce(cls, options: "InstantiationOptions | dict[str, Any] | None") -> "InstantiationOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if not isinstance(options, Mapping):
            raise TypeError(
                f"options must be InstantiationOptions or a mapping, not {type(options).__name__}"
            )
        return cls(
            success=options.get("success"),
            error=options.get("error"),
            source_id=options.get("source_id") or options.get("sourceId"),
            force_fetch=bool(options.get("force_fetch") or options.get("forceFetch")),
        )


@dataclass(frozen=True)
class InstantiationOutcome:
    ok: bool
    fingerprint: str | None
    # Whether the backend was actually contacted.
    sent: bool
    duration_ms: float
    layergroupid: str | None = None
    kind: ErrorKind | None = None
    errors: list[WindshaftError] = field(default_factory=list)


class WindshaftMap:
    """
    Orchestrates map instantiation against the Maps API.

    Subclasses provide the map definition through `to_json()`. The instance keeps
    the metadata of the last successful instantiation and answers layer/dataview/
    analysis lookups and URL queries from it.

    Events (see `events`):
    - `instance_created(map)` after a successful instantiation
    - `instantiation_finished(outcome)` after every attempt, sent or not
    """

    def __init__(
        self,
        *,
        client: BackendClient | None = None,
        layers_collection: LayersCollection | None = None,
        dataviews_collection: DataviewsCollection | None = None,
        analysis_collection: AnalysisCollection | None = None,
        model_updater: ModelUpdater | None = None,
        stat_tag: str | None = None,
        api_key: str | None = None,
        auth_token: str | None = None,
        request_tracker: RequestTracker | None = None,
    ) -> None:
        if client is None:
            raise ValueError("client option is required")
        if layers_collection is None:
            raise ValueError("layers_collection option is required")
        if dataviews_collection is None:
            raise ValueError("dataviews_collection option is required")
        if analysis_collection is None:
            raise ValueError("analysis_collection option is required")
        if model_updater is None:
            raise ValueError("model_updater option is required")

        self.client = client
        self.url_template: str = client.url_template
        self.user_name: str = client.user_name
        self.stat_tag = stat_tag
        self.api_key = api_key
        self.auth_token = auth_token

        self._layers_collection = layers_collection
        self._dataviews_collection = dataviews_collection
        self._analysis_collection = analysis_collection
        self._model_updater = model_updater

        self._request_tracker = request_tracker or RequestTracker(
            instantiation_limit(), max_fingerprints=tracker_max_fingerprints()
        )
        self._metadata = MapMetadata()
        self.events = EventEmitter()

    def to_json(self) -> Any:
        raise NotImplementedError(
            f"{type(self).__name__} must implement .to_json() to describe the map"
        )

    @property
    def metadata(self) -> MapMetadata:
        return self._metadata

    @property
    def layergroupid(self) -> str | None:
        return self._metadata.layergroupid

    @property
    def request_tracker(self) -> RequestTracker:
        return self._request_tracker

    async def create_instance(
        self,
        options: InstantiationOptions | dict[str, Any] | None = None,
        include_filters: bool = False,
    ) -> InstantiationOutcome:
        t0 = time.perf_counter()
        opts = InstantiationOptions()
        payload: Any = None
        params: dict[str, Any] = {}

        try:
            opts = InstantiationOptions.coerce(options)
            payload = self.to_json()
            params = self._get_params()
            if include_filters:
                filters = self._get_filter_param_from_dataviews()
                if filters:
                    params["filters"] = filters
            request = Request(payload, params, opts)
        except Exception as e:
            logger.error("Failed to build the map instantiation request: %s", e)
            error = error_from_exception(e, ErrorKind.build)
            request = self._failed_build_request(payload, params, error, opts)
            if request is not None:
                self._track_request(request, {"errors": [error.message]})
            return self._fail(opts, [error], ErrorKind.build, request, t0, sent=False)

        if not self._can_perform_request(request):
            limit = self._request_tracker.limit
            logger.error(
                "Maximum number of subsequent equal requests to the Maps API reached (%s): %s %s",
                limit,
                payload,
                params,
            )
            error = error_from_exception(InstantiationCeilingReached(limit), ErrorKind.limit)
            return self._fail(opts, [error], ErrorKind.limit, request, t0, sent=False)

        return await self._perform_request(request, t0)

    def _can_perform_request(self, request: Request) -> bool:
        return self._request_tracker.can_request_be_performed(request)

    def _track_request(self, request: Request, response: Any) -> None:
        self._request_tracker.track(request, response)

    @staticmethod
    def _failed_build_request(
        payload: Any,
        params: dict[str, Any],
        error: WindshaftError,
        opts: InstantiationOptions,
    ) -> Request | None:
        # The marker keeps a failed build from sharing a fingerprint with any
        # request that can actually be sent.
        marked = dict(params, build_error=error.message)
        try:
            return Request(payload, marked, opts)
        except (TypeError, ValueError):
            # e.g. circular references in what was built so far
            return None

    async def _perform_request(self, request: Request, t0: float) -> InstantiationOutcome:
        opts: InstantiationOptions = request.options
        try:
            response = await self.client.instantiate_map(request.payload, request.params)
        except BackendResponseError as e:
            self._track_request(request, e.response)
            errors = errors_from_response(e.response)
            logger.warning(
                "Maps API rejected the map instantiation (status=%s): %s",
                e.status_code,
                [err.message for err in errors],
            )
            return self._fail(opts, errors, ErrorKind.backend, request, t0, sent=True)
        except Exception as e:
            self._track_request(request, {"errors": [str(e)]})
            logger.warning("Map instantiation request failed: %s: %s", type(e).__name__, e)
            error = error_from_exception(e, ErrorKind.network)
            return self._fail(opts, [error], ErrorKind.network, request, t0, sent=True)

        self._track_request(request, response)
        if not isinstance(response, dict):
            error = WindshaftError(message="Invalid Maps API response", kind=ErrorKind.backend)
            return self._fail(opts, [error], ErrorKind.backend, request, t0, sent=True)

        # Build the whole snapshot first, then publish it with one assignment.
        metadata = MapMetadata.from_response(response)
        self._metadata = metadata
        logger.info("Map instantiated: layergroupid=%s", metadata.layergroupid)

        self._model_updater.update_models(self, opts.source_id, opts.force_fetch)
        outcome = InstantiationOutcome(
            ok=True,
            fingerprint=request.fingerprint,
            sent=True,
            duration_ms=(time.perf_counter() - t0) * 1000.0,
            layergroupid=metadata.layergroupid,
        )
        self.events.emit(INSTANCE_CREATED, self)
        if opts.success is not None:
            opts.success(self)
        self.events.emit(INSTANTIATION_FINISHED, outcome)
        return outcome

    def _fail(
        self,
        opts: InstantiationOptions,
        errors: list[WindshaftError],
        kind: ErrorKind,
        request: Request | None,
        t0: float,
        *,
        sent: bool,
    ) -> InstantiationOutcome:
        self._model_updater.set_errors(errors)
        outcome = InstantiationOutcome(
            ok=False,
            fingerprint=request.fingerprint if request is not None else None,
            sent=sent,
            duration_ms=(time.perf_counter() - t0) * 1000.0,
            kind=kind,
            errors=list(errors),
        )
        if opts.error is not None:
            opts.error(errors)
        self.events.emit(INSTANTIATION_FINISHED, outcome)
        return outcome

    def _get_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"stat_tag": self.stat_tag}
        if self.api_key:
            params["api_key"] = self.api_key
        elif self.auth_token:
            params["auth_token"] = self.auth_token
        return params

    def _get_filter_param_from_dataviews(self) -> dict[str, Any]:
        # One shared bucket: a dataview can overwrite keys set by an earlier one.
        filters: dict[str, Any] = {}
        for dataview in self._dataviews_collection:
            dataview_filter = getattr(dataview, "filter", None)
            if dataview_filter is not None and not dataview_filter.is_empty():
                filters.setdefault("dataviews", {}).update(dataview_filter.to_json())
        return filters

    # Queries over the last successful instantiation.

    def host_resolver(self) -> HostResolver:
        return HostResolver(
            user_name=self.user_name,
            url_template=self.url_template,
            cdn_url=self._metadata.cdn_url,
        )

    def get_base_url(self, subhost: str | None = None) -> str:
        layergroupid = self._require_layergroupid()
        return self.host_resolver().base_url(layergroupid, subhost)

    def get_tile_url_templates(self, layer_type: str | None = None, *, fmt: str = "png") -> list[str]:
        layergroupid = self._require_layergroupid()
        metadata = self._metadata
        if layer_type is None:
            indexes = list(range(len(metadata.layers)))
        else:
            indexes = metadata.layer_indexes_by_type(layer_type)
        return self.host_resolver().tile_url_templates(layergroupid, indexes, fmt=fmt)

    def get_supported_subdomains(self) -> list[str]:
        return self.host_resolver().supported_subdomains()

    def get_layer_indexes_by_type(self, layer_type: str) -> list[int]:
        """
        Indexes of the layers of a given type, as the tiler knows them.
        """
        return self._metadata.layer_indexes_by_type(layer_type)

    def get_dataview_metadata(self, dataview_id: str) -> Any:
        return self._metadata.dataview_metadata(dataview_id)

    def get_analysis_node_metadata(self, analysis_id: str) -> Any:
        return self._metadata.analysis_node_metadata(analysis_id)

    def get_layer_metadata(self, layer_index: int) -> dict[str, Any]:
        return self._metadata.layer_metadata(layer_index)

    def _require_layergroupid(self) -> str:
        layergroupid = self._metadata.layergroupid
        if not layergroupid:
            raise RuntimeError("Map has not been instantiated yet (no layergroupid)")
        return layergroupid
