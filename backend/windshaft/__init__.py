"""
Windshaft (Maps API) client core.

A map is instantiated by POSTing its definition to the Maps API; the response
carries a `layergroupid` plus per-layer/dataview/analysis metadata used to build
tile URLs. This package owns the orchestration around that call: request
dedup/ceiling, error normalization and host resolution.
"""
from __future__ import annotations

from windshaft.anonymous_map import AnonymousMap
from windshaft.errors import WindshaftError, errors_from_response
from windshaft.host import HostResolver
from windshaft.map_base import InstantiationOptions, InstantiationOutcome, WindshaftMap
from windshaft.request import Request
from windshaft.request_tracker import RequestTracker

__all__ = [
    "AnonymousMap",
    "HostResolver",
    "InstantiationOptions",
    "InstantiationOutcome",
    "Request",
    "RequestTracker",
    "WindshaftError",
    "WindshaftMap",
    "errors_from_response",
]
