import sys
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `windshaft.*`, `telemetry.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

from windshaft.errors import BackendResponseError  # noqa: E402


SUCCESS_RESPONSE = {
    "layergroupid": "lg-123",
    "last_updated": "2016-01-01T00:00:00.000Z",
    "metadata": {
        "layers": [
            {"type": "mapnik", "meta": {"cartocss": "#l { }", "stats": []}},
            {"type": "torque", "meta": {"start": 0, "end": 10}},
            {"type": "mapnik", "meta": {"cartocss": "#l2 { }"}},
        ],
        "dataviews": {"dv-1": {"url": {"http": "http://x/dv-1"}}},
        "analyses": [],
    },
}


class FakeClient:
    """
    In-memory backend client: pops scripted responses, records every call.

    A scripted exception is raised instead of returned.
    """

    def __init__(
        self,
        responses=None,
        *,
        user_name: str = "acme",
        url_template: str = "http://{user}.example.com",
    ):
        self.user_name = user_name
        self.url_template = url_template
        self.calls: list[tuple] = []
        self._responses = list(responses or [])

    async def instantiate_map(self, map_definition, params):
        self.calls.append((map_definition, params))
        r = self._responses.pop(0) if self._responses else SUCCESS_RESPONSE
        if isinstance(r, BaseException):
            raise r
        return r


@pytest.fixture(autouse=True)
def _telemetry_off_by_default(monkeypatch):
    # Tests that exercise telemetry turn it back on explicitly.
    monkeypatch.setenv("WINDSHAFT_TELEMETRY", "0")


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def success_response():
    return SUCCESS_RESPONSE


@pytest.fixture
def backend_error():
    def make(response, status_code=400):
        return BackendResponseError(response, status_code=status_code)

    return make
