from __future__ import annotations

from typing import Any

import httpx

from windshaft.config import backend_timeout_s
from windshaft.errors import BackendResponseError
from windshaft.fingerprint import canonical_json
from windshaft.host import HostResolver
from windshaft.log import get_logger

logger = get_logger(__name__)


class HttpBackendClient:
    """
    Maps API client over HTTP.

    POSTs the map definition as JSON to `<host>/api/v1/map`; auxiliary params go
    in the query string (`filters` JSON-encoded). Error payloads raise
    `BackendResponseError`; transport failures surface as `httpx` exceptions.
    """

    def __init__(
        self,
        *,
        user_name: str,
        url_template: str,
        timeout_s: float | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_name = user_name
        self.url_template = url_template
        self._timeout_s = timeout_s
        self._headers = dict(headers or {})
        # Injected in tests (httpx.MockTransport).
        self._transport = transport

    @property
    def instantiation_url(self) -> str:
        return HostResolver(
            user_name=self.user_name, url_template=self.url_template
        ).instantiation_url()

    @staticmethod
    def _query_params(params: dict[str, Any]) -> dict[str, str]:
        out: dict[str, str] = {}
        for k, v in params.items():
            if v is None:
                continue
            out[k] = v if isinstance(v, str) else canonical_json(v)
        return out

    async def instantiate_map(
        self, map_definition: Any, params: dict[str, Any]
    ) -> dict[str, Any]:
        timeout = self._timeout_s if self._timeout_s is not None else backend_timeout_s()
        async with httpx.AsyncClient(
            timeout=timeout, headers=self._headers, transport=self._transport
        ) as client:
            resp = await client.post(
                self.instantiation_url,
                params=self._query_params(params),
                json=map_definition,
            )

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            if isinstance(body, dict):
                raise BackendResponseError(body, status_code=resp.status_code)
            resp.raise_for_status()

        if not isinstance(body, dict):
            raise ValueError(
                f"Maps API returned a non-JSON body (status={resp.status_code})"
            )
        if body.get("errors") or body.get("errors_with_context"):
            raise BackendResponseError(body, status_code=resp.status_code)

        logger.debug("Maps API responded %s for %s", resp.status_code, self.instantiation_url)
        return body
