from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from api.instances import create_instance, get_session, instance_payload
from telemetry.singleton import get_store, reset_store

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiDataview(BaseModel):
    id: str
    definition: dict[str, Any] = Field(default_factory=dict)
    # e.g. {"reject": ["a"]}; empty or null means "no filter".
    filter: dict[str, Any] | None = None


class ApiMapDefinition(BaseModel):
    layers: list[dict[str, Any]]
    dataviews: list[ApiDataview] = Field(default_factory=list)
    analyses: list[dict[str, Any]] = Field(default_factory=list)


class ApiInstanceRequest(BaseModel):
    map: ApiMapDefinition
    includeFilters: bool = False
    sourceId: str | None = None
    forceFetch: bool = False


@app.post("/maps/instances")
async def post_instance(body: ApiInstanceRequest):
    return await create_instance(
        layers=body.map.layers,
        dataviews=[dv.model_dump() for dv in body.map.dataviews],
        analyses=body.map.analyses,
        include_filters=body.includeFilters,
        source_id=body.sourceId,
        force_fetch=body.forceFetch,
    )


@app.get("/maps/instances/current")
def get_current_instance():
    session = get_session()
    if not session.windshaft_map.layergroupid:
        raise HTTPException(status_code=404, detail="No map instance yet")
    return instance_payload(session)


@app.get("/telemetry/summary")
def telemetry_summary(userName: str | None = None, sinceMs: int | None = None):
    store = get_store()
    if store is None:
        return {"enabled": False, "rows": [], "recentFailures": []}
    return {
        "enabled": True,
        "rows": store.summary(user_name=userName, since_ms=sinceMs),
        "recentFailures": store.recent_failures(user_name=userName),
    }


@app.post("/telemetry/reset")
def telemetry_reset():
    reset_store()
    return {"ok": True}
