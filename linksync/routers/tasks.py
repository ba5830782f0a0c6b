"""Enriched task lookups for the renderer, and settings."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from linksync.errors import ConfigurationError, RemoteStoreError
from linksync.models import Settings, TaskData
from linksync.routers.commands import _get_services

tasks_router = APIRouter(prefix="/api/tasks", tags=["tasks"])
settings_router = APIRouter(prefix="/api/settings", tags=["settings"])


@tasks_router.get("/{task_id}", response_model=TaskData)
async def get_task(request: Request, task_id: str):
    """Return the enriched task, served from cache while fresh."""
    services = _get_services(request)
    try:
        return await services.cache.get_task_data(task_id)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RemoteStoreError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        raise HTTPException(status_code=502, detail=str(e))


TOKEN_MASK = "***"


def _public(settings: Settings) -> dict[str, Any]:
    payload = settings.model_dump()
    payload["apiToken"] = TOKEN_MASK if settings.apiToken else ""
    return payload


@settings_router.get("")
def get_settings(request: Request):
    services = _get_services(request)
    return _public(services.settings_store.settings)


@settings_router.put("")
def update_settings(request: Request, changes: dict[str, Any]):
    """Partial update; applied to the client, cache and vault at once."""
    services = _get_services(request)
    if changes.get("apiToken") == TOKEN_MASK:
        # Echo of the masked value from GET: keep the stored token.
        changes = {k: v for k, v in changes.items() if k != "apiToken"}
    try:
        settings = services.settings_store.update(changes)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _public(settings)
