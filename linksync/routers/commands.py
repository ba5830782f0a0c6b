"""Host-facing commands and vault change events."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from linksync.vault import VaultNote

logger = logging.getLogger("linksync.commands")

commands_router = APIRouter(prefix="/api/commands", tags=["commands"])
events_router = APIRouter(prefix="/api/events", tags=["events"])


class NotePathRequest(BaseModel):
    path: str = Field(..., min_length=1)


class RenameEvent(BaseModel):
    path: str = Field(..., min_length=1)
    oldPath: str = ""


def _get_services(request: Request):
    services = getattr(request.app.state, "services", None)
    if not services:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


def _resolve_note(services, raw_path: str) -> VaultNote:
    try:
        note = services.vault.note(raw_path)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not note.path.is_file():
        raise HTTPException(status_code=404, detail=f"Note not found: {raw_path}")
    return note


@commands_router.post("/refresh-cache")
async def refresh_cache(request: Request):
    """Drop every cached task, status set and tag."""
    services = _get_services(request)
    services.cache.invalidate_all()
    return {"status": "ok", "message": "Singularity cache cleared"}


@commands_router.post("/sync-note")
async def sync_current_note(request: Request, body: NotePathRequest):
    """Sync one note now and report how many references made it."""
    services = _get_services(request)
    if not services.client.has_token:
        raise HTTPException(status_code=400, detail="Singularity API token not configured")
    note = _resolve_note(services, body.path)
    summary = await services.synchronizer.sync_current_note(note)
    return {"status": "ok", **summary.as_dict()}


@events_router.post("/modified")
async def note_modified(request: Request, body: NotePathRequest):
    services = _get_services(request)
    scheduled = services.intake.on_file_modified(body.path)
    return {"status": "ok", "scheduled": scheduled}


@events_router.post("/renamed")
async def note_renamed(request: Request, body: RenameEvent):
    services = _get_services(request)
    summary = await services.intake.on_file_renamed(body.path, body.oldPath)
    if summary is None:
        return {"status": "ok", "synced": False}
    return {"status": "ok", "synced": True, **summary.as_dict()}
