"""Async client for the Singularity task store REST API."""
from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import httpx

from linksync import config
from linksync.errors import ConfigurationError, RemoteStoreError
from linksync.models import DeltaOp, KanbanStatus, RemoteNote, RemoteTag, RemoteTask, TaskKanbanStatus
from linksync.sync.delta_links import serialize_ops

logger = logging.getLogger("linksync.api")

# Wrapper keys the store uses around list payloads, most specific first.
_ARRAY_WRAPPER_KEYS = ("tags", "kanbanStatuses", "kanbanTaskStatuses", "data", "items", "results")


def normalize_array_response(response: Any) -> list[Any]:
    """Extract the list from a bare or wrapped list response."""
    if isinstance(response, list):
        return response
    if isinstance(response, dict):
        for key in _ARRAY_WRAPPER_KEYS:
            value = response.get(key)
            if isinstance(value, list):
                return value
    logger.warning("Unexpected API response format: %r", response)
    return []


class SingularityClient:
    """Thin verb layer over the task store. Every call needs a token."""

    def __init__(
        self,
        token: str,
        base_url: str = config.API_BASE_URL,
        *,
        timeout: float = config.REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token = token
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str) -> None:
        self._token = token

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        if not self._token:
            raise ConfigurationError("Singularity API token not configured")

        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._client.request(method, endpoint, headers=headers, json=body, params=params)
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Singularity API request failed: {exc}", endpoint=endpoint) from exc

        if response.status_code >= 400:
            raise RemoteStoreError(
                f"Singularity API error: {response.status_code} {response.text}",
                status_code=response.status_code,
                endpoint=endpoint,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteStoreError(f"Singularity API returned invalid JSON for {endpoint}", endpoint=endpoint) from exc

    async def get_task(self, task_id: str) -> RemoteTask:
        return RemoteTask.model_validate(await self._request(f"/v2/task/{task_id}"))

    async def get_note(self, note_id: str) -> RemoteNote:
        return RemoteNote.model_validate(await self._request(f"/v2/note/{note_id}"))

    async def update_task_note(self, task_id: str, ops: Sequence[DeltaOp]) -> Any:
        """Replace the task body. The op list is sent as a JSON string, unwrapped."""
        return await self._request(
            f"/v2/task/{task_id}",
            "PATCH",
            {"note": json.dumps(serialize_ops(ops), ensure_ascii=False)},
        )

    async def get_kanban_statuses(self, project_id: str) -> list[KanbanStatus]:
        response = await self._request("/v2/kanban-status", params={"projectId": project_id})
        return [KanbanStatus.model_validate(item) for item in normalize_array_response(response)]

    async def get_task_kanban_status(self, task_id: str) -> list[TaskKanbanStatus]:
        """Empty when the task sits in the backlog."""
        response = await self._request("/v2/kanban-task-status", params={"taskId": task_id})
        return [TaskKanbanStatus.model_validate(item) for item in normalize_array_response(response)]

    async def get_tags(self) -> list[RemoteTag]:
        response = await self._request("/v2/tag")
        return [RemoteTag.model_validate(item) for item in normalize_array_response(response)]
