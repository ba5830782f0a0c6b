"""Time-boxed cache of enriched task records in front of the task store.

Three record classes share one TTL but expire independently, each from
its own fetch time: enriched tasks (per task id), kanban status sets
(per project) and the global tag catalog (single entry).

Two callers may both see a stale entry and both refetch; the second
write simply overwrites the first. The store is the source of truth.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from linksync import config
from linksync.models import CacheEntry, KanbanStatus, RemoteTag, TaskData, TaskStatus
from linksync.observability import record_cache_lookup, start_span

logger = logging.getLogger("linksync.cache")

LOCALES: dict[str, dict[str, str]] = {
    "en": {"statusDone": "Done", "statusCancelled": "Cancelled"},
    "ru": {"statusDone": "Готово", "statusCancelled": "Отменена"},
}

CHECKED_COMPLETED = 1
CHECKED_CANCELLED = 2
BACKLOG_STATUS_SUFFIX = "-TODO"


def resolve_status(
    *,
    is_completed: bool,
    is_cancelled: bool,
    assignments: list[Any],
    project_statuses: list[KanbanStatus],
    language: str = "en",
) -> Optional[TaskStatus]:
    """Pick the status shown for a task.

    Cancelled and done always win over any kanban placement. A task with
    no placement falls back to the project's backlog column.
    """
    locale = LOCALES.get(language, LOCALES["en"])
    if is_cancelled:
        return TaskStatus(id="CANCELLED", name=locale["statusCancelled"])
    if is_completed:
        return TaskStatus(id="DONE", name=locale["statusDone"])
    if assignments:
        status_id = assignments[0].statusId
        for status in project_statuses:
            if status.id == status_id:
                return TaskStatus(id=status.id, name=status.name)
        return None
    for status in project_statuses:
        if status.id.endswith(BACKLOG_STATUS_SUFFIX):
            return TaskStatus(id=status.id, name=status.name)
    return None


class TaskCache:
    def __init__(
        self,
        api: Any,
        cache_ttl: int = config.CACHE_TTL_MINUTES,
        language: str = config.LANGUAGE,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.api = api
        self.cache_ttl = cache_ttl  # minutes
        self.language = language
        self._clock = clock

        self._task_cache: dict[str, CacheEntry] = {}
        self._kanban_cache: dict[str, CacheEntry] = {}
        self._tags_cache: CacheEntry | None = None

    def set_cache_ttl(self, ttl: int) -> None:
        self.cache_ttl = ttl

    def set_language(self, language: str) -> None:
        if language == self.language:
            return
        self.language = language
        # Status labels are localized, so enriched records must be rebuilt.
        self._task_cache.clear()

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self.cache_ttl * 60

    def _entry(self, data: Any) -> CacheEntry:
        return CacheEntry(data=data, timestamp=self._clock())

    async def get_tags(self) -> list[RemoteTag]:
        if self._tags_cache and not self._is_expired(self._tags_cache):
            record_cache_lookup("tags", "hit")
            return self._tags_cache.data

        record_cache_lookup("tags", "miss")
        tags = await self.api.get_tags()
        self._tags_cache = self._entry(tags)
        return tags

    async def get_tags_by_ids(self, tag_ids: list[str]) -> list[RemoteTag]:
        all_tags = await self.get_tags()
        wanted = set(tag_ids)
        return [tag for tag in all_tags if tag.id in wanted]

    async def get_kanban_statuses(self, project_id: str) -> list[KanbanStatus]:
        cached = self._kanban_cache.get(project_id)
        if cached and not self._is_expired(cached):
            record_cache_lookup("kanban", "hit")
            return cached.data

        record_cache_lookup("kanban", "miss")
        statuses = await self.api.get_kanban_statuses(project_id)
        self._kanban_cache[project_id] = self._entry(statuses)
        return statuses

    async def get_task_data(self, task_id: str) -> TaskData:
        """Enriched record for ``task_id``; any failed fetch fails the whole call uncached."""
        cached = self._task_cache.get(task_id)
        if cached and not self._is_expired(cached):
            record_cache_lookup("task", "hit")
            return cached.data

        record_cache_lookup("task", "miss")
        with start_span("linksync.cache.enrich_task", {"task.id": task_id}):
            task = await self.api.get_task(task_id)
            assignments, project_statuses, tags = await asyncio.gather(
                self.api.get_task_kanban_status(task_id),
                self.get_kanban_statuses(task.projectId),
                self.get_tags_by_ids(task.tags or []),
            )

        is_completed = task.checked == CHECKED_COMPLETED
        is_cancelled = task.checked == CHECKED_CANCELLED
        task_data = TaskData(
            id=task.id,
            title=task.title,
            projectId=task.projectId,
            status=resolve_status(
                is_completed=is_completed,
                is_cancelled=is_cancelled,
                assignments=assignments,
                project_statuses=project_statuses,
                language=self.language,
            ),
            tags=tags,
            noteId=task.note,
            isCompleted=is_completed,
            isCancelled=is_cancelled,
        )

        self._task_cache[task_id] = self._entry(task_data)
        return task_data

    def invalidate_task(self, task_id: str) -> None:
        self._task_cache.pop(task_id, None)

    def invalidate_all(self) -> None:
        self._task_cache.clear()
        self._kanban_cache.clear()
        self._tags_cache = None
        logger.info("Task cache cleared")

    async def preload_tags(self) -> None:
        """Warm the tag catalog at startup. Failures are only logged."""
        try:
            await self.get_tags()
        except Exception as e:
            logger.error(f"Failed to preload tags: {e}")
