"""Turns vault change signals into note synchronizations.

Content edits arrive in bursts while the user types, so they go through
a per-note debouncer that runs the first signal at once and folds the
rest of the burst into one trailing run. Renames run immediately: every
link already written into task bodies points at the old path.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Hashable, Optional

from linksync import config
from linksync.models import NoteSyncSummary
from linksync.vault import Vault, VaultNote

logger = logging.getLogger("linksync.intake")


@dataclass
class _PendingTrailingCall:
    deadline: float
    handle: asyncio.TimerHandle
    trailing_arg: Any = None
    has_trailing: bool = False


class KeyedDebouncer:
    """Leading-edge debounce, one state machine per key.

    Idle + signal: run now, then wait ``wait_seconds`` in the pending state.
    Pending + signal: remember the argument and push the deadline back.
    Deadline reached: run once more with the last argument if any signal
    came in while pending, then go back to idle.
    """

    def __init__(self, callback: Callable[[Any], Awaitable[Any]], wait_seconds: float):
        self._callback = callback
        self.wait_seconds = wait_seconds
        self._pending: dict[Hashable, _PendingTrailingCall] = {}
        self._running: set[asyncio.Task] = set()

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def signal(self, key: Hashable, arg: Any) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_seconds
        pending = self._pending.get(key)
        if pending is None:
            handle = loop.call_at(deadline, self._on_deadline, key)
            self._pending[key] = _PendingTrailingCall(deadline=deadline, handle=handle)
            self._run(arg)
            return

        pending.handle.cancel()
        pending.deadline = deadline
        pending.handle = loop.call_at(deadline, self._on_deadline, key)
        pending.trailing_arg = arg
        pending.has_trailing = True

    def _on_deadline(self, key: Hashable) -> None:
        pending = self._pending.pop(key, None)
        if pending is not None and pending.has_trailing:
            self._run(pending.trailing_arg)

    def _run(self, arg: Any) -> None:
        task = asyncio.get_running_loop().create_task(self._callback(arg))
        self._running.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced sync failed: %s", task.exception())

    async def drain(self) -> None:
        """Wait for runs already started. Pending trailing runs are not forced."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def cancel_all(self) -> None:
        for pending in self._pending.values():
            pending.handle.cancel()
        self._pending.clear()
        for task in list(self._running):
            task.cancel()


class ChangeIntake:
    def __init__(
        self,
        synchronizer: Any,
        vault: Vault,
        auto_sync: Callable[[], bool] = lambda: config.AUTO_SYNC,
        debounce_ms: int = config.SYNC_DEBOUNCE_MS,
    ):
        self.synchronizer = synchronizer
        self.vault = vault
        self._auto_sync = auto_sync
        self.debouncer = KeyedDebouncer(self._sync, debounce_ms / 1000)

    async def _sync(self, note: VaultNote) -> NoteSyncSummary:
        return await self.synchronizer.sync_file(note)

    def _accept(self, path: Path | str) -> Optional[VaultNote]:
        if not self._auto_sync():
            return None
        try:
            note = self.vault.note(path)
        except ValueError:
            logger.debug("Ignoring change outside the vault: %s", path)
            return None
        if not self.vault.is_note(note):
            return None
        return note

    def on_file_modified(self, path: Path | str) -> bool:
        """Queue a debounced sync. Returns False when the change is ignored."""
        note = self._accept(path)
        if note is None:
            return False
        self.debouncer.signal(note.relative_path, note)
        return True

    async def on_file_renamed(self, path: Path | str, old_path: str = "") -> Optional[NoteSyncSummary]:
        """Sync the renamed note right away, outside the debouncer."""
        note = self._accept(path)
        if note is None:
            return None
        logger.debug("File renamed: %s -> %s", old_path, note.relative_path)
        return await self.synchronizer.sync_file(note)
