"""Vault watcher using watchfiles.

Monitors the vault directory and feeds note changes into the change
intake: edits as debounced signals, renames as immediate syncs.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from watchfiles import Change, awatch

from linksync import config

logger = logging.getLogger("linksync.watcher")


def classify_changes(changes: set[tuple[Change, str]]) -> list[tuple[str, Path]]:
    """Classify raw watchfiles changes into (change_type, path) pairs.

    Only note files count. watchfiles reports a rename as a deletion plus
    an addition, so additions in a batch that also deletes a note are
    reported as ``renamed``. Deletions themselves need no sync.
    """
    notes = [(change, Path(raw)) for change, raw in changes if Path(raw).suffix == config.NOTE_EXTENSION]
    has_deletion = any(change == Change.deleted for change, _ in notes)

    result: list[tuple[str, Path]] = []
    for change_type, path in sorted(notes, key=lambda item: str(item[1])):
        if path.name.startswith("."):
            continue
        if change_type == Change.added:
            result.append(("renamed" if has_deletion else "modified", path))
        elif change_type == Change.modified:
            result.append(("modified", path))
    return result


class VaultWatcher:
    """Background vault watcher that hands note changes to the intake."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    async def start(self, intake, vault_root: Path) -> None:
        if self._running:
            logger.warning("Vault watcher already running")
            return
        if not vault_root.exists():
            logger.warning("Vault path does not exist, watcher not started: %s", vault_root)
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop(intake, vault_root))
        logger.info(f"Vault watcher started for {vault_root}")

    async def stop(self) -> None:
        self._running = False
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Vault watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, intake, vault_root: Path) -> None:
        try:
            async for changes in awatch(vault_root, stop_event=self._stop_event):
                if not self._running:
                    break
                for change_type, path in classify_changes(changes):
                    try:
                        if change_type == "renamed":
                            await intake.on_file_renamed(path)
                        else:
                            intake.on_file_modified(path)
                    except Exception as e:
                        logger.error(f"Error handling {change_type} for {path}: {e}")
        except asyncio.CancelledError:
            logger.info("Vault watcher task cancelled")
        except Exception as e:
            logger.error(f"Vault watcher error: {e}")
        finally:
            self._running = False
