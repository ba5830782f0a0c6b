"""The note vault as seen by the synchronizer."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from linksync import config
from linksync.errors import StructuredFieldWriteError
from linksync.vault.frontmatter import mutate_frontmatter, read_frontmatter

logger = logging.getLogger("linksync.vault")


@dataclass(frozen=True)
class VaultNote:
    """A note file addressed both on disk and relative to the vault root."""
    path: Path
    relative_path: str

    @property
    def title(self) -> str:
        return self.path.stem

    @property
    def extension(self) -> str:
        return self.path.suffix


class Vault:
    """Front-matter access for notes under one vault directory."""

    def __init__(self, root: Path, name: str = ""):
        self.root = root.expanduser().resolve(strict=False)
        self._name = name
        # Front-matter writes are read-modify-write in a worker thread; one at a time.
        self._write_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name or self.root.name

    def set_name(self, name: str) -> None:
        self._name = name

    def note(self, path: Path | str) -> VaultNote:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        candidate = candidate.resolve(strict=False)
        try:
            relative = candidate.relative_to(self.root)
        except ValueError as exc:
            raise ValueError(f"Path outside vault: {path}") from exc
        return VaultNote(path=candidate, relative_path=relative.as_posix())

    def is_note(self, note: VaultNote) -> bool:
        return note.extension == config.NOTE_EXTENSION

    async def read_structured_fields(self, note: VaultNote) -> dict[str, Any] | None:
        return await asyncio.to_thread(read_frontmatter, note.path)

    async def mutate_structured_fields(self, note: VaultNote, mutate: Callable[[dict[str, Any]], None]) -> None:
        try:
            async with self._write_lock:
                changed = await asyncio.to_thread(mutate_frontmatter, note.path, mutate)
        except OSError as exc:
            raise StructuredFieldWriteError(f"Failed to write front matter of {note.relative_path}: {exc}") from exc
        if changed:
            logger.debug("Front matter updated: %s", note.relative_path)
