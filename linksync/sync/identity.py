"""Sync ids for (note, field) task references.

A reference gets its id the first time it is synchronized: a random
UUID appended to the reference URL as a ``#sid=`` fragment. After that
the fragment in the front matter is the only source of truth, so asking
again for the same field returns the same id without writing anything.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from linksync.errors import StructuredFieldWriteError
from linksync.urls import FieldPath, extract_sid, get_field_value, set_field_value, strip_sid, with_sid
from linksync.vault import Vault, VaultNote

logger = logging.getLogger("linksync.sync")


def generate_sync_id() -> str:
    return str(uuid.uuid4())


def _attach_sid(target: FieldPath, sync_id: str):
    def mutate(fm: dict[str, Any]) -> None:
        current = get_field_value(fm, target)
        # An empty or garbled fragment is replaced; a real id is never overwritten.
        if isinstance(current, str) and not extract_sid(current):
            set_field_value(fm, target, with_sid(strip_sid(current), sync_id))
    return mutate


async def ensure_sync_id(
    vault: Vault,
    note: VaultNote,
    field_path: str,
    current_url: str | None,
    *,
    key_path: Sequence[Any] | None = None,
) -> str:
    """Return the sync id for ``field_path``, creating and persisting one if needed.

    ``key_path`` addresses the field by its raw keys when the dotted
    ``field_path`` cannot (keys containing dots, non-string keys).

    Raises StructuredFieldWriteError when the new id could not be stored;
    the caller must not write a link under an id that is not persisted.
    """
    existing = extract_sid(current_url)
    if existing:
        return existing

    target: FieldPath = list(key_path) if key_path else field_path
    new_id = generate_sync_id()
    await vault.mutate_structured_fields(note, _attach_sid(target, new_id))

    # Read back: another run may have stored its own id first, and that one wins.
    fm = await vault.read_structured_fields(note)
    stored = extract_sid(get_field_value(fm or {}, target))
    if not stored:
        raise StructuredFieldWriteError(f"Sync id was not persisted for {note.relative_path}:{field_path}")
    if stored == new_id:
        logger.info("Generated sid for %s.%s: %s", note.title, field_path, new_id)
    return stored
