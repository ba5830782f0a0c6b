"""Writes note link-backs into the bodies of the tasks a note references.

For every task URL found in a note's front matter the synchronizer makes
sure the task body holds exactly one link back to the note, identified
by the sync id stored on that front-matter field. Resolution order:

1. a link already carrying the sync id: rewrite it only if the note URL moved;
2. a legacy link without any sync id: tag it with the id in place;
3. otherwise append a new link.

Running it again on an unchanged note writes nothing, and two runs that
overlap converge on the same single link.
"""
from __future__ import annotations

import logging
from typing import Any

from linksync.models import DeltaOp, FieldReference, FieldSyncResult, NoteSyncSummary, SyncOutcome
from linksync.observability import record_reference_sync, start_span
from linksync.sync.delta_links import (
    create_initial_delta,
    find_legacy_link,
    find_link_by_id,
    link_base_url,
    migrate_legacy_link,
    parse_note_content,
    upsert_link_by_id,
)
from linksync.sync.identity import ensure_sync_id
from linksync.urls import SINGULARITY_SCHEME, build_obsidian_url, extract_task_id
from linksync.vault import FrontmatterParseError, Vault, VaultNote

logger = logging.getLogger("linksync.sync")


def find_task_references(
    frontmatter: dict[str, Any] | None,
    prefix: str = "",
    keys: tuple[Any, ...] = (),
) -> list[FieldReference]:
    """Collect task URLs from every front-matter field, depth first.

    Nested mappings produce ``parent.child`` paths and list items
    ``field[idx]``. Each reference also keeps the raw key path, so
    keys holding dots or non-string YAML keys stay writable.
    """
    results: list[FieldReference] = []
    for key, value in (frontmatter or {}).items():
        field_path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, str):
            _append_reference(results, value, field_path, (*keys, key))
        elif isinstance(value, list):
            for idx, item in enumerate(value):
                item_path = f"{field_path}[{idx}]"
                item_keys = (*keys, key, idx)
                if isinstance(item, str):
                    _append_reference(results, item, item_path, item_keys)
                elif isinstance(item, dict):
                    results.extend(find_task_references(item, item_path, item_keys))
        elif isinstance(value, dict):
            results.extend(find_task_references(value, field_path, (*keys, key)))
    return results


def _append_reference(results: list[FieldReference], value: str, field_path: str, keys: tuple[Any, ...]) -> None:
    if SINGULARITY_SCHEME not in value.lower():
        return
    task_id = extract_task_id(value)
    if task_id:
        results.append(FieldReference(url=value, fieldPath=field_path, taskId=task_id, keyPath=list(keys)))


class LinkSynchronizer:
    def __init__(self, api: Any, cache: Any, vault: Vault):
        self.api = api
        self.cache = cache
        self.vault = vault

    async def sync_file(self, note: VaultNote) -> NoteSyncSummary:
        """Synchronize every task reference in ``note``.

        A failing reference is logged and recorded in the summary; the
        remaining references are still processed.
        """
        summary = NoteSyncSummary(notePath=note.relative_path)
        try:
            frontmatter = await self.vault.read_structured_fields(note)
        except (FrontmatterParseError, OSError) as e:
            logger.warning("Cannot read front matter of %s: %s", note.relative_path, e)
            summary.message = "Cannot read frontmatter in this file"
            return summary

        if not frontmatter:
            summary.message = "No frontmatter in this file"
            return summary

        references = find_task_references(frontmatter)
        if not references:
            summary.message = "No Singularity links in frontmatter"
            return summary

        # One at a time: two fields pointing at the same task must not race to append.
        for reference in references:
            try:
                outcome = await self.sync_reference(reference, note)
                summary.results.append(
                    FieldSyncResult(fieldPath=reference.fieldPath, taskId=reference.taskId, outcome=outcome)
                )
            except Exception as e:
                logger.error("Failed to sync %s in %s: %s", reference.fieldPath, note.relative_path, e)
                record_reference_sync("failed")
                summary.results.append(
                    FieldSyncResult(fieldPath=reference.fieldPath, taskId=reference.taskId, outcome="failed", error=str(e))
                )

        summary.message = f"Synced {summary.synced} task(s) to Singularity"
        return summary

    async def sync_current_note(self, note: VaultNote) -> NoteSyncSummary:
        """Manual command: same as ``sync_file`` but always logs the summary."""
        summary = await self.sync_file(note)
        logger.info("%s: %s", note.relative_path, summary.message)
        return summary

    async def sync_reference(self, reference: FieldReference, note: VaultNote) -> SyncOutcome:
        task_id = reference.taskId
        obsidian_url = build_obsidian_url(self.vault.name, note.relative_path)
        note_title = note.title

        with start_span("linksync.sync.reference", {"task.id": task_id, "note.field": reference.fieldPath}):
            sync_id = await ensure_sync_id(
                self.vault, note, reference.fieldPath, reference.url, key_path=reference.keyPath or None
            )
            task = await self.api.get_task(task_id)

            ops: tuple[DeltaOp, ...]
            if task.note:
                remote_note = await self.api.get_note(task.note)
                current_ops = parse_note_content(remote_note.content)

                existing = find_link_by_id(current_ops, sync_id)
                if existing:
                    if link_base_url(existing.op) == obsidian_url:
                        logger.info("Already synced: %s", note_title)
                        record_reference_sync("unchanged")
                        return "unchanged"
                    logger.info("Updating URL for %s", note_title)
                    ops = upsert_link_by_id(current_ops, note_title, obsidian_url, sync_id)
                    outcome: SyncOutcome = "updated"
                else:
                    legacy = find_legacy_link(current_ops)
                    if legacy:
                        logger.info("Adding sid to legacy link for %s", note_title)
                        ops = migrate_legacy_link(current_ops, legacy.index, sync_id)
                        outcome = "migrated"
                    else:
                        logger.info("Adding new link for %s", note_title)
                        ops = upsert_link_by_id(current_ops, note_title, obsidian_url, sync_id)
                        outcome = "created"
            else:
                ops = create_initial_delta(note_title, obsidian_url, sync_id)
                outcome = "created"

            await self.api.update_task_note(task_id, ops)

        logger.info("Synced %s to task %s", note_title, task_id)
        self.cache.invalidate_task(task_id)
        record_reference_sync(outcome)
        return outcome
