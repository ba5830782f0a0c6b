"""Locating and editing note link-backs inside a task's Quill delta body.

Every function takes a sequence of ``DeltaOp`` and returns a new tuple.
Ops that are not being edited are carried over as the same objects at
the same positions, so unrelated text and formatting survive unchanged.
"""
from __future__ import annotations

import json
import logging
from typing import Any, NamedTuple, Sequence

from pydantic import ValidationError

from linksync.models import DeltaOp
from linksync.urls import SID_FRAGMENT, is_obsidian_link, strip_sid, with_sid

logger = logging.getLogger("linksync.sync")

LINK_LABEL = "Obsidian"
NEWLINE = "\n"


class LinkMatch(NamedTuple):
    index: int
    op: DeltaOp


def parse_note_content(content: Any) -> tuple[DeltaOp, ...]:
    """Decode a task body. Anything that is not a list of ops decodes as empty."""
    raw = content
    if isinstance(content, str):
        if not content.strip():
            return ()
        try:
            raw = json.loads(content)
        except ValueError:
            logger.warning("Task body is not valid JSON, treating as empty")
            return ()
    if isinstance(raw, dict) and isinstance(raw.get("ops"), list):
        raw = raw["ops"]
    if not isinstance(raw, list):
        logger.warning("Task body is not an op list, treating as empty")
        return ()
    try:
        return tuple(DeltaOp.model_validate(item) for item in raw)
    except ValidationError as exc:
        logger.warning("Task body has malformed ops, treating as empty: %s", exc)
        return ()


def serialize_ops(ops: Sequence[DeltaOp]) -> list[dict[str, Any]]:
    """Wire form of ``ops``. Only keys that were set are emitted, so parsed ops round-trip as received."""
    return [op.model_dump(by_alias=True, exclude_unset=True) for op in ops]


def link_text(note_title: str) -> str:
    return f'{LINK_LABEL}: "{note_title}"'


def link_base_url(op: DeltaOp) -> str | None:
    """The op's note URL without its ``#sid=`` fragment."""
    url = op.link
    if not is_obsidian_link(url):
        return None
    return strip_sid(url)


def is_bare_newline(op: DeltaOp | None) -> bool:
    return op is not None and op.text == NEWLINE and not op.attributes


def find_link_by_id(ops: Sequence[DeltaOp], sync_id: str) -> LinkMatch | None:
    fragment = f"{SID_FRAGMENT}{sync_id}"
    for index, op in enumerate(ops):
        url = op.link
        if url and fragment in url:
            return LinkMatch(index, op)
    return None


def find_legacy_link(ops: Sequence[DeltaOp]) -> LinkMatch | None:
    """First note link written before sync ids existed (no ``#sid=``)."""
    for index, op in enumerate(ops):
        url = op.link
        if is_obsidian_link(url) and SID_FRAGMENT not in url:
            return LinkMatch(index, op)
    return None


def create_note_link_ops(note_title: str, obsidian_url: str, sync_id: str) -> tuple[DeltaOp, DeltaOp]:
    return (
        DeltaOp(text=link_text(note_title), attributes={"link": with_sid(obsidian_url, sync_id)}),
        DeltaOp(text=NEWLINE),
    )


def create_initial_delta(note_title: str, obsidian_url: str, sync_id: str) -> tuple[DeltaOp, ...]:
    return create_note_link_ops(note_title, obsidian_url, sync_id)


def _replace(ops: Sequence[DeltaOp], index: int, op: DeltaOp) -> tuple[DeltaOp, ...]:
    return (*ops[:index], op, *ops[index + 1:])


def upsert_link_by_id(
    ops: Sequence[DeltaOp],
    note_title: str,
    obsidian_url: str,
    sync_id: str,
) -> tuple[DeltaOp, ...]:
    """Point the link carrying ``sync_id`` at ``obsidian_url``, or append one.

    An existing link keeps its other attributes. A new link goes at the
    end, after dropping one trailing bare newline and adding a separator
    newline when the body is not empty.
    """
    existing = find_link_by_id(ops, sync_id)
    if existing:
        attributes = {**(existing.op.attributes or {}), "link": with_sid(obsidian_url, sync_id)}
        updated = existing.op.model_copy(update={"text": link_text(note_title), "attributes": attributes})
        return _replace(ops, existing.index, updated)

    head = tuple(ops)
    if head and is_bare_newline(head[-1]):
        head = head[:-1]
    if head:
        head = (*head, DeltaOp(text=NEWLINE))
    return (*head, *create_note_link_ops(note_title, obsidian_url, sync_id))


def migrate_legacy_link(ops: Sequence[DeltaOp], index: int, sync_id: str) -> tuple[DeltaOp, ...]:
    """Append ``#sid=`` to the link at ``index``; its display text stays as is."""
    op = ops[index]
    url = op.link
    if not url:
        return tuple(ops)
    attributes = {**(op.attributes or {}), "link": with_sid(url, sync_id)}
    return _replace(ops, index, op.model_copy(update={"attributes": attributes}))
