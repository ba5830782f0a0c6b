"""URL and front-matter path helpers shared by the sync and rendering paths.

Task references live in note front matter as ``singularityapp://`` URLs.
Link-backs live in task bodies as ``obsidian://open`` URLs whose
``#sid=`` fragment carries the sync id of the (note, field) pair that
wrote them. The fragment layout is what already-synced vaults and tasks
contain, so it must not change.
"""
from __future__ import annotations

import re
from typing import Any, Sequence, Union
from urllib.parse import quote

SINGULARITY_SCHEME = "singularityapp://"
OBSIDIAN_SCHEME = "obsidian://"
SID_FRAGMENT = "#sid="

_TASK_URL_PATTERN = re.compile(r"singularityapp://\?&page=any&id=(T-[a-f0-9-]+)", re.IGNORECASE)
_SID_PATTERN = re.compile(r"#sid=([a-f0-9-]+)", re.IGNORECASE)
_FIELD_PATH_PART = re.compile(r"([^.\[\]]+)|\[(\d+)\]")

# encodeURIComponent leaves these unescaped in addition to alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def extract_task_id(url: str) -> str | None:
    match = _TASK_URL_PATTERN.search(url or "")
    return match.group(1) if match else None


def find_task_ids(text: str) -> list[str]:
    """Return every task id referenced in free text, in order of appearance."""
    return [m.group(1) for m in _TASK_URL_PATTERN.finditer(text or "")]


def build_singularity_url(task_id: str) -> str:
    return f"{SINGULARITY_SCHEME}?&page=any&id={task_id}"


def build_obsidian_url(vault_name: str, file_path: str) -> str:
    return (
        f"{OBSIDIAN_SCHEME}open?vault={encode_uri_component(vault_name)}"
        f"&file={encode_uri_component(file_path)}"
    )


def extract_sid(url: Any) -> str | None:
    """Return the sync id carried in a ``#sid=`` fragment, if any."""
    if not isinstance(url, str) or not url:
        return None
    match = _SID_PATTERN.search(url)
    return match.group(1) if match else None


def with_sid(url: str, sync_id: str) -> str:
    return f"{url}{SID_FRAGMENT}{sync_id}"


def strip_sid(url: str) -> str:
    index = url.find(SID_FRAGMENT)
    return url[:index] if index > 0 else url


def is_obsidian_link(url: str | None) -> bool:
    return bool(url) and url.startswith(OBSIDIAN_SCHEME)


# ── Front-matter field paths ───────────────────────────────────────

def parse_field_path(field_path: str) -> list[str | int]:
    """Split ``a.b[0].c`` into ``["a", "b", 0, "c"]``."""
    parts: list[str | int] = []
    for match in _FIELD_PATH_PART.finditer(field_path or ""):
        key, index = match.groups()
        parts.append(int(index) if index is not None else key)
    return parts


FieldPath = Union[str, Sequence[Any]]


def _path_parts(field_path: FieldPath) -> list[Any]:
    if isinstance(field_path, str):
        return parse_field_path(field_path)
    return list(field_path)


def _step(current: Any, part: Any) -> Any:
    if isinstance(current, list):
        if isinstance(part, int) and 0 <= part < len(current):
            return current[part]
        return None
    if isinstance(current, dict):
        return current.get(part)
    return None


def get_field_value(container: Any, field_path: FieldPath) -> Any:
    """Walk a ``a.b[0]`` path, or an explicit key sequence for keys a dotted path cannot spell."""
    current = container
    for part in _path_parts(field_path):
        current = _step(current, part)
        if current is None:
            return None
    return current


def set_field_value(container: Any, field_path: FieldPath, value: Any) -> bool:
    """Assign ``value`` at ``field_path`` in place. Returns False if the path is gone."""
    parts = _path_parts(field_path)
    if not parts:
        return False
    parent = get_field_value(container, parts[:-1]) if len(parts) > 1 else container
    last = parts[-1]
    if isinstance(parent, list):
        if not isinstance(last, int) or not 0 <= last < len(parent):
            return False
    elif not isinstance(parent, dict) or last not in parent:
        return False
    parent[last] = value
    return True
