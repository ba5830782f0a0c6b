"""Reading and rewriting YAML front matter in markdown notes."""
from __future__ import annotations

import copy
import re
from pathlib import Path
from typing import Any, Callable

import yaml


class FrontmatterParseError(ValueError):
    """Raised when markdown frontmatter exists but is not valid YAML mapping."""


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split a markdown file into (frontmatter_text, body).

    Returns (None, full_text) if no frontmatter is found.
    """
    match = re.match(r"^---\s*\n(.*?)\n---\s*\n?(.*)", text, re.DOTALL)
    if not match:
        return None, text
    return match.group(1), match.group(2)


def rebuild_file(fm_dict: dict, body: str) -> str:
    """Reconstruct a markdown file from frontmatter dict + body."""
    fm_text = yaml.dump(fm_dict, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return f"---\n{fm_text}---\n{body}"


def load_frontmatter_dict(fm_text: str, file_path: Path) -> dict:
    """Parse YAML frontmatter and ensure it is a mapping."""
    try:
        parsed = yaml.safe_load(fm_text) or {}
    except yaml.YAMLError as exc:
        raise FrontmatterParseError(f"Invalid YAML frontmatter in {file_path}") from exc
    if not isinstance(parsed, dict):
        raise FrontmatterParseError(f"Expected mapping frontmatter in {file_path}")
    return parsed


def read_frontmatter(file_path: Path) -> dict[str, Any] | None:
    """Return the front matter mapping, or None when the note has none."""
    text = file_path.read_text(encoding="utf-8")
    fm_text, _ = split_frontmatter(text)
    if fm_text is None:
        return None
    return load_frontmatter_dict(fm_text, file_path)


def mutate_frontmatter(file_path: Path, mutate: Callable[[dict[str, Any]], None]) -> bool:
    """Apply ``mutate`` to the front matter in place and write the file back.

    The body is preserved. The file is only rewritten when the mapping
    actually changed. Returns True if a write happened.
    """
    text = file_path.read_text(encoding="utf-8")
    fm_text, body = split_frontmatter(text)

    fm_dict = {} if fm_text is None else load_frontmatter_dict(fm_text, file_path)
    before = copy.deepcopy(fm_dict)
    mutate(fm_dict)
    if fm_dict == before:
        return False

    file_path.write_text(rebuild_file(fm_dict, body), encoding="utf-8")
    return True
