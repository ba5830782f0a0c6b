#!/usr/bin/env python3
"""Sync one note's task references to Singularity from the command line.

Usage:
  python -m linksync.scripts.sync_note path/to/note.md
  python -m linksync.scripts.sync_note path/to/note.md --vault ~/Vault --refresh-cache
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from linksync import config
from linksync.services import build_services
from linksync.settings_store import SettingsStore


async def _run(note_path: str, vault_root: Path, refresh_cache: bool) -> int:
    services = build_services(SettingsStore(config.SETTINGS_PATH), vault_root)
    try:
        if not services.client.has_token:
            print("Singularity API token not configured.")
            return 1
        if refresh_cache:
            services.cache.invalidate_all()
        try:
            note = services.vault.note(note_path)
        except ValueError as e:
            print(str(e))
            return 1
        if not note.path.is_file():
            print(f"Note not found: {note_path}")
            return 1

        summary = await services.synchronizer.sync_current_note(note)
        print(summary.message)
        for result in summary.results:
            line = f"  {result.fieldPath} -> {result.taskId}: {result.outcome}"
            if result.error:
                line += f" ({result.error})"
            print(line)
        return 0 if summary.failed == 0 else 2
    finally:
        await services.aclose()


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("note", help="Note path, absolute or relative to the vault")
    parser.add_argument("--vault", default=str(config.VAULT_PATH), help="Vault root directory")
    parser.add_argument("--refresh-cache", action="store_true", help="Drop cached task data first")
    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING)
    return asyncio.run(_run(args.note, Path(args.vault), args.refresh_cache))


if __name__ == "__main__":
    raise SystemExit(main())
