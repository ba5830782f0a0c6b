"""User settings persisted as JSON, applied live to the running services."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from linksync import config
from linksync.models import Settings

logger = logging.getLogger("linksync")


def default_settings() -> Settings:
    return Settings(
        apiToken=config.API_TOKEN,
        vaultName=config.VAULT_NAME,
        autoSync=config.AUTO_SYNC,
        cacheTTL=min(60, max(1, config.CACHE_TTL_MINUTES)),
        language=config.LANGUAGE if config.LANGUAGE in ("en", "ru") else "en",
    )


class SettingsStore:
    """Loads settings on start, saves on update and notifies listeners."""

    def __init__(self, storage_path: Path):
        self.storage_path = storage_path
        self._settings = default_settings()
        self._listeners: list[Callable[[Settings], None]] = []
        self._load()

    def _load(self):
        if not self.storage_path.exists():
            return

        try:
            content = self.storage_path.read_text(encoding="utf-8")
            if not content.strip():
                return
            data = json.loads(content)
            self._settings = Settings(**{**self._settings.model_dump(), **data})
        except (ValueError, ValidationError, OSError) as e:
            logger.error(f"Failed to load settings file: {e}")

    def _save(self):
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(json.dumps(self._settings.model_dump(), indent=2), encoding="utf-8")

    @property
    def settings(self) -> Settings:
        return self._settings

    def subscribe(self, listener: Callable[[Settings], None]) -> None:
        self._listeners.append(listener)

    def update(self, changes: dict[str, Any]) -> Settings:
        """Validate, persist and broadcast a partial settings update."""
        merged = Settings(**{**self._settings.model_dump(), **changes})
        self._settings = merged
        self._save()
        for listener in self._listeners:
            listener(merged)
        return merged
