"""Builds the shared service objects once per process.

The task cache is created here and handed to both the synchronizer and
the task lookup endpoint; nothing else keeps its own copy.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from linksync import config
from linksync.api import SingularityClient
from linksync.cache.task_cache import TaskCache
from linksync.models import Settings
from linksync.settings_store import SettingsStore
from linksync.sync.intake import ChangeIntake
from linksync.sync.link_sync import LinkSynchronizer
from linksync.vault import Vault


@dataclass
class LinkSyncServices:
    settings_store: SettingsStore
    client: SingularityClient
    cache: TaskCache
    vault: Vault
    synchronizer: LinkSynchronizer
    intake: ChangeIntake

    def apply_settings(self, settings: Settings) -> None:
        self.client.set_token(settings.apiToken)
        self.cache.set_cache_ttl(settings.cacheTTL)
        self.cache.set_language(settings.language)
        self.vault.set_name(settings.vaultName)

    async def aclose(self) -> None:
        self.intake.debouncer.cancel_all()
        await self.client.aclose()


def build_services(
    settings_store: SettingsStore,
    vault_root: Path = config.VAULT_PATH,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LinkSyncServices:
    settings = settings_store.settings
    client = SingularityClient(settings.apiToken, config.API_BASE_URL, transport=transport)
    cache = TaskCache(client, settings.cacheTTL, settings.language)
    vault = Vault(vault_root, settings.vaultName)
    synchronizer = LinkSynchronizer(client, cache, vault)
    intake = ChangeIntake(
        synchronizer,
        vault,
        auto_sync=lambda: settings_store.settings.autoSync,
        debounce_ms=config.SYNC_DEBOUNCE_MS,
    )
    services = LinkSyncServices(
        settings_store=settings_store,
        client=client,
        cache=cache,
        vault=vault,
        synchronizer=synchronizer,
        intake=intake,
    )
    settings_store.subscribe(services.apply_settings)
    return services
