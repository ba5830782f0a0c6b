"""LinkSync FastAPI service: main application entry point."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from linksync import config
from linksync.observability import initialize as initialize_observability, shutdown as shutdown_observability
from linksync.routers.commands import commands_router, events_router
from linksync.routers.tasks import settings_router, tasks_router
from linksync.services import build_services
from linksync.settings_store import SettingsStore
from linksync.sync.vault_watcher import VaultWatcher

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("linksync")

vault_watcher = VaultWatcher()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("LinkSync starting up")
    initialize_observability(app)

    services = build_services(SettingsStore(config.SETTINGS_PATH), config.VAULT_PATH)
    app.state.services = services

    if services.client.has_token:
        app.state.preload_task = asyncio.create_task(services.cache.preload_tags())

    if config.WATCH_ENABLED:
        await vault_watcher.start(services.intake, services.vault.root)

    yield

    logger.info("LinkSync shutting down")
    if hasattr(app.state, "preload_task"):
        app.state.preload_task.cancel()
        try:
            await app.state.preload_task
        except asyncio.CancelledError:
            pass

    await vault_watcher.stop()
    await services.aclose()
    shutdown_observability(app)


app = FastAPI(
    title="LinkSync API",
    description="Keeps note link-backs in Singularity tasks in step with the vault",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(commands_router)
app.include_router(events_router)
app.include_router(tasks_router)
app.include_router(settings_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    services = getattr(app.state, "services", None)
    return {
        "status": "ok",
        "token": "configured" if services and services.client.has_token else "missing",
        "autoSync": bool(services and services.settings_store.settings.autoSync),
        "watcher": "running" if vault_watcher.is_running else "stopped",
    }


def run() -> None:
    import uvicorn

    uvicorn.run("linksync.main:app", host=config.HOST, port=config.PORT)
