"""LinkSync service configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default

# Project root (one level up from linksync/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Remote task store
API_BASE_URL = os.getenv("LINKSYNC_API_BASE_URL", "https://api.singularity-app.com")
API_TOKEN = os.getenv("LINKSYNC_API_TOKEN", "")
REQUEST_TIMEOUT_SECONDS = _env_float("LINKSYNC_REQUEST_TIMEOUT_SECONDS", 30.0)

# Vault
VAULT_PATH = Path(os.getenv("LINKSYNC_VAULT_PATH", str(Path.cwd()))).expanduser()
VAULT_NAME = os.getenv("LINKSYNC_VAULT_NAME", "")
NOTE_EXTENSION = ".md"

# Sync behaviour
AUTO_SYNC = _env_bool("LINKSYNC_AUTO_SYNC", True)
SYNC_DEBOUNCE_MS = _env_int("LINKSYNC_SYNC_DEBOUNCE_MS", 2000)
WATCH_ENABLED = _env_bool("LINKSYNC_WATCH_ENABLED", True)

# Cache
CACHE_TTL_MINUTES = _env_int("LINKSYNC_CACHE_TTL_MINUTES", 5)
LANGUAGE = os.getenv("LINKSYNC_LANGUAGE", "en")

# Persisted user settings
SETTINGS_PATH = Path(os.getenv("LINKSYNC_SETTINGS_PATH", str(PROJECT_ROOT / ".linksync-settings.json")))

# Observability
OTEL_ENABLED = _env_bool("LINKSYNC_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("LINKSYNC_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("LINKSYNC_OTEL_SERVICE_NAME", "linksync")

# Server settings
HOST = os.getenv("LINKSYNC_HOST", "127.0.0.1")
PORT = int(os.getenv("LINKSYNC_PORT", "8765"))
