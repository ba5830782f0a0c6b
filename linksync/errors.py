"""Error taxonomy shared by the client, the cache and the synchronizer."""
from __future__ import annotations


class LinkSyncError(Exception):
    """Base class for every error raised by linksync."""


class ConfigurationError(LinkSyncError):
    """No API token configured. Raised before any request is attempted."""


class RemoteStoreError(LinkSyncError):
    """The task store answered with a non-success status or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, endpoint: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class StructuredFieldWriteError(LinkSyncError):
    """Writing a sync id back into a note's front matter failed."""
