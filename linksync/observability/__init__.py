"""Observability helpers."""

from linksync.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_cache_lookup,
    record_reference_sync,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_cache_lookup",
    "record_reference_sync",
]
