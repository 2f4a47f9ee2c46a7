"""Progress stream server."""

from .app import ProgressServer, create_app, format_event, stream_progress

__all__ = [
    "ProgressServer",
    "create_app",
    "format_event",
    "stream_progress",
]
