"""Adapters - I/O implementations of ports."""

from .file_store import FileTaskStore
from .http_remote import HttpTaskRemote, RemoteSyncError

__all__ = [
    "FileTaskStore",
    "HttpTaskRemote",
    "RemoteSyncError",
]
