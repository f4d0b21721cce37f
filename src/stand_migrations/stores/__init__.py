"""stand ドキュメントストア群."""

from .base_store import ID_FIELD, Document, DocumentStore
from .memory_store import MemoryStore
from .sqlite_store import SqliteStore, create_database

__all__ = [
    "Document",
    "DocumentStore",
    "ID_FIELD",
    "MemoryStore",
    "SqliteStore",
    "create_database",
]
