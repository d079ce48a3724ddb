from .base import RemediationStore
from .sqlite_store import SQLiteStore

__all__ = ["RemediationStore", "SQLiteStore"]
