"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Queue configuration and bid counters
- Bid records
- Event history
- Chain Metadata
"""

from gaq.core.storage.sqlite_adapter import SQLiteAdapter
from gaq.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
