"""
Storage adapters for Citizen Alerts hexagonal architecture.

This module contains SQLite-based adapters for proximity state,
filter preferences and the notification outbox.
"""

from .sqlite_outbox import SQLiteOutbox, OutboxItem
from .sqlite_proximity import SQLiteProximityStore
from .sqlite_settings import SQLiteSettingsStore

__all__ = ["SQLiteOutbox", "OutboxItem", "SQLiteProximityStore", "SQLiteSettingsStore"]
