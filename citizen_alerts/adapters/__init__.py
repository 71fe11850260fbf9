"""
Adapters for Citizen Alerts hexagonal architecture.

This module contains the concrete implementations of port interfaces
that handle external I/O and infrastructure concerns.
"""

from .storage import SQLiteOutbox, SQLiteProximityStore, SQLiteSettingsStore
from .backend import BackendClient, AlertPoller
from .location import PushLocationService
from .mqtt_local.publisher_async import LocalMqttPublisher

__all__ = [
    "SQLiteOutbox",
    "SQLiteProximityStore",
    "SQLiteSettingsStore",
    "BackendClient",
    "AlertPoller",
    "PushLocationService",
    "LocalMqttPublisher",
]
