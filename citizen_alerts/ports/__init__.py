"""
Port interfaces for Citizen Alerts hexagonal architecture.

This module defines the port interfaces (Protocols) that define
the contracts between the core domain and external collaborators.
"""

from .alert_source import AlertSourcePort
from .dispatch import NotificationDispatchPort
from .kvstore import KVStorePort
from .location import LocationServicePort
from .proximity_store import ProximityStateStorePort

__all__ = [
    "AlertSourcePort",
    "NotificationDispatchPort",
    "KVStorePort",
    "LocationServicePort",
    "ProximityStateStorePort",
]
