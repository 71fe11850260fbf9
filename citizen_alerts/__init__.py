"""Citizen Alerts geofenced alert filtering and proximity notification service."""

__version__ = "0.1.0"
