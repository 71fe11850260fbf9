from .tracker import LocationTracker, TrackerUpdate

__all__ = ["LocationTracker", "TrackerUpdate"]
