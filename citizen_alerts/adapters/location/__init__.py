from .push_service import PushLocationService

__all__ = ["PushLocationService"]
