from .client import BackendClient
from .poller import AlertPoller

__all__ = ["BackendClient", "AlertPoller"]
