"""
Push-based location service adapter for Citizen Alerts.

The device's location service pushes authorization changes and fixes
over HTTP (see observability/health.py). This adapter records what the
tracker asked for so the device side can poll it from /info.
"""

import threading
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.location_service")

class PushLocationService:
    """HTTP 푸시 방식 위치 서비스 (LocationServicePort 구현)"""
    
    def __init__(self):
        self._lock = threading.Lock()
        self.permission_requests = 0
        self.active = False
    
    def request_authorization(self) -> None:
        with self._lock:
            self.permission_requests += 1
        log.info("기기에 위치 권한 요청 전달")
    
    def start(self) -> None:
        with self._lock:
            self.active = True
    
    def stop(self) -> None:
        with self._lock:
            self.active = False
