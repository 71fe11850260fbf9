"""
Notification dispatch port interface.

This module defines the protocol for handing proximity events to the
notification transport.
"""

from typing import Protocol
from citizen_alerts.core.models import ProximityEntered

class NotificationDispatchPort(Protocol):
    """알림 발송 포트 인터페이스"""
    
    async def dispatch(self, event: ProximityEntered) -> None:
        """
        근접 진입 이벤트를 발송합니다.
        
        Args:
            event: 근접 진입 이벤트
        """
        ...
