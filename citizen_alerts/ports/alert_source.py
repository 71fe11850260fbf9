"""
Alert source port interface.

This module defines the protocol for fetching alert records from the backend.
"""

from typing import Any, Dict, List, Protocol

class AlertSourcePort(Protocol):
    """경보 수집 포트 인터페이스"""
    
    async def fetch_alerts(self) -> List[Dict[str, Any]]:
        """
        백엔드에서 현재 경보 전체 목록을 가져옵니다.
        
        Returns:
            원시 딕셔너리 목록
        """
        ...
