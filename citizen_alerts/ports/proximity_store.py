"""
Proximity state store port interface.

This module defines the protocol for persisting the per-alert
proximity state map between evaluations and across restarts.
"""

from typing import Dict, Protocol
from citizen_alerts.core.models import ProximityPhase

class ProximityStateStorePort(Protocol):
    """근접 상태 저장소 포트 인터페이스"""
    
    async def load(self) -> Dict[str, ProximityPhase]:
        """저장된 상태 맵을 읽습니다."""
        ...
    
    async def save(self, states: Dict[str, ProximityPhase]) -> None:
        """
        상태 맵 전체를 교체 저장합니다.
        
        Args:
            states: id별 근접 상태
        """
        ...
