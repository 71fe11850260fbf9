"""
Location service port interface.

This module defines the protocol of the OS location service that
LocationTracker drives. Results come back through the tracker's
on_authorization_changed / on_position callbacks.
"""

from typing import Protocol

class LocationServicePort(Protocol):
    """OS 위치 서비스 포트 인터페이스"""
    
    def request_authorization(self) -> None:
        """권한 상승을 요청합니다 (블로킹하지 않음)."""
        ...
    
    def start(self) -> None:
        """위치 업데이트 구독을 시작합니다."""
        ...
    
    def stop(self) -> None:
        """위치 업데이트 구독을 해제합니다."""
        ...
