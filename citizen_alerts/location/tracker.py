"""
Location tracking for Citizen Alerts.

This module owns the device's location authorization state and the
last known position, and tells observers about both. Reads and writes
are guarded by a lock so that a reader always sees a consistent
UserPosition even when the OS delivers updates from another thread.
"""

import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from citizen_alerts.core.models import AuthorizationStatus, Coordinate, UserPosition
from citizen_alerts.ports.location import LocationServicePort
from citizen_alerts.observability import metrics
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.location")


@dataclass(frozen=True)
class TrackerUpdate:
    """위치 또는 권한 변경 알림"""
    kind: str  # "position" | "authorization"
    authorization: AuthorizationStatus
    position: Optional[UserPosition]


TrackerObserver = Callable[[TrackerUpdate], None]


class LocationTracker:
    """위치 권한 상태 머신과 현재 위치 관리자"""

    def __init__(self,
                 service: LocationServicePort,
                 *,
                 default_coordinate: Coordinate,
                 staleness_window: timedelta = timedelta(minutes=5),
                 stale_fallback: bool = False):
        """
        초기화합니다.

        Args:
            service: OS 위치 서비스 포트
            default_coordinate: 권한 거부 시 사용할 기본 기준점
            staleness_window: 위치가 오래된 것으로 간주되는 시간
            stale_fallback: 오래된 위치 대신 기본 기준점을 쓸지 여부
        """
        self.service = service
        self.default_coordinate = default_coordinate
        self.staleness_window = staleness_window
        self.stale_fallback = stale_fallback

        self._lock = threading.Lock()
        self._authorization = AuthorizationStatus.NOT_DETERMINED
        self._position: Optional[UserPosition] = None
        self._updating = False
        self._observers: List[TrackerObserver] = []

    # ---- 조회 ----

    @property
    def authorization(self) -> AuthorizationStatus:
        with self._lock:
            return self._authorization

    @property
    def is_updating(self) -> bool:
        with self._lock:
            return self._updating

    def current_position(self) -> Optional[UserPosition]:
        """마지막으로 관측된 위치 (없으면 None)"""
        with self._lock:
            return self._position

    def reference_position(self, now: Optional[datetime] = None) -> Optional[UserPosition]:
        """
        필터링에 사용할 기준 위치를 반환합니다.

        권한이 거부/제한되면 기본 기준점을, 권한이 있고 위치가 있으면 그 위치를,
        그 외에는 None을 반환합니다.
        """
        now = now or datetime.now(timezone.utc)
        with self._lock:
            status = self._authorization
            position = self._position

        if status.is_terminal_refusal:
            return self._fallback(now, status)
        if status is AuthorizationStatus.AUTHORIZED and position is not None:
            if self.stale_fallback and position.is_stale(now, self.staleness_window):
                log.debug("위치가 오래되어 기본 기준점 사용")
                return self._fallback(now, status)
            return position
        return None

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        position = self.current_position()
        if position is None:
            return True
        return position.is_stale(now or datetime.now(timezone.utc), self.staleness_window)

    def _fallback(self, now: datetime, status: AuthorizationStatus) -> UserPosition:
        return UserPosition(
            coordinate=self.default_coordinate,
            timestamp=now,
            authorization=status,
            is_fallback=True,
        )

    # ---- 권한 / 구독 ----

    def request_permission(self) -> None:
        """권한 상승을 요청합니다. 이미 허용되었으면 아무것도 하지 않습니다."""
        if self.authorization is AuthorizationStatus.AUTHORIZED:
            return
        log.info("위치 권한 요청")
        self.service.request_authorization()

    def start_updates(self) -> None:
        with self._lock:
            if self._updating:
                return
            self._updating = True
        self.service.start()
        log.info("위치 업데이트 시작")

    def stop_updates(self) -> None:
        with self._lock:
            if not self._updating:
                return
            self._updating = False
        self.service.stop()
        log.info("위치 업데이트 중지")

    @asynccontextmanager
    async def updates(self):
        """화면 수명 동안 위치 구독을 유지하고 종료 시 반드시 해제합니다."""
        self.start_updates()
        try:
            yield self
        finally:
            self.stop_updates()

    def subscribe(self, observer: TrackerObserver) -> Callable[[], None]:
        """관찰자를 등록하고 해제 함수를 반환합니다."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    # ---- OS 위치 서비스 콜백 ----

    def on_authorization_changed(self, status: AuthorizationStatus) -> None:
        """권한 상태 변경을 반영합니다. 거부/제한은 종료 상태입니다."""
        with self._lock:
            if status == self._authorization:
                return
            previous = self._authorization
            self._authorization = status
            position = self._position
        log.info(f"위치 권한 변경 {previous.value} -> {status.value}")

        if status is AuthorizationStatus.AUTHORIZED:
            self.start_updates()
        elif status.is_terminal_refusal:
            self.stop_updates()
        self._notify(TrackerUpdate(kind="authorization", authorization=status, position=position))

    def on_position(self, coordinate: Coordinate, timestamp: Optional[datetime] = None) -> None:
        """새 위치를 반영합니다. 권한이 없을 때 들어온 위치는 무시합니다."""
        with self._lock:
            if self._authorization is not AuthorizationStatus.AUTHORIZED:
                log.warning("권한 없는 상태의 위치 업데이트 무시")
                return
            position = UserPosition(
                coordinate=coordinate,
                timestamp=timestamp or datetime.now(timezone.utc),
                authorization=self._authorization,
            )
            self._position = position
        metrics.location_updates.inc()
        self._notify(TrackerUpdate(kind="position", authorization=position.authorization, position=position))

    def _notify(self, update: TrackerUpdate) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            observer(update)
