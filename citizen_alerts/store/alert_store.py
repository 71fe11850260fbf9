"""
In-memory alert store for Citizen Alerts.

Holds the most recently fetched set of alerts. A replace builds the
new tuple first and swaps it in under the lock, so snapshot() never
returns a partially replaced set.
"""

import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from citizen_alerts.core.models import Alert
from citizen_alerts.observability import metrics
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.store")

StoreObserver = Callable[[Tuple[Alert, ...]], None]


class AlertStore:
    """현재 알려진 경보 집합"""

    def __init__(self):
        self._lock = threading.Lock()
        self._alerts: Tuple[Alert, ...] = ()
        self._version = 0
        self._refreshed_at: Optional[datetime] = None
        self._observers: List[StoreObserver] = []

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def refreshed_at(self) -> Optional[datetime]:
        with self._lock:
            return self._refreshed_at

    def replace(self, alerts: Iterable[Alert]) -> Tuple[Alert, ...]:
        """
        경보 집합 전체를 교체합니다.

        같은 id가 여러 번 나오면 마지막 것이 남습니다(최신 우선).

        Args:
            alerts: 백엔드에서 받은 경보 목록

        Returns:
            교체된 스냅샷
        """
        by_id: Dict[str, Alert] = {}
        duplicates = 0
        for alert in alerts:
            if alert.id in by_id:
                duplicates += 1
                del by_id[alert.id]
            by_id[alert.id] = alert
        snapshot = tuple(by_id.values())

        with self._lock:
            self._alerts = snapshot
            self._version += 1
            self._refreshed_at = datetime.now(timezone.utc)
            observers = list(self._observers)

        if duplicates:
            log.warning(f"중복 id {duplicates}건을 최신 레코드로 대체")
        metrics.store_size.set(len(snapshot))
        log.debug(f"경보 스토어 교체 count:{len(snapshot)}")

        for observer in observers:
            observer(snapshot)
        return snapshot

    def snapshot(self) -> Tuple[Alert, ...]:
        """호출 시점의 불변 스냅샷"""
        with self._lock:
            return self._alerts

    def subscribe(self, observer: StoreObserver) -> Callable[[], None]:
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe
