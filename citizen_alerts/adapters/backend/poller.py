"""
Periodic alert refresh for Citizen Alerts.

Fetches the full alert list from an AlertSourcePort, normalizes it
and replaces the AlertStore contents. A failed fetch keeps the
previous snapshot; its age is visible through AlertStore.refreshed_at.
"""

import asyncio
from typing import Optional
from citizen_alerts.core import normalize
from citizen_alerts.ports.alert_source import AlertSourcePort
from citizen_alerts.store.alert_store import AlertStore
from citizen_alerts.observability import metrics
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.poller")

class AlertPoller:
    """백엔드 경보 주기 수집기"""
    
    def __init__(self, source: AlertSourcePort, store: AlertStore, *, interval_sec: float = 30.0):
        self.source = source
        self.store = store
        self.interval_sec = interval_sec
        self._running = False
    
    async def refresh_once(self) -> Optional[int]:
        """
        한 번 수집하여 스토어를 교체합니다.
        
        Returns:
            스토어에 들어간 경보 수, 수집 실패 시 None
        """
        try:
            records = await self.source.fetch_alerts()
        except Exception as e:
            metrics.fetch_failures.inc()
            log.error(f"경보 수집 실패, 이전 스냅샷 유지 error:{e}")
            return None
        
        metrics.alerts_received.labels(source="backend").inc(len(records))
        alerts, rejected = normalize.to_alerts(records)
        if rejected:
            metrics.alerts_rejected.inc(rejected)
        snapshot = self.store.replace(alerts)
        return len(snapshot)
    
    async def start(self) -> None:
        """중지될 때까지 주기적으로 수집합니다."""
        self._running = True
        log.info(f"경보 수집 시작 interval:{self.interval_sec}s")
        while self._running:
            try:
                await self.refresh_once()
            except Exception as e:
                # 한 번의 실패로 수집 루프가 멈추지 않음
                metrics.fetch_failures.inc()
                log.exception(f"경보 수집 처리 오류 error:{e}")
            await asyncio.sleep(self.interval_sec)
    
    def stop(self) -> None:
        self._running = False
