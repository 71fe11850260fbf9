"""
SQLite-based proximity state store for Citizen Alerts.

This module persists the per-alert proximity state map so that
entry events are neither repeated nor lost across pause/resume
cycles and restarts.
"""

import aiosqlite
import time
from typing import Dict
from citizen_alerts.core.models import ProximityPhase
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.proximity_store")

# SQLite 스키마
SCHEMA = """
CREATE TABLE IF NOT EXISTS proximity_state (
    alert_id TEXT PRIMARY KEY,
    phase TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

class SQLiteProximityStore:
    """SQLite 기반 근접 상태 저장소"""
    
    def __init__(self, path: str):
        """
        초기화합니다.
        
        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
        log.info(f"SQLiteProximityStore 초기화: {path}")
    
    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteProximityStore 스키마 초기화 완료")
    
    async def load(self) -> Dict[str, ProximityPhase]:
        """
        저장된 상태 맵을 읽습니다. 알 수 없는 phase 값은 건너뜁니다.
        
        Returns:
            id별 근접 상태
        """
        states: Dict[str, ProximityPhase] = {}
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT alert_id, phase FROM proximity_state")
            rows = await cursor.fetchall()
        for alert_id, phase in rows:
            try:
                states[alert_id] = ProximityPhase(phase)
            except ValueError:
                log.warning(f"알 수 없는 근접 상태 무시 alert_id:{alert_id} phase:{phase}")
        return states
    
    async def save(self, states: Dict[str, ProximityPhase]) -> None:
        """
        상태 맵 전체를 한 트랜잭션으로 교체합니다.
        
        Args:
            states: id별 근접 상태
        """
        now = int(time.time())
        async with aiosqlite.connect(self.path) as db:
            await db.execute("DELETE FROM proximity_state")
            await db.executemany(
                "INSERT INTO proximity_state (alert_id, phase, updated_at) VALUES (?, ?, ?)",
                [(alert_id, ProximityPhase(phase).value, now) for alert_id, phase in states.items()]
            )
            await db.commit()
    
    async def get_count(self) -> int:
        """
        현재 저장된 항목 수를 반환합니다.
        
        Returns:
            항목 수
        """
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM proximity_state")
            result = await cursor.fetchone()
            return result[0] if result else 0
