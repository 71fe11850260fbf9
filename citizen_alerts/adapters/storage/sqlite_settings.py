"""
SQLite-based key/value settings store for Citizen Alerts.

This module implements KVStorePort on top of a single SQLite table.
It backs the persisted filter preferences.
"""

import aiosqlite
import time
from typing import Optional
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.settings_store")

# SQLite 스키마
SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    k TEXT PRIMARY KEY,
    v TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

class SQLiteSettingsStore:
    """SQLite 기반 키-값 설정 저장소"""
    
    def __init__(self, path: str):
        """
        초기화합니다.
        
        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
    
    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info(f"SQLiteSettingsStore 스키마 초기화 완료: {self.path}")
    
    async def get(self, key: str) -> Optional[str]:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT v FROM settings WHERE k = ?", (key,))
            row = await cursor.fetchone()
            return row[0] if row else None
    
    async def set(self, key: str, value: str) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT INTO settings (k, v, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(k) DO UPDATE SET v = excluded.v, updated_at = excluded.updated_at",
                (key, value, int(time.time()))
            )
            await db.commit()
    
    async def delete(self, key: str) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute("DELETE FROM settings WHERE k = ?", (key,))
            await db.commit()
