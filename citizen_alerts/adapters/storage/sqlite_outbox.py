"""
SQLite-based notification outbox for Citizen Alerts.

Proximity notifications are written here before they are published,
so an emitted ProximityEntered event survives a broker outage or a
restart. Rows leave the outbox only when published or exhausted.
"""

import aiosqlite
import time
from dataclasses import dataclass
from typing import List, Optional
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.outbox")

SCHEMA = """
CREATE TABLE IF NOT EXISTS notification_outbox (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    alert_id TEXT,
    topic TEXT NOT NULL,
    payload BLOB NOT NULL,
    qos INTEGER NOT NULL DEFAULT 1,
    retain INTEGER NOT NULL DEFAULT 0,
    enqueued_at REAL NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    last_error TEXT
);
CREATE INDEX IF NOT EXISTS idx_notification_outbox_enqueued ON notification_outbox(enqueued_at, id);
"""

_COLUMNS = "id, alert_id, topic, payload, qos, retain, attempts, last_error"


@dataclass
class OutboxItem:
    """발송 대기 중인 알림 한 건"""
    id: int
    topic: str
    payload: bytes
    qos: int
    retain: bool
    attempts: int
    alert_id: Optional[str] = None
    last_error: Optional[str] = None


def _row_to_item(row) -> OutboxItem:
    return OutboxItem(
        id=row[0],
        alert_id=row[1],
        topic=row[2],
        payload=bytes(row[3]),
        qos=row[4],
        retain=bool(row[5]),
        attempts=row[6],
        last_error=row[7],
    )


class SQLiteOutbox:
    """알림 Outbox (도착 순서대로 발송)"""

    def __init__(self, path: str):
        self.path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info(f"알림 Outbox 준비 완료 path:{self.path}")

    async def enqueue(self, topic: str, payload: bytes, qos: int = 1, retain: bool = False,
                      alert_id: Optional[str] = None) -> int:
        """
        알림을 Outbox 끝에 추가합니다.

        Args:
            topic: 발송 토픽
            payload: 직렬화된 본문
            qos: MQTT QoS
            retain: retain 플래그
            alert_id: 알림을 만든 경보 id (추적용)

        Returns:
            Outbox 항목 id
        """
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(
                "INSERT INTO notification_outbox (alert_id, topic, payload, qos, retain, enqueued_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (alert_id, topic, payload, qos, int(retain), time.time()),
            )
            await db.commit()
            oid = cursor.lastrowid
        log.debug(f"Outbox 추가 id:{oid} alert_id:{alert_id} topic:{topic}")
        return oid

    async def peek_oldest(self) -> Optional[OutboxItem]:
        """다음 발송 대상 (삭제하지 않음)"""
        items = await self.pending(limit=1)
        return items[0] if items else None

    async def pending(self, limit: int = 100) -> List[OutboxItem]:
        """발송 대기 항목을 오래된 순서로 반환합니다."""
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM notification_outbox ORDER BY enqueued_at, id LIMIT ?",
                (limit,),
            )
            rows = await cursor.fetchall()
        return [_row_to_item(row) for row in rows]

    async def mark_attempt(self, oid: int, error: Optional[str] = None) -> None:
        """발송 실패를 기록합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "UPDATE notification_outbox SET attempts = attempts + 1, last_error = ? WHERE id = ?",
                (error, oid),
            )
            await db.commit()

    async def delete(self, oid: int) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute("DELETE FROM notification_outbox WHERE id = ?", (oid,))
            await db.commit()

    async def get_count(self) -> int:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM notification_outbox")
            row = await cursor.fetchone()
        return row[0] if row else 0
