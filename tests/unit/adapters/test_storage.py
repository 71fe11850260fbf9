"""
Storage Adapter 모듈 단위 테스트

SQLite 기반 저장소 어댑터들을 테스트합니다.
"""

import aiosqlite
import pytest

from citizen_alerts.adapters.storage import SQLiteOutbox, SQLiteProximityStore, SQLiteSettingsStore
from citizen_alerts.core import preferences
from citizen_alerts.core.models import FilterConfig, ProximityPhase, Severity


class TestSQLiteProximityStore:
    """근접 상태 저장소 테스트"""

    @pytest.fixture
    async def store(self, temp_db_path):
        store = SQLiteProximityStore(temp_db_path)
        await store.init()
        return store

    @pytest.mark.asyncio
    async def test_empty_load(self, store):
        assert await store.load() == {}

    @pytest.mark.asyncio
    async def test_save_and_load(self, store):
        states = {"a": ProximityPhase.INSIDE, "b": ProximityPhase.OUTSIDE}

        await store.save(states)

        assert await store.load() == states
        assert await store.get_count() == 2

    @pytest.mark.asyncio
    async def test_save_replaces_previous_map(self, store):
        await store.save({"a": ProximityPhase.INSIDE, "b": ProximityPhase.OUTSIDE})
        await store.save({"b": ProximityPhase.INSIDE})

        assert await store.load() == {"b": ProximityPhase.INSIDE}

    @pytest.mark.asyncio
    async def test_state_survives_new_instance(self, store, temp_db_path):
        await store.save({"a": ProximityPhase.INSIDE})

        reopened = SQLiteProximityStore(temp_db_path)
        await reopened.init()

        assert await reopened.load() == {"a": ProximityPhase.INSIDE}

    @pytest.mark.asyncio
    async def test_unknown_phase_skipped(self, store, temp_db_path):
        async with aiosqlite.connect(temp_db_path) as db:
            await db.execute(
                "INSERT INTO proximity_state (alert_id, phase, updated_at) VALUES ('x', 'sideways', 0)"
            )
            await db.commit()

        assert await store.load() == {}


class TestSQLiteSettingsStore:
    """키-값 설정 저장소 테스트"""

    @pytest.fixture
    async def store(self, temp_db_path):
        store = SQLiteSettingsStore(temp_db_path)
        await store.init()
        return store

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("alertMinSeverity") is None

    @pytest.mark.asyncio
    async def test_set_overwrites(self, store):
        await store.set("alertMinSeverity", "low")
        await store.set("alertMinSeverity", "high")

        assert await store.get("alertMinSeverity") == "high"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.set("k", "v")
        await store.delete("k")

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_filter_preferences_round_trip(self, store):
        config = FilterConfig(notification_radius_km=15.0, min_severity=Severity.CRITICAL)

        await preferences.save_filter_config(store, config)

        assert await preferences.load_filter_config(store) == config


class TestSQLiteOutbox:
    """알림 Outbox 테스트"""

    @pytest.fixture
    async def outbox(self, temp_db_path):
        outbox = SQLiteOutbox(temp_db_path)
        await outbox.init()
        return outbox

    @pytest.mark.asyncio
    async def test_fifo_order(self, outbox):
        first = await outbox.enqueue("t/1", b"one")
        await outbox.enqueue("t/2", b"two")

        item = await outbox.peek_oldest()

        assert item.id == first
        assert item.payload == b"one"
        assert await outbox.get_count() == 2

    @pytest.mark.asyncio
    async def test_mark_attempt_and_delete(self, outbox):
        oid = await outbox.enqueue("t", b"x", qos=0, retain=True)

        await outbox.mark_attempt(oid)
        item = await outbox.peek_oldest()
        assert item.attempts == 1
        assert item.retain is True
        assert item.qos == 0

        await outbox.delete(oid)
        assert await outbox.peek_oldest() is None

    @pytest.mark.asyncio
    async def test_pending_and_error_tracking(self, outbox):
        first = await outbox.enqueue("t", b"a", alert_id="1")
        await outbox.enqueue("t", b"b", alert_id="2")

        await outbox.mark_attempt(first, "timeout")
        items = await outbox.pending()

        assert [i.alert_id for i in items] == ["1", "2"]
        assert items[0].last_error == "timeout"
        assert items[1].last_error is None
