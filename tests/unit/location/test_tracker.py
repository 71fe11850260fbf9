"""
LocationTracker 단위 테스트

권한 상태 머신, 기준 위치 선택, 구독 수명 주기를 검증합니다.
"""

from datetime import datetime, timedelta, timezone
import threading
import pytest
from unittest.mock import Mock

from citizen_alerts.adapters.location import PushLocationService
from citizen_alerts.core.models import AuthorizationStatus, Coordinate
from citizen_alerts.location.tracker import LocationTracker

HKU = Coordinate(latitude=22.2833, longitude=114.1378)
TST = Coordinate(latitude=22.2976, longitude=114.1722)
T0 = datetime(2025, 11, 20, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def service():
    return Mock()


@pytest.fixture
def tracker(service):
    return LocationTracker(service, default_coordinate=HKU, staleness_window=timedelta(minutes=5))


class TestAuthorization:
    """권한 상태 전이 테스트"""

    def test_initial_state(self, tracker):
        assert tracker.authorization is AuthorizationStatus.NOT_DETERMINED
        assert tracker.current_position() is None
        assert tracker.reference_position(T0) is None

    def test_request_permission_delegates(self, tracker, service):
        tracker.request_permission()
        service.request_authorization.assert_called_once()

    def test_request_permission_noop_when_authorized(self, tracker, service):
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        tracker.request_permission()
        service.request_authorization.assert_not_called()

    def test_authorized_starts_updates(self, tracker, service):
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)

        assert tracker.is_updating
        service.start.assert_called_once()

    @pytest.mark.parametrize("status", [AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED])
    def test_refusal_uses_fallback(self, tracker, status):
        tracker.on_authorization_changed(status)

        ref = tracker.reference_position(T0)

        assert ref is not None
        assert ref.coordinate == HKU
        assert ref.is_fallback
        assert ref.authorization is status

    def test_revocation_stops_updates(self, tracker, service):
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        tracker.on_position(TST, T0)
        tracker.on_authorization_changed(AuthorizationStatus.DENIED)

        assert not tracker.is_updating
        service.stop.assert_called_once()
        assert tracker.reference_position(T0).coordinate == HKU

    def test_same_status_not_renotified(self, tracker):
        observer = Mock()
        tracker.subscribe(observer)

        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)

        assert observer.call_count == 1


class TestPositions:
    """위치 업데이트 테스트"""

    def test_authorized_position_used(self, tracker):
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        tracker.on_position(TST, T0)

        ref = tracker.reference_position(T0)

        assert ref.coordinate == TST
        assert not ref.is_fallback

    def test_authorized_without_fix_has_no_reference(self, tracker):
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        assert tracker.reference_position(T0) is None

    def test_position_ignored_when_not_authorized(self, tracker):
        observer = Mock()
        tracker.subscribe(observer)

        tracker.on_position(TST, T0)

        assert tracker.current_position() is None
        observer.assert_not_called()

    def test_position_notifies_observers(self, tracker):
        observer = Mock()
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        tracker.subscribe(observer)

        tracker.on_position(TST, T0)

        update = observer.call_args.args[0]
        assert update.kind == "position"
        assert update.position.coordinate == TST

    def test_stale_position_kept_by_default(self, tracker):
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        tracker.on_position(TST, T0)
        later = T0 + timedelta(minutes=30)

        assert tracker.is_stale(later)
        assert tracker.reference_position(later).coordinate == TST

    def test_stale_fallback_option(self, service):
        tracker = LocationTracker(service, default_coordinate=HKU,
                                  staleness_window=timedelta(minutes=5), stale_fallback=True)
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        tracker.on_position(TST, T0)

        assert tracker.reference_position(T0 + timedelta(minutes=1)).coordinate == TST
        fallback = tracker.reference_position(T0 + timedelta(minutes=6))
        assert fallback.coordinate == HKU
        assert fallback.is_fallback

    def test_concurrent_updates_keep_consistent_position(self, tracker):
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        coords = [Coordinate(latitude=22.0 + i * 0.001, longitude=114.0 + i * 0.001) for i in range(200)]

        def writer(chunk):
            for c in chunk:
                tracker.on_position(c, T0)

        threads = [threading.Thread(target=writer, args=(coords[i::4],)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = tracker.current_position()
        assert final.coordinate in coords
        # 위도/경도가 같은 업데이트에서 온 값이어야 함
        assert round(final.coordinate.latitude - 22.0, 6) == round(final.coordinate.longitude - 114.0, 6)


class TestSubscriptionLifecycle:
    """구독 수명 주기 테스트"""

    def test_start_stop_idempotent(self, tracker, service):
        tracker.start_updates()
        tracker.start_updates()
        tracker.stop_updates()
        tracker.stop_updates()

        assert service.start.call_count == 1
        assert service.stop.call_count == 1

    @pytest.mark.asyncio
    async def test_updates_context_releases_on_error(self, tracker, service):
        with pytest.raises(RuntimeError):
            async with tracker.updates():
                assert tracker.is_updating
                raise RuntimeError("screen closed")

        assert not tracker.is_updating
        service.stop.assert_called_once()

    def test_unsubscribe(self, tracker):
        observer = Mock()
        unsubscribe = tracker.subscribe(observer)
        unsubscribe()
        unsubscribe()

        tracker.on_authorization_changed(AuthorizationStatus.DENIED)

        observer.assert_not_called()


class TestPushLocationService:
    """HTTP 푸시 위치 서비스 어댑터 테스트"""

    def test_tracks_tracker_requests(self):
        service = PushLocationService()
        tracker = LocationTracker(service, default_coordinate=HKU)

        tracker.request_permission()
        tracker.on_authorization_changed(AuthorizationStatus.AUTHORIZED)
        assert service.permission_requests == 1
        assert service.active is True

        tracker.on_authorization_changed(AuthorizationStatus.RESTRICTED)
        assert service.active is False
