"""
models 모듈 단위 테스트

도메인 모델의 검증과 불변성을 확인합니다.
"""

from datetime import datetime, timedelta, timezone
import pytest
from pydantic import ValidationError

from citizen_alerts.core.models import (
    AlertType, AuthorizationStatus, Coordinate, FilterConfig, Severity, SEVERITY_ORDER, UserPosition
)


class TestSeverity:
    """심각도 순서 테스트"""

    def test_total_order(self):
        ordered = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]
        assert sorted(ordered, key=lambda s: s.rank) == ordered
        assert len(set(SEVERITY_ORDER.values())) == len(Severity)

    @pytest.mark.parametrize("severity,threshold,expected", [
        (Severity.LOW, Severity.LOW, True),
        (Severity.MEDIUM, Severity.HIGH, False),
        (Severity.HIGH, Severity.HIGH, True),
        (Severity.CRITICAL, Severity.MEDIUM, True),
    ])
    def test_at_least(self, severity, threshold, expected):
        assert severity.at_least(threshold) is expected


class TestCoordinate:
    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            Coordinate(latitude=91.0, longitude=0.0)
        with pytest.raises(ValidationError):
            Coordinate(latitude=0.0, longitude=-180.5)

    def test_frozen(self):
        c = Coordinate(latitude=1.0, longitude=2.0)
        with pytest.raises(ValidationError):
            c.latitude = 3.0


class TestFilterConfig:
    """필터 설정 생성 시 검증 테스트"""

    def test_defaults_match_reset_values(self):
        config = FilterConfig.defaults()
        assert config.notification_radius_km == 50.0
        assert config.min_severity is Severity.LOW
        assert config.allowed_types == frozenset()
        assert config.proximity_distance_km == 5.0
        assert config.focused_type is None
        assert not config.has_active_filters()

    @pytest.mark.parametrize("field", ["notification_radius_km", "proximity_distance_km"])
    def test_negative_distance_rejected(self, field):
        with pytest.raises(ValidationError):
            FilterConfig(**{field: -0.1})

    def test_nan_radius_rejected(self):
        with pytest.raises(ValidationError):
            FilterConfig(notification_radius_km=float("nan"))

    def test_unknown_severity_rejected(self):
        with pytest.raises(ValidationError):
            FilterConfig(min_severity="extreme")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            FilterConfig(allowed_types={"fire", "alien"})

    def test_string_values_coerced(self):
        config = FilterConfig(min_severity="high", allowed_types=["fire", "crime"])
        assert config.min_severity is Severity.HIGH
        assert config.allowed_types == frozenset({AlertType.FIRE, AlertType.CRIME})

    def test_proximity_may_exceed_radius(self):
        config = FilterConfig(notification_radius_km=1.0, proximity_distance_km=10.0)
        assert config.proximity_distance_km > config.notification_radius_km

    def test_has_active_filters(self):
        assert FilterConfig(min_severity=Severity.MEDIUM).has_active_filters()
        assert FilterConfig(focused_type=AlertType.FIRE).has_active_filters()
        assert FilterConfig(allowed_types={AlertType.WEATHER}).has_active_filters()

    def test_immutable(self):
        config = FilterConfig()
        with pytest.raises(ValidationError):
            config.notification_radius_km = 10.0


class TestUserPosition:
    def test_staleness(self):
        t0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
        pos = UserPosition(
            coordinate=Coordinate(latitude=0, longitude=0),
            timestamp=t0,
            authorization=AuthorizationStatus.AUTHORIZED,
        )
        window = timedelta(minutes=5)
        assert not pos.is_stale(t0 + timedelta(minutes=5), window)
        assert pos.is_stale(t0 + timedelta(minutes=5, seconds=1), window)

    def test_terminal_refusal(self):
        assert AuthorizationStatus.DENIED.is_terminal_refusal
        assert AuthorizationStatus.RESTRICTED.is_terminal_refusal
        assert not AuthorizationStatus.NOT_DETERMINED.is_terminal_refusal
        assert not AuthorizationStatus.AUTHORIZED.is_terminal_refusal
