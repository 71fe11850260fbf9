"""
테스트 설정 및 픽스처

이 모듈은 pytest 설정과 공통 픽스처를 제공합니다.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
import pytest
from citizen_alerts.common.geo import EARTH_RADIUS_KM
from citizen_alerts.core.models import (
    Alert, AlertType, AuthorizationStatus, Coordinate, FilterConfig, Severity, UserPosition
)
from citizen_alerts.settings import Settings

# 위도 1도의 길이 (킬로미터, 자오선 방향)
KM_PER_DEGREE_LAT = EARTH_RADIUS_KM * 3.141592653589793 / 180.0

HOME = Coordinate(latitude=22.30, longitude=114.17)
BASE_TIME = datetime(2025, 11, 20, 9, 0, tzinfo=timezone.utc)


def north_of(origin: Coordinate, km: float) -> Coordinate:
    """origin에서 정북 방향으로 km 떨어진 좌표"""
    return Coordinate(latitude=origin.latitude + km / KM_PER_DEGREE_LAT, longitude=origin.longitude)


def make_alert(alert_id="1", *, km=1.0, origin=HOME, severity=Severity.HIGH,
               alert_type=AlertType.FIRE, created_at=None, coordinate=None) -> Alert:
    """테스트용 Alert 생성"""
    return Alert(
        id=str(alert_id),
        coordinate=coordinate or north_of(origin, km),
        type=alert_type,
        severity=severity,
        created_at=created_at or BASE_TIME,
        report_count=3,
        is_verified=True,
    )


def make_position(coordinate=HOME, *, timestamp=None,
                  authorization=AuthorizationStatus.AUTHORIZED) -> UserPosition:
    """테스트용 UserPosition 생성"""
    return UserPosition(
        coordinate=coordinate,
        timestamp=timestamp or BASE_TIME,
        authorization=authorization,
    )


@pytest.fixture
def home():
    return HOME


@pytest.fixture
def position():
    """홍콩 기준 위치"""
    return make_position()


@pytest.fixture
def default_config():
    """반경 50km, 근접 5km 기본 설정"""
    return FilterConfig(
        notification_radius_km=50.0,
        min_severity=Severity.LOW,
        allowed_types=frozenset(),
        proximity_distance_km=5.0,
    )


@pytest.fixture
def temp_db_path():
    """임시 데이터베이스 파일 경로"""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        temp_path = f.name
    yield temp_path
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def sample_settings(tmp_path):
    """테스트용 설정"""
    settings = Settings()
    settings.observability.service_name = "test-service"
    settings.observability.build_version = "1.0.0"
    settings.reliability.state_path = str(tmp_path / "proximity.db")
    settings.reliability.settings_path = str(tmp_path / "settings.db")
    settings.reliability.outbox_path = str(tmp_path / "outbox.db")
    return settings


def pytest_collection_modifyitems(config, items):
    """테스트 아이템 수정"""
    for item in items:
        if "performance" in item.name or "stress" in item.name:
            item.add_marker(pytest.mark.slow)
        if "integration" in item.name:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def alert_factory():
    """make_alert 팩토리"""
    return make_alert


@pytest.fixture
def position_factory():
    """make_position 팩토리"""
    return make_position


@pytest.fixture
def offset():
    """north_of 헬퍼"""
    return north_of
