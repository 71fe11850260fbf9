"""
Core domain models for Citizen Alerts.

This module defines the core domain models using Pydantic v2
for type safety and validation. Every model is frozen so that a
snapshot handed to the filter engine can never change under it.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, FrozenSet, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(str, Enum):
    """심각도 (low < medium < high < critical)"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER[self]

    def at_least(self, threshold: "Severity") -> bool:
        return self.rank >= threshold.rank


# 심각도 순서 정의 (낮음 -> 높음)
SEVERITY_ORDER: Dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class AlertType(str, Enum):
    """사건 유형 (닫힌 집합)"""
    FIRE = "fire"
    ACCIDENT = "accident"
    CRIME = "crime"
    WEATHER = "weather"
    OTHER = "other"


class AuthorizationStatus(str, Enum):
    """위치 권한 상태"""
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def is_terminal_refusal(self) -> bool:
        return self in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED)


class Coordinate(BaseModel):
    """WGS84 좌표 (도 단위)"""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class Alert(BaseModel):
    """사건 하나를 나타내는 모델"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    coordinate: Coordinate
    type: AlertType
    severity: Severity
    created_at: datetime
    report_count: int = 0
    is_verified: bool = False
    title: Optional[str] = None
    description: Optional[str] = None


DEFAULT_NOTIFICATION_RADIUS_KM = 50.0
DEFAULT_PROXIMITY_DISTANCE_KM = 5.0
DEFAULT_MIN_SEVERITY = Severity.LOW


class FilterConfig(BaseModel):
    """
    사용자 필터 설정의 불변 스냅샷.

    잘못된 값(음수 반경/거리, 알 수 없는 심각도·유형)은 생성 시점에
    ValidationError로 거부되므로 필터 함수까지 도달하지 않습니다.
    allowed_types가 비어 있으면 "모든 유형 허용"입니다.
    """
    model_config = ConfigDict(frozen=True)

    notification_radius_km: float = Field(default=DEFAULT_NOTIFICATION_RADIUS_KM, ge=0.0, allow_inf_nan=False)
    min_severity: Severity = DEFAULT_MIN_SEVERITY
    allowed_types: FrozenSet[AlertType] = frozenset()
    proximity_distance_km: float = Field(default=DEFAULT_PROXIMITY_DISTANCE_KM, ge=0.0, allow_inf_nan=False)
    focused_type: Optional[AlertType] = None

    @field_validator("allowed_types", mode="before")
    @classmethod
    def _coerce_types(cls, value):
        if value is None:
            return frozenset()
        return value

    @classmethod
    def defaults(cls) -> "FilterConfig":
        return cls()

    def allows_type(self, alert_type: AlertType) -> bool:
        if self.focused_type is not None:
            return alert_type == self.focused_type
        return not self.allowed_types or alert_type in self.allowed_types

    def has_active_filters(self) -> bool:
        """기본값과 다른 필터가 하나라도 있으면 True"""
        return self != FilterConfig.defaults()


class UserPosition(BaseModel):
    """마지막으로 알려진 사용자 위치와 권한 상태"""
    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    timestamp: datetime
    authorization: AuthorizationStatus
    is_fallback: bool = False

    def age(self, now: datetime) -> timedelta:
        return now - self.timestamp

    def is_stale(self, now: datetime, window: timedelta) -> bool:
        return self.age(now) > window


class ProximityPhase(str, Enum):
    """근접 상태 (Unseen은 상태 맵에 없음으로 표현)"""
    OUTSIDE = "outside"
    INSIDE = "inside"


class ProximityEntered(BaseModel):
    """경보가 근접 반경에 진입했을 때 한 번 발생하는 이벤트"""
    model_config = ConfigDict(frozen=True)

    alert_id: str
    distance_km: float
    severity: Severity
    type: AlertType
    occurred_at: datetime
