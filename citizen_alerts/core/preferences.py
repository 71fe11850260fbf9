"""
Persisted filter preferences for Citizen Alerts.

FilterConfig is stored as plain key/value settings. Each key falls
back to its default on its own when the stored value is unreadable,
so one corrupt entry never discards the rest of the user's choices.
"""

import json
from typing import Dict, Mapping, Optional
from pydantic import ValidationError
from .models import AlertType, FilterConfig, Severity
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.preferences")

KEY_NOTIFICATION_RADIUS = "alertNotificationRadius"
KEY_MIN_SEVERITY = "alertMinSeverity"
KEY_PROXIMITY_DISTANCE = "alertProximityDistance"
KEY_SELECTED_TYPES = "alertSelectedTypes"

PREFERENCE_KEYS = (
    KEY_NOTIFICATION_RADIUS,
    KEY_MIN_SEVERITY,
    KEY_PROXIMITY_DISTANCE,
    KEY_SELECTED_TYPES,
)


def encode(config: FilterConfig) -> Dict[str, str]:
    """FilterConfig를 키/값 설정으로 직렬화합니다."""
    return {
        KEY_NOTIFICATION_RADIUS: repr(float(config.notification_radius_km)),
        KEY_MIN_SEVERITY: config.min_severity.value,
        KEY_PROXIMITY_DISTANCE: repr(float(config.proximity_distance_km)),
        KEY_SELECTED_TYPES: json.dumps(sorted(t.value for t in config.allowed_types)),
    }


def _decode_field(key: str, raw: str):
    if key in (KEY_NOTIFICATION_RADIUS, KEY_PROXIMITY_DISTANCE):
        return float(raw)
    if key == KEY_MIN_SEVERITY:
        return Severity(raw)
    if key == KEY_SELECTED_TYPES:
        values = json.loads(raw)
        if not isinstance(values, list):
            raise ValueError("type list expected")
        return frozenset(AlertType(v) for v in values)
    raise KeyError(key)


_FIELD_FOR_KEY = {
    KEY_NOTIFICATION_RADIUS: "notification_radius_km",
    KEY_MIN_SEVERITY: "min_severity",
    KEY_PROXIMITY_DISTANCE: "proximity_distance_km",
    KEY_SELECTED_TYPES: "allowed_types",
}


def decode(values: Mapping[str, Optional[str]], base: Optional[FilterConfig] = None) -> FilterConfig:
    """
    키/값 설정에서 FilterConfig를 복원합니다.

    Args:
        values: 저장된 설정 (누락된 키는 None 또는 부재)
        base: 누락/손상된 키에 사용할 기본 설정

    Returns:
        복원된 FilterConfig
    """
    base = base or FilterConfig.defaults()
    fields = {}
    for key, field in _FIELD_FOR_KEY.items():
        raw = values.get(key)
        if raw is None:
            continue
        try:
            candidate = _decode_field(key, raw)
            # 필드 단위 검증 (음수 반경 등)
            base.model_validate({**base.model_dump(), field: candidate})
        except (ValueError, ValidationError, TypeError) as e:
            log.warning(f"저장된 필터 설정 무시 key:{key} value:{raw!r} error:{e}")
            continue
        fields[field] = candidate
    return base.model_copy(update=fields) if fields else base


async def load_filter_config(kv, base: Optional[FilterConfig] = None) -> FilterConfig:
    """KVStorePort에서 필터 설정을 읽습니다."""
    values = {key: await kv.get(key) for key in PREFERENCE_KEYS}
    return decode(values, base)


async def save_filter_config(kv, config: FilterConfig) -> None:
    """KVStorePort에 필터 설정을 기록합니다."""
    for key, value in encode(config).items():
        await kv.set(key, value)
