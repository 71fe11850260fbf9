"""
Normalization functions for Citizen Alerts.

This module contains pure functions for converting raw backend
records into Alert domain models.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple
from jsonschema import validate
from jsonschema.exceptions import ValidationError
from .models import Alert, AlertType, Coordinate, Severity
from citizen_alerts.common.geo import validate_coordinates
from citizen_alerts.observability import metrics
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.normalize")

SCHEMA = json.loads((Path(__file__).parent / "alert_schema.json").read_text(encoding="utf-8"))


class NormalizationError(ValueError):
    """백엔드 레코드를 Alert로 변환할 수 없음"""


# 심각도 매핑 (문자열과 숫자 모두 처리)
SEVERITY_MAP: Dict[Any, Severity] = {
    "low": Severity.LOW,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "high": Severity.HIGH,
    "critical": Severity.CRITICAL,
    1: Severity.LOW,
    2: Severity.MEDIUM,
    3: Severity.HIGH,
    4: Severity.CRITICAL,
}

TYPE_MAP: Dict[str, AlertType] = {t.value: t for t in AlertType}


def _parse_severity(raw_severity: Any) -> Severity:
    if isinstance(raw_severity, bool):
        raise NormalizationError(f"알 수 없는 심각도: {raw_severity!r}")
    if isinstance(raw_severity, int):
        key: Any = raw_severity
    else:
        key = str(raw_severity).strip().lower()
    try:
        return SEVERITY_MAP[key]
    except KeyError:
        raise NormalizationError(f"알 수 없는 심각도: {raw_severity!r}") from None


def _parse_type(raw_type: Any, alert_id: str) -> AlertType:
    key = str(raw_type or "").strip().lower()
    alert_type = TYPE_MAP.get(key)
    if alert_type is None:
        # 조용히 버리지 않고 other로 매핑
        log.warning(f"알 수 없는 경보 유형 id:{alert_id} type:{raw_type!r} -> other")
        metrics.alerts_unknown_type.inc()
        return AlertType.OTHER
    return alert_type


def _parse_timestamp(raw_ts: Any) -> datetime:
    if isinstance(raw_ts, datetime):
        ts = raw_ts
    elif isinstance(raw_ts, (int, float)) and not isinstance(raw_ts, bool):
        try:
            ts = datetime.fromtimestamp(raw_ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise NormalizationError(f"시각 범위 오류: {raw_ts!r}") from None
    elif isinstance(raw_ts, str) and raw_ts:
        try:
            ts = datetime.fromisoformat(raw_ts.replace("Z", "+00:00"))
        except ValueError:
            raise NormalizationError(f"시각 형식 오류: {raw_ts!r}") from None
    else:
        raise NormalizationError(f"createdAt 누락: {raw_ts!r}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _parse_coordinate(raw: Dict[str, Any]) -> Coordinate:
    # location 객체 우선, 없으면 최상위 latitude/longitude
    loc = raw.get("location") if isinstance(raw.get("location"), dict) else raw
    lat = loc.get("latitude", loc.get("lat"))
    lon = loc.get("longitude", loc.get("lon"))
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        raise NormalizationError(f"좌표 변환 실패 latitude:{lat!r} longitude:{lon!r}") from None
    if not validate_coordinates(lat_f, lon_f):
        raise NormalizationError(f"좌표 범위 오류 latitude:{lat_f} longitude:{lon_f}")
    return Coordinate(latitude=lat_f, longitude=lon_f)


def to_alert(raw: Dict[str, Any]) -> Alert:
    """
    백엔드 레코드 하나를 Alert로 변환합니다.

    Args:
        raw: 백엔드가 보낸 원시 딕셔너리

    Returns:
        Alert 모델

    Raises:
        NormalizationError: id/좌표/심각도/시각이 잘못된 경우
    """
    if not isinstance(raw, dict):
        raise NormalizationError(f"레코드가 객체가 아님: {type(raw).__name__}")
    try:
        validate(instance=raw, schema=SCHEMA)
    except ValidationError as e:
        raise NormalizationError(f"레코드 스키마 검증 실패: {e.message}") from None

    raw_id = raw.get("id", raw.get("alertId"))
    if raw_id is None or isinstance(raw_id, bool) or str(raw_id).strip() == "":
        raise NormalizationError("id 누락")
    alert_id = str(raw_id).strip()

    return Alert(
        id=alert_id,
        coordinate=_parse_coordinate(raw),
        type=_parse_type(raw.get("type"), alert_id),
        severity=_parse_severity(raw.get("severity")),
        created_at=_parse_timestamp(raw.get("createdAt", raw.get("created_at"))),
        report_count=int(raw.get("reportCount", raw.get("report_count", 0)) or 0),
        is_verified=bool(raw.get("isVerified", raw.get("is_verified", False))),
        title=raw.get("title"),
        description=raw.get("description"),
    )


def to_alerts(records: Iterable[Dict[str, Any]]) -> Tuple[List[Alert], int]:
    """
    레코드 묶음을 변환합니다. 변환할 수 없는 레코드는 로그를 남기고 건너뜁니다.

    Returns:
        (변환된 Alert 목록, 거부된 레코드 수)
    """
    alerts: List[Alert] = []
    rejected = 0
    for raw in records:
        try:
            alerts.append(to_alert(raw))
        except (NormalizationError, ValueError) as e:
            rejected += 1
            rid = raw.get("id") if isinstance(raw, dict) else None
            log.error(f"경보 레코드 거부 id:{rid} error:{e}")
    return alerts, rejected
