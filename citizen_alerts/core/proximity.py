"""
Proximity entry detection for Citizen Alerts.

Each alert id moves through Unseen -> Outside <-> Inside. A
ProximityEntered event is produced only on the edge into Inside, so an
alert that stays near the user notifies once per approach. Unseen is
represented by the id being absent from the state map.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from .filter_engine import rank_alerts
from .models import Alert, FilterConfig, ProximityEntered, ProximityPhase, UserPosition
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.proximity")

ProximityStates = Dict[str, ProximityPhase]


def evaluate(
    previous_states: Mapping[str, ProximityPhase],
    alerts: Iterable[Alert],
    position: Optional[UserPosition],
    config: FilterConfig,
    *,
    now: Optional[datetime] = None,
) -> Tuple[ProximityStates, List[ProximityEntered]]:
    """
    이전 상태 맵과 현재 스냅샷으로 새 상태 맵과 진입 이벤트를 계산합니다.

    가시 집합(반경/심각도/유형 필터 통과)에 속한 경보만 Inside가 될 수
    있습니다. 스냅샷에서 사라진 id는 상태 맵에서 제거됩니다. 기준 위치가
    없거나 기본 기준점(is_fallback)이면 전이가 일어나지 않습니다. 실제 위치가
    아닌 기준점으로는 근접 알림을 만들지 않습니다.

    Args:
        previous_states: 직전 평가의 id별 상태
        alerts: AlertStore 스냅샷
        position: 기준 위치
        config: 필터 설정
        now: 이벤트 시각 (None이면 현재 UTC)

    Returns:
        (새 상태 맵, 진입 이벤트 목록)
    """
    snapshot = list(alerts)

    if position is None or position.is_fallback:
        # 실제 위치가 없으면 상태만 가비지 컬렉션
        retained = {a.id: previous_states[a.id] for a in snapshot if a.id in previous_states}
        return retained, []

    occurred_at = now or datetime.now(timezone.utc)
    ranked = rank_alerts(snapshot, position, config)

    new_states: ProximityStates = {}
    events: List[ProximityEntered] = []

    for item in ranked:
        alert_id = item.alert.id
        inside = item.distance_km <= config.proximity_distance_km
        if inside:
            if previous_states.get(alert_id) != ProximityPhase.INSIDE:
                events.append(ProximityEntered(
                    alert_id=alert_id,
                    distance_km=item.distance_km,
                    severity=item.alert.severity,
                    type=item.alert.type,
                    occurred_at=occurred_at,
                ))
            new_states[alert_id] = ProximityPhase.INSIDE
        else:
            new_states[alert_id] = ProximityPhase.OUTSIDE

    # 스냅샷에는 있지만 가시 집합 밖인 경보는 Outside로 재무장
    for alert in snapshot:
        new_states.setdefault(alert.id, ProximityPhase.OUTSIDE)

    if events:
        log.debug(f"근접 진입 이벤트 {len(events)}건 ids:{[e.alert_id for e in events]}")

    return new_states, events
