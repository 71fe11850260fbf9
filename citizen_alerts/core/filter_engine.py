"""
Visible alert computation for Citizen Alerts.

This module contains pure functions that combine an alert snapshot,
the user's reference position and a FilterConfig into the ordered
set of alerts the map displays.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional
from .models import Alert, FilterConfig, UserPosition
from citizen_alerts.common.geo import distance_between


@dataclass(frozen=True)
class RankedAlert:
    """거리 정보가 붙은 가시 경보"""
    alert: Alert
    distance_km: float


def _sort_key(item: RankedAlert):
    # 거리 오름차순, 최신순, id 오름차순
    return (item.distance_km, -item.alert.created_at.timestamp(), item.alert.id)


def rank_alerts(
    alerts: Iterable[Alert],
    position: Optional[UserPosition],
    config: FilterConfig,
) -> List[RankedAlert]:
    """
    필터를 통과한 경보를 거리와 함께 표시 순서대로 반환합니다.

    Args:
        alerts: AlertStore 스냅샷
        position: 기준 위치 (없으면 빈 결과)
        config: 필터 설정

    Returns:
        정렬된 RankedAlert 목록
    """
    if position is None:
        return []

    origin = position.coordinate
    ranked = []
    for alert in alerts:
        if not alert.severity.at_least(config.min_severity):
            continue
        if not config.allows_type(alert.type):
            continue
        distance = distance_between(origin, alert.coordinate)
        if distance <= config.notification_radius_km:
            ranked.append(RankedAlert(alert=alert, distance_km=distance))

    ranked.sort(key=_sort_key)
    return ranked


def visible_alerts(
    alerts: Iterable[Alert],
    position: Optional[UserPosition],
    config: FilterConfig,
) -> List[Alert]:
    """rank_alerts와 같은 순서의 경보 목록"""
    return [item.alert for item in rank_alerts(alerts, position, config)]
