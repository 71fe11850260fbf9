"""
Geographic utilities for Citizen Alerts.

This module provides the great-circle distance used by the
filter engine and the proximity notifier.
"""

import math

# 지구 반지름 (킬로미터)
EARTH_RADIUS_KM = 6371.0

def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    두 지점 간의 Haversine 거리를 계산합니다 (킬로미터).

    Args:
        lat1: 첫 번째 지점의 위도
        lon1: 첫 번째 지점의 경도
        lat2: 두 번째 지점의 위도
        lon2: 두 번째 지점의 경도

    Returns:
        두 지점 간의 거리 (킬로미터)
    """
    lat1_rad = math.radians(lat1)
    lon1_rad = math.radians(lon1)
    lat2_rad = math.radians(lat2)
    lon2_rad = math.radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    # 부동소수 오차로 1을 살짝 넘는 경우 방지
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM

def distance_between(origin, target) -> float:
    """Coordinate 두 개 사이의 거리 (킬로미터)"""
    return haversine_distance(origin.latitude, origin.longitude, target.latitude, target.longitude)

def validate_coordinates(lat: float, lon: float) -> bool:
    """
    좌표가 유효한지 확인합니다.

    Args:
        lat: 위도
        lon: 경도

    Returns:
        좌표가 유효하면 True
    """
    return -90 <= lat <= 90 and -180 <= lon <= 180
