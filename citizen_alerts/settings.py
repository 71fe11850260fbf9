# citizen_alerts/settings.py
from __future__ import annotations
from datetime import timedelta
from typing import List
from pydantic import BaseModel, Field
from citizen_alerts.core.models import AlertType, Coordinate, FilterConfig, Severity

class BackendConfig(BaseModel):
    base_url: str = "http://localhost:8080"
    token: str | None = None
    timeout_sec: int = 30
    poll_interval_sec: float = 30.0
    max_retries: int = 3

class LocalMQTT(BaseModel):
    host: str = "localhost"
    port: int = 1883
    username: str | None = None
    password: str | None = None
    client_id: str | None = None
    keepalive: int = 30
    topic_prefix: str = "citizenalerts"
    lwt_topic: str = "citizenalerts/state"
    qos: int = 1

class FilterDefaults(BaseModel):
    notification_radius_km: float = 50.0
    min_severity: Severity = Severity.LOW
    allowed_types: List[AlertType] = Field(default_factory=list)  # 비어 있으면 전체
    proximity_distance_km: float = 5.0

    def to_config(self) -> FilterConfig:
        return FilterConfig(
            notification_radius_km=self.notification_radius_km,
            min_severity=self.min_severity,
            allowed_types=frozenset(self.allowed_types),
            proximity_distance_km=self.proximity_distance_km,
        )

class LocationConfig(BaseModel):
    # 권한 거부 시 기준점 (홍콩대학교)
    default_latitude: float = 22.2833
    default_longitude: float = 114.1378
    staleness_sec: int = 300
    stale_fallback: bool = False

    @property
    def default_coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.default_latitude, longitude=self.default_longitude)

    @property
    def staleness_window(self) -> timedelta:
        return timedelta(seconds=self.staleness_sec)

class Observability(BaseModel):
    http_port: int = 8099
    metrics_enabled: bool = True
    service_name: str = "Citizen-Alerts"
    build_version: str = "0.1.0"
    build_date: str = "2025-11-20"
    log_level: str = "INFO"
    json_logs: bool = False

class Reliability(BaseModel):
    state_path: str = "/data/proximity.db"
    settings_path: str = "/data/settings.db"
    outbox_path: str = "/data/outbox.db"
    publish_max_retries: int = 10
    backoff_initial_sec: float = 0.5
    backoff_max_sec: float = 30.0
    queue_maxsize: int = 1000

class Settings(BaseModel):
    backend: BackendConfig = Field(default_factory=BackendConfig)
    local_mqtt: LocalMQTT = Field(default_factory=LocalMQTT)
    filters: FilterDefaults = Field(default_factory=FilterDefaults)
    location: LocationConfig = Field(default_factory=LocationConfig)
    observability: Observability = Field(default_factory=Observability)
    reliability: Reliability = Field(default_factory=Reliability)
