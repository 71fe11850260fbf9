"""
HTTP endpoints for Citizen Alerts.

This module implements health, readiness, metrics and info endpoints,
plus the filter, visible-alert and location ingress endpoints when a
pipeline and tracker are wired in.
"""

from datetime import datetime
from typing import List, Optional
from fastapi import FastAPI, HTTPException
from fastapi.responses import Response, JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from pydantic import BaseModel, Field, ValidationError
import time
from citizen_alerts.adapters.location.push_service import PushLocationService
from citizen_alerts.core.filter_engine import rank_alerts
from citizen_alerts.core.models import AlertType, AuthorizationStatus, Coordinate, FilterConfig, Severity
from citizen_alerts.location.tracker import LocationTracker
from citizen_alerts.orchestrators.pipeline import EvaluationPipeline
from citizen_alerts.settings import Settings
from citizen_alerts.observability import metrics as metric_defs
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.http")


class FilterPayload(BaseModel):
    """PUT /filters 요청 본문"""
    notification_radius_km: float
    min_severity: Severity
    allowed_types: List[AlertType] = Field(default_factory=list)
    proximity_distance_km: float
    focused_type: Optional[AlertType] = None


class PositionPayload(BaseModel):
    """POST /location 요청 본문"""
    latitude: float
    longitude: float
    timestamp: Optional[datetime] = None


class AuthorizationPayload(BaseModel):
    status: AuthorizationStatus


def _config_json(config: FilterConfig) -> dict:
    return {
        "notification_radius_km": config.notification_radius_km,
        "min_severity": config.min_severity.value,
        "allowed_types": sorted(t.value for t in config.allowed_types),
        "proximity_distance_km": config.proximity_distance_km,
        "focused_type": config.focused_type.value if config.focused_type else None,
        "has_active_filters": config.has_active_filters(),
    }


def create_app(settings: Settings,
               pipeline: Optional[EvaluationPipeline] = None,
               tracker: Optional[LocationTracker] = None) -> FastAPI:
    """FastAPI 애플리케이션을 생성합니다."""
    app = FastAPI(
        title=settings.observability.service_name,
        version=settings.observability.build_version,
        description="Citizen Alerts geofenced alert filtering service"
    )

    start_time = time.time()

    def _require_pipeline() -> EvaluationPipeline:
        if pipeline is None:
            raise HTTPException(status_code=503, detail="Pipeline not running")
        return pipeline

    def _require_tracker() -> LocationTracker:
        if tracker is None:
            raise HTTPException(status_code=503, detail="Location tracker not running")
        return tracker

    @app.get("/health")
    async def health():
        """헬스 체크 엔드포인트"""
        return JSONResponse({
            "status": "ok",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        })

    @app.get("/ready")
    async def ready():
        """레디니스 체크: 첫 평가가 끝났는지 확인"""
        is_ready = pipeline is not None and pipeline.last_result is not None
        return JSONResponse(
            {
                "status": "ready" if is_ready else "starting",
                "service": settings.observability.service_name,
                "timestamp": time.time()
            },
            status_code=200 if is_ready else 503
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus 메트릭 엔드포인트"""
        if not settings.observability.metrics_enabled:
            raise HTTPException(status_code=503, detail="Metrics disabled")
        metric_defs.uptime_seconds.set(time.time() - start_time)
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/info")
    async def info():
        """서비스 정보 엔드포인트"""
        body = {
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "build_date": settings.observability.build_date,
            "uptime_seconds": int(time.time() - start_time),
            "metrics_enabled": settings.observability.metrics_enabled,
            "log_level": settings.observability.log_level
        }
        if pipeline is not None:
            body["pipeline"] = pipeline.status()
        if tracker is not None:
            body["location"] = {
                "authorization": tracker.authorization.value,
                "updating": tracker.is_updating,
                "stale": tracker.is_stale(),
            }
            if isinstance(tracker.service, PushLocationService):
                # 기기 측이 폴링하는 요청 상태
                body["location"]["permission_requests"] = tracker.service.permission_requests
                body["location"]["active"] = tracker.service.active
        return JSONResponse(body)

    @app.get("/alerts/visible")
    async def visible():
        """가시 경보 목록 (표시 순서 그대로)"""
        p = _require_pipeline()
        result = p.last_result
        if result is None:
            return {"position": None, "alerts": []}
        return {
            "evaluated_at": result.evaluated_at.isoformat(),
            "position": result.position.model_dump(mode="json") if result.position else None,
            "alerts": [
                {**item.alert.model_dump(mode="json"), "distance_km": round(item.distance_km, 3)}
                for item in result.visible
            ],
        }

    @app.get("/filters")
    async def get_filters():
        return _config_json(_require_pipeline().config)

    @app.put("/filters")
    async def put_filters(payload: FilterPayload):
        """필터 설정 교체 (잘못된 값은 422)"""
        p = _require_pipeline()
        try:
            config = FilterConfig(
                notification_radius_km=payload.notification_radius_km,
                min_severity=payload.min_severity,
                allowed_types=frozenset(payload.allowed_types),
                proximity_distance_km=payload.proximity_distance_km,
                focused_type=payload.focused_type,
            )
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
        p.update_config(config)
        return {"accepted": True, "filters": _config_json(config)}

    @app.post("/filters/reset")
    async def reset_filters():
        p = _require_pipeline()
        p.reset_filters()
        return {"accepted": True, "filters": _config_json(FilterConfig.defaults())}

    @app.post("/filters/preview")
    async def preview_filters(payload: FilterPayload):
        """현재 스냅샷/위치로 필터 결과를 미리 계산 (상태 변경 없음)"""
        p = _require_pipeline()
        try:
            config = FilterConfig(**{**payload.model_dump(), "allowed_types": frozenset(payload.allowed_types)})
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
        ranked = rank_alerts(p.store.snapshot(), p.tracker.reference_position(), config)
        return {"count": len(ranked), "ids": [item.alert.id for item in ranked]}

    @app.post("/location")
    async def post_location(payload: PositionPayload):
        """OS 위치 서비스의 위치 업데이트 수신"""
        t = _require_tracker()
        try:
            coordinate = Coordinate(latitude=payload.latitude, longitude=payload.longitude)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
        t.on_position(coordinate, payload.timestamp)
        return {"accepted": t.authorization is AuthorizationStatus.AUTHORIZED}

    @app.post("/location/authorization")
    async def post_authorization(payload: AuthorizationPayload):
        """OS 위치 서비스의 권한 상태 변경 수신"""
        t = _require_tracker()
        t.on_authorization_changed(payload.status)
        return {"authorization": t.authorization.value}

    @app.get("/")
    async def root():
        """루트 엔드포인트"""
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "endpoints": {
                "health": "/health",
                "ready": "/ready",
                "metrics": "/metrics",
                "info": "/info",
                "visible_alerts": "/alerts/visible",
                "filters": "/filters",
                "location": "/location"
            }
        })

    return app
