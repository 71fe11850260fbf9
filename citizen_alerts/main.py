# citizen_alerts/main.py
import os, asyncio, signal
from typing import Optional
import uvicorn
from citizen_alerts.settings import Settings
from citizen_alerts.core.models import AlertType, Severity
from citizen_alerts.observability.health import create_app
from citizen_alerts.observability.logging_setup import setup_logging, get_logger
from citizen_alerts.adapters.backend import BackendClient, AlertPoller
from citizen_alerts.adapters.location import PushLocationService
from citizen_alerts.adapters.mqtt_local.publisher_async import LocalMqttPublisher
from citizen_alerts.adapters.storage import SQLiteOutbox, SQLiteProximityStore, SQLiteSettingsStore
from citizen_alerts.location.tracker import LocationTracker
from citizen_alerts.orchestrators.pipeline import EvaluationPipeline
from citizen_alerts.store.alert_store import AlertStore

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def build_settings() -> Settings:
    s = Settings()

    # 백엔드
    s.backend.base_url = os.getenv("BACKEND_BASE_URL", s.backend.base_url)
    s.backend.token = os.getenv("BACKEND_TOKEN", s.backend.token)
    s.backend.timeout_sec = int(os.getenv("BACKEND_TIMEOUT_SEC", s.backend.timeout_sec))
    s.backend.poll_interval_sec = float(os.getenv("ALERT_POLL_INTERVAL_SEC", s.backend.poll_interval_sec))

    # LOCAL MQTT (알림 발송)
    s.local_mqtt.host = os.getenv("LOCAL_MQTT_HOST", s.local_mqtt.host)
    s.local_mqtt.port = int(os.getenv("LOCAL_MQTT_PORT", s.local_mqtt.port))
    s.local_mqtt.username = os.getenv("LOCAL_MQTT_USERNAME", s.local_mqtt.username)
    s.local_mqtt.password = os.getenv("LOCAL_MQTT_PASSWORD", s.local_mqtt.password)
    s.local_mqtt.client_id = os.getenv("LOCAL_MQTT_CLIENT_ID", s.local_mqtt.client_id)
    s.local_mqtt.topic_prefix = os.getenv("LOCAL_TOPIC_PREFIX", s.local_mqtt.topic_prefix)

    # 필터 기본값
    s.filters.notification_radius_km = float(os.getenv("NOTIFICATION_RADIUS_KM", s.filters.notification_radius_km))
    s.filters.min_severity = Severity(os.getenv("MIN_SEVERITY", s.filters.min_severity.value))
    s.filters.proximity_distance_km = float(os.getenv("PROXIMITY_DISTANCE_KM", s.filters.proximity_distance_km))
    types = os.getenv("ALLOWED_TYPES")
    if types:
        s.filters.allowed_types = [AlertType(t.strip()) for t in types.split(",") if t.strip()]

    # 위치
    s.location.default_latitude = float(os.getenv("DEFAULT_LATITUDE", s.location.default_latitude))
    s.location.default_longitude = float(os.getenv("DEFAULT_LONGITUDE", s.location.default_longitude))
    s.location.staleness_sec = int(os.getenv("LOCATION_STALENESS_SEC", s.location.staleness_sec))
    s.location.stale_fallback = _b("LOCATION_STALE_FALLBACK", s.location.stale_fallback)

    # 관측성
    s.observability.metrics_enabled = _b("METRICS_ENABLED", s.observability.metrics_enabled)
    s.observability.http_port = int(os.getenv("HTTP_PORT", s.observability.http_port))
    s.observability.log_level = os.getenv("LOG_LEVEL", s.observability.log_level)
    s.observability.json_logs = _b("LOG_JSON", s.observability.json_logs)

    # 신뢰성
    s.reliability.state_path = os.getenv("PROXIMITY_STATE_PATH", s.reliability.state_path)
    s.reliability.settings_path = os.getenv("SETTINGS_DB_PATH", s.reliability.settings_path)
    s.reliability.outbox_path = os.getenv("OUTBOX_PATH", s.reliability.outbox_path)
    s.reliability.queue_maxsize = int(os.getenv("QUEUE_MAXSIZE", s.reliability.queue_maxsize))

    return s

async def start_http(settings: Settings, pipeline: EvaluationPipeline, tracker: LocationTracker) -> asyncio.Task:
    app = create_app(settings, pipeline=pipeline, tracker=tracker)
    return asyncio.create_task(uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=settings.observability.http_port, log_level="info")
    ).serve())

async def main():
    s = build_settings()
    setup_logging(s.observability.log_level, json_logs=s.observability.json_logs)
    log = get_logger()
    log.info("설정 로드 완료")

    state_store = SQLiteProximityStore(s.reliability.state_path); await state_store.init()
    settings_store = SQLiteSettingsStore(s.reliability.settings_path); await settings_store.init()
    outbox = SQLiteOutbox(s.reliability.outbox_path); await outbox.init()

    publisher = LocalMqttPublisher(
        s.local_mqtt,
        outbox,
        backoff_initial=s.reliability.backoff_initial_sec,
        backoff_max=s.reliability.backoff_max_sec,
        max_retries=s.reliability.publish_max_retries,
    )

    tracker = LocationTracker(
        PushLocationService(),
        default_coordinate=s.location.default_coordinate,
        staleness_window=s.location.staleness_window,
        stale_fallback=s.location.stale_fallback,
    )
    store = AlertStore()

    pipeline = EvaluationPipeline(
        tracker,
        store,
        config=s.filters.to_config(),
        dispatcher=publisher,
        state_store=state_store,
        settings_store=settings_store,
        queue_maxsize=s.reliability.queue_maxsize,
    )
    log.info("평가 파이프라인 생성 완료")

    backend = BackendClient(
        s.backend.base_url,
        token=s.backend.token,
        timeout=s.backend.timeout_sec,
        max_retries=s.backend.max_retries,
    )

    stop = asyncio.Future()
    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try: loop.add_signal_handler(sig, lambda: (not stop.done()) and stop.set_result(True))
            except NotImplementedError: pass
    except RuntimeError: pass

    async with backend:
        poller = AlertPoller(backend, store, interval_sec=s.backend.poll_interval_sec)
        tasks = [
            asyncio.create_task(pipeline.start()),
            asyncio.create_task(publisher.start()),
            asyncio.create_task(poller.start()),
        ]
        http_task: Optional[asyncio.Task] = await start_http(s, pipeline, tracker)
        log.info("서비스 시작")
        tracker.request_permission()

        await stop

        log.info("서비스 종료 중")
        poller.stop()
        publisher.stop()
        tracker.stop_updates()
        for t in tasks + [http_task]:
            t.cancel()
        await asyncio.gather(*tasks, http_task, return_exceptions=True)

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
