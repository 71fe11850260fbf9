"""
Evaluation pipeline for Citizen Alerts.

This module implements the single-consumer pipeline that turns
location updates, alert store refreshes and filter changes into the
visible alert set and proximity notifications. The pipeline owns the
proximity state map; only the consumer task mutates it.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Set
from citizen_alerts.core import preferences, proximity
from citizen_alerts.core.filter_engine import RankedAlert, rank_alerts
from citizen_alerts.core.models import FilterConfig, ProximityEntered, UserPosition
from citizen_alerts.location.tracker import LocationTracker, TrackerUpdate
from citizen_alerts.ports.dispatch import NotificationDispatchPort
from citizen_alerts.ports.kvstore import KVStorePort
from citizen_alerts.ports.proximity_store import ProximityStateStorePort
from citizen_alerts.store.alert_store import AlertStore
from citizen_alerts.observability import metrics
from citizen_alerts.observability.logging_setup import get_logger, with_context

log = get_logger("citizenalerts.pipeline")

TRIGGER_STARTUP = "startup"
TRIGGER_LOCATION = "location"
TRIGGER_ALERTS = "alerts"
TRIGGER_FILTERS = "filters"


@dataclass(frozen=True)
class Trigger:
    """평가 요청"""
    kind: str
    config: Optional[FilterConfig] = None


@dataclass(frozen=True)
class EvaluationResult:
    """한 번의 평가 결과"""
    visible: List[RankedAlert]
    events: List[ProximityEntered]
    position: Optional[UserPosition]
    config: FilterConfig
    evaluated_at: datetime


VisibleListener = Callable[[EvaluationResult], None]


class EvaluationPipeline:
    """필터링/근접 평가 파이프라인 (단일 컨슈머)"""

    def __init__(self,
                 tracker: LocationTracker,
                 store: AlertStore,
                 *,
                 config: Optional[FilterConfig] = None,
                 dispatcher: Optional[NotificationDispatchPort] = None,
                 state_store: Optional[ProximityStateStorePort] = None,
                 settings_store: Optional[KVStorePort] = None,
                 queue_maxsize: int = 1000,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        """
        초기화합니다.

        Args:
            tracker: 위치 추적기
            store: 경보 스토어
            config: 초기 필터 설정 (settings_store 값이 있으면 덮어씀)
            dispatcher: 근접 진입 이벤트 발송 포트
            state_store: 근접 상태 영속화 포트
            settings_store: 필터 설정 영속화 포트
            queue_maxsize: 트리거 큐 최대 크기
            clock: 현재 시각 공급자
        """
        self.tracker = tracker
        self.store = store
        self.config = config or FilterConfig.defaults()
        self.dispatcher = dispatcher
        self.state_store = state_store
        self.settings_store = settings_store
        self.clock = clock
        self.q: asyncio.Queue = asyncio.Queue(maxsize=queue_maxsize)

        self.states: proximity.ProximityStates = {}
        self.last_result: Optional[EvaluationResult] = None
        self.start_time = time.time()

        self._eval_lock = asyncio.Lock()
        self._listeners: List[VisibleListener] = []
        self._unsubscribers: List[Callable[[], None]] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._consumer_task: Optional[asyncio.Task] = None
        self._pending_puts: Set[asyncio.Task] = set()

    # ---- 수명 주기 ----

    async def restore(self) -> None:
        """영속화된 근접 상태와 필터 설정을 복원합니다."""
        if self.state_store is not None:
            self.states = dict(await self.state_store.load())
            metrics.tracked_alerts.set(len(self.states))
            log.info(f"근접 상태 복원 count:{len(self.states)}")
        if self.settings_store is not None:
            self.config = await preferences.load_filter_config(self.settings_store, self.config)
            log.info(f"필터 설정 복원 radius:{self.config.notification_radius_km} "
                     f"min_severity:{self.config.min_severity.value} "
                     f"proximity:{self.config.proximity_distance_km}")

    async def start(self) -> None:
        """
        파이프라인을 시작합니다.

        상태 복원 -> 입력 구독 -> 초기 평가 요청 -> 컨슈머 실행 순서입니다.
        """
        self._loop = asyncio.get_running_loop()
        await self.restore()

        self._unsubscribers.append(self.tracker.subscribe(self._on_tracker_update))
        self._unsubscribers.append(self.store.subscribe(lambda _snapshot: self.submit(Trigger(TRIGGER_ALERTS))))
        self.submit(Trigger(TRIGGER_STARTUP))

        log.info("평가 파이프라인 시작됨")
        self._consumer_task = asyncio.current_task()
        try:
            await self._consumer()
        finally:
            self._detach()

    def _detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    async def stop(self) -> None:
        """컨슈머를 중지합니다. 근접 상태는 그대로 유지됩니다."""
        self._detach()
        task = self._consumer_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._consumer_task = None

    # ---- 입력 ----

    def _on_tracker_update(self, update: TrackerUpdate) -> None:
        self.submit(Trigger(TRIGGER_LOCATION))

    def submit(self, trigger: Trigger) -> None:
        """트리거를 큐에 넣습니다. 다른 스레드에서 호출해도 안전합니다."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is not None and running is not self._loop:
            self._loop.call_soon_threadsafe(self._enqueue, trigger)
        else:
            self._enqueue(trigger)

    def _enqueue(self, trigger: Trigger) -> None:
        try:
            self.q.put_nowait(trigger)
            metrics.queue_depth.set(self.q.qsize())
        except asyncio.QueueFull:
            if trigger.config is not None:
                # 설정 변경은 버리지 않음
                log.warning("큐가 가득 참, 설정 변경을 백그라운드로 대기")
                task = asyncio.ensure_future(self.q.put(trigger))
                self._pending_puts.add(task)
                task.add_done_callback(self._pending_puts.discard)
            else:
                # 대기 중인 트리거가 이미 최신 입력으로 재평가함
                log.debug(f"큐가 가득 참, 트리거 병합 kind:{trigger.kind}")

    def update_config(self, config: FilterConfig) -> None:
        """필터 설정 변경을 요청합니다. 적용은 컨슈머에서 직렬화됩니다."""
        self.submit(Trigger(TRIGGER_FILTERS, config=config))

    def reset_filters(self) -> None:
        self.update_config(FilterConfig.defaults())

    def subscribe_visible(self, listener: VisibleListener) -> Callable[[], None]:
        """평가 결과 구독 (UI 소비자)"""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ---- 컨슈머 ----

    def _drain(self, first: Trigger) -> List[Trigger]:
        batch = [first]
        while True:
            try:
                batch.append(self.q.get_nowait())
            except asyncio.QueueEmpty:
                break
        metrics.queue_depth.set(0)
        return batch

    async def _consumer(self) -> None:
        """큐에서 트리거를 꺼내 한 번에 하나씩 평가합니다."""
        while True:
            first = await self.q.get()
            batch = self._drain(first)
            new_config = None
            for trigger in batch:
                if trigger.config is not None:
                    new_config = trigger.config
            try:
                with with_context(triggers=",".join(t.kind for t in batch)):
                    if new_config is not None:
                        await self._apply_config(new_config)
                    await self.evaluate(batch[-1].kind if new_config is None else TRIGGER_FILTERS)
            except Exception as e:
                log.error(f"평가 처리 오류 error:{e} triggers:{[t.kind for t in batch]}")

    async def _apply_config(self, config: FilterConfig) -> None:
        self.config = config
        log.info(f"필터 설정 변경 radius:{config.notification_radius_km} "
                 f"min_severity:{config.min_severity.value} "
                 f"types:{sorted(t.value for t in config.allowed_types)} "
                 f"proximity:{config.proximity_distance_km}")
        if self.settings_store is not None:
            try:
                await preferences.save_filter_config(self.settings_store, config)
            except Exception as e:
                log.error(f"필터 설정 저장 실패 error:{e}")

    async def evaluate(self, trigger: str = TRIGGER_STARTUP) -> EvaluationResult:
        """
        현재 스냅샷/기준 위치/설정으로 한 번 평가합니다.

        가시 집합을 갱신하고, 새 근접 상태를 저장하고, 진입 이벤트를 발송합니다.
        발송된 이벤트는 되돌리지 않습니다.
        """
        async with self._eval_lock:
            t0 = time.perf_counter()
            now = self.clock()
            snapshot = self.store.snapshot()
            position = self.tracker.reference_position(now)
            config = self.config

            visible = rank_alerts(snapshot, position, config)
            new_states, events = proximity.evaluate(self.states, snapshot, position, config, now=now)

            changed = new_states != self.states
            self.states = new_states
            result = EvaluationResult(
                visible=visible,
                events=events,
                position=position,
                config=config,
                evaluated_at=now,
            )
            self.last_result = result

            metrics.evaluations.labels(trigger=trigger).inc()
            metrics.visible_alerts.set(len(visible))
            metrics.tracked_alerts.set(len(new_states))
            metrics.evaluation_seconds.observe(time.perf_counter() - t0)

            if changed and self.state_store is not None:
                try:
                    await self.state_store.save(new_states)
                except Exception as e:
                    log.error(f"근접 상태 저장 실패 error:{e}")

            for event in events:
                metrics.proximity_events.labels(severity=event.severity.value, type=event.type.value).inc()
                log.info(f"근접 진입 alert_id:{event.alert_id} distance:{event.distance_km:.2f}km "
                         f"severity:{event.severity.value} type:{event.type.value}")
                if self.dispatcher is not None:
                    try:
                        await self.dispatcher.dispatch(event)
                    except Exception as e:
                        log.error(f"알림 발송 실패 alert_id:{event.alert_id} error:{e}")

            for listener in list(self._listeners):
                listener(result)

            log.debug(f"평가 완료 trigger:{trigger} snapshot:{len(snapshot)} visible:{len(visible)} events:{len(events)}")
            return result

    def status(self) -> dict[str, Any]:
        """HTTP /info 용 상태 요약"""
        result = self.last_result
        return {
            "queue_depth": self.q.qsize(),
            "tracked_alerts": len(self.states),
            "visible_alerts": len(result.visible) if result else 0,
            "last_evaluated_at": result.evaluated_at.isoformat() if result else None,
            "uptime_seconds": int(time.time() - self.start_time),
        }
