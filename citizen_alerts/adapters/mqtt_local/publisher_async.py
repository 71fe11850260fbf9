"""
MQTT notification publisher for Citizen Alerts.

This module implements NotificationDispatchPort on top of a local
MQTT broker with the outbox pattern: dispatch() only writes the event
to the SQLite outbox, and the worker started by start() drains it.
"""

import asyncio
import json
from typing import Optional
from aiomqtt import Client, MqttError, Will
from citizen_alerts.adapters.storage.sqlite_outbox import SQLiteOutbox
from citizen_alerts.common.retry import backoff_delay
from citizen_alerts.core.models import ProximityEntered
from citizen_alerts.settings import LocalMQTT
from citizen_alerts.observability import metrics
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.mqtt_local")

PROXIMITY_TOPIC = "proximity/entered"

class LocalMqttPublisher:
    """로컬 MQTT 알림 발송 어댑터 (Outbox 패턴)"""

    def __init__(self,
                 mqtt: LocalMQTT,
                 outbox: SQLiteOutbox,
                 *,
                 backoff_initial: float = 0.5,
                 backoff_max: float = 30.0,
                 max_retries: int = 10,
                 poll_interval: float = 1.0):
        """
        Args:
            mqtt: 브로커 접속 설정 (호스트, 인증, 토픽 접두사, LWT, QoS)
            outbox: 발송 대기열
            backoff_initial: 재연결/재발송 최초 대기 (초)
            backoff_max: 재연결/재발송 최대 대기 (초)
            max_retries: 알림 한 건당 발송 시도 한도
            poll_interval: 대기열이 비었을 때 확인 주기 (초)
        """
        self.mqtt = mqtt
        self.topic_prefix = mqtt.topic_prefix.rstrip("/")
        self.outbox = outbox
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.max_retries = max_retries
        self.poll_interval = poll_interval
        self._running = False

    def _client(self) -> Client:
        m = self.mqtt
        return Client(
            hostname=m.host,
            port=m.port,
            username=m.username,
            password=m.password,
            identifier=m.client_id,
            keepalive=m.keepalive,
            will=Will(topic=m.lwt_topic, payload="offline", qos=1, retain=True),
        )

    async def start(self) -> None:
        """발송 워커를 시작합니다. 연결이 끊기면 백오프 후 재연결합니다."""
        self._running = True
        reconnects = 0
        while self._running:
            try:
                async with self._client() as client:
                    reconnects = 0
                    await client.publish(self.mqtt.lwt_topic, "online", qos=1, retain=True)
                    log.info(f"MQTT 브로커 연결 host:{self.mqtt.host} port:{self.mqtt.port}")
                    while self._running:
                        sent = await self.process_outbox(client)
                        if not sent:
                            await asyncio.sleep(self.poll_interval)
            except MqttError as e:
                reconnects += 1
                delay = backoff_delay(reconnects, self.backoff_initial, self.backoff_max)
                log.error(f"MQTT 연결 오류, {delay:.1f}초 후 재연결 error:{e}")
                await asyncio.sleep(delay)

    async def process_outbox(self, client) -> bool:
        """
        Outbox의 가장 오래된 메시지 하나를 발송합니다.

        Returns:
            처리할 항목이 있었으면 True
        """
        item = await self.outbox.peek_oldest()
        if item is None:
            return False

        if item.attempts >= self.max_retries:
            # 소진된 알림은 버림 (근접 상태는 이미 Inside)
            log.warning(f"알림 폐기 id:{item.id} alert_id:{item.alert_id} attempts:{item.attempts} "
                        f"last_error:{item.last_error}")
            await self.outbox.delete(item.id)
            return True

        try:
            await client.publish(item.topic, item.payload, qos=item.qos, retain=item.retain)
        except MqttError as e:
            log.error(f"알림 발송 실패 id:{item.id} alert_id:{item.alert_id} error:{e}")
            await self.outbox.mark_attempt(item.id, str(e))
            metrics.publish_retries.labels(topic=item.topic).inc()
            await asyncio.sleep(backoff_delay(item.attempts + 1, self.backoff_initial, self.backoff_max))
            raise

        await self.outbox.delete(item.id)
        metrics.outbox_size.set(await self.outbox.get_count())
        log.info(f"알림 발송 완료 id:{item.id} alert_id:{item.alert_id} topic:{item.topic}")
        return True

    async def enqueue_json(self, topic_suffix: str, payload_obj: dict, *,
                           qos: Optional[int] = None, retain: bool = False,
                           alert_id: Optional[str] = None) -> int:
        """JSON 본문을 접두사가 붙은 토픽으로 Outbox에 추가합니다."""
        topic = f"{self.topic_prefix}/{topic_suffix}"
        payload = json.dumps(payload_obj, ensure_ascii=False).encode("utf-8")
        oid = await self.outbox.enqueue(
            topic, payload, self.mqtt.qos if qos is None else qos, retain, alert_id=alert_id
        )
        metrics.outbox_size.set(await self.outbox.get_count())
        return oid

    async def dispatch(self, event: ProximityEntered) -> None:
        """근접 진입 이벤트를 Outbox에 기록합니다 (NotificationDispatchPort)."""
        await self.enqueue_json(PROXIMITY_TOPIC, event.model_dump(mode="json"), alert_id=event.alert_id)

    def stop(self) -> None:
        """발송 워커를 중지합니다."""
        self._running = False
