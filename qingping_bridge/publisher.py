"""Publicador MQTT de lecturas de dispositivos.

Una conexión por ciclo:
- client_id nuevo (uuid4) en cada intento de conexión
- QoS 1, retain=False, topic <namespace>/data/<mac>
- espera síncrona del PUBACK con timeout
- desconexión garantizada al salir del context manager
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import paho.mqtt.client as mqtt

from common.config import Settings

from .exceptions import MQTTConnectError, PublishError
from .models import DeviceReading

logger = logging.getLogger(__name__)

QOS_AT_LEAST_ONCE = 1


@dataclass
class PublishReport:
    """Resultado de publicar las lecturas de un ciclo."""

    published: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"published={len(self.published)} failed={len(self.failed)} "
            f"skipped={len(self.skipped)}"
        )


class MQTTPublisher:
    """Conexión MQTT de un solo ciclo.

    Uso:
        with MQTTPublisher(settings) as pub:
            report = pub.publish_all(readings)
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client_id: Optional[str] = None

        self._client: Optional[mqtt.Client] = None
        self._connected = threading.Event()
        self._connect_reason: Optional[str] = None

    def __enter__(self) -> "MQTTPublisher":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def connect(self) -> None:
        """Conecta al broker y espera el CONNACK.

        Raises:
            MQTTConnectError: error de red, credenciales rechazadas o timeout
        """
        s = self.settings
        self.client_id = f"{s.client_id_prefix}-{uuid.uuid4()}"
        self._connected.clear()
        self._connect_reason = None

        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect

        if s.mqtt_username:
            self._client.username_pw_set(s.mqtt_username, s.mqtt_password or None)

        logger.info("[MQTT] Connecting to %s:%d client_id=%s", s.mqtt_host, s.mqtt_port, self.client_id)
        try:
            self._client.connect(s.mqtt_host, s.mqtt_port, keepalive=s.mqtt_keepalive)
        except (OSError, ValueError) as e:
            self._client = None
            raise MQTTConnectError(f"mqtt connect error: {e}") from e

        self._client.loop_start()

        if not self._connected.wait(timeout=s.mqtt_timeout_seconds) or self._connect_reason is not None:
            reason = self._connect_reason or f"timeout after {s.mqtt_timeout_seconds:.1f}s"
            self.disconnect()
            raise MQTTConnectError(f"mqtt connect error: {reason}")

        logger.info("[MQTT] Connect done")

    def disconnect(self) -> None:
        """Cierra la conexión. Idempotente."""
        client = self._client
        if client is None:
            return
        self._client = None
        try:
            client.disconnect()
            client.loop_stop()
        except (OSError, RuntimeError) as e:
            logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected.clear()

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code == 0:
            self._connect_reason = None
        else:
            self._connect_reason = f"broker refused connection: {reason_code}"
            logger.error("[MQTT] Connection refused rc=%s", reason_code)
        # Se marca siempre para despertar a connect(); _connect_reason distingue el resultado.
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code != 0:
            logger.warning("[MQTT] Unexpected disconnect rc=%s", reason_code)

    def topic_for(self, mac: str) -> str:
        return self.settings.topic_for(mac)

    def publish(self, mac: str, reading: DeviceReading) -> str:
        """Publica una lectura y espera el ACK.

        Returns:
            El payload publicado

        Raises:
            PublishError: fallo de serialización, de encolado o timeout del ACK
        """
        if self._client is None:
            raise PublishError("mqtt client not connected", mac=mac)

        try:
            payload = reading.to_json()
        except (TypeError, ValueError) as e:
            raise PublishError(f"payload json encode error: {e}", mac=mac) from e

        topic = self.topic_for(mac)
        try:
            info = self._client.publish(topic, payload, qos=QOS_AT_LEAST_ONCE, retain=False)
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                raise PublishError(f"mqtt publish error: {mqtt.error_string(info.rc)}", mac=mac)
            info.wait_for_publish(timeout=self.settings.mqtt_timeout_seconds)
        except (OSError, ValueError, RuntimeError) as e:
            raise PublishError(f"mqtt publish error: {e}", mac=mac) from e

        if not info.is_published():
            raise PublishError("mqtt publish error: ack timeout", mac=mac)

        logger.info("[MQTT] Publish done mac=%s topic=%s payload=%s", mac, topic, payload)
        return payload

    def publish_all(
        self,
        readings: Dict[str, DeviceReading],
        stop_event: Optional[threading.Event] = None,
    ) -> PublishReport:
        """Publica todas las lecturas; un fallo no afecta al resto."""
        report = PublishReport()
        for mac, reading in readings.items():
            if stop_event is not None and stop_event.is_set():
                report.skipped.append(mac)
                continue
            try:
                self.publish(mac, reading)
                report.published.append(mac)
            except PublishError as e:
                logger.error("[MQTT] Publish failed mac=%s err=%s", mac, e)
                report.failed.append(mac)

        if report.skipped:
            logger.warning("[MQTT] Stop requested, skipped devices=%d", len(report.skipped))
        return report


def publish_readings(
    settings: Settings,
    readings: Dict[str, DeviceReading],
    stop_event: Optional[threading.Event] = None,
) -> PublishReport:
    """Abre una conexión, publica todas las lecturas y desconecta."""
    with MQTTPublisher(settings) as publisher:
        return publisher.publish_all(readings, stop_event=stop_event)
