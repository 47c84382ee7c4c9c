"""Fixtures comunes: settings, sesión HTTP falsa y cliente paho simulado."""

from __future__ import annotations

import json
from typing import Any, Dict, List
from unittest.mock import MagicMock, patch

import paho.mqtt.client as mqtt
import pytest
import requests

from common.config import Settings


ENV_KEYS = (
    "APP_KEY",
    "APP_SECRET",
    "MQTT_HOST",
    "MQTT_PORT",
    "MQTT_USERNAME",
    "MQTT_PASSWORD",
    "QINGPING_OAUTH_URL",
    "QINGPING_API_URL",
    "MQTT_TOPIC_NAMESPACE",
    "MQTT_CLIENT_ID_PREFIX",
    "HTTP_TIMEOUT_SECONDS",
    "MQTT_TIMEOUT_SECONDS",
    "MQTT_KEEPALIVE",
    "BRIDGE_INTERVAL_SECONDS",
    "QINGPING_ENV_FILE",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Entorno sin variables del bridge; se restaura al terminar."""
    for key in ENV_KEYS:
        # setenv + delenv: monkeypatch también deshace lo que escriba load_dotenv
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_key="key",
        app_secret="secret",
        mqtt_host="broker.local",
        mqtt_port=1883,
        mqtt_username="user",
        mqtt_password="pass",
        oauth_url="https://oauth.example.com/oauth2/token",
        api_url="https://apis.example.com/v1/apis/devices",
        http_timeout_seconds=3.0,
        mqtt_timeout_seconds=0.2,
    )


def make_response(body: Any, status_code: int = 200) -> MagicMock:
    """Respuesta HTTP falsa; dict/list se serializan a JSON."""
    resp = MagicMock()
    resp.status_code = status_code
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    resp.content = body
    return resp


def make_session(*responses: Any) -> requests.Session:
    """Session real (prepare_request real) con send() simulado."""
    session = requests.Session()
    session.send = MagicMock(side_effect=list(responses))
    return session


def device_entry(mac: str, **values: Any) -> Dict[str, Any]:
    data = {
        "timestamp": {"value": values.get("timestamp", 1706688000000)},
        "battery": {"value": values.get("battery", 100)},
        "temperature": {"value": values.get("temperature", 21.5)},
        "humidity": {"value": values.get("humidity", 40.0)},
        "tvoc": {"value": values.get("tvoc", 0.1)},
        "co2": {"value": values.get("co2", 500)},
        "pm25": {"value": values.get("pm25", 5)},
    }
    return {"info": {"mac": mac, "name": f"sensor-{mac}"}, "data": data}


class FakeBroker:
    """Registra lo publicado por el MagicMock de paho."""

    def __init__(self, client: MagicMock):
        self.client = client
        self.messages: List[Dict[str, Any]] = []
        self.reject_topics: set = set()
        self.connack_rc = 0
        self.respond_to_connect = True

    def publish(self, topic, payload=None, qos=0, retain=False):
        info = MagicMock()
        if topic in self.reject_topics:
            info.rc = mqtt.MQTT_ERR_NO_CONN
            info.is_published.return_value = False
            return info
        self.messages.append({"topic": topic, "payload": payload, "qos": qos, "retain": retain})
        info.rc = mqtt.MQTT_ERR_SUCCESS
        info.is_published.return_value = True
        return info

    def loop_start(self):
        if self.respond_to_connect:
            self.client.on_connect(self.client, None, {}, self.connack_rc, None)


@pytest.fixture
def broker():
    """Parchea paho.mqtt.client.Client con un cliente simulado."""
    with patch("paho.mqtt.client.Client") as client_cls:
        client = MagicMock()
        client_cls.return_value = client
        fake = FakeBroker(client)
        fake.client_cls = client_cls
        client.connect.return_value = 0
        client.loop_start.side_effect = fake.loop_start
        client.publish.side_effect = fake.publish
        yield fake
