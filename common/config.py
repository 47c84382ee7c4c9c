from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_OAUTH_URL = "https://oauth.cleargrass.com/oauth2/token"
DEFAULT_API_URL = "https://apis.cleargrass.com/v1/apis/devices"


class ConfigError(Exception):
    """Configuración inválida detectada al arrancar."""


def _default_env_file() -> str:
    return str(Path.cwd() / ".env")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    app_key: str
    app_secret: str

    mqtt_host: str
    mqtt_port: int
    mqtt_username: str
    mqtt_password: str

    oauth_url: str = DEFAULT_OAUTH_URL
    api_url: str = DEFAULT_API_URL
    topic_namespace: str = "qingping"
    client_id_prefix: str = "qcm"

    http_timeout_seconds: float = 10.0
    mqtt_timeout_seconds: float = 10.0
    mqtt_keepalive: int = 60
    interval_seconds: float = 60.0

    def topic_for(self, mac: str) -> str:
        return f"{self.topic_namespace}/data/{mac}"


def get_settings(env_file: str | None = None) -> Settings:
    # El fichero .env es opcional; las variables reales del entorno tienen prioridad.
    env_file = env_file or os.getenv("QINGPING_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    app_key = os.getenv("APP_KEY", "")
    app_secret = os.getenv("APP_SECRET", "")
    if not app_key or not app_secret:
        raise ConfigError("APP_KEY and APP_SECRET are required")

    mqtt_host = os.getenv("MQTT_HOST", "localhost")
    mqtt_port = _int_env("MQTT_PORT", 1883)
    mqtt_username = os.getenv("MQTT_USERNAME", "")
    mqtt_password = os.getenv("MQTT_PASSWORD", "")

    interval_seconds = _float_env("BRIDGE_INTERVAL_SECONDS", 60.0)
    if interval_seconds <= 0:
        raise ConfigError("BRIDGE_INTERVAL_SECONDS must be positive")

    return Settings(
        app_key=app_key,
        app_secret=app_secret,
        mqtt_host=mqtt_host,
        mqtt_port=mqtt_port,
        mqtt_username=mqtt_username,
        mqtt_password=mqtt_password,
        oauth_url=os.getenv("QINGPING_OAUTH_URL", DEFAULT_OAUTH_URL),
        api_url=os.getenv("QINGPING_API_URL", DEFAULT_API_URL),
        topic_namespace=os.getenv("MQTT_TOPIC_NAMESPACE", "qingping").strip("/") or "qingping",
        client_id_prefix=os.getenv("MQTT_CLIENT_ID_PREFIX", "qcm"),
        http_timeout_seconds=_float_env("HTTP_TIMEOUT_SECONDS", 10.0),
        mqtt_timeout_seconds=_float_env("MQTT_TIMEOUT_SECONDS", 10.0),
        mqtt_keepalive=_int_env("MQTT_KEEPALIVE", 60),
        interval_seconds=interval_seconds,
    )
