"""Lectura de dispositivos desde la API Qingping.

Convierte la respuesta anidada (cada campo envuelto en {"value": n})
en un mapping plano MAC -> DeviceReading.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional

import requests

from common.config import Settings

from . import http_client
from .exceptions import NoDevicesError
from .models import DeviceListResponse, DeviceReading

logger = logging.getLogger(__name__)

STAGE = "devices"


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def normalize_devices(resp: DeviceListResponse) -> Dict[str, DeviceReading]:
    """Aplana la lista de dispositivos.

    MACs repetidas colapsan en una sola entrada: gana la última.

    Raises:
        NoDevicesError: si la lista está vacía (flota vacía == problema upstream)
    """
    if not resp.devices:
        raise NoDevicesError("device not found")

    readings: Dict[str, DeviceReading] = {}
    for entry in resp.devices:
        mac = entry.info.mac
        if mac in readings:
            logger.warning("[DEVICES] Duplicate mac=%s in response, keeping last", mac)
        readings[mac] = DeviceReading.from_entry(entry)
    return readings


def fetch_device_readings(
    settings: Settings,
    access_token: str,
    session: Optional[requests.Session] = None,
    now_ms: Optional[int] = None,
) -> Dict[str, DeviceReading]:
    """Obtiene las lecturas actuales de todos los dispositivos.

    Args:
        settings: configuración del proceso
        access_token: bearer token del ciclo actual
        session: sesión HTTP (se crea una temporal si no se pasa)
        now_ms: timestamp anti-cache en milisegundos (por defecto, ahora)

    Returns:
        Mapping MAC -> DeviceReading
    """
    timestamp = now_ms if now_ms is not None else now_millis()

    owns_session = session is None
    session = session or requests.Session()
    try:
        request = requests.Request(
            "GET",
            settings.api_url,
            params={"timestamp": timestamp},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        prepared = http_client.prepare(session, request, stage=STAGE)
        body = http_client.send(session, prepared, timeout=settings.http_timeout_seconds, stage=STAGE)
    finally:
        if owns_session:
            session.close()

    resp = http_client.decode(body, DeviceListResponse, stage=STAGE)
    readings = normalize_devices(resp)

    logger.info("[DEVICES] Fetched devices=%d", len(readings))
    return readings
