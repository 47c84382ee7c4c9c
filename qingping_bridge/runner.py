"""Ciclo fetch → transform → publish."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from common.config import Settings

from .devices import fetch_device_readings
from .exceptions import BridgeError
from .oauth import fetch_access_token, mask_token
from .publisher import publish_readings

logger = logging.getLogger(__name__)


@dataclass
class CycleStats:
    """Resultado de un ciclo."""
    ok: bool = False
    devices: int = 0
    published: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    error: Optional[str] = None
    stage: Optional[str] = None
    duration_ms: float = 0.0

    def __str__(self) -> str:
        return (
            f"ok={self.ok} devices={self.devices} published={len(self.published)} "
            f"failed={len(self.failed)} ms={self.duration_ms:.1f}"
        )


def run_cycle(
    settings: Settings,
    session: Optional[requests.Session] = None,
    stop_event: Optional[threading.Event] = None,
) -> CycleStats:
    """Ejecuta un ciclo completo.

    Nunca lanza BridgeError: el error se registra y se devuelve en CycleStats.
    """
    stats = CycleStats()
    t0 = time.monotonic()
    logger.info("[CYCLE] Fetch data begin")

    owns_session = session is None
    session = session or requests.Session()
    try:
        token = fetch_access_token(settings, session=session)
        logger.debug("[CYCLE] access token=%s", mask_token(token))

        readings = fetch_device_readings(settings, token, session=session)
        stats.devices = len(readings)
        logger.debug("[CYCLE] device data=%s", readings)

        report = publish_readings(settings, readings, stop_event=stop_event)
        stats.published = report.published
        stats.failed = report.failed
        stats.ok = True
    except BridgeError as e:
        stats.error = str(e)
        stats.stage = e.stage
        logger.error("[CYCLE] %s error: %s", e.stage, e)
    finally:
        if owns_session:
            session.close()
        stats.duration_ms = (time.monotonic() - t0) * 1000

    logger.info("[CYCLE] Fetch data end %s", stats)
    return stats
