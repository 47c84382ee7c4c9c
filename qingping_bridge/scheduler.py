"""Scheduler de intervalo fijo con protección contra solapamiento.

Con interval=60 dispara en el segundo 0 de cada minuto, los mismos
instantes que la expresión cron "* * * * *".
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Job = Callable[[threading.Event], object]


class SchedulerError(Exception):
    """El job no se pudo registrar."""


def next_fire_time(now: float, interval: float) -> float:
    """Siguiente múltiplo de interval estrictamente posterior a now."""
    return (int(now // interval) + 1) * interval


class IntervalScheduler:
    """Ejecuta un job cada `interval_seconds`, como mucho una instancia a la vez.

    Cada tick lanza el job en un hilo propio. Si el ciclo anterior sigue
    corriendo, el tick se descarta y se registra.
    """

    def __init__(
        self,
        job: Job,
        interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
        name: str = "bridge-cycle",
    ):
        if not callable(job):
            raise SchedulerError("job must be callable")
        if interval_seconds <= 0:
            raise SchedulerError(f"interval must be positive, got {interval_seconds}")

        self.job = job
        self.interval_seconds = float(interval_seconds)
        self.name = name
        self._clock = clock

        self._stop = threading.Event()
        self._running_lock = threading.Lock()
        self._timer_thread: Optional[threading.Thread] = None
        self._worker: Optional[threading.Thread] = None

        self.ticks = 0
        self.skipped = 0

    @property
    def stop_event(self) -> threading.Event:
        return self._stop

    @property
    def is_running(self) -> bool:
        return bool(self._timer_thread and self._timer_thread.is_alive())

    @property
    def cycle_in_progress(self) -> bool:
        return self._running_lock.locked()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._timer_thread = threading.Thread(target=self._loop, name=f"{self.name}-timer", daemon=True)
        self._timer_thread.start()
        logger.info("[SCHEDULER] Job start done interval=%.1fs", self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Detiene el timer y espera al ciclo en curso (si lo hay)."""
        self._stop.set()
        if self._timer_thread:
            self._timer_thread.join(timeout=timeout)
        if self._worker and self._worker.is_alive():
            self._worker.join(timeout=timeout)
        logger.info("[SCHEDULER] Stopped ticks=%d skipped=%d", self.ticks, self.skipped)

    def wait(self) -> None:
        """Bloquea hasta que se llame a stop()."""
        while not self._stop.wait(timeout=1.0):
            pass

    def _loop(self) -> None:
        while not self._stop.is_set():
            target = next_fire_time(self._clock(), self.interval_seconds)
            # Event.wait usa el reloj monótono; se repite hasta que el reloj de pared alcance target.
            remaining = target - self._clock()
            while remaining > 0:
                if self._stop.wait(timeout=remaining):
                    return
                remaining = target - self._clock()
            self.tick()

    def tick(self) -> bool:
        """Lanza un ciclo si no hay otro en curso. Devuelve True si se lanzó."""
        self.ticks += 1
        if not self._running_lock.acquire(blocking=False):
            self.skipped += 1
            logger.warning("[SCHEDULER] Previous cycle still running, skipping tick=%d", self.ticks)
            return False

        self._worker = threading.Thread(target=self._run_job, name=f"{self.name}-{self.ticks}", daemon=True)
        self._worker.start()
        return True

    def _run_job(self) -> None:
        try:
            self.job(self._stop)
        except Exception:
            # El job ya registra sus errores; esto solo cubre fallos inesperados.
            logger.exception("[SCHEDULER] Unexpected error in cycle")
        finally:
            self._running_lock.release()
