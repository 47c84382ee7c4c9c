"""Configuración de ejecución del bridge (argumentos de CLI)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RunnerConfig:
    """Opciones de ejecución; las credenciales viven en common.config.Settings."""
    interval_seconds: Optional[float]
    once: bool
    env_file: Optional[str] = None
    log_level: str = "INFO"
