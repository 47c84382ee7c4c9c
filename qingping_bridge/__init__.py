"""Bridge Qingping cloud API → MQTT.

Modules:
- config: RunnerConfig dataclass
- exceptions: errores de cada etapa del ciclo
- models: esquema de la API y DeviceReading
- http_client: helpers HTTP compartidos
- oauth: access token (client credentials)
- devices: lecturas de dispositivos
- publisher: publicación MQTT
- runner: orquestador (run_cycle)
- scheduler: IntervalScheduler
- cli: entry point (main)
"""

from .config import RunnerConfig
from .runner import CycleStats, run_cycle
from .scheduler import IntervalScheduler
from .cli import main

__all__ = ["RunnerConfig", "CycleStats", "run_cycle", "IntervalScheduler", "main"]
