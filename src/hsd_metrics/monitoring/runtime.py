"""Métricas do próprio processo (uptime, carga de CPU, memória) via psutil."""

import math
import time
import logging

import psutil

logger = logging.getLogger(__name__)


class RuntimeStats:
    """Leituras do processo atual.

    ``cpu_load_percent`` é uma aproximação: load average de 1 minuto dividido
    pelo número de núcleos lógicos, em percentagem. Não mede o uso de CPU do
    processo em si.
    """

    def __init__(self, process: psutil.Process | None = None):
        self._proc = process if process is not None else psutil.Process()

    def uptime_seconds(self) -> int:
        """Segundos inteiros desde a criação do processo (nunca negativo)."""
        return max(0, int(math.floor(time.time() - self._proc.create_time())))

    def cpu_load_percent(self) -> float:
        """Load average (1 min) / núcleos lógicos * 100, arredondado a 2 casas."""
        load1 = float(psutil.getloadavg()[0])
        cores = psutil.cpu_count(logical=True) or 1
        return round(load1 / cores * 100, 2)

    def memory_bytes(self) -> int:
        """Memória residente (RSS) do processo em bytes."""
        return int(getattr(self._proc.memory_info(), "rss", 0))
