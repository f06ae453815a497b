"""hsd-metrics: exporter Prometheus em processo para um nó hsd.

Coleta métricas dos subsistemas opcionais do nó (carteiras, chain, pool,
mempool) e do processo, e as expõe em ``/metrics``.
"""

from .exporter import ExporterService, init
from .monitoring import Collector, MetricKind, MetricRecord, render

__version__ = "0.1.0"

__all__ = ["Collector", "ExporterService", "MetricKind", "MetricRecord", "init", "render"]
