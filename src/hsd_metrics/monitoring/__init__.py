"""Pacote monitoring: registros, coleta e renderização das métricas do nó."""

from .collector import Collector
from .formatters import render
from .records import MetricKind, MetricRecord, sanitize_identifier
from .runtime import RuntimeStats
from .sources import WalletBalance

__all__ = [
    "Collector",
    "render",
    "MetricKind",
    "MetricRecord",
    "sanitize_identifier",
    "RuntimeStats",
    "WalletBalance",
]
