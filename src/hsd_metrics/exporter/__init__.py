"""Pacote exporter: servidor HTTP de métricas e integração com o nó.

Re-exports para uso direto pelo host, como
``from hsd_metrics.exporter import ExporterService``.
"""

from .errors import ExporterError, ExporterStartError, ExporterStateError
from .plugin import PLUGIN_ID, init
from .service import ExporterService

__all__ = [
    "ExporterError",
    "ExporterStartError",
    "ExporterStateError",
    "ExporterService",
    "PLUGIN_ID",
    "init",
]
