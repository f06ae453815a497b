"""Exceções do ciclo de vida do exporter."""


class ExporterError(Exception):
    """Erro base do exporter de métricas."""


class ExporterStartError(ExporterError):
    """Falha ao associar/escutar na porta configurada (ex.: porta em uso)."""


class ExporterStateError(ExporterError):
    """Transição de estado inválida (ex.: ``start()`` chamado duas vezes)."""
