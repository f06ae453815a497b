"""Ponto de entrada do exporter de métricas.

Este módulo realiza a inicialização standalone: parsing de argumentos CLI,
configuração de logging e execução do ``ExporterService`` até receber
SIGINT/SIGTERM. Sem um nó anexado apenas as métricas do processo são
expostas; a integração com o nó passa por ``hsd_metrics.exporter.plugin``.
"""

import json as _json
import logging as _logging
import signal
import threading
import traceback as _tb

from .core.args import get_log_config, parse_args
from .exporter.errors import ExporterStartError
from .exporter.service import ExporterService
from .monitoring.collector import Collector

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    """Inicializa o exporter e bloqueia até um sinal de término.

    Args:
        argv: Lista de argumentos (usada em testes). Quando ``None`` usa os
            argumentos de linha de comando do processo.

    Returns:
        0 em término normal, 1 se o servidor não puder ser iniciado.
    """
    args = parse_args(argv)
    log_conf = get_log_config(args)
    _setup_logging(log_conf)
    log = _logging.getLogger(__name__)

    collector = Collector(wallet_timeout=args.wallet_timeout)
    service = ExporterService(collector, port=args.port, host=args.host, collect_timeout=args.collect_timeout)
    try:
        service.start()
    except ExporterStartError:
        # o serviço já registrou o erro de bind
        return 1

    try:
        _wait_for_shutdown()
    except KeyboardInterrupt:
        log.info("Recebido KeyboardInterrupt, saindo...")
    finally:
        service.stop()
    return 0


def _wait_for_shutdown() -> None:
    """Bloqueia até SIGINT ou SIGTERM."""
    stop_event = threading.Event()

    def _on_signal(signum, frame):
        _logging.getLogger(__name__).info("Sinal %s recebido, encerrando", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)
    while not stop_event.wait(1.0):
        pass


def _setup_logging(log_conf: dict) -> None:
    """Configura o logger root e, opcionalmente, um handler JSONL."""
    level = getattr(_logging, log_conf.get("level", "INFO"), _logging.INFO)
    _logging.basicConfig(level=level, format=_LOG_FORMAT)
    _logging.getLogger().setLevel(level)

    path = log_conf.get("file")
    if not path:
        return
    try:
        fh = _logging.FileHandler(str(path), encoding="utf-8")
    except OSError as exc:
        _logging.getLogger(__name__).warning("Falha ao abrir arquivo de log %s: %s", path, exc)
        return
    fh.setLevel(level)
    fh.setFormatter(_get_json_formatter())
    root = _logging.getLogger()
    if not any(getattr(h, "baseFilename", None) == fh.baseFilename for h in root.handlers):
        root.addHandler(fh)
    else:
        fh.close()


def _get_json_formatter():
    class _JSONFormatter(_logging.Formatter):
        def format(self, record):
            obj = {
                "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
                "level": record.levelname,
                "name": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info:
                obj["exc"] = "".join(_tb.format_exception(*record.exc_info))
            return _json.dumps(obj, ensure_ascii=False)

    return _JSONFormatter()


if __name__ == "__main__":
    raise SystemExit(main())
