"""Servidor HTTP que expõe ``/metrics`` no formato do Prometheus.

O ``ExporterService`` é dono do listener HTTP e do seu ciclo de vida
(``unstarted`` -> ``listening`` -> ``stopped``). Cada requisição a
``/metrics`` executa um ciclo independente de coleta, renderização e
resposta; qualquer outro caminho ou método recebe 404.

O serviço não tem autenticação. Proteja o acesso com firewall ou redes
privadas quando o bind for em todas as interfaces.
"""

import asyncio
import concurrent.futures
import logging
import socketserver
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from prometheus_client import CONTENT_TYPE_LATEST

from ..monitoring.collector import Collector
from ..monitoring.formatters import render
from .errors import ExporterStartError, ExporterStateError

_logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"
DEFAULT_PORT = 9090
DEFAULT_HOST = "0.0.0.0"  # nosec B104

STATE_UNSTARTED = "unstarted"
STATE_LISTENING = "listening"
STATE_STOPPED = "stopped"

_TEXT_PLAIN = "text/plain; charset=utf-8"
_TIMEOUT_ERRORS = (TimeoutError, asyncio.TimeoutError, concurrent.futures.TimeoutError)


class MetricsHandler(BaseHTTPRequestHandler):
    """Handler HTTP: ``GET /metrics`` ou 404."""

    server: "_MetricsHTTPServer"

    def do_GET(self):
        """Trata requisições GET; apenas o caminho exato ``/metrics`` é servido."""
        if self.path == METRICS_PATH:
            self._send_metrics()
        else:
            self._send_text(404, "404 Not Found")

    def do_HEAD(self):
        self._send_text(404, "404 Not Found", with_body=False)

    def _not_found(self):
        self._send_text(404, "404 Not Found")

    do_POST = _not_found
    do_PUT = _not_found
    do_DELETE = _not_found
    do_PATCH = _not_found
    do_OPTIONS = _not_found

    def _send_metrics(self):
        service = self.server.service
        try:
            body = service.scrape()
        except _TIMEOUT_ERRORS:
            service.logger.error("Coleta de métricas excedeu %ss; respondendo 503", service.collect_timeout)
            self._send_text(503, "503 Service Unavailable")
            return
        except Exception as exc:
            service.logger.error("Falha inesperada ao gerar métricas: %s", exc)
            _logger.debug("Detalhes da falha na coleta", exc_info=True)
            self._send_text(500, "500 Internal Server Error")
            return
        self._send(200, CONTENT_TYPE_LATEST, body.encode("utf-8"))

    def _send_text(self, status: int, text: str, with_body: bool = True):
        self._send(status, _TEXT_PLAIN, text.encode("utf-8"), with_body)

    def _send(self, status: int, content_type: str, payload: bytes, with_body: bool = True):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if with_body:
            self.wfile.write(payload)

    def log_message(self, format, *args):
        """Envia o access log para o logger em nível debug."""
        _logger.debug("%s - %s", self.address_string(), format % args)


class _MetricsHTTPServer(ThreadingHTTPServer):
    # threads não-daemon para que server_close() aguarde requisições em curso
    daemon_threads = False
    block_on_close = True
    allow_reuse_port = False

    def __init__(self, server_address, handler_class, service: "ExporterService"):
        self.service = service
        super().__init__(server_address, handler_class)

    def server_bind(self):
        # evita socket.getfqdn(), que pode bloquear em DNS lento
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = host
        self.server_port = port

    def handle_error(self, request, client_address):
        exc = sys.exc_info()[1]
        self.service.logger.error("Erro de transporte ao atender %s: %s", client_address, exc)


class ExporterService:
    """Dono do listener HTTP de métricas e do seu ciclo de vida.

    Parâmetros:
        collector: ``Collector`` usado a cada scrape.
        port: porta TCP (padrão 9090; 0 escolhe uma porta livre).
        host: endereço de bind (padrão "0.0.0.0", todas as interfaces).
        collect_timeout: limite em segundos para uma coleta (``None`` = sem
            limite). Ao expirar, a requisição recebe 503.
        loop: event loop do host onde as coletas assíncronas devem rodar.
            Quando ausente, cada requisição usa ``asyncio.run`` na própria
            thread.
        logger: logger do host (``info``/``error``); padrão é o do módulo.
    """

    def __init__(
        self,
        collector: Collector,
        port: int = DEFAULT_PORT,
        host: str = DEFAULT_HOST,
        collect_timeout: float | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ):
        self.collector = collector
        self.port = port
        self.host = host
        self.collect_timeout = collect_timeout
        self.loop = loop
        self.logger = logger if logger is not None else _logger
        self._state = STATE_UNSTARTED
        self._server: _MetricsHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state

    @property
    def address(self) -> tuple[str, int]:
        """Endereço efetivamente associado (útil com ``port=0``)."""
        if self._server is not None:
            host, port = self._server.server_address[:2]
            return host, port
        return self.host, self.port

    # ========================
    # 1. Ciclo de vida
    # ========================

    def start(self) -> None:
        """Associa a porta e começa a aceitar conexões.

        Retorna somente quando o socket está escutando. Falhas de bind são
        registradas no logger e levantadas como ``ExporterStartError``.
        """
        with self._lock:
            if self._state != STATE_UNSTARTED:
                raise ExporterStateError(f"start() inválido no estado {self._state!r}")
            try:
                server = _MetricsHTTPServer((self.host, self.port), MetricsHandler, self)
            except OSError as exc:
                self.logger.error("Falha ao iniciar servidor de métricas em %s:%s: %s", self.host, self.port, exc)
                raise ExporterStartError(f"não foi possível escutar em {self.host}:{self.port}: {exc}") from exc
            self._server = server
            self._thread = threading.Thread(target=server.serve_forever, name="hsd-metrics-http", daemon=True)
            self._thread.start()
            self._state = STATE_LISTENING
            host, port = self.address
            self.logger.info("Servidor de métricas Prometheus escutando em %s:%d", host, port)

    def stop(self) -> None:
        """Encerra o listener, aguardando as requisições em curso.

        Retorna quando a porta foi liberada. Chamadas repetidas são ignoradas;
        após um ``start()`` com falha apenas marca o serviço como parado.

        Bloqueia a thread chamadora. Na thread do event loop do host as
        coletas em curso dependem desse mesmo loop, então a chamada é
        recusada com ``ExporterStateError``; use ``await close()``.
        """
        if self.loop is not None and _running_loop() is self.loop:
            raise ExporterStateError("stop() bloquearia o event loop do host; use await close()")
        with self._lock:
            if self._state == STATE_STOPPED:
                return
            server, thread = self._server, self._thread
            self._state = STATE_STOPPED
            if server is None:
                self.logger.info("Servidor de métricas marcado como parado (nunca escutou).")
                return
            server.shutdown()
            # fecha o socket e aguarda as threads de requisição
            server.server_close()
            if thread is not None:
                thread.join()
            self._server = None
            self._thread = None
            self.logger.info("Servidor de métricas Prometheus encerrado.")

    async def close(self) -> None:
        """Versão aguardável de ``stop()`` para hosts com event loop.

        O encerramento roda numa thread auxiliar, deixando o loop livre para
        concluir as coletas em curso antes de a porta ser liberada.
        """
        await asyncio.to_thread(self.stop)

    # ========================
    # 2. Coleta e renderização
    # ========================

    def scrape(self) -> str:
        """Executa uma coleta completa e devolve o corpo renderizado."""
        return render(self._collect())

    def _collect(self):
        if self.loop is not None:
            future = asyncio.run_coroutine_threadsafe(self.collector.collect(), self.loop)
            try:
                return future.result(timeout=self.collect_timeout)
            except _TIMEOUT_ERRORS:
                future.cancel()
                raise
        return asyncio.run(self._bounded_collect())

    async def _bounded_collect(self):
        if self.collect_timeout is None:
            return await self.collector.collect()
        return await asyncio.wait_for(self.collector.collect(), timeout=self.collect_timeout)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
