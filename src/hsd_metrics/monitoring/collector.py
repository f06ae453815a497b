"""Coleta de métricas do nó e do processo.

Consulta cada subsistema presente (carteiras, chain, pool, mempool) e o
processo atual, devolvendo uma lista ordenada de ``MetricRecord``. Falhas
ficam isoladas por grupo: um subsistema com erro é registrado em log e
omitido, sem impedir os demais de reportar.

Ordem fixa dos grupos: carteiras, chain, rede, mempool, processo.
"""

import asyncio
import logging
from typing import Callable

from .records import MetricRecord, counter, gauge, sanitize_identifier
from .runtime import RuntimeStats
from .sources import ChainSource, MempoolSource, PeerSource, RuntimeSource, WalletSource

_logger = logging.getLogger(__name__)

PREFIX = "hsd"

# campo do saldo -> (sufixo do nome, ajuda, é contador)
_BALANCE_FIELDS = [
    ("tx", "tx_count", "Number of transactions of account {account} in wallet {wallet}.", True),
    ("coin", "coin_count", "Number of coins held by account {account} in wallet {wallet}.", False),
    ("unconfirmed", "unconfirmed", "Unconfirmed balance of account {account} in wallet {wallet}.", False),
    ("confirmed", "confirmed", "Confirmed balance of account {account} in wallet {wallet}.", False),
    (
        "locked_unconfirmed",
        "locked_unconfirmed",
        "Locked unconfirmed balance of account {account} in wallet {wallet}.",
        False,
    ),
    ("locked_confirmed", "locked_confirmed", "Locked confirmed balance of account {account} in wallet {wallet}.", False),
]


class Collector:
    """Produz o snapshot de métricas a partir dos subsistemas disponíveis.

    Parâmetros:
        chain, pool, mempool: fontes síncronas opcionais.
        wallets: fonte assíncrona opcional da base de carteiras.
        runtime: métricas do processo (padrão: ``RuntimeStats`` com psutil).
        wallet_timeout: limite em segundos para o grupo de carteiras
            (``None`` = sem limite).
        logger: logger do host (usa ``error``); padrão é o
            logger do módulo.
    """

    def __init__(
        self,
        chain: ChainSource | None = None,
        pool: PeerSource | None = None,
        mempool: MempoolSource | None = None,
        wallets: WalletSource | None = None,
        runtime: RuntimeSource | None = None,
        wallet_timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        self.chain = chain
        self.pool = pool
        self.mempool = mempool
        self.wallets = wallets
        self.runtime = runtime if runtime is not None else RuntimeStats()
        self.wallet_timeout = wallet_timeout
        self.logger = logger if logger is not None else _logger

    async def collect(self) -> list[MetricRecord]:
        """Coleta o snapshot completo, na ordem fixa dos grupos."""
        # grupos síncronos primeiro; não suspendem
        chain = self._guard("chain", self._chain_metrics) if self.chain is not None else []
        pool = self._guard("pool", self._pool_metrics) if self.pool is not None else []
        mempool = self._guard("mempool", self._mempool_metrics) if self.mempool is not None else []
        process = self._process_metrics()

        wallets: list[MetricRecord] = []
        if self.wallets is not None:
            wallets = await self._guarded_wallet_metrics()

        return self._dedupe(wallets + chain + pool + mempool + process)

    # ========================
    # 1. Fronteiras de falha
    # ========================

    def _guard(self, group: str, fn: Callable[[], list[MetricRecord]]) -> list[MetricRecord]:
        try:
            return fn()
        except Exception as exc:
            self.logger.error("Falha ao coletar métricas do grupo %s; grupo omitido: %s", group, exc)
            _logger.debug("Detalhes da falha no grupo %s", group, exc_info=True)
            return []

    async def _guarded_wallet_metrics(self) -> list[MetricRecord]:
        # só o prazo expirado conta como timeout; TimeoutError da fonte é falha comum
        task = asyncio.ensure_future(self._wallet_metrics())
        try:
            done, _ = await asyncio.wait({task}, timeout=self.wallet_timeout)
            if not done:
                self.logger.error(
                    "Coleta das carteiras excedeu %ss; métricas de carteira omitidas", self.wallet_timeout
                )
                return []
            return task.result()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logger.error("Falha ao coletar métricas de carteira; grupo omitido: %s", exc)
            _logger.debug("Detalhes da falha nas carteiras", exc_info=True)
            return []
        finally:
            if not task.done():
                task.cancel()

    def _dedupe(self, records: list[MetricRecord]) -> list[MetricRecord]:
        seen: set[str] = set()
        out: list[MetricRecord] = []
        for rec in records:
            if rec.name in seen:
                self.logger.error("Métrica duplicada descartada: %s", rec.name)
                continue
            seen.add(rec.name)
            out.append(rec)
        return out

    # ========================
    # 2. Grupos de métricas
    # ========================

    async def _wallet_metrics(self) -> list[MetricRecord]:
        records: list[MetricRecord] = []
        for wallet in await self.wallets.list_wallets():
            try:
                records.extend(await self._single_wallet_metrics(wallet))
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # uma carteira com erro não derruba as outras
                self.logger.error("Falha ao coletar carteira %s; omitida: %s", wallet, exc)
                _logger.debug("Detalhes da falha na carteira %s", wallet, exc_info=True)
        return records

    async def _single_wallet_metrics(self, wallet: str) -> list[MetricRecord]:
        wid = sanitize_identifier(wallet)
        accounts = await self.wallets.list_accounts(wallet)
        records = [
            gauge(f"{PREFIX}_wallet_{wid}_accounts", f"Number of accounts in wallet {wallet}.", len(accounts))
        ]
        for account in accounts:
            balance = await self.wallets.get_balance(wallet, account)
            aid = sanitize_identifier(account)
            for attr, suffix, help_text, is_counter in _BALANCE_FIELDS:
                name = f"{PREFIX}_wallet_{wid}_{aid}_{suffix}"
                desc = help_text.format(account=account, wallet=wallet)
                value = getattr(balance, attr)
                records.append(counter(name, desc, value) if is_counter else gauge(name, desc, value))
        return records

    def _chain_metrics(self) -> list[MetricRecord]:
        # lê cada campo uma única vez por snapshot
        height, bits, tip_time = self.chain.height, self.chain.tip_bits, self.chain.tip_time
        return [
            counter(f"{PREFIX}_chain_height", "Current block height of the blockchain.", height),
            gauge(f"{PREFIX}_chain_difficulty", "Current blockchain difficulty.", bits),
            gauge(f"{PREFIX}_chain_last_block_time_seconds", "Unix timestamp of the last block's timestamp.", tip_time),
        ]

    def _pool_metrics(self) -> list[MetricRecord]:
        total, inbound, outbound = self.pool.peer_count, self.pool.inbound_count, self.pool.outbound_count
        return [
            gauge(f"{PREFIX}_peer_count", "Current number of connected peers.", total),
            gauge(f"{PREFIX}_peer_inbound_count", "Number of inbound peer connections.", inbound),
            gauge(f"{PREFIX}_peer_outbound_count", "Number of outbound peer connections.", outbound),
        ]

    def _mempool_metrics(self) -> list[MetricRecord]:
        tx_count, size = self.mempool.tx_count, self.mempool.size_bytes
        return [
            gauge(f"{PREFIX}_mempool_tx_count", "Current number of transactions in the mempool.", tx_count),
            gauge(f"{PREFIX}_mempool_size_bytes", "Total size of transactions in the mempool in bytes.", size),
        ]

    def _process_metrics(self) -> list[MetricRecord]:
        """Métricas do processo; cada leitura tem sua própria fronteira de falha."""
        specs = [
            (counter, f"{PREFIX}_uptime_seconds", "Total uptime of the hsd node.", self.runtime.uptime_seconds),
            (
                gauge,
                f"{PREFIX}_cpu_usage_percent",
                "Approximate CPU utilization (1m load average per logical core, percent).",
                self.runtime.cpu_load_percent,
            ),
            (gauge, f"{PREFIX}_memory_usage_bytes", "Resident memory used by the hsd process.", self.runtime.memory_bytes),
        ]
        records: list[MetricRecord] = []
        for factory, name, help_text, reader in specs:
            try:
                records.append(factory(name, help_text, reader()))
            except Exception as exc:
                self.logger.error("Falha ao ler %s: %s", name, exc)
                _logger.debug("Detalhes da falha em %s", name, exc_info=True)
        return records
