"""Integração com o nó: adapta os subsistemas do host às fontes do coletor.

O host registra o plugin pelo ``PLUGIN_ID`` e chama ``init(node)``; o
mecanismo de registro em si pertence ao host. Os atributos do nó são
inspecionados uma única vez aqui, e o coletor só recebe fontes tipadas.
"""

import inspect
import logging

from ..config.settings import get_valid_settings, load_settings
from ..monitoring.collector import Collector
from ..monitoring.sources import WalletBalance
from .service import ExporterService

PLUGIN_ID = "prometheus-metrics"

# opção do nó -> (chave das configurações, leitor tipado da config do nó)
_NODE_OPTIONS = [
    ("prometheus-metrics-port", "port", "uint"),
    ("prometheus-metrics-host", "host", "str"),
    ("prometheus-metrics-timeout", "collect_timeout", "float"),
    ("prometheus-metrics-wallet-timeout", "wallet_timeout", "float"),
]


class NodeChainSource:
    """``chain.height``, ``chain.tip.bits`` e ``chain.tip.time``."""

    def __init__(self, chain):
        self._chain = chain

    @property
    def height(self) -> int:
        return self._chain.height

    @property
    def tip_bits(self) -> int:
        return self._chain.tip.bits

    @property
    def tip_time(self) -> int:
        return self._chain.tip.time


class NodePeerSource:
    """Contagens da lista de peers do pool."""

    def __init__(self, pool):
        self._pool = pool

    @property
    def peer_count(self) -> int:
        return self._pool.peers.size()

    @property
    def inbound_count(self) -> int:
        return self._pool.peers.inbound

    @property
    def outbound_count(self) -> int:
        return self._pool.peers.outbound


class NodeMempoolSource:
    def __init__(self, mempool):
        self._mempool = mempool

    @property
    def tx_count(self) -> int:
        return len(self._mempool.tx_index.index)

    @property
    def size_bytes(self) -> int:
        return self._mempool.size


class NodeWalletSource:
    """Base de carteiras do nó (métodos podem ser síncronos ou awaitables)."""

    def __init__(self, wdb):
        self._wdb = wdb

    async def list_wallets(self) -> list[str]:
        return list(await _resolve(self._wdb.get_wallets()))

    async def list_accounts(self, wallet: str) -> list[str]:
        handle = await self._wallet(wallet)
        return list(await _resolve(handle.get_accounts()))

    async def get_balance(self, wallet: str, account: str) -> WalletBalance:
        handle = await self._wallet(wallet)
        bal = await _resolve(handle.get_balance(account))
        return WalletBalance(
            tx=bal.tx,
            coin=bal.coin,
            unconfirmed=bal.unconfirmed,
            confirmed=bal.confirmed,
            locked_unconfirmed=bal.locked_unconfirmed,
            locked_confirmed=bal.locked_confirmed,
        )

    async def _wallet(self, wallet: str):
        handle = await _resolve(self._wdb.get(wallet))
        if handle is None:
            raise LookupError(f"carteira não encontrada: {wallet}")
        return handle


async def _resolve(value):
    if inspect.isawaitable(value):
        return await value
    return value


def _read_node_config(config) -> dict:
    """Lê as opções ``prometheus-metrics-*`` presentes na configuração do nó.

    A config do host expõe leitores tipados (``uint``, ``str``, ``float``)
    que devolvem ``None`` para opções ausentes.
    """
    if config is None:
        return {}
    found = {}
    for option, key, getter in _NODE_OPTIONS:
        read = getattr(config, getter, None)
        if read is None:
            continue
        value = read(option)
        if value is not None:
            found[key] = value
    return found


# Função principal do módulo; monta o serviço a partir do nó
def init(node, settings: dict | None = None) -> ExporterService:
    """Cria o ``ExporterService`` para ``node`` (ainda não iniciado).

    Subsistemas ausentes no nó (``chain``, ``pool``, ``mempool``, ``wdb``)
    simplesmente não geram métricas. Usa ``node.logger`` quando existir e
    ``node.loop`` como event loop das coletas assíncronas quando existir.

    As opções ``prometheus-metrics-*`` de ``node.config`` têm precedência;
    o que faltar vem de ``settings`` (ou do ambiente/``.env``). Com
    ``node.loop`` o host deve encerrar o serviço com ``await close()``.
    """
    base = dict(settings) if settings is not None else load_settings()
    base.update(_read_node_config(getattr(node, "config", None)))
    settings = get_valid_settings(base)
    host_logger = getattr(node, "logger", None) or logging.getLogger(__name__)

    chain = getattr(node, "chain", None)
    pool = getattr(node, "pool", None)
    mempool = getattr(node, "mempool", None)
    wdb = getattr(node, "wdb", None)

    collector = Collector(
        chain=NodeChainSource(chain) if chain is not None else None,
        pool=NodePeerSource(pool) if pool is not None else None,
        mempool=NodeMempoolSource(mempool) if mempool is not None else None,
        wallets=NodeWalletSource(wdb) if wdb is not None else None,
        wallet_timeout=settings["wallet_timeout"],
        logger=host_logger,
    )
    return ExporterService(
        collector,
        port=settings["port"],
        host=settings["host"],
        collect_timeout=settings["collect_timeout"],
        loop=getattr(node, "loop", None),
        logger=host_logger,
    )
