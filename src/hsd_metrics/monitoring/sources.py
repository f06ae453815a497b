"""Interfaces (somente leitura) dos subsistemas consultados pelo coletor.

Cada subsistema do nó é opcional. O coletor recebe ``None`` quando o
subsistema não existe, em vez de inspecionar um objeto genérico do host.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class WalletBalance:
    """Saldo de uma conta de carteira."""

    tx: int
    coin: int
    unconfirmed: int
    confirmed: int
    locked_unconfirmed: int
    locked_confirmed: int


class ChainSource(Protocol):
    @property
    def height(self) -> int: ...

    @property
    def tip_bits(self) -> int: ...

    @property
    def tip_time(self) -> int: ...


class PeerSource(Protocol):
    @property
    def peer_count(self) -> int: ...

    @property
    def inbound_count(self) -> int: ...

    @property
    def outbound_count(self) -> int: ...


class MempoolSource(Protocol):
    @property
    def tx_count(self) -> int: ...

    @property
    def size_bytes(self) -> int: ...


class WalletSource(Protocol):
    """Acesso assíncrono à base de carteiras."""

    async def list_wallets(self) -> list[str]: ...

    async def list_accounts(self, wallet: str) -> list[str]: ...

    async def get_balance(self, wallet: str, account: str) -> WalletBalance: ...


class RuntimeSource(Protocol):
    """Métricas do processo; implementação padrão em ``runtime.RuntimeStats``."""

    def uptime_seconds(self) -> int: ...

    def cpu_load_percent(self) -> float: ...

    def memory_bytes(self) -> int: ...
