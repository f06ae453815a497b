"""Testes do coletor: presença/ausência de grupos, ordem e isolamento de falhas."""

import asyncio
import logging
from types import SimpleNamespace

from hsd_metrics.monitoring.collector import Collector
from hsd_metrics.monitoring.records import MetricKind
from hsd_metrics.monitoring.sources import WalletBalance

PROCESS_NAMES = ["hsd_uptime_seconds", "hsd_cpu_usage_percent", "hsd_memory_usage_bytes"]
CHAIN_NAMES = ["hsd_chain_height", "hsd_chain_difficulty", "hsd_chain_last_block_time_seconds"]
POOL_NAMES = ["hsd_peer_count", "hsd_peer_inbound_count", "hsd_peer_outbound_count"]
MEMPOOL_NAMES = ["hsd_mempool_tx_count", "hsd_mempool_size_bytes"]


def _runtime():
    return SimpleNamespace(uptime_seconds=lambda: 42, cpu_load_percent=lambda: 12.5, memory_bytes=lambda: 2048)


def _chain():
    return SimpleNamespace(height=1200, tip_bits=0x1C00FFFF, tip_time=1700000000)


def _pool():
    return SimpleNamespace(peer_count=8, inbound_count=3, outbound_count=5)


def _mempool():
    return SimpleNamespace(tx_count=17, size_bytes=40960)


class FakeWallets:
    """Base de carteiras em memória: {carteira: {conta: WalletBalance}}."""

    def __init__(self, data, fail_on=None):
        self.data = data
        self.fail_on = fail_on or set()

    async def list_wallets(self):
        return list(self.data)

    async def list_accounts(self, wallet):
        if wallet in self.fail_on:
            raise RuntimeError(f"wallet {wallet} indisponível")
        return list(self.data[wallet])

    async def get_balance(self, wallet, account):
        await asyncio.sleep(0)
        return self.data[wallet][account]


class BrokenMempool:
    @property
    def tx_count(self):
        raise RuntimeError("mempool quebrado")

    @property
    def size_bytes(self):
        return 1


def _collect(**kwargs):
    kwargs.setdefault("runtime", _runtime())
    return asyncio.run(Collector(**kwargs).collect())


def _names(records):
    return [r.name for r in records]


def test_only_process_metrics_without_subsystems():
    """Sem subsistemas, o snapshot contém exatamente as métricas do processo."""
    records = _collect()
    assert _names(records) == PROCESS_NAMES
    assert [r.kind for r in records] == [MetricKind.COUNTER, MetricKind.GAUGE, MetricKind.GAUGE]
    assert [r.value for r in records] == [42, 12.5, 2048]


def test_default_runtime_is_real_process():
    records = asyncio.run(Collector().collect())
    assert _names(records) == PROCESS_NAMES


def test_each_group_appears_only_when_present():
    cases = [
        ({"chain": _chain()}, CHAIN_NAMES),
        ({"pool": _pool()}, POOL_NAMES),
        ({"mempool": _mempool()}, MEMPOOL_NAMES),
    ]
    all_optional = CHAIN_NAMES + POOL_NAMES + MEMPOOL_NAMES
    for kwargs, expected in cases:
        names = _names(_collect(**kwargs))
        for name in expected:
            assert name in names
        for name in set(all_optional) - set(expected):
            assert name not in names


def test_chain_values_and_kinds():
    records = {r.name: r for r in _collect(chain=_chain())}
    assert records["hsd_chain_height"].value == 1200
    assert records["hsd_chain_height"].kind is MetricKind.COUNTER
    assert records["hsd_chain_difficulty"].value == 0x1C00FFFF
    assert records["hsd_chain_last_block_time_seconds"].value == 1700000000


def test_group_order_is_fixed():
    """Ordem: carteiras, chain, rede, mempool, processo."""
    wallets = FakeWallets({"primary": {"default": WalletBalance(1, 2, 3, 4, 5, 6)}})
    names = _names(_collect(chain=_chain(), pool=_pool(), mempool=_mempool(), wallets=wallets))
    first_wallet = names.index("hsd_wallet_primary_accounts")
    assert first_wallet == 0
    positions = [names.index(n) for n in ["hsd_chain_height", "hsd_peer_count", "hsd_mempool_tx_count"]]
    assert first_wallet < positions[0] < positions[1] < positions[2] < names.index("hsd_uptime_seconds")
    assert names[-3:] == PROCESS_NAMES


def test_failing_mempool_is_isolated(caplog):
    """Mempool com erro é omitido; chain, pool e processo continuam."""
    caplog.set_level(logging.ERROR)
    names = _names(_collect(chain=_chain(), pool=_pool(), mempool=BrokenMempool()))
    for name in CHAIN_NAMES + POOL_NAMES + PROCESS_NAMES:
        assert name in names
    for name in MEMPOOL_NAMES:
        assert name not in names
    assert any("mempool" in r.getMessage() for r in caplog.records)


def test_two_wallets_two_accounts_have_distinct_names():
    data = {
        "primary": {"default": WalletBalance(1, 2, 3, 4, 5, 6), "savings": WalletBalance(7, 8, 9, 10, 11, 12)},
        "hot": {"default": WalletBalance(0, 0, 0, 0, 0, 0), "trading": WalletBalance(3, 3, 3, 3, 3, 3)},
    }
    records = _collect(wallets=FakeWallets(data))
    names = _names(records)
    assert len(names) == len(set(names))

    wallet_names = [n for n in names if n.startswith("hsd_wallet_")]
    assert "hsd_wallet_primary_accounts" in wallet_names
    assert "hsd_wallet_hot_accounts" in wallet_names
    per_account = [n for n in wallet_names if not n.endswith("_accounts")]
    # 2 carteiras x 2 contas x 6 campos
    assert len(per_account) == 24
    for wallet, accounts in data.items():
        for account in accounts:
            assert f"hsd_wallet_{wallet}_{account}_tx_count" in per_account
            assert f"hsd_wallet_{wallet}_{account}_locked_confirmed" in per_account

    by_name = {r.name: r for r in records}
    assert by_name["hsd_wallet_primary_accounts"].value == 2
    assert by_name["hsd_wallet_primary_accounts"].kind is MetricKind.GAUGE
    assert by_name["hsd_wallet_primary_savings_tx_count"].kind is MetricKind.COUNTER
    assert by_name["hsd_wallet_primary_savings_tx_count"].value == 7
    assert by_name["hsd_wallet_primary_savings_coin_count"].value == 8
    assert by_name["hsd_wallet_primary_savings_unconfirmed"].value == 9
    assert by_name["hsd_wallet_primary_savings_confirmed"].value == 10
    assert by_name["hsd_wallet_primary_savings_locked_unconfirmed"].value == 11
    assert by_name["hsd_wallet_primary_savings_locked_confirmed"].value == 12


def test_wallet_names_are_sanitized():
    wallets = FakeWallets({"cold-storage": {"acct.1": WalletBalance(1, 1, 1, 1, 1, 1)}})
    names = _names(_collect(wallets=wallets))
    assert "hsd_wallet_cold_storage_accounts" in names
    assert "hsd_wallet_cold_storage_acct_1_confirmed" in names


def test_sanitized_collisions_keep_first(caplog):
    caplog.set_level(logging.ERROR)
    wallets = FakeWallets({"a-b": {}, "a_b": {}})
    names = _names(_collect(wallets=wallets))
    assert names.count("hsd_wallet_a_b_accounts") == 1
    assert any("duplicada" in r.getMessage() for r in caplog.records)


def test_one_failing_wallet_does_not_hide_others():
    data = {"good": {"default": WalletBalance(1, 1, 1, 1, 1, 1)}, "bad": {"default": WalletBalance(0, 0, 0, 0, 0, 0)}}
    names = _names(_collect(wallets=FakeWallets(data, fail_on={"bad"}), chain=_chain()))
    assert "hsd_wallet_good_accounts" in names
    assert not any(n.startswith("hsd_wallet_bad_") for n in names)
    assert "hsd_chain_height" in names


def test_wallet_enumeration_failure_drops_only_wallet_group():
    class Broken(FakeWallets):
        async def list_wallets(self):
            raise ConnectionError("wdb offline")

    names = _names(_collect(wallets=Broken({}), pool=_pool()))
    assert not any(n.startswith("hsd_wallet_") for n in names)
    assert "hsd_peer_count" in names
    assert names[-3:] == PROCESS_NAMES


def test_wallet_timeout_drops_wallet_group(caplog):
    class Hung(FakeWallets):
        async def list_wallets(self):
            await asyncio.sleep(5)
            return ["never"]

    caplog.set_level(logging.ERROR)
    names = _names(_collect(wallets=Hung({}), chain=_chain(), wallet_timeout=0.05))
    assert not any(n.startswith("hsd_wallet_") for n in names)
    assert "hsd_chain_height" in names
    assert any("carteiras excedeu" in r.getMessage() for r in caplog.records)


def test_failing_process_reading_keeps_the_others():
    def boom():
        raise OSError("sem /proc")

    runtime = SimpleNamespace(uptime_seconds=lambda: 1, cpu_load_percent=boom, memory_bytes=lambda: 10)
    names = _names(_collect(runtime=runtime))
    assert names == ["hsd_uptime_seconds", "hsd_memory_usage_bytes"]


def test_injected_logger_receives_errors():
    messages = []
    host_logger = SimpleNamespace(
        info=lambda *a, **k: None,
        error=lambda msg, *args, **k: messages.append(msg % args),
    )
    _collect(mempool=BrokenMempool(), logger=host_logger)
    assert any("mempool" in m for m in messages)


def test_collector_does_not_mutate_sources():
    chain = _chain()
    before = dict(vars(chain))
    _collect(chain=chain)
    assert vars(chain) == before


def test_wallet_source_timeout_error_without_deadline_is_isolated():
    """TimeoutError vindo da base de carteiras, sem prazo configurado, só omite as carteiras."""

    class Flaky(FakeWallets):
        async def list_wallets(self):
            raise TimeoutError("wdb lento")

    messages = []
    host_logger = SimpleNamespace(
        info=lambda *a, **k: None,
        error=lambda msg, *args, **k: messages.append(msg % args),
    )
    names = _names(_collect(wallets=Flaky({}), chain=_chain(), wallet_timeout=None, logger=host_logger))
    assert not any(n.startswith("hsd_wallet_") for n in names)
    assert "hsd_chain_height" in names
    assert names[-3:] == PROCESS_NAMES
    assert any("wdb lento" in m for m in messages)
    assert not any("excedeu" in m for m in messages)


def test_wallet_source_timeout_error_is_not_reported_as_deadline(caplog):
    class Flaky(FakeWallets):
        async def list_wallets(self):
            raise TimeoutError("wdb lento")

    caplog.set_level(logging.ERROR)
    names = _names(_collect(wallets=Flaky({}), pool=_pool(), wallet_timeout=5))
    assert "hsd_peer_count" in names
    messages = [r.getMessage() for r in caplog.records]
    assert any("wdb lento" in m for m in messages)
    assert not any("excedeu" in m for m in messages)


def test_non_numeric_balance_drops_only_that_wallet():
    data = {
        "good": {"default": WalletBalance(1, 1, 1, 1, 1, 1)},
        "odd": {"default": WalletBalance(1, 1, None, 1, 1, 1)},
    }
    records = _collect(wallets=FakeWallets(data), mempool=_mempool())
    names = _names(records)
    assert "hsd_wallet_good_default_confirmed" in names
    assert not any(n.startswith("hsd_wallet_odd_") for n in names)
    assert "hsd_mempool_tx_count" in names
