"""Parser de argumentos do entrypoint ``hsd-metrics``.

Docstrings e mensagens em português.

Este módulo fornece um parser simples que expõe:
- porta e host de bind (--port / --host)
- limites de tempo da coleta (--timeout / --wallet-timeout)
- verbosidade (-v)
- opções de logging (nível e arquivo JSONL)

Prioridade dos valores: CLI > ambiente/.env > padrão.
"""

import argparse
import logging
from typing import Sequence

from ..config.settings import get_valid_settings, validate_settings

# ========================
# 0. Configuração do parser
# ========================


# Função principal do módulo; cria e retorna o ArgumentParser configurado
def configure_argparser() -> argparse.ArgumentParser:
    """Cria e retorna ArgumentParser configurado para o exporter."""
    parser = argparse.ArgumentParser(
        prog="hsd-metrics",
        description="Exporter Prometheus de métricas do nó hsd e do processo",
    )
    parser.add_argument("--port", type=int, default=None, help="Porta TCP do endpoint /metrics (padrão 9090)")
    parser.add_argument("--host", type=str, default=None, help="Endereço de bind (padrão 0.0.0.0)")
    parser.add_argument(
        "--timeout",
        dest="collect_timeout",
        type=float,
        default=None,
        help="Limite em segundos por coleta; 0 desativa (padrão 10)",
    )
    parser.add_argument(
        "--wallet-timeout",
        dest="wallet_timeout",
        type=float,
        default=None,
        help="Limite em segundos para as métricas de carteira; 0 desativa (padrão 5)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Aumenta a verbosidade (-v, -vv)")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str,
        default=None,
        help="Nível de logging (DEBUG/INFO/WARNING/ERROR). Se ausente, definido por -v ou ambiente",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        type=str,
        default=None,
        help="Arquivo JSONL adicional para os logs",
    )
    return parser


# ========================
# 1. Análise e validação
# ========================


# Auxilia hsd_metrics.main; analisa argv e aplica os defaults do ambiente
def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Analisa argv e retorna Namespace validado para uso no programa."""
    parser = configure_argparser()
    ns = parser.parse_args(argv)
    env_settings = get_valid_settings()
    # somente argumentos ausentes na CLI recebem o valor do ambiente
    for key in ("port", "host", "collect_timeout", "wallet_timeout"):
        if getattr(ns, key, None) is None:
            setattr(ns, key, env_settings[key])
    ns.env_log_level = env_settings["log_level"]
    validate_args(ns)
    return ns


# Auxilia parse_args; criado para garantir valores corretos e seguros
def validate_args(args: argparse.Namespace) -> None:
    """Valida e normaliza argumentos; levanta ``ValueError`` em caso de erro."""
    normalized = validate_settings(
        {
            "port": args.port,
            "host": args.host,
            "collect_timeout": args.collect_timeout,
            "wallet_timeout": args.wallet_timeout,
            "log_level": args.log_level or getattr(args, "env_log_level", "INFO"),
        }
    )
    args.port = normalized["port"]
    args.host = normalized["host"]
    args.collect_timeout = normalized["collect_timeout"]
    args.wallet_timeout = normalized["wallet_timeout"]
    logging.getLogger(__name__).debug("Argumentos validados: %s", vars(args))


# ========================
# 2. Configuração de logging
# ========================


# Auxilia hsd_metrics.main; extrai a configuração de logging dos argumentos
def get_log_config(args: argparse.Namespace) -> dict:
    """Retorna dict com 'level' e 'file' para a configuração de logging."""
    if getattr(args, "log_level", None):
        level = str(args.log_level).upper()
    else:
        v = getattr(args, "verbose", 0) or 0
        if v >= 2:
            level = "DEBUG"
        elif v == 1:
            level = "INFO"
        else:
            level = str(getattr(args, "env_log_level", "INFO")).upper()
    return {"level": level, "file": getattr(args, "log_file", None)}
