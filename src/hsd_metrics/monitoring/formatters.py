"""Renderização de registros no formato de exposição de texto do Prometheus.

Cada registro vira três linhas (HELP, TYPE e amostra) e registros
consecutivos são separados por uma linha em branco. A função é pura: a mesma
lista produz sempre os mesmos bytes.
"""

from typing import Iterable

from prometheus_client.utils import floatToGoString

from .records import MetricRecord

# ========================
# 0. Função principal de renderização (API pública)
# ========================


def render(records: Iterable[MetricRecord]) -> str:
    """Serializa ``records`` em texto de exposição.

    Retorna ``""`` para uma lista vazia; caso contrário o texto termina com
    um único ``\\n``.
    """
    blocks = [_render_record(r) for r in records]
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


# ========================
# 1. Auxiliares de formatação
# ========================


# Auxilia render; monta o bloco HELP/TYPE/amostra de um registro
def _render_record(record: MetricRecord) -> str:
    return "\n".join(
        [
            f"# HELP {record.name} {escape_help(record.help)}",
            f"# TYPE {record.name} {record.kind.value}",
            f"{record.name} {format_value(record.value)}",
        ]
    )


def escape_help(text: str) -> str:
    """Escapa barra invertida e quebras de linha do texto de ajuda."""
    return str(text).replace("\\", "\\\\").replace("\r", "").replace("\n", "\\n")


def format_value(value) -> str:
    """Converte o valor para literal numérico independente de locale.

    bool -> ``1``/``0``; int -> dígitos decimais; float -> representação do
    prometheus_client (``+Inf``, ``-Inf``, ``NaN`` incluídos).
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    return floatToGoString(value)
