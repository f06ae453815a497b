"""Registros de métricas produzidos a cada coleta.

Um ``MetricRecord`` vive apenas durante um ciclo coleta → render → resposta.
Os nomes seguem a gramática de identificadores do formato de exposição do
Prometheus (``[a-zA-Z_][a-zA-Z0-9_]*``).
"""

import re
from dataclasses import dataclass
from enum import Enum

_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_INVALID_CHARS_RE = re.compile(r"[^a-zA-Z0-9_]")


class MetricKind(str, Enum):
    """Tipos suportados; o valor é o token usado na linha ``# TYPE``."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass(frozen=True)
class MetricRecord:
    """Uma amostra nomeada, com descrição e tipo."""

    name: str
    help: str
    kind: MetricKind
    value: int | float

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not is_valid_name(self.name):
            raise ValueError(f"nome de métrica inválido: {self.name!r}")
        if not isinstance(self.kind, MetricKind):
            raise ValueError(f"tipo de métrica inválido para {self.name}: {self.kind!r}")
        # render só sabe formatar int/float (bool incluso)
        if not isinstance(self.value, (int, float)):
            raise TypeError(f"valor não numérico para {self.name}: {self.value!r}")


def is_valid_name(name: str) -> bool:
    """Retorna True se ``name`` respeita a gramática de identificadores."""
    return bool(_NAME_RE.match(name or ""))


def sanitize_identifier(text: str) -> str:
    """Substitui caracteres inválidos por underline.

    Usado antes de interpolar nomes de carteira/conta no nome da métrica
    (ex.: ``"cold-storage"`` -> ``"cold_storage"``). String vazia vira ``"_"``.
    """
    out = _INVALID_CHARS_RE.sub("_", str(text))
    return out or "_"


def counter(name: str, help_text: str, value: int | float) -> MetricRecord:
    return MetricRecord(name, help_text, MetricKind.COUNTER, value)


def gauge(name: str, help_text: str, value: int | float) -> MetricRecord:
    return MetricRecord(name, help_text, MetricKind.GAUGE, value)
