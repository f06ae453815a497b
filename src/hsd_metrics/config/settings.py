"""Configurações do exporter de métricas.

Carrega valores a partir de ``DEFAULT_SETTINGS`` e permite overrides via
arquivo ``.env`` ou variáveis de ambiente (prefixo
``HSD_PROMETHEUS_METRICS_*``, equivalente à opção ``prometheus-metrics-*`` do
nó). As funções públicas principais são:

- ``load_settings()`` -> dicionário com chaves: "port", "host",
  "collect_timeout", "wallet_timeout", "log_level".
- ``get_valid_settings()`` -> configurações validadas (usado pelo plugin e
  pelo entrypoint).

Comentários e mensagens de log estão em português.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# ========================
# Constantes e padrões globais
# ========================

ENV_PREFIX = "HSD_PROMETHEUS_METRICS_"

DEFAULT_SETTINGS = {
    "port": 9090,
    "host": "0.0.0.0",  # nosec B104
    "collect_timeout": 10.0,
    "wallet_timeout": 5.0,
    "log_level": "INFO",
}

# chave da configuração -> (sufixo da variável de ambiente, conversor)
_ENV_KEYS = {
    "port": ("PORT", int),
    "host": ("HOST", str),
    "collect_timeout": ("TIMEOUT", float),
    "wallet_timeout": ("WALLET_TIMEOUT", float),
    "log_level": ("LOG_LEVEL", str),
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ========================
# 1. Carregamento das configurações
# ========================


# Função principal do módulo; carrega todas as configurações do ambiente
def load_settings() -> dict:
    """Carrega configurações combinando DEFAULTS + .env + ambiente.

    As variáveis em ambiente sobrescrevem valores do arquivo ``.env``. Valores
    que não podem ser convertidos são ignorados (com aviso) e o padrão é mantido.
    """
    settings = DEFAULT_SETTINGS.copy()

    project_root = Path(__file__).resolve().parents[3]
    env_path = Path(os.getenv(ENV_PREFIX + "ENV_FILE", project_root / ".env"))

    env_items = _merge_env_items(env_path)
    _apply_env_overrides(env_items, settings)
    return settings


# ========================
# 2. Funções auxiliares para ambiente e overrides
# ========================


# Auxilia load_settings; só interessam linhas HSD_PROMETHEUS_METRICS_*
def _read_env_file(path: Path | str) -> dict:
    """Extrai do ``.env`` as opções do exporter.

    Aceita ``export CHAVE=valor`` e aspas simples ou duplas em volta do
    valor; outras chaves, comentários e linhas sem ``=`` são descartados.
    """
    p = Path(path)
    if not p.is_file():
        return {}
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        logger.debug("Falha ao ler .env em %s: %s", p, exc)
        return {}

    options: dict[str, str] = {}
    for raw in text.splitlines():
        key, sep, val = raw.strip().removeprefix("export ").partition("=")
        key = key.strip()
        if not sep or not key.startswith(ENV_PREFIX):
            continue
        val = val.strip()
        if len(val) >= 2 and val[0] == val[-1] and val[0] in "\"'":
            val = val[1:-1]
        options[key] = val
    return options


# Auxilia load_settings; o ambiente do processo vence o .env
def _merge_env_items(env_path: Path) -> dict:
    options = _read_env_file(env_path)
    if not options and env_path.is_file():
        logger.warning("Nenhuma opção %s* encontrada em %s", ENV_PREFIX, env_path)
    options.update((k, v) for k, v in os.environ.items() if k.startswith(ENV_PREFIX))
    return options


# Auxilia load_settings; aplica overrides HSD_PROMETHEUS_METRICS_<CHAVE>
def _apply_env_overrides(env_items: dict, settings: dict) -> None:
    for key, (suffix, convert) in _ENV_KEYS.items():
        env_key = ENV_PREFIX + suffix
        raw_val = env_items.get(env_key)
        if raw_val is None or raw_val == "":
            continue
        try:
            settings[key] = convert(raw_val)
        except (TypeError, ValueError):
            logger.warning("Valor inválido para %s: %s", env_key, raw_val)


# ========================
# 3. Validação e normalização
# ========================


# Auxilia validate_settings; timeout 0 ou None significa "sem limite"
def _coerce_timeout(name: str, raw_value) -> float | None:
    if raw_value is None:
        return None
    try:
        value = float(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} deve ser numérico: {raw_value!r}") from exc
    if value < 0:
        raise ValueError(f"{name} deve ser >= 0: {value}")
    return value or None


# Função principal de validação; normaliza e valida configurações
def validate_settings(settings: dict) -> dict:
    """Normaliza e valida o dicionário de configurações.

    Chaves ausentes recebem o valor padrão. Levanta ``TypeError`` se
    ``settings`` não for dict e ``ValueError`` para valores fora da faixa.
    """
    if not isinstance(settings, dict):
        raise TypeError("settings deve ser um dict")

    merged = DEFAULT_SETTINGS.copy()
    merged.update({k: v for k, v in settings.items() if v is not None or k.endswith("_timeout")})

    try:
        port = int(merged["port"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"porta deve ser um inteiro: {merged['port']!r}") from exc
    if not 0 <= port <= 65535:
        raise ValueError(f"porta deve ficar entre 0 e 65535: {port}")
    merged["port"] = port

    host = str(merged["host"] or "").strip()
    if not host:
        raise ValueError("host de bind não pode ser vazio")
    merged["host"] = host

    merged["collect_timeout"] = _coerce_timeout("collect_timeout", merged["collect_timeout"])
    merged["wallet_timeout"] = _coerce_timeout("wallet_timeout", merged["wallet_timeout"])

    level = str(merged["log_level"]).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"nível de log desconhecido: {merged['log_level']!r}")
    merged["log_level"] = level

    logger.debug("Configurações validadas e normalizadas")
    return merged


# Auxilia outros módulos; retorna configurações validadas ou padrão em caso de erro
def get_valid_settings(settings: dict | None = None) -> dict:
    """Retorna configurações validadas.

    Em caso de erro, retorna os valores padrão e registra aviso.
    """
    try:
        if settings is None:
            settings = load_settings()
        return validate_settings(settings)
    except (TypeError, ValueError, OSError) as exc:
        logger.warning("Falha ao validar settings; serão usados DEFAULT_SETTINGS: %s", exc)
        return validate_settings(DEFAULT_SETTINGS.copy())
