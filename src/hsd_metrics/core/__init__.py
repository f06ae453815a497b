"""Pacote core: parsing de argumentos do entrypoint.

Re-exports para importações curtas.
"""

from .args import get_log_config, parse_args

__all__ = ["get_log_config", "parse_args"]
