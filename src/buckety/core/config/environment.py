# src/buckety/core/config/environment.py
"""
Variáveis de ambiente injetadas nos containers do Buckety.

Fontes (em ordem de precedência crescente):
    - arquivo `.env` (lido com python-dotenv)
    - lista inline `KEY=VALUE,KEY2=VALUE2` (sobrescreve o arquivo)

Invariantes:
    - A ordem de inserção é preservada
    - Chaves vazias ou pares sem `=` são rejeitados

Limites explícitos:
    - Não expande referências (`$VAR`) nos valores inline
    - Não lê o ambiente do processo host
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from dotenv import dotenv_values

from .errors import InvalidVariablesError

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_inline_variables(variables: str) -> Dict[str, str]:
    """Converte `KEY=VALUE,KEY2=VALUE2` em dicionário ordenado."""
    parsed: Dict[str, str] = {}

    for chunk in variables.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue

        key, sep, value = chunk.partition("=")
        key = key.strip()
        if not sep or not _KEY_RE.match(key):
            raise InvalidVariablesError(
                f"Invalid variable definition: {chunk!r}",
                details={"variable": chunk},
                hint="Use the KEY=VALUE,KEY2=VALUE2 format.",
            )
        parsed[key] = value

    return parsed


def load_env_file(path: Union[str, Path]) -> Dict[str, str]:
    p = Path(path)
    if not p.is_file():
        raise InvalidVariablesError(
            f'Environment file "{p}" does not exist',
            details={"path": str(p)},
        )

    # dotenv devolve None para linhas `KEY` sem `=`
    values = {k: ("" if v is None else v) for k, v in dotenv_values(p).items()}
    logger.debug("Loaded %d variables from %s", len(values), p)
    return values


class Environment:
    """Conjunto resolvido de variáveis de ambiente de uma run."""

    def __init__(
        self,
        variables: Optional[str] = None,
        env_file: Optional[Union[str, Path]] = None,
    ):
        resolved: Dict[str, str] = {}
        if env_file:
            resolved.update(load_env_file(env_file))
        if variables:
            resolved.update(parse_inline_variables(variables))
        self._variables = resolved

    @property
    def variables(self) -> Dict[str, str]:
        return dict(self._variables)

    def get_container_format_variables(self) -> List[str]:
        return [f"{key}={value}" for key, value in self._variables.items()]

    def __len__(self) -> int:
        return len(self._variables)
