# src/buckety/core/paths.py
"""
Layout de diretórios do Buckety.

Todos os caminhos são relativos ao diretório de invocação:

    .buckety/            → raiz de trabalho (limpa a cada processo)
    .buckety/tmp/        → extrações efêmeras (removidas após cada uso)
    .buckety/artifacts/  → artefatos acumulados entre Steps da mesma run

`CONTAINER_WORKDIR` é o diretório fixo dentro do container, compartilhado
por todos os componentes que copiam arquivos para dentro ou para fora.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

BUCKETY_DIRNAME = ".buckety"
TEMP_DIRNAME = "tmp"
ARTIFACTS_DIRNAME = "artifacts"

CONTAINER_WORKDIR = "/runner"


@dataclass(frozen=True)
class RunnerPaths:
    """Caminhos de trabalho no host, resolvidos a partir de um diretório base."""

    cwd: Path
    root: Path
    tmp: Path
    artifacts: Path

    @classmethod
    def from_cwd(cls, cwd: Optional[Union[str, Path]] = None) -> "RunnerPaths":
        base = Path(cwd) if cwd is not None else Path.cwd()
        base = base.resolve()
        root = base / BUCKETY_DIRNAME
        return cls(
            cwd=base,
            root=root,
            tmp=root / TEMP_DIRNAME,
            artifacts=root / ARTIFACTS_DIRNAME,
        )
