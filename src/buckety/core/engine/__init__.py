"""
# Engine Core (Buckety)

Execução sequencial de pipelines em containers Docker.

## Componentes

- **engine**    → `Engine` + `EngineRunState` (orquestra Steps e fases)
- **instance**  → `InstanceManager` (ciclo de vida de um container por Step)
- **artifacts** → `ArtifactsManager` (cópia de artefatos entre Steps)
- **terminal**  → limpeza de sequências de controle da saída com TTY
- **archive**   → empacotamento/extração tar usados pelos managers
"""

from .artifacts import ArtifactsManager
from .engine import Engine, EngineRunState
from .instance import InstanceHandle, InstanceManager
from .terminal import LineBuffer, clean_terminal_output

__all__ = [
    "Engine",
    "EngineRunState",
    "InstanceManager",
    "InstanceHandle",
    "ArtifactsManager",
    "LineBuffer",
    "clean_terminal_output",
]
