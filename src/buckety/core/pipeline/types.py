# src/buckety/core/pipeline/types.py
"""
Tipos canônicos do pipeline do Buckety.

Este módulo define o modelo imutável consumido pelo Engine:

    - Step     → unidade de trabalho executada em seu próprio container
    - Pipeline → sequência ordenada de Steps

Princípios fundamentais:
    - Tipos são criados pela camada de configuração antes da run
    - O Engine nunca muta Pipeline ou Step
    - A ordem dos Steps é fixada no carregamento e nunca reordenada

Invariantes:
    - `script` e `artifacts` são tuplas (imutáveis)
    - `name` e `image` são opcionais; a imagem cai para o default do template

Limites explícitos:
    - Não valida scripts vazios (o Engine reporta esse erro de configuração)
    - Não executa Steps
    - Não conhece Docker nem eventos
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Step:
    """
    Definição imutável de um Step.

    Campos:
        - name: nome de exibição (opcional)
        - image: imagem do container (opcional; fallback para o default do pipeline)
        - script: lista ordenada de comandos de shell
        - artifacts: padrões glob dos arquivos a extrair após os scripts
    """

    script: Tuple[str, ...]
    name: Optional[str] = None
    image: Optional[str] = None
    artifacts: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Pipeline:
    """Sequência ordenada e imutável de Steps."""

    name: str
    steps: Tuple[Step, ...]

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def step_names(self) -> List[str]:
        return [step_display_name(step, i) for i, step in enumerate(self.steps, start=1)]


def step_display_name(step: Step, index: int) -> str:
    """Nome de exibição do Step; `index` é 1-based."""
    return step.name or f"Step {index}"
