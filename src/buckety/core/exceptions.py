"""
Buckety: Canonical Exceptions (v1)

Este módulo define as exceções tipadas internas do Buckety.

Objetivo:
- Permitir que Engine e managers levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para BucketyErrorPayload
- Permitir que a CLI decida o exit code a partir do tipo da falha

Regras:
- Nenhum componente abaixo da CLI encerra o processo.
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Não existem retries automáticos: toda falha é reportada e propagada.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, eq=False)
class BucketyException(Exception):
    """Base class para exceções internas do Buckety.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuração (pré-run)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ConfigurationError(BucketyException):
    """Template, pipeline ou Step inválido/ausente. Fatal, sem retry."""


# ---------------------------------------------------------------------------
# Runtime de containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class DockerUnavailable(BucketyException):
    """Daemon Docker inacessível. Aborta a run."""


@dataclass(frozen=True, eq=False)
class ImagePullError(BucketyException):
    """Falha de registry/pull de imagem. Fatal para a run."""


@dataclass(frozen=True, eq=False)
class ContainerError(BucketyException):
    """Falha ao criar, iniciar ou copiar arquivos para o container do Step."""


@dataclass(frozen=True, eq=False)
class ScriptExecutionError(BucketyException):
    """Script terminou com exit code diferente de zero."""

    exit_code: int = 1


@dataclass(frozen=True, eq=False)
class StreamError(BucketyException):
    """Falha de transporte no stream de saída do exec (pipe quebrado, daemon desconectado)."""


@dataclass(frozen=True, eq=False)
class ArtifactIOError(BucketyException):
    """Falha ao empacotar, extrair ou copiar artefatos."""


# ---------------------------------------------------------------------------
# Controle da run
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class PipelineCancelledError(BucketyException):
    """A run foi interrompida por um comando `cancel:pipeline`."""
