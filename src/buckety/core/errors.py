"""
Buckety: Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do Buckety.
Erros são reportados uma única vez pelo canal de eventos e depois
propagados; a apresentação final (exit code, mensagem) é decidida
exclusivamente na camada de entrada (CLI).

Erros devem ser:

- explícitos
- serializáveis
- acionáveis
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import (
    ArtifactIOError,
    BucketyException,
    ConfigurationError,
    ContainerError,
    DockerUnavailable,
    ImagePullError,
    PipelineCancelledError,
    ScriptExecutionError,
    StreamError,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BucketyErrorPayload:
    """
    Payload canônico de erro do Buckety.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
DOCKER_UNAVAILABLE = "DOCKER_UNAVAILABLE"
IMAGE_PULL_ERROR = "IMAGE_PULL_ERROR"
CONTAINER_ERROR = "CONTAINER_ERROR"
SCRIPT_EXECUTION_ERROR = "SCRIPT_EXECUTION_ERROR"
STREAM_ERROR = "STREAM_ERROR"
ARTIFACT_IO_ERROR = "ARTIFACT_IO_ERROR"
PIPELINE_CANCELLED = "PIPELINE_CANCELLED"
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"

_ERROR_TYPES = (
    (ConfigurationError, CONFIGURATION_ERROR),
    (DockerUnavailable, DOCKER_UNAVAILABLE),
    (ImagePullError, IMAGE_PULL_ERROR),
    (ContainerError, CONTAINER_ERROR),
    (ScriptExecutionError, SCRIPT_EXECUTION_ERROR),
    (StreamError, STREAM_ERROR),
    (ArtifactIOError, ARTIFACT_IO_ERROR),
    (PipelineCancelledError, PIPELINE_CANCELLED),
)

# Exit codes decididos pela CLI
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2
EXIT_DOCKER_UNAVAILABLE = 3
EXIT_CANCELLED = 130

_EXIT_CODES = {
    CONFIGURATION_ERROR: EXIT_CONFIGURATION,
    DOCKER_UNAVAILABLE: EXIT_DOCKER_UNAVAILABLE,
    PIPELINE_CANCELLED: EXIT_CANCELLED,
}


def get_error_message(error: BaseException | Any) -> str:
    """Extrai uma mensagem limpa de um valor de erro arbitrário."""
    if isinstance(error, BaseException):
        return str(error).strip() or error.__class__.__name__
    return str(error)


def format_error(context: str, error: BaseException | Any) -> str:
    """Formata uma mensagem de erro com contexto (`Error <context>: "<msg>"`)."""
    return f'Error {context}: "{get_error_message(error)}"'


def error_type_for(exc: BaseException) -> str:
    for exc_class, code in _ERROR_TYPES:
        if isinstance(exc, exc_class):
            return code
    return ENGINE_EXECUTION_ERROR


def exception_to_error(exc: BaseException) -> BucketyErrorPayload:
    """Converte exceções em BucketyErrorPayload (serializável, acionável).

    Regras:
    - BucketyException: já vem com message/details/hint.
    - Outras exceções: encapsular como ENGINE_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, BucketyException):
        return BucketyErrorPayload(
            type=error_type_for(exc),
            message=exc.message or "Execution error",
            details=dict(exc.details or {}),
            hint=exc.hint,
        )

    return BucketyErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message=get_error_message(exc) or "Unexpected error during pipeline execution",
        details={"exception_class": exc.__class__.__name__},
        hint="Run again with --verbose and check the technical log",
    )


def exit_code_for(error: BucketyErrorPayload) -> int:
    return _EXIT_CODES.get(error.type, EXIT_FAILURE)
