# src/buckety/core/events/types.py
"""
Tipos canônicos de eventos do Buckety.

Este módulo define os dois tipos-soma que trafegam pelo EventBus:

    - PipelineEvent → notificações de progresso (Engine → observadores)
    - CommandEvent  → pedidos de controle (observadores → Engine)

Cada variante é uma dataclass imutável com o payload estritamente
necessário. O nome canônico da variante (`pipeline:start`, `step:error`,
`rerun:step`, ...) é exposto no atributo de classe `type`, estável e
preservado verbatim no formato de fio (ver `wire`).

Agrupamento por assunto:
    - pipeline:{start,steps,complete,error}
    - step:{start,complete,error}
    - script:{start,output,complete,error}
    - docker:{checking,available,unavailable}
    - image:{pulling,pulled}
    - instance:{creating,created,copying,copied,started,stopping,stopped}
    - artifacts:{uploading,uploaded,generating,generated}
    - info / error genéricos

Invariantes:
    - Variantes são imutáveis (frozen) e comparáveis por valor
    - Coleções em payloads são tuplas
    - Nenhuma lógica de execução ou projeção vive neste módulo

Limites explícitos:
    - Não publica eventos
    - Não serializa eventos
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# pipeline:*
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PipelineStart:
    type: ClassVar[str] = "pipeline:start"
    name: Optional[str] = None


@dataclass(frozen=True)
class PipelineSteps:
    type: ClassVar[str] = "pipeline:steps"
    steps: Tuple[str, ...]


@dataclass(frozen=True)
class PipelineComplete:
    type: ClassVar[str] = "pipeline:complete"


@dataclass(frozen=True)
class PipelineError:
    type: ClassVar[str] = "pipeline:error"
    error: str


# ---------------------------------------------------------------------------
# step:*
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepStart:
    type: ClassVar[str] = "step:start"
    step_name: str
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class StepComplete:
    type: ClassVar[str] = "step:complete"
    step_name: str
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class StepError:
    type: ClassVar[str] = "step:error"
    step_name: str
    error: str
    timestamp: Optional[float] = None


# ---------------------------------------------------------------------------
# script:*
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScriptStart:
    """`sanitized_script` é o comando com quebras de linha achatadas para exibição."""

    type: ClassVar[str] = "script:start"
    script: str
    index: int
    total: int
    sanitized_script: str


@dataclass(frozen=True)
class ScriptOutput:
    type: ClassVar[str] = "script:output"
    text: str
    stderr: bool = False


@dataclass(frozen=True)
class ScriptComplete:
    type: ClassVar[str] = "script:complete"


@dataclass(frozen=True)
class ScriptError:
    type: ClassVar[str] = "script:error"
    error: str
    exit_code: Optional[int] = None


# ---------------------------------------------------------------------------
# docker:* / image:*
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DockerChecking:
    type: ClassVar[str] = "docker:checking"


@dataclass(frozen=True)
class DockerAvailable:
    type: ClassVar[str] = "docker:available"


@dataclass(frozen=True)
class DockerUnavailableEvent:
    type: ClassVar[str] = "docker:unavailable"
    error: str


@dataclass(frozen=True)
class ImagePulling:
    type: ClassVar[str] = "image:pulling"
    image: str


@dataclass(frozen=True)
class ImagePulled:
    type: ClassVar[str] = "image:pulled"
    image: str
    cached: bool = False


# ---------------------------------------------------------------------------
# instance:*
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InstanceCreating:
    type: ClassVar[str] = "instance:creating"
    image: str


@dataclass(frozen=True)
class InstanceCreated:
    type: ClassVar[str] = "instance:created"
    id: str
    short_id: str


@dataclass(frozen=True)
class InstanceCopying:
    type: ClassVar[str] = "instance:copying"


@dataclass(frozen=True)
class InstanceCopied:
    type: ClassVar[str] = "instance:copied"


@dataclass(frozen=True)
class InstanceStarted:
    type: ClassVar[str] = "instance:started"


@dataclass(frozen=True)
class InstanceStopping:
    type: ClassVar[str] = "instance:stopping"


@dataclass(frozen=True)
class InstanceStopped:
    type: ClassVar[str] = "instance:stopped"


# ---------------------------------------------------------------------------
# artifacts:*
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ArtifactsUploading:
    type: ClassVar[str] = "artifacts:uploading"


@dataclass(frozen=True)
class ArtifactsUploaded:
    type: ClassVar[str] = "artifacts:uploaded"
    count: int = 0
    path: Optional[str] = None


@dataclass(frozen=True)
class ArtifactsGenerating:
    type: ClassVar[str] = "artifacts:generating"
    patterns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ArtifactsGenerated:
    type: ClassVar[str] = "artifacts:generated"
    count: int = 0
    path: Optional[str] = None


# ---------------------------------------------------------------------------
# genéricos
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Info:
    type: ClassVar[str] = "info"
    message: str


@dataclass(frozen=True)
class Error:
    type: ClassVar[str] = "error"
    message: str


PipelineEvent = Union[
    PipelineStart,
    PipelineSteps,
    PipelineComplete,
    PipelineError,
    StepStart,
    StepComplete,
    StepError,
    ScriptStart,
    ScriptOutput,
    ScriptComplete,
    ScriptError,
    DockerChecking,
    DockerAvailable,
    DockerUnavailableEvent,
    ImagePulling,
    ImagePulled,
    InstanceCreating,
    InstanceCreated,
    InstanceCopying,
    InstanceCopied,
    InstanceStarted,
    InstanceStopping,
    InstanceStopped,
    ArtifactsUploading,
    ArtifactsUploaded,
    ArtifactsGenerating,
    ArtifactsGenerated,
    Info,
    Error,
]

PIPELINE_EVENT_TYPES: Tuple[type, ...] = PipelineEvent.__args__  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Comandos (observadores → Engine)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RerunPipeline:
    type: ClassVar[str] = "rerun:pipeline"


@dataclass(frozen=True)
class RerunStep:
    type: ClassVar[str] = "rerun:step"
    step_name: str


@dataclass(frozen=True)
class CancelPipeline:
    type: ClassVar[str] = "cancel:pipeline"


CommandEvent = Union[RerunPipeline, RerunStep, CancelPipeline]

COMMAND_EVENT_TYPES: Tuple[type, ...] = CommandEvent.__args__  # type: ignore[attr-defined]
