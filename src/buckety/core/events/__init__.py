"""
Eventos do Buckety.

Este pacote define o contrato de comunicação entre o Engine e seus
observadores:

- **types**   → variantes de `PipelineEvent` e `CommandEvent`
- **wire**    → formato serializado estável (nomes de variantes e campos verbatim)
- **channel** → `EventChannel`, `Subscription` e `EventBus`

O Engine apenas emite eventos; nunca lê o estado projetado pelos
observadores.
"""

from .channel import EventBus, EventChannel, Subscription
from .types import (
    COMMAND_EVENT_TYPES,
    PIPELINE_EVENT_TYPES,
    ArtifactsGenerated,
    ArtifactsGenerating,
    ArtifactsUploaded,
    ArtifactsUploading,
    CancelPipeline,
    CommandEvent,
    DockerAvailable,
    DockerChecking,
    DockerUnavailableEvent,
    Error,
    ImagePulled,
    ImagePulling,
    Info,
    InstanceCopied,
    InstanceCopying,
    InstanceCreated,
    InstanceCreating,
    InstanceStarted,
    InstanceStopped,
    InstanceStopping,
    PipelineComplete,
    PipelineError,
    PipelineEvent,
    PipelineStart,
    PipelineSteps,
    RerunPipeline,
    RerunStep,
    ScriptComplete,
    ScriptError,
    ScriptOutput,
    ScriptStart,
    StepComplete,
    StepError,
    StepStart,
)
from .wire import command_from_dict, command_to_dict, event_from_dict, event_to_dict

__all__ = [
    "EventBus",
    "EventChannel",
    "Subscription",
    "PipelineEvent",
    "CommandEvent",
    "PIPELINE_EVENT_TYPES",
    "COMMAND_EVENT_TYPES",
    "PipelineStart",
    "PipelineSteps",
    "PipelineComplete",
    "PipelineError",
    "StepStart",
    "StepComplete",
    "StepError",
    "ScriptStart",
    "ScriptOutput",
    "ScriptComplete",
    "ScriptError",
    "DockerChecking",
    "DockerAvailable",
    "DockerUnavailableEvent",
    "ImagePulling",
    "ImagePulled",
    "InstanceCreating",
    "InstanceCreated",
    "InstanceCopying",
    "InstanceCopied",
    "InstanceStarted",
    "InstanceStopping",
    "InstanceStopped",
    "ArtifactsUploading",
    "ArtifactsUploaded",
    "ArtifactsGenerating",
    "ArtifactsGenerated",
    "Info",
    "Error",
    "RerunPipeline",
    "RerunStep",
    "CancelPipeline",
    "event_to_dict",
    "event_from_dict",
    "command_to_dict",
    "command_from_dict",
]
