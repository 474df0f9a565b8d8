"""
Projeção de estado do Buckety.

`project(state, event)` é um reducer puro sobre `PipelineEvent`;
`Projector` é o observador que o aplica a cada evento do canal.
"""

from .projector import (
    INITIAL_STATE,
    OutputKind,
    OutputLine,
    PipelineStatus,
    Projector,
    ProjectorState,
    ScriptPhase,
    ScriptSnapshot,
    ScriptStatus,
    SelectStep,
    Snapshot,
    StepSnapshot,
    StepStatus,
    project,
    reduce,
    select_step,
)

__all__ = [
    "INITIAL_STATE",
    "OutputKind",
    "OutputLine",
    "PipelineStatus",
    "Projector",
    "ProjectorState",
    "ScriptPhase",
    "ScriptSnapshot",
    "ScriptStatus",
    "SelectStep",
    "Snapshot",
    "StepSnapshot",
    "StepStatus",
    "project",
    "reduce",
    "select_step",
]
