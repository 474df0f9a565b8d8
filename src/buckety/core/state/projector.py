# src/buckety/core/state/projector.py
"""
State Projector do Buckety.

Função pura `(state, event) → state'` que dobra o stream ordenado de
eventos em um `Snapshot` imutável, pronto para qualquer camada de UI.

Campos internos (além do `Snapshot` público):
    - active_step_index → Step que está recebendo saída agora
    - is_user_selected  → o observador navegou manualmente; desliga o auto-follow
    - current_phase     → fase corrente, usada por eventos sem fase explícita

Decisões arquiteturais:
    - Nenhuma I/O, nenhum relógio: timestamps vêm do próprio evento, então
      reprocessar o mesmo log produz exatamente o mesmo estado
    - Eventos de baixo nível (`docker:*`, `image:*`, `instance:creating`, ...)
      abrem preguiçosamente um script sintético de fase `setup`, uma única
      vez por Step
    - Saída sem Step ativo vai para `global_output`
    - Após `SelectStep`, `step:complete` não move mais a seleção até a
      próxima seleção explícita

Invariantes:
    - Um `ScriptSnapshot` passa de `running` para `success|failed` uma única vez
    - `StepSnapshot.output` só cresce durante a vida do Step
    - `selected_step_index` fica em `[0, len(steps))` quando há Steps

Limites explícitos:
    - Não publica eventos
    - Não conhece Docker nem o Engine
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

from buckety.core.events import types as ev


class PipelineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ScriptStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class ScriptPhase(str, Enum):
    SETUP = "setup"
    SCRIPT = "script"
    CLEANUP = "cleanup"
    ARTIFACTS_UPLOAD = "artifacts-upload"
    ARTIFACTS_DOWNLOAD = "artifacts-download"


class OutputKind(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    COMMAND = "command"


@dataclass(frozen=True)
class OutputLine:
    text: str
    kind: OutputKind


@dataclass(frozen=True)
class ScriptSnapshot:
    command: str
    phase: ScriptPhase
    status: ScriptStatus = ScriptStatus.RUNNING
    lines: Tuple[OutputLine, ...] = ()


@dataclass(frozen=True)
class StepSnapshot:
    name: str
    status: StepStatus = StepStatus.PENDING
    scripts: Tuple[ScriptSnapshot, ...] = ()
    output: Tuple[OutputLine, ...] = ()
    start_time: Optional[float] = None
    end_time: Optional[float] = None


@dataclass(frozen=True)
class Snapshot:
    pipeline_name: str
    status: PipelineStatus
    steps: Tuple[StepSnapshot, ...]
    selected_step_index: int
    global_output: Tuple[OutputLine, ...]


@dataclass(frozen=True)
class ProjectorState:
    """Estado completo do projetor: `Snapshot` público + campos internos."""

    pipeline_name: str = ""
    status: PipelineStatus = PipelineStatus.IDLE
    steps: Tuple[StepSnapshot, ...] = ()
    selected_step_index: int = 0
    global_output: Tuple[OutputLine, ...] = ()
    active_step_index: int = -1
    is_user_selected: bool = False
    current_phase: ScriptPhase = ScriptPhase.SETUP

    @property
    def snapshot(self) -> Snapshot:
        return Snapshot(
            pipeline_name=self.pipeline_name,
            status=self.status,
            steps=self.steps,
            selected_step_index=self.selected_step_index,
            global_output=self.global_output,
        )

    @property
    def active_step(self) -> Optional[StepSnapshot]:
        if 0 <= self.active_step_index < len(self.steps):
            return self.steps[self.active_step_index]
        return None


INITIAL_STATE = ProjectorState()


@dataclass(frozen=True)
class SelectStep:
    """Ação do observador: navegar manualmente até o Step `index`."""

    index: int


Action = Union[SelectStep, ev.PipelineEvent]


# ---------------------------------------------------------------------------
# Helpers (sempre devolvem um novo estado)
# ---------------------------------------------------------------------------

def _update_active(state: ProjectorState, fn: Callable[[StepSnapshot], StepSnapshot]) -> ProjectorState:
    step = state.active_step
    if step is None:
        return state
    steps = list(state.steps)
    steps[state.active_step_index] = fn(step)
    return replace(state, steps=tuple(steps))


def _update_named(
    state: ProjectorState,
    name: str,
    fn: Callable[[StepSnapshot], StepSnapshot],
) -> ProjectorState:
    return replace(state, steps=tuple(fn(s) if s.name == name else s for s in state.steps))


def _add_output(state: ProjectorState, text: str, kind: OutputKind) -> ProjectorState:
    line = OutputLine(text=text, kind=kind)

    if state.active_step is None:
        return replace(state, global_output=state.global_output + (line,))

    def append(step: StepSnapshot) -> StepSnapshot:
        scripts = step.scripts
        if scripts:
            last = scripts[-1]
            scripts = scripts[:-1] + (replace(last, lines=last.lines + (line,)),)
        return replace(step, output=step.output + (line,), scripts=scripts)

    return _update_active(state, append)


def _start_script(state: ProjectorState, command: str, phase: ScriptPhase) -> ProjectorState:
    state = replace(state, current_phase=phase)

    def open_script(step: StepSnapshot) -> StepSnapshot:
        return replace(
            step,
            output=step.output + (OutputLine(command, OutputKind.COMMAND),),
            scripts=step.scripts + (ScriptSnapshot(command=command, phase=phase),),
        )

    return _update_active(state, open_script)


def _complete_script(state: ProjectorState, success: bool) -> ProjectorState:
    status = ScriptStatus.SUCCESS if success else ScriptStatus.FAILED

    def close(step: StepSnapshot) -> StepSnapshot:
        if not step.scripts or step.scripts[-1].status != ScriptStatus.RUNNING:
            return step
        return replace(step, scripts=step.scripts[:-1] + (replace(step.scripts[-1], status=status),))

    return _update_active(state, close)


def _ensure_setup(state: ProjectorState) -> ProjectorState:
    step = state.active_step
    if step is None or any(s.phase == ScriptPhase.SETUP for s in step.scripts):
        return state
    return _start_script(state, "Setting up container", ScriptPhase.SETUP)


def _fail_active(state: ProjectorState) -> ProjectorState:
    if state.active_step is None:
        return state
    state = _update_active(state, lambda s: replace(s, status=StepStatus.FAILED))
    return replace(state, status=PipelineStatus.FAILED)


def _fail_running_scripts(step: StepSnapshot) -> StepSnapshot:
    scripts = tuple(
        replace(s, status=ScriptStatus.FAILED) if s.status == ScriptStatus.RUNNING else s
        for s in step.scripts
    )
    return replace(step, scripts=scripts)


# ---------------------------------------------------------------------------
# pipeline:*
# ---------------------------------------------------------------------------

def _pipeline_start(state: ProjectorState, event: ev.PipelineStart) -> ProjectorState:
    return replace(
        INITIAL_STATE,
        pipeline_name=event.name or state.pipeline_name,
        status=PipelineStatus.RUNNING,
    )


def _pipeline_steps(state: ProjectorState, event: ev.PipelineSteps) -> ProjectorState:
    return replace(state, steps=tuple(StepSnapshot(name=name) for name in event.steps))


def _pipeline_complete(state: ProjectorState, event: ev.PipelineComplete) -> ProjectorState:
    state = replace(state, status=PipelineStatus.SUCCESS)
    return _add_output(state, "Pipeline completed successfully", OutputKind.SUCCESS)


def _pipeline_error(state: ProjectorState, event: ev.PipelineError) -> ProjectorState:
    state = replace(state, status=PipelineStatus.FAILED)
    return _add_output(state, f"Error: {event.error}", OutputKind.ERROR)


# ---------------------------------------------------------------------------
# step:*
# ---------------------------------------------------------------------------

def _step_start(state: ProjectorState, event: ev.StepStart) -> ProjectorState:
    names = [s.name for s in state.steps]

    if event.step_name in names:
        active = names.index(event.step_name)
        steps = list(state.steps)
        steps[active] = replace(steps[active], status=StepStatus.RUNNING, start_time=event.timestamp)
    else:
        steps = list(state.steps) + [
            StepSnapshot(name=event.step_name, status=StepStatus.RUNNING, start_time=event.timestamp)
        ]
        active = len(steps) - 1

    return replace(
        state,
        steps=tuple(steps),
        active_step_index=active,
        selected_step_index=state.selected_step_index if state.is_user_selected else active,
        current_phase=ScriptPhase.SETUP,
    )


def _step_complete(state: ProjectorState, event: ev.StepComplete) -> ProjectorState:
    """
    Marca o Step como `success` e avança a seleção para o próximo Step.

    Só avança enquanto o observador não fixou um Step: uma seleção manual
    permanece até o próximo `pipeline:start`, mesmo que o Step fixado
    termine (por isso `is_user_selected` não é zerado aqui).
    """
    names = [s.name for s in state.steps]
    completed = names.index(event.step_name) if event.step_name in names else -1

    state = _update_named(
        state,
        event.step_name,
        lambda s: replace(s, status=StepStatus.SUCCESS, end_time=event.timestamp),
    )

    if (
        not state.is_user_selected
        and completed != -1
        and completed == state.selected_step_index
        and completed < len(state.steps) - 1
    ):
        state = replace(state, selected_step_index=completed + 1)

    return state


def _step_error(state: ProjectorState, event: ev.StepError) -> ProjectorState:
    state = _update_named(
        state,
        event.step_name,
        lambda s: _fail_running_scripts(
            replace(s, status=StepStatus.FAILED, end_time=event.timestamp)
        ),
    )
    state = replace(state, status=PipelineStatus.FAILED)
    return _add_output(state, f"Error: {event.error}", OutputKind.ERROR)


# ---------------------------------------------------------------------------
# script:*
# ---------------------------------------------------------------------------

def _script_start(state: ProjectorState, event: ev.ScriptStart) -> ProjectorState:
    return _start_script(state, event.sanitized_script, ScriptPhase.SCRIPT)


def _script_output(state: ProjectorState, event: ev.ScriptOutput) -> ProjectorState:
    kind = OutputKind.STDERR if event.stderr else OutputKind.STDOUT
    return _add_output(state, event.text, kind)


def _script_complete(state: ProjectorState, event: ev.ScriptComplete) -> ProjectorState:
    return _complete_script(state, True)


def _script_error(state: ProjectorState, event: ev.ScriptError) -> ProjectorState:
    state = _complete_script(state, False)
    state = _add_output(state, event.error, OutputKind.ERROR)
    return _fail_active(state)


# ---------------------------------------------------------------------------
# docker:* / image:* / instance:*
# ---------------------------------------------------------------------------

def _docker_checking(state: ProjectorState, event: ev.DockerChecking) -> ProjectorState:
    return _add_output(_ensure_setup(state), "Checking Docker availability...", OutputKind.INFO)


def _docker_available(state: ProjectorState, event: ev.DockerAvailable) -> ProjectorState:
    return _add_output(state, "Docker is available", OutputKind.SUCCESS)


def _docker_unavailable(state: ProjectorState, event: ev.DockerUnavailableEvent) -> ProjectorState:
    state = _add_output(state, f"Docker is not available: {event.error}", OutputKind.ERROR)
    state = _complete_script(state, False)
    return _fail_active(state)


def _image_pulling(state: ProjectorState, event: ev.ImagePulling) -> ProjectorState:
    return _add_output(_ensure_setup(state), f"Pulling image: {event.image}", OutputKind.INFO)


def _image_pulled(state: ProjectorState, event: ev.ImagePulled) -> ProjectorState:
    suffix = " (cached)" if event.cached else ""
    return _add_output(_ensure_setup(state), f"Image ready: {event.image}{suffix}", OutputKind.SUCCESS)


def _instance_creating(state: ProjectorState, event: ev.InstanceCreating) -> ProjectorState:
    return _add_output(_ensure_setup(state), f"Creating container from {event.image}", OutputKind.INFO)


def _instance_created(state: ProjectorState, event: ev.InstanceCreated) -> ProjectorState:
    return _add_output(_ensure_setup(state), f"Container created: {event.short_id}", OutputKind.INFO)


def _instance_copying(state: ProjectorState, event: ev.InstanceCopying) -> ProjectorState:
    return _add_output(_ensure_setup(state), "Copying files to container", OutputKind.INFO)


def _instance_copied(state: ProjectorState, event: ev.InstanceCopied) -> ProjectorState:
    return _add_output(_ensure_setup(state), "Files copied to container", OutputKind.INFO)


def _instance_started(state: ProjectorState, event: ev.InstanceStarted) -> ProjectorState:
    state = _add_output(_ensure_setup(state), "Container started", OutputKind.SUCCESS)
    return _complete_script(state, True)


def _instance_stopping(state: ProjectorState, event: ev.InstanceStopping) -> ProjectorState:
    state = _start_script(state, "Cleaning up", ScriptPhase.CLEANUP)
    return _add_output(state, "Stopping container", OutputKind.INFO)


def _instance_stopped(state: ProjectorState, event: ev.InstanceStopped) -> ProjectorState:
    state = _add_output(state, "Container stopped", OutputKind.INFO)
    return _complete_script(state, True)


# ---------------------------------------------------------------------------
# artifacts:*
# ---------------------------------------------------------------------------

def _artifacts_uploading(state: ProjectorState, event: ev.ArtifactsUploading) -> ProjectorState:
    return _start_script(state, "Uploading artifacts", ScriptPhase.ARTIFACTS_UPLOAD)


def _artifacts_uploaded(state: ProjectorState, event: ev.ArtifactsUploaded) -> ProjectorState:
    state = _add_output(state, f"Uploaded {event.count} artifact(s)", OutputKind.SUCCESS)
    return _complete_script(state, True)


def _artifacts_generating(state: ProjectorState, event: ev.ArtifactsGenerating) -> ProjectorState:
    state = _start_script(state, "Downloading artifacts", ScriptPhase.ARTIFACTS_DOWNLOAD)
    if event.patterns:
        state = _add_output(state, f"Patterns: {', '.join(event.patterns)}", OutputKind.INFO)
    return state


def _artifacts_generated(state: ProjectorState, event: ev.ArtifactsGenerated) -> ProjectorState:
    state = _add_output(state, f"Stored {event.count} artifact(s)", OutputKind.SUCCESS)
    return _complete_script(state, True)


# ---------------------------------------------------------------------------
# genéricos
# ---------------------------------------------------------------------------

def _info(state: ProjectorState, event: ev.Info) -> ProjectorState:
    return _add_output(state, event.message, OutputKind.INFO)


def _error(state: ProjectorState, event: ev.Error) -> ProjectorState:
    return _add_output(state, event.message, OutputKind.ERROR)


_HANDLERS: Dict[type, Callable[[ProjectorState, ev.PipelineEvent], ProjectorState]] = {
    ev.PipelineStart: _pipeline_start,
    ev.PipelineSteps: _pipeline_steps,
    ev.PipelineComplete: _pipeline_complete,
    ev.PipelineError: _pipeline_error,
    ev.StepStart: _step_start,
    ev.StepComplete: _step_complete,
    ev.StepError: _step_error,
    ev.ScriptStart: _script_start,
    ev.ScriptOutput: _script_output,
    ev.ScriptComplete: _script_complete,
    ev.ScriptError: _script_error,
    ev.DockerChecking: _docker_checking,
    ev.DockerAvailable: _docker_available,
    ev.DockerUnavailableEvent: _docker_unavailable,
    ev.ImagePulling: _image_pulling,
    ev.ImagePulled: _image_pulled,
    ev.InstanceCreating: _instance_creating,
    ev.InstanceCreated: _instance_created,
    ev.InstanceCopying: _instance_copying,
    ev.InstanceCopied: _instance_copied,
    ev.InstanceStarted: _instance_started,
    ev.InstanceStopping: _instance_stopping,
    ev.InstanceStopped: _instance_stopped,
    ev.ArtifactsUploading: _artifacts_uploading,
    ev.ArtifactsUploaded: _artifacts_uploaded,
    ev.ArtifactsGenerating: _artifacts_generating,
    ev.ArtifactsGenerated: _artifacts_generated,
    ev.Info: _info,
    ev.Error: _error,
}


def project(state: ProjectorState, event: ev.PipelineEvent) -> ProjectorState:
    """Aplica um `PipelineEvent` ao estado. Levanta `TypeError` para tipos desconhecidos."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported pipeline event: {type(event).__name__}")
    return handler(state, event)


def select_step(state: ProjectorState, index: int) -> ProjectorState:
    clamped = max(0, min(index, len(state.steps) - 1))
    return replace(state, selected_step_index=clamped, is_user_selected=True)


def reduce(state: ProjectorState, action: Action) -> ProjectorState:
    if isinstance(action, SelectStep):
        return select_step(state, action.index)
    return project(state, action)


class Projector:
    """Observador do canal de pipeline que mantém o estado projetado corrente."""

    def __init__(self, state: ProjectorState = INITIAL_STATE):
        self.state = state

    def __call__(self, event: ev.PipelineEvent) -> None:
        self.state = project(self.state, event)

    def select(self, index: int) -> None:
        self.state = select_step(self.state, index)

    @property
    def snapshot(self) -> Snapshot:
        return self.state.snapshot
