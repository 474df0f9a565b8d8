# src/buckety/core/engine/engine.py
"""
Engine de execução de pipelines do Buckety.

Máquina de estados da run:

    Idle → Running → {Success | Failed}

Dentro de `Running`, os Steps rodam estritamente em ordem e cada Step
percorre as fases:

    Setup (docker-check único + pull + criação + cópia)
      → Artifacts-Upload → Scripts (sequenciais) → Artifacts-Download → Cleanup

Decisões arquiteturais:
    - O Engine só emite eventos; nunca lê o estado projetado pelos observadores
    - A disponibilidade do Docker é verificada uma vez por run
      (`EngineRunState.docker_checked`)
    - A primeira falha encerra a run: nenhum Step posterior é iniciado
    - Toda falha dentro de um Step derruba o container em voo (best-effort)
      antes de propagar
    - Cancelamento é cooperativo: checado antes do Setup de cada Step; um
      container em voo é derrubado pelo mesmo caminho de teardown das falhas

Invariantes:
    - `is_running` é limpo em todos os caminhos de saída
    - Chamadas reentrantes de `run()` são rejeitadas com `info` (nunca enfileiradas)
    - A assinatura do canal de comandos é instalada uma única vez, na construção

Limites explícitos:
    - Não encerra o processo (exit code é decisão da CLI)
    - Não executa Steps em paralelo
    - Não faz retries
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Coroutine, List, Optional, Set, Tuple

from buckety.core.config.environment import Environment
from buckety.core.config.loader import DEFAULT_IMAGE
from buckety.core.errors import get_error_message
from buckety.core.events import (
    CancelPipeline,
    CommandEvent,
    Error,
    EventBus,
    Info,
    PipelineComplete,
    PipelineError,
    PipelineStart,
    PipelineSteps,
    RerunPipeline,
    RerunStep,
    StepComplete,
    StepError,
    StepStart,
)
from buckety.core.exceptions import ConfigurationError, PipelineCancelledError
from buckety.core.paths import RunnerPaths
from buckety.core.pipeline.types import Pipeline, Step, step_display_name

from .artifacts import ArtifactsManager
from .instance import InstanceHandle, InstanceManager

logger = logging.getLogger(__name__)


@dataclass
class EngineRunState:
    """Flags da run corrente; pertencem exclusivamente ao Engine."""

    docker_checked: bool = False
    is_running: bool = False
    cancel_requested: bool = False


class Engine:
    """Orquestrador canônico do Buckety (Steps sequenciais em containers)."""

    def __init__(
        self,
        *,
        pipeline: Pipeline,
        bus: EventBus,
        client: Any,
        environment: Optional[Environment] = None,
        default_image: str = DEFAULT_IMAGE,
        paths: Optional[RunnerPaths] = None,
    ):
        self.pipeline = pipeline
        self.bus = bus
        self.environment = environment or Environment()
        self.default_image = default_image
        self.paths = paths or RunnerPaths.from_cwd()

        self.instances = InstanceManager(client, bus, self.paths)
        self.artifacts = ArtifactsManager(client, bus, self.paths)

        self.state = EngineRunState()
        self._active: Optional[InstanceHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._subscription = bus.commands.subscribe(self._on_command)

    # ------------------------------------------------------------------
    # Operações públicas
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """
        Executa todos os Steps do pipeline, em ordem.

        Raises:
            BucketyException: A falha que encerrou a run (já reportada por eventos).
        """
        steps = list(enumerate(self.pipeline.steps, start=1))
        await self._execute(steps)

    async def rerun_pipeline(self) -> None:
        try:
            await self.run()
        except Exception as e:
            # já reportado via eventos
            logger.debug("Pipeline rerun failed: %s", e)

    async def rerun_step(self, step_name: str) -> None:
        """
        Reexecuta apenas o Step `step_name`.

        Raises:
            ConfigurationError: Se o Step não existir no pipeline.
        """
        if self.state.is_running:
            self.bus.emit(Info(message="Pipeline is already running"))
            return

        names = self.pipeline.step_names()
        if step_name not in names:
            error = ConfigurationError(
                f'Step "{step_name}" does not exist',
                details={"step": step_name, "available": names},
            )
            self.bus.emit(Error(message=error.message))
            raise error

        index = names.index(step_name) + 1
        await self._execute([(index, self.pipeline.steps[index - 1])])

    def cancel(self) -> None:
        if not self.state.is_running:
            self.bus.emit(Info(message="No pipeline is running"))
            return
        if self.state.cancel_requested:
            return

        self.state.cancel_requested = True
        self.bus.emit(Info(message="Cancelling pipeline..."))

        if self._active is not None:
            self._schedule(self.instances.remove_instance(self._active))

    async def wait_idle(self) -> None:
        """Aguarda as tarefas disparadas por comandos (reruns, teardown de cancelamento)."""
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------

    async def _execute(self, steps: List[Tuple[int, Step]]) -> None:
        if self.state.is_running:
            self.bus.emit(Info(message="Pipeline is already running"))
            return

        self.state = EngineRunState(is_running=True)
        try:
            self.bus.emit(PipelineStart(name=self.pipeline.name))
            self.bus.emit(PipelineSteps(steps=tuple(self.pipeline.step_names())))

            for index, step in steps:
                await self._run_step(step, index)

            self.bus.emit(PipelineComplete())
        except Exception as e:
            self.bus.emit(PipelineError(error=get_error_message(e)))
            raise
        finally:
            self.state.is_running = False
            self._active = None

    async def _run_step(self, step: Step, index: int) -> None:
        name = step_display_name(step, index)

        if self.state.cancel_requested:
            raise self._cancelled_error(name)

        self.bus.emit(StepStart(step_name=name, timestamp=time.time()))

        if not step.script:
            error = ConfigurationError(
                f'Step "{name}" has no script',
                details={"step": name},
                hint="Add at least one command to the step script.",
            )
            self.bus.emit(StepError(step_name=name, error=error.message, timestamp=time.time()))
            raise error

        handle: Optional[InstanceHandle] = None
        try:
            if not self.state.docker_checked:
                await self.instances.check_availability()
                self.state.docker_checked = True

            handle = await self.instances.create_instance(
                step.image or self.default_image,
                self.environment.get_container_format_variables(),
            )
            self._active = handle

            await self.artifacts.upload_artifacts(handle)

            total = len(step.script)
            for position, command in enumerate(step.script, start=1):
                await self.instances.run_instance_script(handle, command, position, total)

            await self.artifacts.generate_artifacts(handle, step.artifacts)
        except Exception as e:
            if handle is not None:
                await self.instances.remove_instance(handle)
            self._active = None

            failure = self._cancelled_error(name) if self.state.cancel_requested else e
            self.bus.emit(
                StepError(step_name=name, error=get_error_message(failure), timestamp=time.time())
            )
            if failure is e:
                raise
            raise failure from e

        await self.instances.remove_instance(handle)
        self._active = None
        self.bus.emit(StepComplete(step_name=name, timestamp=time.time()))

    def _cancelled_error(self, step_name: str) -> PipelineCancelledError:
        return PipelineCancelledError("Pipeline cancelled", details={"step": step_name})

    # ------------------------------------------------------------------
    # Comandos
    # ------------------------------------------------------------------

    def _on_command(self, command: CommandEvent) -> None:
        if isinstance(command, CancelPipeline):
            self.cancel()
        elif isinstance(command, RerunPipeline):
            self._schedule(self.rerun_pipeline())
        elif isinstance(command, RerunStep):
            self._schedule(self._rerun_step_quietly(command.step_name))
        else:
            logger.warning("Ignoring unknown command %r", command)

    async def _rerun_step_quietly(self, step_name: str) -> None:
        try:
            await self.rerun_step(step_name)
        except Exception as e:
            # já reportado via eventos
            logger.debug("Step rerun failed: %s", e)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            self.bus.emit(Error(message="Commands require a running event loop"))
            return

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
