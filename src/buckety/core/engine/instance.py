# src/buckety/core/engine/instance.py
"""
Container Instance Manager do Buckety.

Este módulo conduz um container pelo ciclo de vida completo de um Step:

    Absent → Pulling? → Created → Copying → Started → (Executing)* → Stopping → Removed

Qualquer falha durante `Executing` vai direto para `Stopping → Removed` e
só então a exceção é propagada.

Decisões arquiteturais:
    - Toda chamada ao Docker SDK é bloqueante e roda em executor
      (`loop.run_in_executor`), então cada operação é um ponto de suspensão
    - O stream do exec é consumido um chunk por vez, com TTY alocado
      (stdout e stderr chegam intercalados em um único stream)
    - O progresso é reportado exclusivamente por eventos; o log técnico
      recebe apenas diagnósticos

Invariantes:
    - Um container é removido no máximo uma vez (`InstanceHandle.removal`);
      chamadas concorrentes aguardam a mesma remoção
    - `remove_instance` nunca levanta exceção (best-effort)
    - Nenhuma operação encerra o processo

Limites explícitos:
    - Não decide a ordem dos Steps
    - Não conhece artefatos
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, TypeVar

import requests
from docker.errors import DockerException
from docker.utils import parse_repository_tag

from buckety.core.errors import format_error, get_error_message
from buckety.core.events import (
    DockerAvailable,
    DockerChecking,
    DockerUnavailableEvent,
    Error,
    EventBus,
    ImagePulled,
    ImagePulling,
    InstanceCopied,
    InstanceCopying,
    InstanceCreated,
    InstanceCreating,
    InstanceStarted,
    InstanceStopped,
    InstanceStopping,
    ScriptComplete,
    ScriptError,
    ScriptOutput,
    ScriptStart,
)
from buckety.core.exceptions import (
    ContainerError,
    DockerUnavailable,
    ImagePullError,
    ScriptExecutionError,
    StreamError,
)
from buckety.core.paths import BUCKETY_DIRNAME, CONTAINER_WORKDIR, RunnerPaths

from .archive import pack_directory
from .terminal import LineBuffer

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOCKER_ERRORS = (DockerException, OSError, requests.exceptions.RequestException)

# Forçam saída colorida em ferramentas que detectam TTY/cores
TERMINAL_VARIABLES = ("TERM=xterm-256color", "FORCE_COLOR=1", "CLICOLOR_FORCE=1")

SHELL_WRAPPER = (
    'if command -v bash >/dev/null 2>&1; then exec bash -c "$0"; '
    'else exec sh -c "$0"; fi'
)

STOP_TIMEOUT = 2

_END = object()


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Executa uma chamada bloqueante do Docker SDK no executor padrão."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


def script_command(command: str) -> List[str]:
    return ["/bin/sh", "-c", SHELL_WRAPPER, command]


@dataclass
class InstanceHandle:
    """Handle opaco de um container criado para exatamente um Step."""

    container: Any
    image: str
    removal: Optional["asyncio.Future[None]"] = field(default=None, repr=False)

    @property
    def removed(self) -> bool:
        return self.removal is not None

    @property
    def id(self) -> str:
        return self.container.id

    @property
    def short_id(self) -> str:
        return self.container.short_id


class InstanceManager:
    """Orquestra um container por Step sobre um client do Docker SDK."""

    def __init__(self, client: Any, bus: EventBus, paths: RunnerPaths):
        self.client = client
        self.bus = bus
        self.paths = paths

    # ------------------------------------------------------------------
    # Daemon / imagens
    # ------------------------------------------------------------------

    async def check_availability(self) -> None:
        self.bus.emit(DockerChecking())
        try:
            await run_blocking(self.client.ping)
        except DOCKER_ERRORS as e:
            message = "Docker is not running, or you do not have permission to access it"
            self.bus.emit(DockerUnavailableEvent(error=message))
            raise DockerUnavailable(
                message,
                details={"reason": get_error_message(e)},
                hint="Start the Docker daemon and check the socket permissions.",
            ) from e
        self.bus.emit(DockerAvailable())

    async def is_image_cached(self, image: str) -> bool:
        images = await run_blocking(self.client.images.list)
        return any(image in (entry.tags or []) for entry in images)

    async def pull_image(self, image: str) -> None:
        self.bus.emit(ImagePulling(image=image))

        repository, tag = parse_repository_tag(image)
        try:
            progress = await run_blocking(
                self.client.api.pull, repository, tag=tag or "latest", stream=True, decode=True
            )
            chunks = iter(progress)
            while True:
                chunk = await run_blocking(next, chunks, _END)
                if chunk is _END:
                    break
                if isinstance(chunk, dict) and chunk.get("error"):
                    raise ImagePullError(
                        format_error("pulling image", chunk["error"]),
                        details={"image": image},
                    )
        except DOCKER_ERRORS as e:
            raise ImagePullError(
                format_error("pulling image", e),
                details={"image": image},
                hint="Check the image name and your registry credentials.",
            ) from e

        logger.debug("Pulled image %s", image)
        self.bus.emit(ImagePulled(image=image, cached=False))

    # ------------------------------------------------------------------
    # Ciclo de vida do container
    # ------------------------------------------------------------------

    async def create_instance(self, image: str, variables: List[str]) -> InstanceHandle:
        """
        Prepara o container de um Step: pull (se necessário), criação,
        cópia do diretório atual para `CONTAINER_WORKDIR` e start.

        Raises:
            ImagePullError: Falha de pull.
            ContainerError: Falha ao criar, copiar ou iniciar o container.
        """
        if await self.is_image_cached(image):
            self.bus.emit(ImagePulled(image=image, cached=True))
        else:
            await self.pull_image(image)

        self.bus.emit(InstanceCreating(image=image))
        try:
            container = await run_blocking(
                self.client.containers.create,
                image=image,
                working_dir=CONTAINER_WORKDIR,
                environment=[*variables, *TERMINAL_VARIABLES],
                tty=True,
                stdin_open=True,
                detach=True,
            )
        except DOCKER_ERRORS as e:
            raise ContainerError(
                format_error("creating container", e),
                details={"image": image},
            ) from e

        handle = InstanceHandle(container=container, image=image)
        logger.debug("Created container %s from %s", handle.id, image)
        self.bus.emit(InstanceCreated(id=handle.id, short_id=handle.short_id))

        try:
            self.bus.emit(InstanceCopying())
            data, files = await run_blocking(
                pack_directory, self.paths.cwd, exclude=(BUCKETY_DIRNAME,)
            )
            await run_blocking(container.put_archive, CONTAINER_WORKDIR, data)
            logger.debug("Copied %d files into %s", files, handle.short_id)
            self.bus.emit(InstanceCopied())

            await run_blocking(container.start)
        except DOCKER_ERRORS as e:
            await self.remove_instance(handle)
            raise ContainerError(
                format_error("preparing container", e),
                details={"container": handle.short_id},
            ) from e

        self.bus.emit(InstanceStarted())
        return handle

    async def remove_instance(self, handle: InstanceHandle) -> None:
        """
        Para e remove o container (best-effort, no máximo uma vez).

        A primeira chamada dispara a remoção; as demais (ex.: teardown da
        falha enquanto o cancelamento ainda remove o container) aguardam
        a mesma remoção até `instance:stopped`.
        """
        if handle.removal is None:
            handle.removal = asyncio.ensure_future(self._remove(handle))
        await asyncio.shield(handle.removal)

    async def _remove(self, handle: InstanceHandle) -> None:
        self.bus.emit(InstanceStopping())
        try:
            await run_blocking(handle.container.stop, timeout=STOP_TIMEOUT)
            await run_blocking(handle.container.remove, force=True)
        except DOCKER_ERRORS as e:
            logger.warning("Failed to remove container %s: %s", handle.short_id, e)
            self.bus.emit(Error(message=format_error("removing container", e)))
        else:
            logger.debug("Removed container %s", handle.short_id)
        self.bus.emit(InstanceStopped())

    # ------------------------------------------------------------------
    # Scripts
    # ------------------------------------------------------------------

    async def run_instance_script(
        self,
        handle: InstanceHandle,
        command: str,
        index: int,
        total: int,
    ) -> None:
        """
        Executa um comando no container e transmite a saída linha a linha.

        Raises:
            ScriptExecutionError: Exit code diferente de zero.
            StreamError: Falha de transporte no exec ou no stream.
        """
        self.bus.emit(
            ScriptStart(
                script=command,
                index=index,
                total=total,
                sanitized_script=command.replace("\n", "; "),
            )
        )

        api = self.client.api
        buffer = LineBuffer()
        try:
            created = await run_blocking(
                api.exec_create,
                handle.id,
                script_command(command),
                tty=True,
                stdout=True,
                stderr=True,
                workdir=CONTAINER_WORKDIR,
            )
            exec_id = created["Id"]

            stream = iter(await run_blocking(api.exec_start, exec_id, stream=True, tty=True))
            while True:
                chunk = await run_blocking(next, stream, _END)
                if chunk is _END:
                    break
                self._emit_lines(buffer.feed(chunk))
            self._emit_lines(buffer.flush())

            inspected = await run_blocking(api.exec_inspect, exec_id)
        except DOCKER_ERRORS as e:
            message = format_error("streaming script output", e)
            self.bus.emit(ScriptError(error=message))
            await self.remove_instance(handle)
            raise StreamError(message, details={"command": command}) from e

        raw_exit_code: Optional[int] = inspected.get("ExitCode")
        if raw_exit_code != 0:
            # sem ExitCode (exec interrompido) conta como falha genérica
            exit_code = 1 if raw_exit_code is None else raw_exit_code
            message = f'Script failed with code "{exit_code}"'
            self.bus.emit(ScriptError(error=message, exit_code=exit_code))
            await self.remove_instance(handle)
            raise ScriptExecutionError(
                message,
                details={"command": command},
                exit_code=exit_code,
            )

        self.bus.emit(ScriptComplete())

    def _emit_lines(self, lines: List[str]) -> None:
        for line in lines:
            self.bus.emit(ScriptOutput(text=line, stderr=False))
