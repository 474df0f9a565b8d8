# src/buckety/cli.py
"""
Ponto de entrada de linha de comando do Buckety.

Comandos:
    buckety run [PIPELINE] [-t TEMPLATE] [-v VARIABLES] [-e ENV_FILE] [--manifest PATH] [--verbose]
    buckety list [-t TEMPLATE]
    buckety --version

Decisões arquiteturais:
    - Este é o único lugar que decide o exit code do processo
    - O EventBus é construído aqui e injetado em Engine e observadores
    - Falhas durante a run já foram reportadas por eventos; aqui só viram
      exit code. Falhas pré-run (template, variáveis, cliente Docker) são
      impressas aqui
    - SIGINT publica `cancel:pipeline` no canal de comandos
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import docker
from docker.errors import DockerException
from rich.console import Console
from rich.markup import escape

from buckety import __version__
from buckety.console import ConsoleReporter
from buckety.core.config import (
    DEFAULT_PIPELINE_NAME,
    DEFAULT_TEMPLATE_PATH,
    Configuration,
    Environment,
)
from buckety.core.errors import (
    EXIT_SUCCESS,
    exception_to_error,
    exit_code_for,
    get_error_message,
)
from buckety.core.events import CancelPipeline, EventBus
from buckety.core.exceptions import ConfigurationError, DockerUnavailable
from buckety.core.engine import Engine
from buckety.core.paths import RunnerPaths
from buckety.core.traceability import create_manifest, save_manifest

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Any]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buckety",
        description="Run Bitbucket Pipelines locally in Docker containers",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a pipeline")
    run.add_argument("pipeline", nargs="?", default=DEFAULT_PIPELINE_NAME,
                     help="Pipeline name, e.g. default, branches:main, custom:deploy")
    run.add_argument("-t", "--template", default=DEFAULT_TEMPLATE_PATH,
                     help="Path to the pipelines template")
    run.add_argument("-v", "--variables", default=None,
                     help="Inline variables: KEY=VALUE,KEY2=VALUE2")
    run.add_argument("-e", "--env-file", default=None, help="Path to a .env file")
    run.add_argument("--manifest", default=None, help="Write a JSON run manifest to PATH")
    run.add_argument("--verbose", action="store_true", help="Enable debug logging")

    lst = sub.add_parser("list", help="List available pipelines")
    lst.add_argument("-t", "--template", default=DEFAULT_TEMPLATE_PATH,
                     help="Path to the pipelines template")

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _list_pipelines(args: argparse.Namespace, console: Console) -> int:
    configuration = Configuration.from_file(args.template)

    for name in configuration.get_available_pipelines():
        try:
            steps = escape(", ".join(configuration.get_pipeline_step_names(name)))
        except ConfigurationError as e:
            console.print(f"[bold]{name}[/bold] [red]({escape(e.message)})[/red]")
            continue
        console.print(f"[bold]{name}[/bold]: {steps}")

    return EXIT_SUCCESS


async def _drive(engine: Engine, bus: EventBus) -> None:
    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, bus.send_command, CancelPipeline())
        installed = True
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers are not supported here; Ctrl-C will not cancel")

    try:
        await engine.run()
    finally:
        # teardown agendado pelo cancelamento precisa terminar antes do loop fechar
        await engine.wait_idle()
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _run_pipeline(
    args: argparse.Namespace,
    console: Console,
    client_factory: ClientFactory,
) -> int:
    configuration = Configuration.from_file(args.template)
    pipeline = configuration.get_pipeline_by_name(args.pipeline)
    environment = Environment(variables=args.variables, env_file=args.env_file)

    try:
        client = client_factory()
    except DockerException as e:
        raise DockerUnavailable(
            "Docker is not running, or you do not have permission to access it",
            details={"reason": get_error_message(e)},
        ) from e

    bus = EventBus()
    ConsoleReporter(console).attach(bus)

    manifest = None
    if args.manifest:
        manifest = create_manifest(
            run_id=uuid.uuid4().hex,
            pipeline=pipeline.name,
            started_at=datetime.now(timezone.utc),
            buckety_version=__version__,
            template_hash=configuration.template_hash,
        )
        manifest.attach(bus)

    engine = Engine(
        pipeline=pipeline,
        bus=bus,
        client=client,
        environment=environment,
        default_image=configuration.get_default_image(),
        paths=RunnerPaths.from_cwd(),
    )

    try:
        asyncio.run(_drive(engine, bus))
    except Exception as e:
        # já reportado pelo canal de eventos
        logger.debug("Pipeline run failed", exc_info=True)
        return exit_code_for(exception_to_error(e))
    finally:
        if manifest is not None:
            save_manifest(manifest, Path(args.manifest))

    return EXIT_SUCCESS


def main(
    argv: Sequence[str] | None = None,
    *,
    client_factory: Optional[ClientFactory] = None,
    console: Optional[Console] = None,
) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    _configure_logging(getattr(args, "verbose", False))
    console = console or Console(highlight=False)

    try:
        if args.command == "list":
            return _list_pipelines(args, console)
        if args.command == "run":
            return _run_pipeline(args, console, client_factory or docker.from_env)
    except Exception as e:
        payload = exception_to_error(e)
        logger.debug("Command failed", exc_info=True)
        console.print(f"[bold red]Error:[/bold red] {escape(payload.message)}")
        if payload.hint:
            console.print(f"[dim]{escape(payload.hint)}[/dim]")
        return exit_code_for(payload)

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
