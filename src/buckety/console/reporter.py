# src/buckety/console/reporter.py
"""
Console Reporter (v1)

Objetivo:
- Renderizar eventos do canal de pipeline como linhas de terminal.
- Preservar as cores (SGR) da saída dos scripts via `Text.from_ansi`.
- NÃO altera eventos.
- NÃO lê o Snapshot do projetor.
- NÃO publica comandos.

Saídas:
- `rich.text.Text` por evento relevante (ou `None` para eventos silenciosos)
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from rich.console import Console
from rich.text import Text

from buckety.core.events import EventBus, Subscription
from buckety.core.events import types as ev


def _line(text: str, style: str = "") -> Text:
    return Text(text, style=style)


_RENDERERS: Dict[type, Callable[..., Optional[Text]]] = {
    ev.PipelineStart: lambda e: _line(f"Running pipeline {e.name or ''}".rstrip(), "bold"),
    ev.PipelineSteps: lambda e: _line(f"Steps: {', '.join(e.steps)}", "dim"),
    ev.PipelineComplete: lambda e: _line("Pipeline completed successfully", "bold green"),
    ev.PipelineError: lambda e: _line(f"Pipeline failed: {e.error}", "bold red"),
    ev.StepStart: lambda e: _line(f"▶ {e.step_name}", "bold cyan"),
    ev.StepComplete: lambda e: _line(f"✔ {e.step_name}", "green"),
    ev.StepError: lambda e: _line(f"✖ {e.step_name}: {e.error}", "red"),
    ev.ScriptStart: lambda e: _line(f"({e.index}/{e.total}) $ {e.sanitized_script}", "bold"),
    ev.ScriptOutput: lambda e: Text.from_ansi(e.text),
    ev.ScriptComplete: lambda e: None,
    ev.ScriptError: lambda e: _line(e.error, "red"),
    ev.DockerChecking: lambda e: None,
    ev.DockerAvailable: lambda e: None,
    ev.DockerUnavailableEvent: lambda e: _line(e.error, "bold red"),
    ev.ImagePulling: lambda e: _line(f"Pulling image {e.image}", "dim"),
    ev.ImagePulled: lambda e: _line(
        f"Image ready: {e.image}{' (cached)' if e.cached else ''}", "dim"
    ),
    ev.InstanceCreating: lambda e: None,
    ev.InstanceCreated: lambda e: _line(f"Container {e.short_id} created", "dim"),
    ev.InstanceCopying: lambda e: None,
    ev.InstanceCopied: lambda e: None,
    ev.InstanceStarted: lambda e: None,
    ev.InstanceStopping: lambda e: None,
    ev.InstanceStopped: lambda e: _line("Container removed", "dim"),
    ev.ArtifactsUploading: lambda e: None,
    ev.ArtifactsUploaded: lambda e: (
        _line(f"Uploaded {e.count} artifact(s)", "dim") if e.count else None
    ),
    ev.ArtifactsGenerating: lambda e: None,
    ev.ArtifactsGenerated: lambda e: (
        _line(f"Stored {e.count} artifact(s)", "dim") if e.count else None
    ),
    ev.Info: lambda e: _line(e.message, "yellow"),
    ev.Error: lambda e: _line(e.message, "red"),
}


def render_event(event: ev.PipelineEvent) -> Optional[Text]:
    """Converte um evento em uma linha renderizável (`None` = silencioso)."""
    renderer = _RENDERERS.get(type(event))
    if renderer is None:
        return None
    return renderer(event)


class ConsoleReporter:
    """Observador que imprime o progresso da run no terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False)

    def attach(self, bus: EventBus) -> Subscription:
        return bus.pipeline.subscribe(self)

    def __call__(self, event: ev.PipelineEvent) -> None:
        text = render_event(event)
        if text is not None:
            self.console.print(text)
