# src/buckety/core/traceability/manifest.py
"""
Manifest de execução: rastreabilidade de runs do Buckety.

O Manifest consolida, de forma determinística e auditável:
    - metadados da execução (run)
    - hash do template que originou a run (inputs)
    - estado incremental dos Steps (status, timestamps, duração, erro)
    - Event Log ordenado com todos os `PipelineEvent` serializados

Princípios fundamentais:
    - O Manifest é um observador: assina o canal de pipeline e nunca
      publica eventos nem influencia a execução
    - A ordem do Event Log reflete a ordem real de publicação
    - O Manifest é serializável e reconstruível (round-trip)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O timestamp de Steps vem do próprio evento quando presente; os
      demais usam o relógio injetável do Manifest
    - O formato de persistência é JSON determinístico (`sort_keys=True`)

Invariantes:
    - `events` é sempre uma lista ordenada
    - `steps` é sempre um dicionário indexado pelo nome de exibição do Step
    - `duration_ms` é sempre não negativo

Limites explícitos:
    - Não executa pipeline
    - Não realiza migração de versões de schema
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from buckety.core.events import (
    EventBus,
    PipelineComplete,
    PipelineError,
    PipelineEvent,
    StepComplete,
    StepError,
    StepStart,
    Subscription,
    event_to_dict,
)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    """Duração em milissegundos; valores negativos são truncados para zero."""
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class RunManifest:
    """
    Registro de uma execução de pipeline.

    Campos principais:
        - run: run_id, pipeline, started_at, buckety_version, status, error
        - inputs: template_hash
        - steps: estado incremental de cada Step
        - events: Event Log (wire format + timestamp)
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    steps: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    clock: Clock = field(default=_utc_now, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "steps": {k: dict(v) for k, v in self.steps.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            steps={k: dict(v) for k, v in (data.get("steps", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )

    # ------------------------------------------------------------------
    # Observador do canal de pipeline
    # ------------------------------------------------------------------

    def attach(self, bus: EventBus) -> Subscription:
        return bus.pipeline.subscribe(self.record)

    def record(self, event: PipelineEvent) -> None:
        """Registra um evento no Event Log e atualiza o estado do Step/run."""
        now = _ensure_tzaware_utc(self.clock())
        ts = self._event_time(event) or now

        entry = event_to_dict(event)
        entry["timestamp"] = _iso(ts)
        self.events.append(entry)

        if isinstance(event, StepStart):
            self.steps[event.step_name] = {
                "name": event.step_name,
                "status": "running",
                "started_at": _iso(ts),
            }
        elif isinstance(event, StepComplete):
            self._finish_step(event.step_name, "success", ts)
        elif isinstance(event, StepError):
            self._finish_step(event.step_name, "failed", ts, error=event.error)
        elif isinstance(event, PipelineComplete):
            self.run.update({"status": "success", "finished_at": _iso(ts)})
        elif isinstance(event, PipelineError):
            self.run.update({"status": "failed", "finished_at": _iso(ts), "error": event.error})

    def _event_time(self, event: PipelineEvent) -> Optional[datetime]:
        timestamp = getattr(event, "timestamp", None)
        if timestamp is None:
            return None
        return datetime.fromtimestamp(timestamp, timezone.utc)

    def _finish_step(
        self,
        name: str,
        status: str,
        ts: datetime,
        *,
        error: Optional[str] = None,
    ) -> None:
        s = self.steps.setdefault(name, {"name": name})
        started_iso = s.get("started_at")
        started = datetime.fromisoformat(started_iso) if started_iso else ts

        s.update(
            {
                "status": status,
                "finished_at": _iso(ts),
                "duration_ms": _ms_between(started, ts),
            }
        )
        if error is not None:
            s["error"] = error


def create_manifest(
    *,
    run_id: str,
    pipeline: str,
    started_at: datetime,
    buckety_version: str,
    template_hash: str,
    clock: Clock = _utc_now,
) -> RunManifest:
    """Cria o Manifest inicial de uma execução (Steps e eventos vazios)."""
    return RunManifest(
        run={
            "run_id": run_id,
            "pipeline": pipeline,
            "started_at": _iso(started_at),
            "buckety_version": buckety_version,
            "status": "running",
        },
        inputs={"template_hash": template_hash},
        clock=clock,
    )


def save_manifest(manifest: Union[RunManifest, Dict[str, Any]], path: Path) -> None:
    """
    Persiste o Manifest em JSON determinístico.

    Raises:
        OSError: Falha ao criar diretórios ou escrever o arquivo.
    """
    data = manifest.to_dict() if isinstance(manifest, RunManifest) else manifest
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")


def load_manifest(path: Path) -> RunManifest:
    data = json.loads(path.read_text(encoding="utf-8"))
    return RunManifest.from_dict(data)
