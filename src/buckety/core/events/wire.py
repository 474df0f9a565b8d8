# src/buckety/core/events/wire.py
"""
Formato de fio (serializado) de PipelineEvent e CommandEvent.

Consumidores existentes dependem dos nomes de variantes e campos de
payload exatamente como definidos abaixo; qualquer transporte (pub/sub
em processo, log JSON, UI remota) deve preservá-los verbatim.

Formato:
    - payload de dados         → {"type": t, "data": {<camelCase>: ...}}
    - erros (`*:error`,
      `docker:unavailable`)    → {"type": t, "error": "..."} (+ "data" quando houver)
    - info / error genéricos   → {"type": t, "message": "..."}
    - variantes sem payload    → {"type": t}

Invariantes:
    - `event_from_dict(event_to_dict(e)) == e` para toda variante
    - Tuplas são serializadas como listas
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Dict, Mapping

from . import types as t

_TOP_LEVEL_FIELDS = {"error", "message"}

_EVENTS_BY_TYPE: Dict[str, type] = {cls.type: cls for cls in t.PIPELINE_EVENT_TYPES}
_COMMANDS_BY_TYPE: Dict[str, type] = {cls.type: cls for cls in t.COMMAND_EVENT_TYPES}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _to_dict(obj: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": obj.type}
    data: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if isinstance(value, tuple):
            value = list(value)
        if f.name in _TOP_LEVEL_FIELDS:
            out[f.name] = value
        else:
            data[_camel(f.name)] = value
    if data:
        out["data"] = data
    return out


def _from_dict(registry: Dict[str, type], payload: Mapping[str, Any]) -> Any:
    kind = payload.get("type")
    cls = registry.get(kind)  # type: ignore[arg-type]
    if cls is None:
        raise ValueError(f"Unknown event type: {kind!r}")

    data = payload.get("data") or {}
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name in _TOP_LEVEL_FIELDS:
            if f.name in payload:
                kwargs[f.name] = payload[f.name]
            continue
        key = _camel(f.name)
        if key in data:
            value = data[key]
            if isinstance(value, list):
                value = tuple(value)
            kwargs[f.name] = value
    return cls(**kwargs)


def event_to_dict(event: t.PipelineEvent) -> Dict[str, Any]:
    return _to_dict(event)


def event_from_dict(payload: Mapping[str, Any]) -> t.PipelineEvent:
    return _from_dict(_EVENTS_BY_TYPE, payload)


def command_to_dict(command: t.CommandEvent) -> Dict[str, Any]:
    return _to_dict(command)


def command_from_dict(payload: Mapping[str, Any]) -> t.CommandEvent:
    return _from_dict(_COMMANDS_BY_TYPE, payload)
