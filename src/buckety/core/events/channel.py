# src/buckety/core/events/channel.py
"""
Canais de eventos publish/subscribe do Buckety.

Este módulo define o meio de comunicação entre o Engine e seus
observadores. Não contém lógica de pipeline: é apenas fan-out.

Componentes:
    - EventChannel → canal nomeado com publish/subscribe/unsubscribe
    - Subscription → handle opaco devolvido por `subscribe`
    - EventBus     → par de canais independentes (`pipeline`, `commands`)

Semântica de entrega:
    - síncrona, dentro da tarefa que publica
    - FIFO por canal: publicações feitas por um listener durante uma
      entrega são enfileiradas e entregues após a publicação corrente
    - sem persistência: quem assina depois não recebe eventos anteriores
    - sem garantia de ordem entre canais distintos

Decisões arquiteturais:
    - O bus é construído explicitamente pelo ponto de entrada e injetado
      no Engine e em cada consumidor (nenhum singleton global)
    - A falha de um listener é registrada em log e não interrompe a
      entrega aos demais nem o publicador
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Generic, TypeVar

from .types import CommandEvent, PipelineEvent

logger = logging.getLogger(__name__)

E = TypeVar("E")

Listener = Callable[[E], None]


@dataclass(frozen=True)
class Subscription:
    """Handle de assinatura (canal + identificador)."""

    channel: str
    id: int


class EventChannel(Generic[E]):
    """Canal nomeado com entrega síncrona e ordenada a todos os assinantes atuais."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: Dict[int, Listener] = {}
        self._ids = itertools.count(1)
        self._pending: Deque[E] = deque()
        self._delivering = False

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Subscription:
        sub_id = next(self._ids)
        self._listeners[sub_id] = listener
        return Subscription(channel=self.name, id=sub_id)

    def unsubscribe(self, handle: Subscription) -> None:
        if handle.channel != self.name:
            raise ValueError(
                f"Subscription belongs to channel '{handle.channel}', not '{self.name}'"
            )
        self._listeners.pop(handle.id, None)

    def publish(self, event: E) -> None:
        self._pending.append(event)
        if self._delivering:
            return

        self._delivering = True
        try:
            while self._pending:
                current = self._pending.popleft()
                for sub_id, listener in list(self._listeners.items()):
                    if sub_id not in self._listeners:
                        continue
                    try:
                        listener(current)
                    except Exception:
                        logger.exception(
                            "Listener %s on channel '%s' failed", sub_id, self.name
                        )
        finally:
            self._delivering = False


class EventBus:
    """Par de canais independentes: progresso do pipeline e comandos."""

    def __init__(self) -> None:
        self.pipeline: EventChannel[PipelineEvent] = EventChannel("pipeline")
        self.commands: EventChannel[CommandEvent] = EventChannel("command")

    def emit(self, event: PipelineEvent) -> None:
        self.pipeline.publish(event)

    def send_command(self, command: CommandEvent) -> None:
        self.commands.publish(command)
