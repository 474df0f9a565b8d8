# tests/core/events/test_event_channel.py
"""
Testes do EventChannel / EventBus.

Os testes asseguram que:
- a entrega é síncrona e na ordem de publicação (FIFO)
- publicações feitas durante uma entrega são enfileiradas, não aninhadas
- `unsubscribe` interrompe a entrega e é idempotente
- a falha de um listener não interrompe os demais
- os canais de pipeline e de comandos são independentes

Limites explícitos:
    - Não valida semântica de pipeline (o canal é apenas fan-out)
"""

import pytest

try:
    from buckety.core.events import (
        CancelPipeline,
        EventBus,
        EventChannel,
        Info,
        StepStart,
    )
except Exception as e:
    EventBus = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if EventBus is None:
        pytest.fail(f"Missing events API. Import error: {_IMPORT_ERR}")


def test_delivery_is_fifo_to_all_subscribers():
    _require_imports()
    channel = EventChannel("pipeline")
    first, second = [], []
    channel.subscribe(first.append)
    channel.subscribe(second.append)

    for i in range(5):
        channel.publish(Info(message=str(i)))

    assert [e.message for e in first] == ["0", "1", "2", "3", "4"]
    assert first == second


def test_nested_publish_is_delivered_after_current_event():
    """
    Um listener que publica durante a entrega não pode fazer o evento novo
    "furar a fila": todos os listeners veem o evento corrente primeiro.
    """
    _require_imports()
    channel = EventChannel("pipeline")
    seen_by_a, seen_by_b = [], []

    def a(event):
        seen_by_a.append(event.message)
        if event.message == "outer":
            channel.publish(Info(message="inner"))

    channel.subscribe(a)
    channel.subscribe(lambda e: seen_by_b.append(e.message))

    channel.publish(Info(message="outer"))

    assert seen_by_a == ["outer", "inner"]
    assert seen_by_b == ["outer", "inner"]


def test_unsubscribe_stops_delivery_and_is_idempotent():
    _require_imports()
    channel = EventChannel("pipeline")
    received = []
    handle = channel.subscribe(received.append)

    channel.publish(Info(message="a"))
    channel.unsubscribe(handle)
    channel.unsubscribe(handle)
    channel.publish(Info(message="b"))

    assert [e.message for e in received] == ["a"]
    assert len(channel) == 0


def test_unsubscribe_with_foreign_handle_is_rejected():
    _require_imports()
    bus = EventBus()
    handle = bus.commands.subscribe(lambda c: None)

    with pytest.raises(ValueError):
        bus.pipeline.unsubscribe(handle)


def test_late_subscriber_does_not_see_past_events():
    _require_imports()
    channel = EventChannel("pipeline")
    channel.publish(Info(message="early"))

    received = []
    channel.subscribe(received.append)
    channel.publish(Info(message="late"))

    assert [e.message for e in received] == ["late"]


def test_failing_listener_does_not_break_delivery(caplog):
    _require_imports()
    channel = EventChannel("pipeline")
    received = []

    def broken(event):
        raise RuntimeError("listener bug")

    channel.subscribe(broken)
    channel.subscribe(received.append)

    channel.publish(StepStart(step_name="Build"))

    assert received == [StepStart(step_name="Build")]
    assert "listener bug" in caplog.text


def test_pipeline_and_command_channels_are_independent():
    _require_imports()
    bus = EventBus()
    events, commands = [], []
    bus.pipeline.subscribe(events.append)
    bus.commands.subscribe(commands.append)

    bus.emit(Info(message="x"))
    bus.send_command(CancelPipeline())

    assert events == [Info(message="x")]
    assert commands == [CancelPipeline()]
