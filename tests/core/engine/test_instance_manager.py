# tests/core/engine/test_instance_manager.py
"""
Testes do InstanceManager (ciclo de vida do container de um Step).

Os testes usam o client Docker falso de `tests/fakes.py` e asseguram que:
- a disponibilidade do Docker é reportada por eventos e exceção tipada
- imagens em cache nunca são baixadas; as demais são baixadas antes da criação
- o diretório atual (exceto `.buckety/`) é copiado para `/runner`
- a saída dos scripts é entregue linha a linha, já limpa
- exit code diferente de zero e falhas de stream derrubam o container
- a remoção acontece no máximo uma vez e nunca levanta exceção
"""

import asyncio

import pytest

from fakes import api_error

try:
    from buckety.core.engine import InstanceManager
    from buckety.core.events import (
        DockerAvailable,
        DockerUnavailableEvent,
        Error,
        ImagePulled,
        ImagePulling,
        ScriptError,
        ScriptOutput,
        ScriptStart,
    )
    from buckety.core.exceptions import (
        DockerUnavailable,
        ImagePullError,
        ScriptExecutionError,
        StreamError,
    )
except Exception as e:
    InstanceManager = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if InstanceManager is None:
        pytest.fail(f"Missing InstanceManager. Import error: {_IMPORT_ERR}")


@pytest.fixture
def manager(client, bus, paths):
    _require_imports()
    return InstanceManager(client, bus, paths)


@pytest.mark.asyncio
async def test_availability_success(manager, recorder):
    await manager.check_availability()

    assert recorder.types == ["docker:checking", "docker:available"]
    assert recorder.of(DockerAvailable)


@pytest.mark.asyncio
async def test_availability_failure_is_reported_and_typed(manager, client, recorder):
    client.ping_error = api_error("socket refused")

    with pytest.raises(DockerUnavailable) as exc:
        await manager.check_availability()

    assert recorder.types == ["docker:checking", "docker:unavailable"]
    assert "Docker is not running" in recorder.of(DockerUnavailableEvent)[0].error
    assert "socket refused" in exc.value.details["reason"]


@pytest.mark.asyncio
async def test_cached_image_is_never_pulled(manager, client, recorder):
    handle = await manager.create_instance("atlassian/default-image:4", [])

    assert client.pulls == []
    assert recorder.of(ImagePulled) == [ImagePulled(image="atlassian/default-image:4", cached=True)]
    assert handle.image == "atlassian/default-image:4"


@pytest.mark.asyncio
async def test_missing_image_is_pulled_before_create(manager, client, recorder):
    await manager.create_instance("python:3.12", [])

    assert client.pulls == ["python:3.12"]
    assert recorder.types[:3] == ["image:pulling", "image:pulled", "instance:creating"]
    assert recorder.of(ImagePulling) == [ImagePulling(image="python:3.12")]
    assert recorder.of(ImagePulled) == [ImagePulled(image="python:3.12", cached=False)]


@pytest.mark.asyncio
async def test_untagged_image_pulls_latest(manager, client):
    await manager.create_instance("alpine", [])

    assert client.pulls == ["alpine:latest"]


@pytest.mark.asyncio
async def test_pull_error_raises_and_creates_nothing(manager, client):
    client.pull_error = "manifest unknown"

    with pytest.raises(ImagePullError) as exc:
        await manager.create_instance("nope:1", [])

    assert "manifest unknown" in exc.value.message
    assert client.created == []


@pytest.mark.asyncio
async def test_create_copies_project_and_sets_environment(manager, client, recorder, paths):
    paths.root.mkdir()
    (paths.root / "stale.txt").write_text("x", encoding="utf-8")

    handle = await manager.create_instance("atlassian/default-image:4", ["NODE_ENV=test"])

    container = client.created[0]
    assert container.started
    assert set(container.files) == {"/runner/README.md", "/runner/src/app.py"}
    assert container.options["working_dir"] == "/runner"
    assert container.options["tty"] is True
    assert container.options["environment"][0] == "NODE_ENV=test"
    assert "TERM=xterm-256color" in container.options["environment"]
    assert handle.short_id == container.short_id
    assert recorder.types == [
        "image:pulled",
        "instance:creating",
        "instance:created",
        "instance:copying",
        "instance:copied",
        "instance:started",
    ]


@pytest.mark.asyncio
async def test_script_output_is_streamed_line_by_line(manager, client, recorder):
    client.script(
        "npm test",
        output=[b"\x1b[32mPASS\x1b[0m src/a", b".test.js\r\nTests: 1 passed\r\n", b"Done"],
    )
    handle = await manager.create_instance("atlassian/default-image:4", [])

    await manager.run_instance_script(handle, "npm test", 1, 1)

    assert [e.text for e in recorder.of(ScriptOutput)] == [
        "\x1b[32mPASS\x1b[0m src/a.test.js",
        "Tests: 1 passed",
        "Done",
    ]
    assert recorder.types[-1] == "script:complete"
    assert client.commands == ["npm test"]


@pytest.mark.asyncio
async def test_script_start_carries_index_and_sanitized_command(manager, recorder):
    handle = await manager.create_instance("atlassian/default-image:4", [])

    await manager.run_instance_script(handle, "echo a\necho b", 2, 3)

    start = recorder.of(ScriptStart)[0]
    assert (start.index, start.total) == (2, 3)
    assert start.sanitized_script == "echo a; echo b"


@pytest.mark.asyncio
async def test_non_zero_exit_removes_container_and_raises(manager, client, recorder):
    handle = await manager.create_instance("atlassian/default-image:4", [])

    with pytest.raises(ScriptExecutionError) as exc:
        await manager.run_instance_script(handle, "exit 3", 1, 1)

    assert exc.value.exit_code == 3
    assert recorder.of(ScriptError) == [ScriptError(error='Script failed with code "3"', exit_code=3)]
    assert recorder.types[-2:] == ["instance:stopping", "instance:stopped"]
    assert handle.removed
    assert client.created[0].removed


@pytest.mark.asyncio
async def test_stream_failure_removes_container_and_raises(manager, client, recorder):
    handle = await manager.create_instance("atlassian/default-image:4", [])
    client.stream_error = api_error("connection reset")

    with pytest.raises(StreamError):
        await manager.run_instance_script(handle, "make", 1, 1)

    assert "connection reset" in recorder.of(ScriptError)[0].error
    assert client.created[0].removed


@pytest.mark.asyncio
async def test_remove_happens_at_most_once(manager, client, recorder):
    handle = await manager.create_instance("atlassian/default-image:4", [])

    await manager.remove_instance(handle)
    await manager.remove_instance(handle)

    container = client.created[0]
    assert container.remove_calls == 1
    assert container.stop_calls == 1
    assert recorder.types.count("instance:stopped") == 1


@pytest.mark.asyncio
async def test_remove_failure_is_reported_not_raised(manager, client, recorder):
    handle = await manager.create_instance("atlassian/default-image:4", [])
    client.remove_error = api_error("container is busy")

    await manager.remove_instance(handle)

    assert recorder.types[-3:] == ["instance:stopping", "error", "instance:stopped"]
    assert "container is busy" in recorder.of(Error)[0].message


@pytest.mark.asyncio
async def test_missing_exit_code_is_reported_as_one(manager, client, recorder):
    client.script("make", exit_code=None)
    handle = await manager.create_instance("atlassian/default-image:4", [])

    with pytest.raises(ScriptExecutionError) as exc:
        await manager.run_instance_script(handle, "make", 1, 1)

    assert exc.value.exit_code == 1
    assert exc.value.message == 'Script failed with code "1"'
    assert recorder.of(ScriptError) == [ScriptError(error='Script failed with code "1"', exit_code=1)]


@pytest.mark.asyncio
async def test_second_remove_waits_for_the_removal_in_progress(manager, client, recorder):
    handle = await manager.create_instance("atlassian/default-image:4", [])
    client.stop_delay = 0.2

    first = asyncio.ensure_future(manager.remove_instance(handle))
    await asyncio.sleep(0)
    await manager.remove_instance(handle)

    container = client.created[0]
    assert container.removed
    assert container.remove_calls == 1
    assert recorder.types[-1] == "instance:stopped"
    await first
