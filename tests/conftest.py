# tests/conftest.py
"""
Fixtures compartilhados para testes do Buckety.

Este módulo define fixtures reutilizáveis que fornecem:
- um EventBus isolado por teste
- um gravador de eventos do canal de pipeline
- um diretório de projeto temporário com layout `.buckety/` próprio
- um client Docker falso (ver `tests/fakes.py`)
- um template `bitbucket-pipelines.yml` mínimo em disco

Decisões arquiteturais:
    - Nenhuma fixture depende de um daemon Docker real
    - Cada teste recebe seu próprio diretório de trabalho (`tmp_path`)
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Fixtures são determinísticas e isoladas
    - Nenhuma fixture executa pipeline

Limites explícitos:
    - Não substituir testes de integração com Docker real
"""

from __future__ import annotations

import textwrap
from typing import Any, List

import pytest

from fakes import FakeDockerClient


class EventRecorder:
    """Listener que acumula os eventos publicados, em ordem."""

    def __init__(self) -> None:
        self.events: List[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [e.type for e in self.events]

    def of(self, cls: type) -> List[Any]:
        return [e for e in self.events if isinstance(e, cls)]


@pytest.fixture
def bus():
    from buckety.core.events import EventBus

    return EventBus()


@pytest.fixture
def recorder(bus) -> EventRecorder:
    rec = EventRecorder()
    bus.pipeline.subscribe(rec)
    return rec


@pytest.fixture
def project_dir(tmp_path):
    """Diretório de projeto com alguns arquivos a serem copiados para o container."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "README.md").write_text("hello\n", encoding="utf-8")
    (root / "src" / "app.py").write_text("print('hi')\n", encoding="utf-8")
    return root


@pytest.fixture
def paths(project_dir):
    from buckety.core.paths import RunnerPaths

    return RunnerPaths.from_cwd(project_dir)


@pytest.fixture
def client() -> FakeDockerClient:
    return FakeDockerClient(cached_images=["atlassian/default-image:4"])


@pytest.fixture
def make_pipeline():
    """Factory de Pipelines a partir de listas de scripts."""
    from buckety.core.pipeline import Pipeline, Step

    def _make(*scripts, name: str = "default", names=None, artifacts=None, image=None) -> Pipeline:
        steps = []
        for i, script in enumerate(scripts):
            steps.append(
                Step(
                    script=tuple(script),
                    name=(names[i] if names else None),
                    image=image,
                    artifacts=tuple((artifacts or {}).get(i, ())),
                )
            )
        return Pipeline(name=name, steps=tuple(steps))

    return _make


@pytest.fixture
def make_engine(bus, client, paths):
    from buckety.core.engine import Engine

    def _make(pipeline, **kwargs):
        return Engine(pipeline=pipeline, bus=bus, client=client, paths=paths, **kwargs)

    return _make


TEMPLATE_YAML = textwrap.dedent(
    """
    image: node:20

    pipelines:
      default:
        - step:
            name: Build
            script:
              - npm ci
              - npm run build
            artifacts:
              - dist/**
        - step:
            name: Test
            image:
              name: node:20-alpine
              username: $USER
            script:
              - npm test
      branches:
        main:
          - stage:
              name: Release
              steps:
                - step:
                    name: Package
                    script:
                      - make package
                - step:
                    script:
                      - make publish
      custom:
        deploy:
          - step:
              name: Deploy
              script:
                - ./deploy.sh
              artifacts:
                paths:
                  - reports/*.xml
        fanout:
          - parallel:
              - step:
                  script:
                    - echo a
        piped:
          - step:
              script:
                - pipe: atlassian/aws-s3-deploy:1.1.0
    """
)


@pytest.fixture
def template_file(tmp_path):
    path = tmp_path / "bitbucket-pipelines.yml"
    path.write_text(TEMPLATE_YAML, encoding="utf-8")
    return path
