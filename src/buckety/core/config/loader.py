# src/buckety/core/config/loader.py
"""
Loader canônico do template de pipelines do Buckety.

Este módulo carrega um template no formato Bitbucket Pipelines
(`bitbucket-pipelines.yml`) e o converte no modelo imutável consumido
pelo Engine (`Pipeline` / `Step`).

Responsabilidades do módulo:
    - Ler o template YAML a partir do disco
    - Validar requisitos estruturais mínimos (existência, YAML válido, raiz dict)
    - Resolver nomes de pipeline (`default`, `branches:main`, `custom:deploy`, ...)
    - Converter itens `step` / `stage` em `Step` imutáveis

Decisões arquiteturais:
    - Erros estruturais são fatais e tipados (`ConfigurationError`)
    - `parallel` e scripts `pipe:` são rejeitados explicitamente
    - Scripts vazios NÃO são rejeitados aqui: o Engine reporta esse erro
      dentro do ciclo de eventos do Step

Invariantes:
    - O template carregado é sempre um dicionário
    - A ordem dos Steps segue a ordem do template
    - O mesmo arquivo sempre produz o mesmo `Pipeline`

Limites explícitos:
    - Não executa pipeline
    - Não interpreta `definitions`, `caches`, `services` ou `condition`
    - Não resolve variáveis de ambiente
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml  # PyYAML

from buckety.core.pipeline.types import Pipeline, Step

from .errors import (
    InvalidTemplateError,
    PipelineNotFoundError,
    TemplateNotFoundError,
    UnsupportedStepError,
)
from .hashing import compute_template_hash

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_PATH = "bitbucket-pipelines.yml"
DEFAULT_PIPELINE_NAME = "default"
DEFAULT_IMAGE = "atlassian/default-image:4"

PIPELINE_GROUPS = ("branches", "tags", "custom", "pull-requests")


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Carrega o template YAML e valida sua estrutura básica.

    Decisões arquiteturais:
        - O arquivo deve existir no momento do carregamento
        - Arquivos vazios são interpretados como dicionários vazios
        - O conteúdo raiz deve ser um dicionário (`dict`)

    Raises:
        TemplateNotFoundError: Se o arquivo não existir.
        InvalidTemplateError: Se o YAML for inválido ou a raiz não for dict.
    """
    if not path.exists():
        raise TemplateNotFoundError(
            f'Template file "{path}" does not exist',
            details={"path": str(path)},
            hint="Pass the template location with --template.",
        )

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidTemplateError(
            f'Template file "{path}" is not valid YAML: {e}',
            details={"path": str(path)},
        ) from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidTemplateError(
            f"Template root must be a mapping, got: {type(data).__name__}",
            details={"path": str(path)},
        )

    return data


def _image_name(value: Any) -> Optional[str]:
    # `image: foo:1` ou `image: {name: foo:1, username: ...}`
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("name"), str):
        return value["name"]
    raise InvalidTemplateError(
        f"Invalid image definition: {value!r}",
        hint="Use a string or a mapping with a 'name' key.",
    )


def _artifact_patterns(value: Any, step_label: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, dict):
        value = value.get("paths") or []
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise InvalidTemplateError(
            f"Invalid artifacts definition in {step_label}",
            details={"artifacts": value},
        )
    return list(value)


def _script_lines(value: Any, step_label: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidTemplateError(
            f"Script of {step_label} must be a list of commands",
            details={"script": value},
        )

    lines: List[str] = []
    for item in value:
        if isinstance(item, dict) and "pipe" in item:
            raise UnsupportedStepError(
                f"Pipes are not supported (found in {step_label})",
                details={"pipe": item.get("pipe")},
            )
        if not isinstance(item, (str, int, float)):
            raise InvalidTemplateError(
                f"Invalid script entry in {step_label}: {item!r}",
            )
        lines.append(str(item))
    return lines


def _parse_step(raw: Any, pipeline_name: str, position: int) -> Step:
    step_label = f'step {position} of pipeline "{pipeline_name}"'

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidTemplateError(f"Invalid definition for {step_label}")

    name = raw.get("name")
    return Step(
        script=tuple(_script_lines(raw.get("script"), step_label)),
        name=str(name) if name is not None else None,
        image=_image_name(raw.get("image")),
        artifacts=tuple(_artifact_patterns(raw.get("artifacts"), step_label)),
    )


def _parse_steps(items: Any, pipeline_name: str) -> List[Step]:
    if not isinstance(items, list):
        raise InvalidTemplateError(
            f'Pipeline "{pipeline_name}" must be a list of steps',
        )

    steps: List[Step] = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidTemplateError(
                f'Invalid item in pipeline "{pipeline_name}": {item!r}',
            )

        if "parallel" in item:
            raise UnsupportedStepError(
                f'Parallel steps are not supported (pipeline "{pipeline_name}")',
                hint="Run the steps sequentially instead.",
            )

        if "stage" in item:
            stage = item["stage"]
            if not isinstance(stage, dict) or not isinstance(stage.get("steps"), list):
                raise InvalidTemplateError(
                    f'Stage in pipeline "{pipeline_name}" must be a mapping with a list of steps',
                    details={"pipeline": pipeline_name},
                )
            for nested in stage["steps"]:
                if not isinstance(nested, dict) or "step" not in nested:
                    raise InvalidTemplateError(
                        f'Invalid stage item in pipeline "{pipeline_name}"',
                    )
                steps.append(_parse_step(nested["step"], pipeline_name, len(steps) + 1))
            continue

        if "step" in item:
            steps.append(_parse_step(item["step"], pipeline_name, len(steps) + 1))
            continue

        raise InvalidTemplateError(
            f'Unknown item in pipeline "{pipeline_name}": {sorted(item)}',
        )

    return steps


class Configuration:
    """
    Template de pipelines carregado e pronto para consulta.

    O objeto é criado antes da run e nunca mutado; todas as consultas
    produzem novos `Pipeline` imutáveis.
    """

    def __init__(self, template: Dict[str, Any], *, path: Optional[Path] = None):
        if not isinstance(template, dict):
            raise InvalidTemplateError(
                f"Template root must be a mapping, got: {type(template).__name__}",
            )
        self._template = template
        self.path = path

    @classmethod
    def from_file(cls, path: Union[str, Path] = DEFAULT_TEMPLATE_PATH) -> "Configuration":
        p = Path(path)
        template = _load_file(p)
        logger.debug("Loaded template %s", p)
        return cls(template, path=p)

    @property
    def template(self) -> Dict[str, Any]:
        return self._template

    @property
    def template_hash(self) -> str:
        return compute_template_hash(self._template)

    def get_default_image(self) -> str:
        return _image_name(self._template.get("image")) or DEFAULT_IMAGE

    def _pipelines(self) -> Dict[str, Any]:
        pipelines = self._template.get("pipelines") or {}
        if not isinstance(pipelines, dict):
            raise InvalidTemplateError("'pipelines' must be a mapping")
        return pipelines

    def _raw_pipeline(self, name: str) -> Any:
        node: Any = self._pipelines()
        for part in name.split(":", 1):
            if not isinstance(node, dict) or part not in node:
                raise PipelineNotFoundError(
                    f'Pipeline "{name}" does not exist',
                    details={"pipeline": name, "available": self.get_available_pipelines()},
                    hint="Run `buckety list` to see the available pipelines.",
                )
            node = node[part]
        return node

    def get_pipeline_by_name(self, name: str = DEFAULT_PIPELINE_NAME) -> Pipeline:
        """
        Resolve um pipeline pelo nome (`default` ou `<grupo>:<nome>`).

        Raises:
            PipelineNotFoundError: Se o pipeline não existir ou não tiver Steps.
            UnsupportedStepError: Para `parallel` ou `pipe:`.
            InvalidTemplateError: Para estruturas inválidas.
        """
        raw = self._raw_pipeline(name)
        steps = _parse_steps(raw, name) if raw is not None else []

        if not steps:
            raise PipelineNotFoundError(
                f'Pipeline "{name}" has no steps',
                details={"pipeline": name},
            )

        return Pipeline(name=name, steps=tuple(steps))

    def get_pipeline_step_names(self, name: str = DEFAULT_PIPELINE_NAME) -> List[str]:
        return self.get_pipeline_by_name(name).step_names()

    def get_available_pipelines(self) -> List[str]:
        pipelines = self._pipelines()
        names: List[str] = []

        if "default" in pipelines:
            names.append("default")

        for group, entries in pipelines.items():
            if group not in PIPELINE_GROUPS or not isinstance(entries, dict):
                continue
            names.extend(f"{group}:{key}" for key in entries)

        return names
