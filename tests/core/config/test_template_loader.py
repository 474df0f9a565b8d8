# tests/core/config/test_template_loader.py
"""
Testes do loader do template `bitbucket-pipelines.yml`.

Este módulo valida a conversão do template YAML no modelo imutável
consumido pelo Engine (`Pipeline` / `Step`).

Os testes asseguram que:
- erros estruturais (arquivo ausente, YAML inválido, raiz não-dict) são tipados
- nomes `default` e `<grupo>:<nome>` são resolvidos
- `stage` é achatado em seus Steps, na ordem do template
- `parallel` e `pipe:` são rejeitados explicitamente
- imagem e artefatos aceitam as formas curta e estendida
- a imagem padrão cai para `atlassian/default-image:4`

Decisões arquiteturais:
    - Todas as falhas de configuração são `ConfigurationError`
    - Scripts vazios não são rejeitados aqui (o Engine os reporta)

Limites explícitos:
    - Não executa pipeline
"""

import pytest

try:
    from buckety.core.config import (
        DEFAULT_IMAGE,
        Configuration,
        InvalidTemplateError,
        PipelineNotFoundError,
        TemplateNotFoundError,
        UnsupportedStepError,
    )
    from buckety.core.exceptions import ConfigurationError
except Exception as e:
    Configuration = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if Configuration is None:
        pytest.fail(f"Missing config loader. Import error: {_IMPORT_ERR}")


def test_missing_template_raises_template_not_found(tmp_path):
    _require_imports()
    with pytest.raises(TemplateNotFoundError) as exc:
        Configuration.from_file(tmp_path / "nope.yml")

    assert isinstance(exc.value, ConfigurationError)
    assert "nope.yml" in exc.value.message


def test_invalid_yaml_raises_invalid_template(tmp_path):
    _require_imports()
    path = tmp_path / "bitbucket-pipelines.yml"
    path.write_text("pipelines: [unclosed\n", encoding="utf-8")

    with pytest.raises(InvalidTemplateError):
        Configuration.from_file(path)


def test_non_mapping_root_raises_invalid_template(tmp_path):
    _require_imports()
    path = tmp_path / "bitbucket-pipelines.yml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(InvalidTemplateError):
        Configuration.from_file(path)


def test_default_pipeline_steps(template_file):
    _require_imports()
    config = Configuration.from_file(template_file)

    pipeline = config.get_pipeline_by_name("default")

    assert pipeline.name == "default"
    assert len(pipeline) == 2
    build, test = pipeline.steps
    assert build.name == "Build"
    assert build.script == ("npm ci", "npm run build")
    assert build.artifacts == ("dist/**",)
    assert build.image is None
    assert test.image == "node:20-alpine"


def test_stage_is_flattened_and_unnamed_steps_get_display_names(template_file):
    _require_imports()
    config = Configuration.from_file(template_file)

    assert config.get_pipeline_step_names("branches:main") == ["Package", "Step 2"]


def test_artifacts_mapping_form(template_file):
    _require_imports()
    config = Configuration.from_file(template_file)

    deploy = config.get_pipeline_by_name("custom:deploy")

    assert deploy.steps[0].artifacts == ("reports/*.xml",)


def test_available_pipelines_lists_default_first(template_file):
    _require_imports()
    config = Configuration.from_file(template_file)

    assert config.get_available_pipelines() == [
        "default",
        "branches:main",
        "custom:deploy",
        "custom:fanout",
        "custom:piped",
    ]


def test_default_image_from_template_and_fallback(template_file, tmp_path):
    _require_imports()
    assert Configuration.from_file(template_file).get_default_image() == "node:20"

    bare = tmp_path / "bare.yml"
    bare.write_text("pipelines:\n  default:\n    - step:\n        script: [make]\n", encoding="utf-8")
    assert Configuration.from_file(bare).get_default_image() == DEFAULT_IMAGE


def test_unknown_pipeline_raises_pipeline_not_found(template_file):
    _require_imports()
    config = Configuration.from_file(template_file)

    with pytest.raises(PipelineNotFoundError) as exc:
        config.get_pipeline_by_name("custom:missing")

    assert "custom:missing" in exc.value.message
    assert "default" in exc.value.details["available"]


def test_parallel_and_pipes_are_unsupported(template_file):
    _require_imports()
    config = Configuration.from_file(template_file)

    with pytest.raises(UnsupportedStepError):
        config.get_pipeline_by_name("custom:fanout")
    with pytest.raises(UnsupportedStepError):
        config.get_pipeline_by_name("custom:piped")


def test_empty_script_is_left_for_the_engine(tmp_path):
    _require_imports()
    path = tmp_path / "bitbucket-pipelines.yml"
    path.write_text(
        "pipelines:\n  default:\n    - step:\n        name: Empty\n        script: []\n",
        encoding="utf-8",
    )

    pipeline = Configuration.from_file(path).get_pipeline_by_name("default")

    assert pipeline.steps[0].script == ()


def test_template_hash_is_stable(template_file):
    _require_imports()
    a = Configuration.from_file(template_file)
    b = Configuration.from_file(template_file)

    assert a.template_hash == b.template_hash


@pytest.mark.parametrize(
    "stage",
    [
        ["oops"],
        "oops",
        None,
        {"steps": "oops"},
        {"name": "Build"},
    ],
)
def test_malformed_stage_raises_invalid_template(stage):
    _require_imports()
    config = Configuration({"pipelines": {"default": [{"stage": stage}]}})

    with pytest.raises(InvalidTemplateError) as exc:
        config.get_pipeline_by_name("default")

    assert isinstance(exc.value, ConfigurationError)
    assert exc.value.details == {"pipeline": "default"}
