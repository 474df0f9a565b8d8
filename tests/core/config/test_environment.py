# tests/core/config/test_environment.py
"""
Testes do Environment (variáveis injetadas nos containers).

Os testes asseguram que:
- variáveis inline `KEY=VALUE,...` são convertidas preservando a ordem
- o arquivo `.env` é lido com python-dotenv
- variáveis inline sobrescrevem as do arquivo
- entradas malformadas e arquivos ausentes são erros de configuração
"""

import pytest

try:
    from buckety.core.config import Environment, InvalidVariablesError
    from buckety.core.exceptions import ConfigurationError
except Exception as e:
    Environment = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if Environment is None:
        pytest.fail(f"Missing Environment. Import error: {_IMPORT_ERR}")


def test_empty_environment_has_no_variables():
    _require_imports()
    assert Environment().get_container_format_variables() == []


def test_inline_variables_keep_order_and_allow_equals_in_value():
    _require_imports()
    env = Environment(variables="B=2, A=1,TOKEN=abc=def")

    assert env.get_container_format_variables() == ["B=2", "A=1", "TOKEN=abc=def"]


def test_env_file_is_loaded_and_inline_overrides(tmp_path):
    _require_imports()
    env_file = tmp_path / ".env"
    env_file.write_text("# comment\nNODE_ENV=test\nAPI_URL=\"http://localhost\"\n", encoding="utf-8")

    env = Environment(variables="NODE_ENV=ci", env_file=env_file)

    assert env.variables == {"NODE_ENV": "ci", "API_URL": "http://localhost"}


@pytest.mark.parametrize("raw", ["NOVALUE", "=x", "1BAD=x"])
def test_malformed_inline_variable_is_rejected(raw):
    _require_imports()
    with pytest.raises(InvalidVariablesError) as exc:
        Environment(variables=raw)

    assert isinstance(exc.value, ConfigurationError)


def test_missing_env_file_is_rejected(tmp_path):
    _require_imports()
    with pytest.raises(InvalidVariablesError):
        Environment(env_file=tmp_path / "missing.env")
