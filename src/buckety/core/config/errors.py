# src/buckety/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Buckety.

Este módulo define a hierarquia de exceções utilizadas durante o
carregamento do template de pipelines e das variáveis de ambiente.

As exceções aqui definidas representam **falhas pré-run**: o Engine as
trata como fatais e não tenta nenhum tipo de recovery.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigurationError`
    - Nenhuma exceção representa erro de execução de Step

Limites explícitos:
    - Não executa pipeline
    - Não realiza fallback ou recovery
"""

from __future__ import annotations

from dataclasses import dataclass

from buckety.core.exceptions import ConfigurationError


@dataclass(frozen=True, eq=False)
class TemplateNotFoundError(ConfigurationError):
    """
    Exceção levantada quando o arquivo de template não existe.

    Decisões arquiteturais:
        - O template é obrigatório
        - Nenhum template padrão é inferido ou criado
    """


@dataclass(frozen=True, eq=False)
class InvalidTemplateError(ConfigurationError):
    """
    Exceção levantada quando o template não é YAML válido ou sua raiz
    não é um dicionário (`dict`).

    Limites explícitos:
        - Não tenta normalizar estruturas inválidas
    """


@dataclass(frozen=True, eq=False)
class PipelineNotFoundError(ConfigurationError):
    """
    Exceção levantada quando o pipeline solicitado não existe no template.

    Exemplos de nomes válidos:
        - default
        - branches:main
        - custom:deploy
    """


@dataclass(frozen=True, eq=False)
class UnsupportedStepError(ConfigurationError):
    """
    Exceção levantada quando o template declara construções que o executor
    local não suporta (ex.: blocos `parallel`, scripts `pipe:`).
    """


@dataclass(frozen=True, eq=False)
class InvalidVariablesError(ConfigurationError):
    """
    Exceção levantada quando variáveis de ambiente não seguem o formato
    `KEY=VALUE` ou o arquivo de variáveis não existe.
    """
