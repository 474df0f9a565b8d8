"""
Configuração do Buckety.

- **loader**      → `Configuration` (template `bitbucket-pipelines.yml` via PyYAML)
- **environment** → `Environment` (variáveis inline + arquivo `.env`)
- **hashing**     → hash canônico do template para rastreabilidade
- **errors**      → exceções de configuração (todas `ConfigurationError`)
"""

from .environment import Environment
from .errors import (
    InvalidTemplateError,
    InvalidVariablesError,
    PipelineNotFoundError,
    TemplateNotFoundError,
    UnsupportedStepError,
)
from .hashing import compute_template_hash
from .loader import (
    DEFAULT_IMAGE,
    DEFAULT_PIPELINE_NAME,
    DEFAULT_TEMPLATE_PATH,
    Configuration,
)

__all__ = [
    "Configuration",
    "Environment",
    "compute_template_hash",
    "DEFAULT_IMAGE",
    "DEFAULT_PIPELINE_NAME",
    "DEFAULT_TEMPLATE_PATH",
    "TemplateNotFoundError",
    "InvalidTemplateError",
    "PipelineNotFoundError",
    "UnsupportedStepError",
    "InvalidVariablesError",
]
