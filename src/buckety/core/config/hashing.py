# src/buckety/core/config/hashing.py
"""
Hashing canônico do template de pipelines do Buckety.

O hash gerado representa a **identidade estrutural** do template carregado
e é registrado no Manifest da execução, permitindo associar uma run ao
conteúdo exato do `bitbucket-pipelines.yml` que a originou.

Política de hashing (v1):
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - Valores não-JSON produzidos pelo YAML (ex.: datas) viram `str`
    - Codificação UTF-8
    - SHA-256

Invariantes:
    - Templates estruturalmente equivalentes produzem o mesmo hash
    - O valor gerado é sempre uma string hexadecimal de 64 caracteres

Limites explícitos:
    - Não carrega o template
    - Não persiste o hash
"""

import hashlib
import json
from typing import Any, Dict


def compute_template_hash(template: Dict[str, Any]) -> str:
    """
    Gera um hash determinístico do template carregado.

    Args:
        template (Dict[str, Any]): Conteúdo do template já parseado.

    Returns:
        str: Hash SHA-256 hexadecimal do template.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(template, dict):
        raise TypeError(
            f"Template para hashing deve ser dict, recebido: {type(template).__name__}"
        )

    canonical_json = json.dumps(
        template,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )

    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
