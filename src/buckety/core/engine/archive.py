# src/buckety/core/engine/archive.py
"""
Utilitários de tar compartilhados pelos managers de instância e artefatos.

A API do Docker troca arquivos com containers apenas em formato tar:
`put_archive` recebe um tar em memória, `get_archive` devolve um stream
de chunks de um tar.

Invariantes:
    - Os membros do tar usam caminhos relativos à raiz empacotada
    - A extração usa o filtro `data` (sem caminhos absolutos, sem `..`,
      sem links para fora do destino)
"""

from __future__ import annotations

import io
import logging
import os
import tarfile
from pathlib import Path
from typing import Iterable, Tuple

logger = logging.getLogger(__name__)


def pack_directory(source: Path, *, exclude: Iterable[str] = ()) -> Tuple[bytes, int]:
    """
    Empacota o conteúdo de `source` (não o diretório em si) em um tar.

    `exclude` lista nomes de entradas do primeiro nível a ignorar.

    Returns:
        Tuple[bytes, int]: bytes do tar e número de arquivos regulares incluídos.
    """
    skipped = set(exclude)
    buffer = io.BytesIO()
    files = 0

    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for entry in sorted(source.iterdir()):
            if entry.name in skipped:
                continue
            tar.add(str(entry), arcname=entry.name)
            if entry.is_file():
                files += 1
            elif entry.is_dir():
                files += sum(len(names) for _, _, names in os.walk(entry))

    data = buffer.getvalue()
    logger.debug("Packed %s (%d files, %d bytes)", source, files, len(data))
    return data, files


def extract_chunks(chunks: Iterable[bytes], destination: Path) -> None:
    """Extrai um tar recebido em chunks (ex.: `get_archive`) em `destination`."""
    buffer = io.BytesIO()
    for chunk in chunks:
        buffer.write(chunk)
    buffer.seek(0)

    destination.mkdir(parents=True, exist_ok=True)
    with tarfile.open(fileobj=buffer, mode="r:*") as tar:
        tar.extractall(path=str(destination), filter="data")

    logger.debug("Extracted %d bytes into %s", buffer.getbuffer().nbytes, destination)
