# src/buckety/core/engine/artifacts.py
"""
Artifacts Manager do Buckety.

Artefatos são o único mecanismo de comunicação entre Steps: cada Step
roda em um container isolado, e arquivos só atravessam a fronteira por
cópia explícita.

    generate_artifacts → container:/runner  →  .buckety/artifacts  (após os scripts)
    upload_artifacts   → .buckety/artifacts →  container:/runner   (antes dos scripts)

Decisões arquiteturais:
    - A construção do manager limpa `.buckety/` (estado limpo por processo)
    - A extração temporária em `.buckety/tmp/` é sempre descartada,
      inclusive em falha parcial
    - Padrões glob são resolvidos relativos a `CONTAINER_WORKDIR`, com `**`
      recursivo; apenas arquivos regulares contam como artefatos

Invariantes:
    - O caminho relativo de cada artefato é preservado
    - Diretório de artefatos ausente ou vazio não é erro (count=0)

Limites explícitos:
    - Não decide quando rodar (responsabilidade do Engine)
    - Não cria nem remove containers
"""

from __future__ import annotations

import glob
import logging
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import Any, List, Sequence

from buckety.core.errors import format_error
from buckety.core.events import (
    ArtifactsGenerated,
    ArtifactsGenerating,
    ArtifactsUploaded,
    ArtifactsUploading,
    EventBus,
)
from buckety.core.exceptions import ArtifactIOError
from buckety.core.paths import CONTAINER_WORKDIR, RunnerPaths

from .archive import extract_chunks, pack_directory
from .instance import DOCKER_ERRORS, InstanceHandle, run_blocking

logger = logging.getLogger(__name__)

ARTIFACT_ERRORS = (*DOCKER_ERRORS, tarfile.TarError, shutil.Error)


def _has_files(directory: Path) -> bool:
    return directory.is_dir() and any(p.is_file() for p in directory.rglob("*"))


def resolve_patterns(root: Path, patterns: Sequence[str]) -> List[str]:
    """Resolve globs relativos a `root`; devolve caminhos relativos de arquivos, sem duplicatas."""
    matched: List[str] = []
    seen = set()

    for pattern in patterns:
        for rel in sorted(glob.glob(pattern.lstrip("/"), root_dir=str(root), recursive=True)):
            if rel in seen or not (root / rel).is_file():
                continue
            seen.add(rel)
            matched.append(rel)

    return matched


class ArtifactsManager:
    """Copia artefatos entre o host e o container de cada Step."""

    def __init__(self, client: Any, bus: EventBus, paths: RunnerPaths):
        self.client = client
        self.bus = bus
        self.paths = paths

        if paths.root.exists():
            logger.debug("Clearing stale working directory %s", paths.root)
            shutil.rmtree(paths.root)

    async def upload_artifacts(self, handle: InstanceHandle) -> int:
        self.bus.emit(ArtifactsUploading())

        source = self.paths.artifacts
        if not _has_files(source):
            self.bus.emit(ArtifactsUploaded(count=0))
            return 0

        try:
            data, count = await run_blocking(pack_directory, source)
            await run_blocking(handle.container.put_archive, CONTAINER_WORKDIR, data)
        except ARTIFACT_ERRORS as e:
            raise ArtifactIOError(
                format_error("uploading artifacts", e),
                details={"path": str(source)},
            ) from e

        logger.debug("Uploaded %d artifacts into %s", count, handle.short_id)
        self.bus.emit(ArtifactsUploaded(count=count, path=str(source)))
        return count

    async def generate_artifacts(self, handle: InstanceHandle, patterns: Sequence[str]) -> int:
        self.bus.emit(ArtifactsGenerating(patterns=tuple(patterns)))

        if not patterns:
            self.bus.emit(ArtifactsGenerated(count=0))
            return 0

        extraction = self.paths.tmp / handle.short_id
        try:
            await run_blocking(self._download_workdir, handle, extraction)
            root = extraction / PurePosixPath(CONTAINER_WORKDIR).name
            matches = resolve_patterns(root, patterns)
            await run_blocking(self._store, root, matches)
        except ARTIFACT_ERRORS as e:
            raise ArtifactIOError(
                format_error("generating artifacts", e),
                details={"patterns": list(patterns)},
            ) from e
        finally:
            shutil.rmtree(extraction, ignore_errors=True)

        logger.debug("Stored artifacts %s", matches)
        self.bus.emit(ArtifactsGenerated(count=len(matches), path=str(self.paths.artifacts)))
        return len(matches)

    def _download_workdir(self, handle: InstanceHandle, destination: Path) -> None:
        chunks, _stat = handle.container.get_archive(CONTAINER_WORKDIR)
        extract_chunks(chunks, destination)

    def _store(self, root: Path, matches: List[str]) -> None:
        for rel in matches:
            target = self.paths.artifacts / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(root / rel, target)
