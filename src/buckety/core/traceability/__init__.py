"""
Rastreabilidade de execuções do Buckety.

- **manifest** → `RunManifest` (observador do canal de pipeline) e
  persistência JSON determinística (`save_manifest` / `load_manifest`)
"""

from .manifest import RunManifest, create_manifest, load_manifest, save_manifest

__all__ = ["RunManifest", "create_manifest", "load_manifest", "save_manifest"]
