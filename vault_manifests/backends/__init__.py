"""Secret backends.

Every backend exposes ``login()`` and ``lookup(path, version)``; the
pipeline only ever talks to the :class:`Backend` contract.
"""

from vault_manifests.backends.base import Backend
from vault_manifests.backends.providers import (
    DirectoryBackend,
    EnvBackend,
    FileBackend,
    VaultBackend,
    create_backend,
)

__all__ = [
    "Backend",
    "DirectoryBackend",
    "EnvBackend",
    "FileBackend",
    "VaultBackend",
    "create_backend",
]
