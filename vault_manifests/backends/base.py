"""Abstract secret backend contract.

Backends implement two operations::

    class Backend:
        def login(self) -> None: ...
        def lookup(self, path: str, version: Optional[str] = None) -> Dict[str, Any]: ...

``login`` is called exactly once per run before any lookup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class Backend(ABC):
    """Abstract base class for secret backends."""

    backend_type: str = "base"

    @abstractmethod
    def login(self) -> None:
        """Authenticate against the store.

        Raises :class:`~vault_manifests.errors.BackendLoginError` on failure.
        """

    @abstractmethod
    def lookup(self, path: str, version: Optional[str] = None) -> Dict[str, Any]:
        """Return every key/value pair stored at *path*.

        Raises :class:`~vault_manifests.errors.SecretLookupError` if the
        path does not exist or the store cannot be read.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.backend_type!r})"
