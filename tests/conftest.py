"""Shared fixtures: an in-memory backend and logging isolation."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import pytest

from vault_manifests.backends.base import Backend
from vault_manifests.display.logging_config import secret_redaction_filter
from vault_manifests.errors import BackendLoginError, SecretLookupError


class FakeBackend(Backend):
    """Records logins and lookups; secrets are ``{path: {key: value}}``."""

    backend_type = "fake"

    def __init__(
        self,
        secrets: Optional[Dict[str, Dict[str, Any]]] = None,
        fail_login: bool = False,
    ) -> None:
        self.secrets = secrets or {}
        self.fail_login = fail_login
        self.login_calls = 0
        self.lookups: List[Tuple[str, Optional[str]]] = []

    def login(self) -> None:
        self.login_calls += 1
        if self.fail_login:
            raise BackendLoginError("permission denied", backend_type=self.backend_type)

    def lookup(self, path: str, version: Optional[str] = None) -> Dict[str, Any]:
        self.lookups.append((path, version))
        if path not in self.secrets:
            raise SecretLookupError(f"secret path {path} not found", path=path)
        return dict(self.secrets[path])


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture(autouse=True)
def _isolate_logging():
    """Undo any dictConfig applied by the CLI and forget redacted values."""
    root = logging.getLogger()
    root_handlers = list(root.handlers)
    root_level = root.level
    yield
    for name in ("vault_manifests", "hvac"):
        lg = logging.getLogger(name)
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
        lg.propagate = True
        lg.setLevel(logging.NOTSET)
    for handler in list(root.handlers):
        if handler not in root_handlers:
            root.removeHandler(handler)
    root.setLevel(root_level)
    secret_redaction_filter.clear()
