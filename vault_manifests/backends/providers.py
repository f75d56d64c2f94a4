"""Secret backends: where placeholder values come from.

Built-in backends:

* ``EnvBackend``: environment variables (``SECRET_<PATH>_<KEY>``)
* ``FileBackend``: Fernet-encrypted JSON file
* ``DirectoryBackend``: plain YAML/JSON files under the secret directory
* ``VaultBackend``: HashiCorp Vault KV v1/v2 (via ``hvac``)
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, Mapping, Optional

import hvac
import yaml
from cryptography.fernet import Fernet, InvalidToken
from hvac.exceptions import InvalidPath

from vault_manifests.backends.base import Backend
from vault_manifests.config.schema import (
    DirectoryBackendSettings,
    EnvBackendSettings,
    FileBackendSettings,
    VaultBackendSettings,
)
from vault_manifests.constants import ENV_SECRET_KEY, ENV_SECRET_PREFIX
from vault_manifests.errors import BackendLoginError, ConfigurationError, SecretLookupError

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]+")


# ── Environment variable backend ────────────────────────────────────────


class EnvBackend(Backend):
    """Reads secrets from environment variables.

    The key ``password`` at path ``db/creds`` maps to
    ``SECRET_DB_CREDS_PASSWORD`` (non-alphanumerics become ``_``,
    upper-cased, prefixed).  Keys are returned lower-cased.
    """

    backend_type = "env"

    def __init__(
        self,
        prefix: str = ENV_SECRET_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._prefix = prefix
        self._source = environ
        self._environ: Optional[Dict[str, str]] = None

    def _path_prefix(self, path: str) -> str:
        normalized = _NON_ALNUM_RE.sub("_", path.strip("/")).strip("_").upper()
        return f"{self._prefix}{normalized}_"

    def login(self) -> None:
        # Snapshot the environment so every lookup in the run sees the same values
        self._environ = dict(os.environ if self._source is None else self._source)

    def lookup(self, path: str, version: Optional[str] = None) -> Dict[str, Any]:
        if self._environ is None:
            raise SecretLookupError("env backend used before login", path=path)
        if version is not None:
            logger.debug("env backend ignores secret version '%s' for %s", version, path)
        prefix = self._path_prefix(path)
        found = {
            name[len(prefix) :].lower(): value
            for name, value in self._environ.items()
            if name.startswith(prefix) and len(name) > len(prefix)
        }
        if not found:
            raise SecretLookupError(
                f"no environment variables with prefix {prefix} for path {path}", path=path
            )
        logger.debug("Looked up %d key(s) at %s via env backend", len(found), path)
        return found


# ── Fernet-encrypted file backend ───────────────────────────────────────


class FileBackend(Backend):
    """Reads secrets from a Fernet-encrypted JSON file.

    The decrypted document maps secret paths to key/value mappings::

        {"secret/data/app": {"username": "app", "password": "s3cr3t"}}

    The Fernet key is read from the environment variable named by
    *key_env* at login time.

    Parameters
    ----------
    path:
        Path to the encrypted secrets file.
    """

    backend_type = "file"

    def __init__(
        self,
        path: str = "secrets.enc",
        key_env: str = ENV_SECRET_KEY,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._path = path
        self._key_env = key_env
        self._environ = environ
        self._data: Optional[Dict[str, Dict[str, Any]]] = None

    def login(self) -> None:
        env = os.environ if self._environ is None else self._environ
        key = env.get(self._key_env)
        if not key:
            raise BackendLoginError(
                f"{self._key_env} environment variable must be set for encrypted secret storage",
                backend_type=self.backend_type,
            )
        if not os.path.exists(self._path):
            raise BackendLoginError(
                f"encrypted secrets file {self._path} does not exist",
                backend_type=self.backend_type,
            )
        try:
            fernet = Fernet(key.encode())
            with open(self._path, "rb") as f:
                decrypted = fernet.decrypt(f.read())
            data = json.loads(decrypted)
        except (InvalidToken, ValueError, OSError) as exc:
            raise BackendLoginError(
                f"failed to load/decrypt secrets file {self._path}; check that "
                f"{self._key_env} is correct and the file is not corrupted",
                backend_type=self.backend_type,
                orig_exc=exc,
            ) from exc

        if not isinstance(data, dict):
            raise BackendLoginError(
                f"secrets file {self._path} must contain a JSON object",
                backend_type=self.backend_type,
            )
        self._data = data

    def lookup(self, path: str, version: Optional[str] = None) -> Dict[str, Any]:
        if self._data is None:
            raise SecretLookupError("file backend used before login", path=path)
        entry = self._data.get(path)
        if entry is None:
            entry = self._data.get(path.strip("/"))
        if not isinstance(entry, dict):
            raise SecretLookupError(f"secret path {path} not found in {self._path}", path=path)
        logger.debug("Looked up %d key(s) at %s via file backend", len(entry), path)
        return dict(entry)


# ── Plain directory backend ─────────────────────────────────────────────


class DirectoryBackend(Backend):
    """Reads secrets from YAML/JSON files below a base directory.

    Secret path ``app/db`` is read from ``<root>/app/db.yaml`` (or
    ``.yml`` / ``.json``).  Intended for secrets already decrypted by an
    earlier step (e.g. SOPS) into the secret directory.
    """

    backend_type = "directory"

    _EXTENSIONS = (".yaml", ".yml", ".json")

    def __init__(self, root: str) -> None:
        self._root = os.path.abspath(root)

    @property
    def root(self) -> str:
        return self._root

    def login(self) -> None:
        if not os.path.isdir(self._root):
            raise BackendLoginError(
                f"secret directory {self._root} does not exist",
                backend_type=self.backend_type,
            )

    def _candidate(self, path: str, ext: str) -> str:
        candidate = os.path.normpath(os.path.join(self._root, path.strip("/") + ext))
        if os.path.commonpath([self._root, candidate]) != self._root:
            raise SecretLookupError(
                f"secret path {path} escapes the secret directory {self._root}", path=path
            )
        return candidate

    def lookup(self, path: str, version: Optional[str] = None) -> Dict[str, Any]:
        for ext in self._EXTENSIONS:
            candidate = self._candidate(path, ext)
            if not os.path.isfile(candidate):
                continue
            try:
                with open(candidate, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as exc:
                raise SecretLookupError(
                    f"could not read secret file {candidate}: {exc}", path=path
                ) from exc
            if not isinstance(data, dict):
                raise SecretLookupError(
                    f"secret file {candidate} must contain a mapping", path=path
                )
            logger.debug("Looked up %d key(s) at %s via directory backend", len(data), path)
            return data
        raise SecretLookupError(
            f"secret path {path} not found in secret directory {self._root}", path=path
        )


# ── HashiCorp Vault backend ─────────────────────────────────────────────


class VaultBackend(Backend):
    """HashiCorp Vault KV backend.

    Paths are written the way Vault's HTTP API exposes them: the first
    segment is the mount, and for KV v2 a ``data/`` segment after it is
    optional (``secret/data/app`` and ``secret/app`` are equivalent).
    """

    backend_type = "vault"

    def __init__(self, settings: VaultBackendSettings, client: Optional[hvac.Client] = None) -> None:
        self._settings = settings
        self._client = client or hvac.Client(
            url=settings.address,
            token=settings.token if settings.auth_type == "token" else None,
            timeout=settings.timeout,
        )

    @property
    def client(self) -> hvac.Client:
        return self._client

    def login(self) -> None:
        s = self._settings
        try:
            if s.auth_type == "approle":
                self._client.auth.approle.login(
                    role_id=s.role_id,
                    secret_id=s.secret_id,
                    mount_point=s.auth_mount_path,
                )
            authenticated = self._client.is_authenticated()
        except Exception as exc:
            raise BackendLoginError(
                str(exc) or "request to Vault failed",
                backend_type=self.backend_type,
                orig_exc=exc,
            ) from exc
        if not authenticated:
            raise BackendLoginError(
                f"{s.auth_type} authentication against {s.address} was rejected",
                backend_type=self.backend_type,
            )
        logger.debug("Authenticated to Vault at %s using %s auth", s.address, s.auth_type)

    def _split_path(self, path: str) -> tuple[str, str]:
        mount, _, rest = path.strip("/").partition("/")
        if not mount or not rest:
            raise SecretLookupError(
                f"secret path {path} must include a mount and a secret name", path=path
            )
        if self._settings.kv_version == 2 and rest.startswith("data/"):
            rest = rest[len("data/") :]
        return mount, rest

    def lookup(self, path: str, version: Optional[str] = None) -> Dict[str, Any]:
        mount, secret_path = self._split_path(path)
        try:
            if self._settings.kv_version == 2:
                kv_version = int(version) if version is not None else None
                response = self._client.secrets.kv.v2.read_secret_version(
                    path=secret_path,
                    mount_point=mount,
                    version=kv_version,
                    raise_on_deleted_version=True,
                )
                data = response["data"]["data"]
            else:
                if version is not None:
                    logger.debug("KV v1 ignores secret version '%s' for %s", version, path)
                response = self._client.secrets.kv.v1.read_secret(
                    path=secret_path,
                    mount_point=mount,
                )
                data = response["data"]
        except InvalidPath as exc:
            raise SecretLookupError(f"secret path {path} not found in Vault", path=path) from exc
        except ValueError as exc:
            raise SecretLookupError(
                f"invalid secret version '{version}' for {path}", path=path
            ) from exc
        except Exception as exc:
            raise SecretLookupError(f"could not read {path} from Vault: {exc}", path=path) from exc

        logger.debug("Looked up %d key(s) at %s via vault backend", len(data or {}), path)
        return dict(data or {})


def create_backend(settings: Any, secret_dir: Optional[str] = None) -> Backend:
    """Factory for secret backends from validated settings."""
    if isinstance(settings, EnvBackendSettings):
        return EnvBackend(prefix=settings.prefix)
    if isinstance(settings, FileBackendSettings):
        return FileBackend(path=settings.path, key_env=settings.key_env)
    if isinstance(settings, DirectoryBackendSettings):
        root = settings.path or secret_dir
        if not root:
            raise ConfigurationError("directory backend requires a path or secret directory")
        return DirectoryBackend(root)
    if isinstance(settings, VaultBackendSettings):
        return VaultBackend(settings)
    raise ConfigurationError(f"Unknown secret backend type: {getattr(settings, 'type', settings)!r}")
