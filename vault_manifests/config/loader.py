"""Configuration file loading and validation.

Loads an optional YAML/JSON (or ``KEY=VALUE`` envfile) configuration file,
expands ``${ENV_VAR}`` placeholders, overlays the ``AVP_*`` / ``VAULT_*``
environment variables and validates the result against the Pydantic models in :mod:`schema`.

The public API is :func:`load_config`.  The environment is read exactly
once per call.
"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from vault_manifests.config.expansion import expand_env_vars
from vault_manifests.config.flags import parse_bool
from vault_manifests.config.schema import VaultManifestsConfig
from vault_manifests.constants import (
    ENV_AUTH_TYPE,
    ENV_BACKEND_TYPE,
    ENV_KV_VERSION,
    ENV_MOUNT_PATH,
    ENV_PATH_VALIDATION,
    ENV_ROLE_ID,
    ENV_SECRET_DIR,
    ENV_SECRET_ID,
    ENV_SECRETS_FILE,
    ENV_VAULT_ADDR,
    ENV_VAULT_TOKEN,
    ENV_VERBOSE,
)
from vault_manifests.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Recognised config file extensions (JSON is a YAML subset).
_CONFIG_EXTS = frozenset({".yaml", ".yml", ".json"})

# KEY=VALUE files holding AVP_* / VAULT_* settings
_ENVFILE_EXTS = frozenset({".env", ".dotenv"})

# Environment variable → backend settings field
_BACKEND_ENV_FIELDS = {
    ENV_VAULT_ADDR: "address",
    ENV_VAULT_TOKEN: "token",
    ENV_AUTH_TYPE: "auth_type",
    ENV_ROLE_ID: "role_id",
    ENV_SECRET_ID: "secret_id",
    ENV_MOUNT_PATH: "auth_mount_path",
}


def _read_config_file(cfg_fpath: str) -> Dict[str, Any]:
    """Read and parse a YAML/JSON config file from *cfg_fpath*.

    Raises :class:`ConfigurationError` on I/O or parse errors.
    """
    ext = os.path.splitext(cfg_fpath)[1].lower()
    if ext not in _CONFIG_EXTS:
        raise ConfigurationError(
            f"Unsupported config file extension '{ext}'. "
            "Only YAML, JSON or envfile configs (.yaml, .yml, .json, .env, .dotenv) "
            "are supported."
        )

    try:
        with open(cfg_fpath, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except Exception as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            "Top-level configuration content must be a mapping (dictionary)."
        )
    return raw_data


def _read_envfile(cfg_fpath: str) -> Dict[str, str]:
    """Read ``KEY=VALUE`` settings from an envfile config.

    Keys without a value are dropped.
    """
    try:
        values = dotenv_values(cfg_fpath, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc
    return {key: value for key, value in values.items() if value is not None}


def _apply_environment(raw_data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay environment variables onto *raw_data* (environment wins)."""
    data = dict(raw_data)
    backend_section = data.get("backend") or {}
    if not isinstance(backend_section, dict):
        raise ConfigurationError("The 'backend' section must be a mapping (dictionary).")
    backend = dict(backend_section)

    backend_type = environ.get(ENV_BACKEND_TYPE, "").strip()
    if backend_type:
        backend["type"] = backend_type.lower()

    for env_name, field in _BACKEND_ENV_FIELDS.items():
        value = environ.get(env_name, "").strip()
        if value:
            backend[field] = value

    kv_version = environ.get(ENV_KV_VERSION, "").strip()
    if kv_version:
        try:
            backend["kv_version"] = int(kv_version)
        except ValueError as exc:
            raise ConfigurationError(
                f"{ENV_KV_VERSION} must be 1 or 2, got '{kv_version}'"
            ) from exc

    secrets_file = environ.get(ENV_SECRETS_FILE, "").strip()
    if secrets_file and backend.get("type") == "file":
        backend["path"] = secrets_file

    backend.setdefault("type", "env")
    data["backend"] = backend

    path_validation = environ.get(ENV_PATH_VALIDATION)
    if path_validation is not None and path_validation.strip():
        data["path_validation"] = path_validation

    secret_dir = environ.get(ENV_SECRET_DIR, "").strip()
    if secret_dir:
        data["secret_dir"] = secret_dir

    if ENV_VERBOSE in environ:
        data["verbose"] = parse_bool(environ[ENV_VERBOSE], default=bool(data.get("verbose")))

    return data


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"]) or "(root)"
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


# ── Public API ───────────────────────────────────────────────────────────


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> VaultManifestsConfig:
    """Load, expand, overlay, validate, and return the run configuration.

    Steps:
        1. Read the YAML/JSON or envfile config (if *config_path* is given)
        2. Expand ``${VAR}`` environment variable references
        3. Overlay ``AVP_*`` / ``VAULT_*`` environment variables
        4. Validate against :class:`VaultManifestsConfig` (Pydantic)

    Raises:
        ConfigurationError: On file I/O errors, parse errors, or
            validation failures (all errors reported at once).
    """
    env = dict(os.environ if environ is None else environ)

    raw_data: Dict[str, Any] = {}
    if config_path:
        logger.debug("Loading configuration file: %s", config_path)
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file does not exist: {config_path}")
        if os.path.splitext(config_path)[1].lower() in _ENVFILE_EXTS:
            # Process environment wins over envfile entries
            env = {**_read_envfile(config_path), **env}
        else:
            raw_data = _read_config_file(config_path)
            raw_data = expand_env_vars(raw_data, env)

    raw_data = _apply_environment(raw_data, env)

    try:
        config = VaultManifestsConfig.model_validate(raw_data)
    except ValidationError as exc:
        error_summary = _format_validation_errors(exc)
        raise ConfigurationError(
            f"Configuration validation failed ({len(exc.errors())} error(s)):\n" f"{error_summary}"
        ) from exc

    logger.debug(
        "Configuration loaded: backend=%s, path_validation=%s, secret_dir=%s",
        config.backend.type,
        config.path_validation,
        config.secret_dir,
    )
    return config
