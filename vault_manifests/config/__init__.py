"""Configuration loading and validation for vault-manifests."""

from vault_manifests.config.expansion import expand_env_vars
from vault_manifests.config.flags import parse_bool
from vault_manifests.config.loader import load_config
from vault_manifests.config.schema import (
    BackendSettings,
    DirectoryBackendSettings,
    EnvBackendSettings,
    FileBackendSettings,
    VaultBackendSettings,
    VaultManifestsConfig,
)

__all__ = [
    "BackendSettings",
    "DirectoryBackendSettings",
    "EnvBackendSettings",
    "FileBackendSettings",
    "VaultBackendSettings",
    "VaultManifestsConfig",
    "expand_env_vars",
    "load_config",
    "parse_bool",
]
