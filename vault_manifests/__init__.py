"""
vault-manifests - inject secret backend values into Kubernetes manifests.

Reads a stream of manifests, replaces ``<placeholder>`` references with
values fetched from a secret backend (Vault, encrypted file, plain
directory or environment), and writes the resolved YAML stream.
"""

from vault_manifests.constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION
__app_name__ = APP_NAME

__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "__version__",
    "__app_name__",
]
