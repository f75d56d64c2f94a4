"""Logging setup for vault-manifests."""

from vault_manifests.display.logging_config import secret_redaction_filter, setup_logging

__all__ = [
    "secret_redaction_filter",
    "setup_logging",
]
