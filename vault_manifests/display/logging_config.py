"""Logging configuration setup.

Manifests are written to stdout, so every log record goes to stderr.
"""

import copy
import logging
import logging.config
import re
import sys
from typing import Set  # noqa: UP035

from vault_manifests.constants import DEFAULT_LOG_LEVEL

# ── Secret redaction filter ──────────────────────────────────────────────

_REDACTED = "***REDACTED***"


class SecretRedactionFilter(logging.Filter):
    """Logging filter that replaces resolved secret values with a placeholder.

    Call :meth:`register` to add values that should be scrubbed.
    """

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()
        self._pattern: re.Pattern[str] | None = None

    def register(self, value: str) -> None:
        """Register a secret value for redaction."""
        if value and len(value) >= 4:  # skip trivially short values
            self._secrets.add(value)
            # Longest first so overlapping secrets are fully scrubbed
            escaped = sorted((re.escape(s) for s in self._secrets), key=len, reverse=True)
            self._pattern = re.compile("|".join(escaped))

    def clear(self) -> None:
        """Forget every registered value."""
        self._secrets.clear()
        self._pattern = None

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is not None:
            if isinstance(record.msg, str):
                record.msg = self._pattern.sub(_REDACTED, record.msg)
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {
                        k: self._pattern.sub(_REDACTED, v) if isinstance(v, str) else v
                        for k, v in record.args.items()
                    }
                elif isinstance(record.args, tuple):
                    record.args = tuple(
                        self._pattern.sub(_REDACTED, a) if isinstance(a, str) else a
                        for a in record.args
                    )
        return True


# Module-level singleton so the template can register values at resolve time.
secret_redaction_filter = SecretRedactionFilter()

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple_stderr": {
            "format": "%(asctime)s - %(name)s - %(levelname)-7s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "stderr_handler": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "simple_stderr",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "vault_manifests": {
            "handlers": ["stderr_handler"],
            "propagate": False,
            "level": DEFAULT_LOG_LEVEL,
        },
        "hvac": {
            "handlers": ["stderr_handler"],
            "propagate": False,
            "level": "WARNING",
        },
    },
    "root": {
        "handlers": ["stderr_handler"],
        "level": "WARNING",
    },
}

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(log_lvl_str: str = DEFAULT_LOG_LEVEL, *, verbose: bool = False) -> str:
    """
    Set up the logging system.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        verbose: If *True*, force DEBUG so skipped manifests and resolved
            paths are reported.

    Returns:
        The effective log level name.
    """
    log_lvl_valid = log_lvl_str.upper()
    if log_lvl_valid not in _VALID_LEVELS:
        print(
            f"Warning: invalid log level '{log_lvl_str}'. Using '{DEFAULT_LOG_LEVEL}'.",
            file=sys.stderr,
        )
        log_lvl_valid = DEFAULT_LOG_LEVEL
    if verbose:
        log_lvl_valid = "DEBUG"

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    log_cfg["loggers"]["vault_manifests"]["level"] = log_lvl_valid
    if log_lvl_valid == "DEBUG":
        log_cfg["loggers"]["hvac"]["level"] = "DEBUG"

    logging.config.dictConfig(log_cfg)
    # Attach the redaction filter to every handler we just installed
    for name in ("vault_manifests", "hvac", ""):
        for handler in logging.getLogger(name).handlers:
            handler.addFilter(secret_redaction_filter)

    return log_lvl_valid
