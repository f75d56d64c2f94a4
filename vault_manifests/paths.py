"""Secret directory resolution.

The configured directory may be absolute, relative to the working
directory, or start with ``GIT_ROOT`` to be resolved against the root of
the enclosing Git checkout::

    resolve_secret_dir("GIT_ROOT/secrets", "/repo/apps/web")
    # "/repo/secrets"
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from vault_manifests.constants import GIT_ROOT_MARKER
from vault_manifests.errors import ConfigurationError

logger = logging.getLogger(__name__)


def detect_git_path(cwd: str) -> str:
    """Return the ``.git`` entry of the nearest checkout containing *cwd*.

    ``.git`` may be a directory or, for worktrees and submodules, a file.
    """
    current = os.path.abspath(cwd)
    while True:
        candidate = os.path.join(current, ".git")
        if os.path.exists(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            raise ConfigurationError(
                f"could not find a Git repository root above {cwd} "
                f"(required by the {GIT_ROOT_MARKER} secret directory)"
            )
        current = parent


def resolve_secret_dir(
    configured: Optional[str],
    cwd: str,
    git_root_detector: Callable[[str], str] = detect_git_path,
) -> str:
    """Resolve *configured* to an absolute, normalized directory path."""
    secret_dir = (configured or "").strip()
    if not secret_dir:
        return os.path.normpath(cwd)
    if os.path.isabs(secret_dir):
        return os.path.normpath(secret_dir)

    if secret_dir.startswith(GIT_ROOT_MARKER):
        relative = secret_dir[len(GIT_ROOT_MARKER) :].lstrip("/\\")
        git_root = os.path.dirname(git_root_detector(cwd))
        resolved = os.path.normpath(os.path.join(git_root, relative))
    else:
        resolved = os.path.normpath(os.path.join(cwd, secret_dir))

    logger.debug("Secret directory '%s' resolved to %s", configured, resolved)
    return resolved
