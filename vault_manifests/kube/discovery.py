"""Turn a path or a stream into a list of manifests.

A path may be a single file or a directory tree; every ``.yaml``,
``.yml`` and ``.json`` file below it is read in sorted order.  Read errors
are collected per file and reported together.
"""

from __future__ import annotations

import logging
import os
from typing import IO, Any, Dict, List, Optional, Tuple

import yaml

from vault_manifests.constants import MANIFEST_EXTENSIONS, STDIN_SOURCE
from vault_manifests.errors import DiscoveryError

logger = logging.getLogger(__name__)


def _has_manifest_ext(fpath: str) -> bool:
    return os.path.splitext(fpath)[1].lower() in MANIFEST_EXTENSIONS


def list_files(root: str) -> List[str]:
    """Return manifest files at *root* (a file or a directory), sorted."""
    if os.path.isfile(root):
        return [root] if _has_manifest_ext(root) else []
    if not os.path.isdir(root):
        raise DiscoveryError(f"could not access {root}: no such file or directory")

    files: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            if _has_manifest_ext(name):
                files.append(os.path.join(dirpath, name))
    return files


def read_manifest_data(stream: IO[str], source: str = "<stdin>") -> List[Dict[str, Any]]:
    """Parse every YAML document in *stream*; empty documents are dropped."""
    manifests: List[Dict[str, Any]] = []
    try:
        for idx, doc in enumerate(yaml.safe_load_all(stream)):
            if doc is None:
                continue
            if not isinstance(doc, dict):
                raise DiscoveryError(
                    f"{source}: document {idx} is a {type(doc).__name__}, expected a mapping"
                )
            manifests.append(doc)
    except yaml.YAMLError as exc:
        raise DiscoveryError(f"{source}: could not parse YAML/JSON: {exc}") from exc
    return manifests


def read_files_as_manifests(files: List[str]) -> Tuple[List[Dict[str, Any]], List[Exception]]:
    """Read every file in *files*, collecting errors instead of stopping.

    Returns ``(manifests, errors)``; manifests keep file order and
    in-file document order.
    """
    manifests: List[Dict[str, Any]] = []
    errors: List[Exception] = []
    for fpath in files:
        try:
            with open(fpath, "r", encoding="utf-8") as f:
                manifests.extend(read_manifest_data(f, source=fpath))
        except DiscoveryError as exc:
            errors.append(exc)
        except (OSError, UnicodeDecodeError) as exc:
            errors.append(DiscoveryError(f"{fpath}: {exc}"))
    return manifests, errors


def discover_documents(source: str, stdin: Optional[IO[str]] = None) -> List[Dict[str, Any]]:
    """Read manifests from *source* (a path, or ``-`` for *stdin*).

    Raises:
        DiscoveryError: if a path yields no files, or any file cannot be
            read (all failures reported in one message).
    """
    if source == STDIN_SOURCE:
        if stdin is None:
            raise DiscoveryError("reading from standard input requires a stream")
        manifests = read_manifest_data(stdin)
        logger.debug("Read %d manifest(s) from standard input", len(manifests))
        return manifests

    files = list_files(source)
    if not files:
        raise DiscoveryError(f"no YAML or JSON files were found in {source}")

    manifests, errors = read_files_as_manifests(files)
    if errors:
        messages = "\n".join(str(err) for err in errors)
        raise DiscoveryError(f"could not read YAML/JSON files:\n{messages}")

    logger.debug("Read %d manifest(s) from %d file(s) in %s", len(manifests), len(files), source)
    return manifests
