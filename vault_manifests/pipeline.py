"""Manifest resolution pipeline.

For every manifest, in input order:

1. read the ``avp.kubernetes.io/ignore`` annotation (parse-or-default,
   default ``False``);
2. if set, log the skip and leave the manifest untouched;
3. otherwise run :meth:`Template.replace` (any error aborts the run);
4. serialize the manifest and append a ``---`` separator line.

Output is buffered and only returned once every manifest succeeded, so a
failing run never emits a partial manifest set.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import IO, Any, Dict, Iterable, Optional, Pattern, Union

from vault_manifests.backends import Backend, create_backend
from vault_manifests.config.flags import parse_bool
from vault_manifests.config.schema import VaultManifestsConfig
from vault_manifests.constants import AVP_IGNORE_ANNOTATION, DOCUMENT_SEPARATOR
from vault_manifests.errors import ConfigurationError
from vault_manifests.kube.discovery import discover_documents
from vault_manifests.kube.manifest import dump_manifest, get_annotations, get_name, get_namespace
from vault_manifests.kube.template import Template
from vault_manifests.paths import resolve_secret_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerateOptions:
    """Options recognised by the pipeline.

    Attributes:
        path_validation: Regular expression restricting which secret
            paths may be substituted (``None`` permits all).
        secret_dir: Base path for file-based secret sources.
        verbose: Enables the diagnostic side-channel.
    """

    path_validation: Optional[str] = None
    secret_dir: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_config(cls, config: VaultManifestsConfig) -> "GenerateOptions":
        return cls(
            path_validation=config.path_validation,
            secret_dir=config.secret_dir,
            verbose=config.verbose,
        )


def compile_path_validation(pattern: Optional[str]) -> Optional[Pattern[str]]:
    """Compile the path validation pattern once per run.

    Returns ``None`` for an absent or blank pattern.
    """
    if pattern is None or not pattern.strip():
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        logger.error("Invalid path validation pattern '%s': %s", pattern, exc)
        raise ConfigurationError(f"{pattern} is not a valid regular expression: {exc}") from exc


def should_skip(manifest: Dict[str, Any]) -> bool:
    """Return ``True`` if the manifest carries a truthy ignore annotation."""
    return parse_bool(get_annotations(manifest).get(AVP_IGNORE_ANNOTATION), default=False)


def process_pipeline(
    documents: Iterable[Dict[str, Any]],
    backend: Backend,
    path_validation: Union[Pattern[str], str, None] = None,
) -> str:
    """Resolve *documents* against a logged-in *backend*.

    Returns the concatenated YAML stream, one ``---``-terminated unit per
    input document in input order.  The first error is raised as-is.
    """
    if isinstance(path_validation, str):
        path_validation = compile_path_validation(path_validation)

    chunks = []
    for manifest in documents:
        if should_skip(manifest):
            logger.debug(
                "skipping %s.%s because %s annotation is present",
                get_namespace(manifest),
                get_name(manifest),
                AVP_IGNORE_ANNOTATION,
            )
            output = dump_manifest(manifest)
        else:
            template = Template(manifest, backend, path_validation)
            template.replace()
            output = template.to_yaml()
        chunks.append(f"{output}{DOCUMENT_SEPARATOR}\n")

    logger.debug("Processed %d manifest(s)", len(chunks))
    return "".join(chunks)


class ManifestPipeline:
    """Binds a backend and options for one run.

    The path validation pattern is compiled at construction, before the
    backend is contacted.
    """

    def __init__(self, backend: Backend, options: Optional[GenerateOptions] = None) -> None:
        self._backend = backend
        self._options = options or GenerateOptions()
        self._path_validation = compile_path_validation(self._options.path_validation)
        self._logged_in = False

    @property
    def options(self) -> GenerateOptions:
        return self._options

    def login(self) -> None:
        """Authenticate the backend; later calls are no-ops."""
        if self._logged_in:
            return
        logger.debug("Logging in to %r", self._backend)
        self._backend.login()
        self._logged_in = True

    def run(self, documents: Iterable[Dict[str, Any]]) -> str:
        """Log in once, then resolve every document."""
        self.login()
        return process_pipeline(documents, self._backend, self._path_validation)


def generate(
    source: str,
    config: VaultManifestsConfig,
    *,
    stdin: Optional[IO[str]] = None,
    cwd: Optional[str] = None,
    backend: Optional[Backend] = None,
) -> str:
    """Run discovery and the pipeline end to end.

    Errors surface in this order: configuration (secret directory,
    pattern, backend settings), discovery, backend login, substitution.
    """
    options = GenerateOptions.from_config(config)
    secret_dir = resolve_secret_dir(options.secret_dir, cwd or os.getcwd())
    options = GenerateOptions(
        path_validation=options.path_validation,
        secret_dir=secret_dir,
        verbose=options.verbose,
    )
    if backend is None:
        backend = create_backend(config.backend, secret_dir=secret_dir)
    pipeline = ManifestPipeline(backend, options)

    documents = discover_documents(source, stdin=stdin)
    return pipeline.run(documents)
