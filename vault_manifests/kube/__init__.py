"""Manifest discovery, placeholder substitution and serialization."""

from vault_manifests.kube.discovery import (
    discover_documents,
    list_files,
    read_files_as_manifests,
    read_manifest_data,
)
from vault_manifests.kube.manifest import dump_manifest, get_annotations
from vault_manifests.kube.template import Placeholder, Template, parse_placeholder

__all__ = [
    "Placeholder",
    "Template",
    "discover_documents",
    "dump_manifest",
    "get_annotations",
    "list_files",
    "parse_placeholder",
    "read_files_as_manifests",
    "read_manifest_data",
]
