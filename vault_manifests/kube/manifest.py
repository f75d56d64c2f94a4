"""Accessors for manifests held as plain ``dict`` trees."""

from __future__ import annotations

from typing import Any, Dict, Mapping

import yaml


def _metadata(manifest: Mapping[str, Any]) -> Mapping[str, Any]:
    metadata = manifest.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


def get_annotations(manifest: Mapping[str, Any]) -> Dict[str, str]:
    """Return ``metadata.annotations`` (empty when absent or malformed).

    Null annotation values are dropped.
    """
    annotations = _metadata(manifest).get("annotations")
    if not isinstance(annotations, dict):
        return {}
    return {
        str(k): v if isinstance(v, str) else str(v)
        for k, v in annotations.items()
        if v is not None
    }


def get_name(manifest: Mapping[str, Any]) -> str:
    name = _metadata(manifest).get("name")
    return "" if name is None else str(name)


def get_namespace(manifest: Mapping[str, Any]) -> str:
    namespace = _metadata(manifest).get("namespace")
    return "" if namespace is None else str(namespace)


def get_kind(manifest: Mapping[str, Any]) -> str:
    kind = manifest.get("kind")
    return "" if kind is None else str(kind)


def manifest_identity(manifest: Mapping[str, Any]) -> str:
    """``Kind namespace/name`` for error messages."""
    kind = get_kind(manifest) or "manifest"
    namespace = get_namespace(manifest)
    name = get_name(manifest) or "<unnamed>"
    return f"{kind} {namespace}/{name}" if namespace else f"{kind} {name}"


def dump_manifest(manifest: Mapping[str, Any]) -> str:
    """Serialize *manifest* to canonical YAML.

    Keys are sorted and block style is forced so the output only depends
    on the tree's content.
    """
    return yaml.safe_dump(
        manifest,
        sort_keys=True,
        default_flow_style=False,
        allow_unicode=True,
    )
