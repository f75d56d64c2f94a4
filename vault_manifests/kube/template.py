"""Placeholder substitution for a single manifest.

Two placeholder forms are recognised inside string values::

    <path:secret/data/app#password>       # inline path, key
    <path:secret/data/app#password#3>     # inline path, key, version
    <password>                            # key at avp.kubernetes.io/path

Either form may end with ``| modifier`` pipes (``base64encode``,
``base64decode``, ``sha256sum``, ``trim``).  A placeholder spanning the
whole value keeps the backend value's type; placeholders embedded in
longer text are stringified (a null value becomes the empty string).
Mapping keys are never substituted.  Generic ``<key>`` placeholders are
only recognised in documents carrying the ``avp.kubernetes.io/path``
annotation; elsewhere ``<...>`` text such as HTML is left alone.

Usage::

    template = Template(manifest, backend, path_validation)
    template.replace()
    print(template.to_yaml())
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from vault_manifests.backends.base import Backend
from vault_manifests.constants import AVP_PATH_ANNOTATION, AVP_SECRET_VERSION_ANNOTATION
from vault_manifests.display.logging_config import secret_redaction_filter
from vault_manifests.errors import (
    MalformedPlaceholderError,
    PathValidationError,
    SecretLookupError,
    TemplateError,
)
from vault_manifests.kube.manifest import dump_manifest, get_annotations, get_kind, manifest_identity

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"<([^<>\n]+)>")
_INLINE_RE = re.compile(r"^path:(?P<path>[^#]+)#(?P<key>[^#]+)(?:#(?P<version>[^#]+))?$")
_GENERIC_KEY_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-/]*$")

_INLINE_PREFIX = "path:"


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def _base64decode(value: Any) -> str:
    try:
        return base64.b64decode(_stringify(value), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise TemplateError(f"base64decode: value is not valid base64 text: {exc}") from exc


_MODIFIERS: Dict[str, Callable[[Any], Any]] = {
    "base64encode": lambda v: base64.b64encode(_stringify(v).encode("utf-8")).decode("ascii"),
    "base64decode": _base64decode,
    "sha256sum": lambda v: hashlib.sha256(_stringify(v).encode("utf-8")).hexdigest(),
    "trim": lambda v: _stringify(v).strip(),
}


@dataclass(frozen=True)
class Placeholder:
    """A parsed ``<...>`` reference."""

    raw: str
    key: str
    path: Optional[str] = None
    version: Optional[str] = None
    modifiers: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_inline(self) -> bool:
        return self.path is not None


def parse_placeholder(raw: str, inner: str) -> Optional[Placeholder]:
    """Parse the text between ``<`` and ``>``.

    Returns ``None`` when *inner* is not placeholder syntax at all (e.g.
    ``<a href="...">``); raises :class:`MalformedPlaceholderError` when it
    is a placeholder with broken syntax.
    """
    parts = [p.strip() for p in inner.split("|")]
    ref, modifiers = parts[0], tuple(parts[1:])

    if ref.startswith(_INLINE_PREFIX):
        match = _INLINE_RE.match(ref)
        if match is None:
            raise MalformedPlaceholderError(raw, "expected <path:PATH#KEY> or <path:PATH#KEY#VERSION>")
        path = match.group("path").strip()
        key = match.group("key").strip()
        version = match.group("version")
        if not path or not key:
            raise MalformedPlaceholderError(raw, "path and key must not be empty")
        placeholder = Placeholder(
            raw=raw,
            key=key,
            path=path,
            version=version.strip() if version else None,
            modifiers=modifiers,
        )
    elif _GENERIC_KEY_RE.match(ref):
        placeholder = Placeholder(raw=raw, key=ref, modifiers=modifiers)
    else:
        return None

    for modifier in modifiers:
        if not modifier:
            raise MalformedPlaceholderError(raw, "empty modifier after '|'")
        if modifier not in _MODIFIERS:
            raise MalformedPlaceholderError(
                raw, f"unknown modifier '{modifier}' (supported: {', '.join(sorted(_MODIFIERS))})"
            )
    return placeholder


class Template:
    """A manifest bound to a backend and an optional path validator."""

    def __init__(
        self,
        manifest: Dict[str, Any],
        backend: Backend,
        path_validation: Optional[Pattern[str]] = None,
    ) -> None:
        if not isinstance(manifest, dict):
            raise TemplateError(f"manifest must be a mapping, got {type(manifest).__name__}")
        self._manifest = manifest
        self._backend = backend
        self._path_validation = path_validation
        self._identity = manifest_identity(manifest)
        self._annotations = get_annotations(manifest)
        self._generic_path = self._annotations.get(AVP_PATH_ANNOTATION, "").strip()
        self._is_secret = get_kind(manifest) == "Secret"
        self.replaced_count = 0

    @property
    def manifest(self) -> Dict[str, Any]:
        return self._manifest

    # ── Substitution ────────────────────────────────────────────────

    def replace(self) -> None:
        """Resolve every placeholder in the manifest.

        The walk builds a new tree and only commits it once every
        placeholder resolved, so a failure leaves :attr:`manifest` untouched.
        """
        cache: Dict[Tuple[str, Optional[str]], Dict[str, Any]] = {}
        counter: List[int] = [0]
        replaced = self._walk(self._manifest, (), cache, counter)

        self._manifest.clear()
        self._manifest.update(replaced)
        self.replaced_count = counter[0]
        logger.debug("Replaced %d placeholder(s) in %s", self.replaced_count, self._identity)

    def _walk(self, value: Any, location: Tuple[Any, ...], cache: Dict, counter: List[int]) -> Any:
        if isinstance(value, dict):
            return {k: self._walk(v, location + (k,), cache, counter) for k, v in value.items()}
        if isinstance(value, list):
            return [self._walk(item, location + (i,), cache, counter) for i, item in enumerate(value)]
        if isinstance(value, str):
            new_value, count = self._replace_string(value, location, cache)
            if count:
                counter[0] += count
                if self._is_secret and location and location[0] == "data":
                    new_value = base64.b64encode(_stringify(new_value).encode("utf-8")).decode("ascii")
            return new_value
        return value

    def _replace_string(
        self,
        value: str,
        location: Tuple[Any, ...],
        cache: Dict,
    ) -> Tuple[Any, int]:
        pieces: List[str] = []
        last = 0
        count = 0
        for match in _PLACEHOLDER_RE.finditer(value):
            inner = match.group(1)
            # Without a path annotation only inline placeholders are recognised
            if not self._generic_path and not inner.lstrip().startswith(_INLINE_PREFIX):
                continue
            placeholder = parse_placeholder(match.group(0), inner)
            if placeholder is None:
                continue
            secret = self._resolve(placeholder, location, cache)
            if match.start() == 0 and match.end() == len(value):
                return secret, 1
            pieces.append(value[last : match.start()])
            pieces.append(_stringify(secret))
            last = match.end()
            count += 1
        if not count:
            return value, 0
        pieces.append(value[last:])
        return "".join(pieces), count

    def _resolve(self, placeholder: Placeholder, location: Tuple[Any, ...], cache: Dict) -> Any:
        where = f"{self._identity} at {_format_location(location)}"
        if placeholder.is_inline:
            path, version = placeholder.path, placeholder.version
        else:
            path = self._generic_path
            version = self._annotations.get(AVP_SECRET_VERSION_ANNOTATION, "").strip() or None

        self._validate_path(path)

        cache_key = (path, version)
        if cache_key not in cache:
            cache[cache_key] = self._backend.lookup(path, version)
        data = cache[cache_key]

        if placeholder.key not in data:
            raise SecretLookupError(
                f"missing value for placeholder {placeholder.raw} in {where}: "
                f"key '{placeholder.key}' not found at {path}",
                path=path,
            )
        value = data[placeholder.key]
        for modifier in placeholder.modifiers:
            value = _MODIFIERS[modifier](value)

        if isinstance(value, str):
            secret_redaction_filter.register(value)
        logger.debug("Resolved %s in %s", placeholder.raw, where)
        return value

    def _validate_path(self, path: str) -> None:
        if self._path_validation is None:
            return
        if self._path_validation.search(path) is None:
            raise PathValidationError(path, self._path_validation.pattern)

    # ── Output ──────────────────────────────────────────────────────

    def to_yaml(self) -> str:
        """Serialize the (possibly replaced) manifest to canonical YAML."""
        return dump_manifest(self._manifest)


def _format_location(location: Tuple[Any, ...]) -> str:
    parts: List[str] = []
    for part in location:
        if isinstance(part, int):
            parts.append(f"[{part}]")
        else:
            parts.append(f".{part}" if parts else str(part))
    return "".join(parts) or "(root)"
