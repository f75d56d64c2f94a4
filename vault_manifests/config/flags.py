"""Boolean flag parsing for annotations and environment variables.

Values follow the spellings accepted by Kubernetes tooling::

    from vault_manifests.config.flags import parse_bool

    parse_bool("true")   # True
    parse_bool("yes")    # False (not a recognised spelling → default)
"""

from __future__ import annotations

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_BOOL_LOOKUP: Dict[str, bool] = {
    **{v: True for v in _TRUE_VALUES},
    **{v: False for v in _FALSE_VALUES},
}


def parse_bool(value: Any, default: bool = False) -> bool:
    """Parse *value* as a boolean, falling back to *default*.

    Real ``bool`` values pass through.  Strings must be one of the
    recognised spellings; anything else (including ``None``) returns
    *default* instead of raising, so a malformed annotation never aborts
    a run.
    """
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return default
    parsed = _BOOL_LOOKUP.get(value)
    if parsed is None:
        if value:
            logger.debug("Unparsable boolean '%s'; using default %s.", value, default)
        return default
    return parsed
