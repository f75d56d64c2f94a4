"""CLI argument parsing and main entry point.

* ``vault-manifests generate <path>``: resolve placeholders in the
  manifests at ``<path>`` (``-`` for stdin) and print the YAML stream.
* ``vault-manifests version``: print the version.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from vault_manifests.constants import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_LOG_LEVEL,
    ENV_SECRET_DIR,
    STDIN_SOURCE,
)
from vault_manifests.display.logging_config import setup_logging
from vault_manifests.errors import VaultManifestsError

module_logger = logging.getLogger(__name__)


# ── ``vault-manifests generate`` ────────────────────────────────────────


def _cmd_generate(args: argparse.Namespace) -> int:
    """Entry-point for ``vault-manifests generate``."""
    from vault_manifests.config.loader import load_config
    from vault_manifests.pipeline import generate

    setup_logging(args.log_level, verbose=args.verbose_sensitive_output)

    try:
        config = load_config(args.config_path)

        updates = {}
        # AVP_SECRET_DIR wins over the flag
        if args.secret_dir and not os.environ.get(ENV_SECRET_DIR, "").strip():
            updates["secret_dir"] = args.secret_dir
        if args.verbose_sensitive_output:
            updates["verbose"] = True
        if updates:
            config = config.model_copy(update=updates)
        if config.verbose and not args.verbose_sensitive_output:
            setup_logging(args.log_level, verbose=True)

        output = generate(args.path, config, stdin=sys.stdin)
    except VaultManifestsError as exc:
        module_logger.debug("generate failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    sys.stdout.write(output)
    sys.stdout.flush()
    return 0


# ── ``vault-manifests version`` ─────────────────────────────────────────


def _cmd_version(args: argparse.Namespace) -> int:
    print(f"{APP_NAME} v{APP_VERSION}")
    return 0


# ── CLI parser construction ──────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with generate/version subcommands."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME} v{APP_VERSION}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # ── generate ────────────────────────────────────────────────
    sp_generate = subparsers.add_parser(
        "generate",
        help="Generate manifests from templates with secret backend values",
    )
    sp_generate.add_argument(
        "path",
        metavar="<path>",
        help=f"File or directory of YAML/JSON manifests, or '{STDIN_SOURCE}' for stdin",
    )
    sp_generate.add_argument(
        "-c",
        "--config-path",
        type=str,
        default=None,
        metavar="PATH",
        help="Path to a YAML, JSON or envfile (.env) file with backend configuration",
    )
    sp_generate.add_argument(
        "-d",
        "--secret-dir",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Directory containing secrets for file-based backends. "
            "GIT_ROOT resolves against the root of the Git repository; "
            "defaults to the current working directory."
        ),
    )
    sp_generate.add_argument(
        "--verbose-sensitive-output",
        action="store_true",
        default=False,
        help=(
            "Enable verbose diagnostics on stderr to help with debugging. "
            "May include secret paths and backend details."
        ),
    )
    sp_generate.add_argument(
        "--log-level",
        type=str,
        default=DEFAULT_LOG_LEVEL.lower(),
        choices=["debug", "info", "warning", "error", "critical"],
        help=f"Set stderr logging level (default: {DEFAULT_LOG_LEVEL.lower()})",
    )
    sp_generate.set_defaults(func=_cmd_generate)

    # ── version ─────────────────────────────────────────────────
    sp_version = subparsers.add_parser("version", help="Print the version")
    sp_version.set_defaults(func=_cmd_version)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    sys.exit(args.func(args))
