"""CLI/runtime bootstrap helpers for the chaos commands."""

from __future__ import annotations

import argparse
import os
import sys
from enum import Enum
from typing import Any


class Command(Enum):
    """Every command the CLI accepts."""
    INJECT = "inject"
    RESTORE = "restore"
    LIST = "list"
    INFO = "info"
    STATUS = "status"


def configure_windows_console_utf8() -> None:
    """Best-effort UTF-8 console setup for Windows terminals."""
    if sys.platform != "win32":
        return

    if hasattr(sys.stdout, "reconfigure"):
        stdout: Any = sys.stdout
        stderr: Any = sys.stderr
        try:
            stdout.reconfigure(encoding="utf-8")
            stderr.reconfigure(encoding="utf-8")
        except (OSError, ValueError):
            # Terminal-dependent; default encoding still works for ASCII output.
            pass


def debug_enabled() -> bool:
    """True when DEBUG is set to a truthy value."""
    value = os.getenv("DEBUG")
    return bool(value) and value.strip().lower() not in {"0", "false", "no", "off"}


def build_chaos_arg_parser() -> argparse.ArgumentParser:
    """Create the chaos CLI parser."""
    parser = argparse.ArgumentParser(
        prog="chaos",
        description="Inject known-bad source files into a web project and restore the originals.",
        epilog="Examples:\n"
        "  chaos list\n"
        "  chaos info --type syntax-error\n"
        "  chaos inject --type syntax-error\n"
        "  chaos restore",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--root", "-r", help="Target project root (default: config project_root or current directory)")
    parser.add_argument("--config", "-c", help="Path to config.json file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging and tracebacks on errors")
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors (also respects NO_COLOR/CHAOS_NO_COLOR).",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    inject = subparsers.add_parser(Command.INJECT.value, help="Inject fault code")
    inject.add_argument("--type", "-t", dest="fault_type", required=True, help="Fault type id (see 'chaos list')")
    inject.add_argument(
        "--force",
        action="store_true",
        help="Discard a pending, unrestored injection instead of refusing",
    )

    restore = subparsers.add_parser(Command.RESTORE.value, help="Restore normal state")
    restore.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser(Command.LIST.value, help="List all fault types")

    info = subparsers.add_parser(Command.INFO.value, help="View fault details")
    info.add_argument("--type", "-t", dest="fault_type", required=True, help="Fault type id (see 'chaos list')")

    subparsers.add_parser(Command.STATUS.value, help="Show the pending injection, if any")

    return parser
