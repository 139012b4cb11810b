"""Command-line front-end for the key-value store.

Usage:
    quickkv [options] version
    quickkv [options] get KEY
    quickkv [options] set KEY VALUE [--type str|int|float|bool]
    quickkv [options] get-many KEY [KEY ...]
    quickkv [options] set-many KEY=VALUE [KEY=VALUE ...] [--type ...]
    quickkv [options] keys

Options default to the ``QUICKKV_*`` environment variables (see
CLISettings); flags given on the command line win.

Exit codes:
    0: Success (a missing key is not a failure)
    1: The store raised a QuickKVError
    2: Usage error
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import ValidationError

from quickkv import __version__
from quickkv.application.client import QuickClient
from quickkv.domain.exceptions import QuickKVError
from quickkv.domain.value_objects import to_native
from quickkv.infrastructure.config import CLISettings
from quickkv.infrastructure.logging import get_logger, setup_logging
from quickkv.infrastructure.tracing import setup_tracing
from quickkv.ports.inbound.key_value_store import KeyValueStore


_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off"}

_SETTING_FLAGS = ("path", "logs", "log_level", "log_format", "sync_mode", "trace")


def _parse_bool(raw: str) -> bool:
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


_PARSERS: dict[str, Callable[[str], Any]] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": _parse_bool,
}


def _json_default(item: Any) -> str:
    if isinstance(item, bytes):
        return item.hex()
    return str(item)


def _render(value: Any) -> str:
    """Format a stored value for printing."""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.hex()
    return json.dumps(value, default=_json_default)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="quickkv",
        description="Interact with a quickkv database file.",
    )
    parser.add_argument("--path", help="Database file path (default: db.qkv)")
    parser.add_argument(
        "--logs", action="store_true", default=None, help="Emit structured logs to stderr"
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], type=str.upper
    )
    parser.add_argument("--log-format", choices=["json", "console"])
    parser.add_argument("--sync-mode", choices=["fsync", "fdatasync", "none"])
    parser.add_argument(
        "--trace", action="store_true", default=None, help="Print trace spans to stdout"
    )

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    commands.add_parser("version", help="Print the version")

    get_cmd = commands.add_parser("get", help="Print the value of a key")
    get_cmd.add_argument("key")

    set_cmd = commands.add_parser("set", help="Store a value under a key")
    set_cmd.add_argument("key")
    set_cmd.add_argument("value")
    set_cmd.add_argument("--type", choices=sorted(_PARSERS), default="str", dest="value_type")

    get_many_cmd = commands.add_parser("get-many", help="Print the values of several keys")
    get_many_cmd.add_argument("keys", nargs="+", metavar="KEY")

    set_many_cmd = commands.add_parser("set-many", help="Store several KEY=VALUE pairs")
    set_many_cmd.add_argument("pairs", nargs="+", metavar="KEY=VALUE")
    set_many_cmd.add_argument(
        "--type", choices=sorted(_PARSERS), default="str", dest="value_type"
    )

    commands.add_parser("keys", help="List the live keys")

    return parser


def _convert(parser: argparse.ArgumentParser, raw: str, value_type: str) -> Any:
    try:
        return _PARSERS[value_type](raw)
    except ValueError:
        parser.error(f"invalid {value_type} value: {raw!r}")


def _split_pairs(
    parser: argparse.ArgumentParser, pairs: Sequence[str], value_type: str
) -> list[tuple[str, Any]]:
    records = []
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            parser.error(f"expected KEY=VALUE, got {pair!r}")
        records.append((key, _convert(parser, raw, value_type)))
    return records


def _run(client: KeyValueStore, args: argparse.Namespace) -> None:
    if args.command == "get":
        value = client.get(args.key)
        if value is None:
            print(f'No value found for "{args.key}"')
        else:
            print(_render(to_native(value)))
        return

    if args.command == "set":
        client.set(args.key, args.parsed)
        print(f'Set "{args.key}" to "{args.value}"')
        return

    if args.command == "get-many":
        for item in client.get_many(args.keys):
            print(f"{item.key}\t{_render(to_native(item.value))}")
        return

    if args.command == "set-many":
        client.set_many(args.parsed)
        print(f"Set {len(args.parsed)} keys")
        return

    for key in client.keys():
        print(key)


def main(argv: Sequence[str] | None = None) -> int:
    """Run one command and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"quickkv {__version__}")
        return 0

    overrides = {
        name: getattr(args, name) for name in _SETTING_FLAGS if getattr(args, name) is not None
    }
    try:
        settings = CLISettings(**overrides)
    except ValidationError as exc:
        parser.error(str(exc))

    if settings.logs:
        setup_logging(level=settings.log_level, log_format=settings.log_format)
    if settings.trace:
        setup_tracing(console_export=True)

    # Parse values before touching the database file
    if args.command == "set":
        args.parsed = _convert(parser, args.value, args.value_type)
    elif args.command == "set-many":
        args.parsed = _split_pairs(parser, args.pairs, args.value_type)

    try:
        with QuickClient(settings.to_configuration()) as client:
            _run(client, args)
    except QuickKVError as exc:
        if settings.logs:
            get_logger(__name__).error(
                "command_failed",
                command=args.command,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if settings.logs:
        get_logger(__name__).info("command_completed", command=args.command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
