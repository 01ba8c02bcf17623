"""Command line utilities for sortid."""

from __future__ import annotations

import argparse
import datetime as dt
import os
import sys
from typing import Sequence

from msgspec import structs

from .checkdigit import CheckDigitAlgorithm, compute_check_digit, is_valid_check_digit
from .config import SETTINGS_FILE_ENV_VAR, load_settings_from_env
from .exceptions import SortidError
from .serialization import json_encode
from .sortable_id import SortableIdCodec

PROJECT_NAME = "sortid"


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROJECT_NAME, description="Sortable identifier tools")
    parser.add_argument("--settings", help="JSON file with identifier settings (default: $SORTID_SETTINGS)")
    parser.add_argument("--epoch", help="Custom epoch as ISO 8601, overrides the settings")
    sub = parser.add_subparsers(dest="command", required=True)

    encode = sub.add_parser("encode", help="Generate an identifier for a sequence number")
    encode.add_argument("sequence", type=int, help="Non-negative sequence number")
    encode.add_argument("--timestamp", help="ISO 8601 timestamp to encode instead of the current time")
    encode.set_defaults(func=_cmd_encode)

    decode = sub.add_parser("decode", help="Print the timestamp and sequence held by an identifier")
    decode.add_argument("identifier")
    decode.set_defaults(func=_cmd_decode)

    validate = sub.add_parser("validate", help="Exit with status 0 when the identifier is valid")
    validate.add_argument("identifier")
    validate.set_defaults(func=_cmd_validate)

    check = sub.add_parser("check-digit", help="Compute or verify an extended check digit")
    check.add_argument("payload")
    check.add_argument(
        "--algorithm",
        choices=[algorithm.value for algorithm in CheckDigitAlgorithm],
        default=CheckDigitAlgorithm.VERHOEFF.value,
    )
    check.add_argument("--alphabet", default="0123456789", help="Characters the digit is projected onto")
    check.add_argument("--verify", action="store_true", help="Treat the last payload character as the check digit")
    check.set_defaults(func=_cmd_check_digit)

    return parser


def _parse_timestamp(value: str, *, option: str) -> dt.datetime:
    try:
        return dt.datetime.fromisoformat(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid {option} timestamp '{value}'") from exc


def _load_codec(args: argparse.Namespace) -> SortableIdCodec:
    try:
        if args.settings:
            settings = load_settings_from_env(env={SETTINGS_FILE_ENV_VAR: args.settings})
        else:
            settings = load_settings_from_env(env=os.environ)
        if args.epoch:
            settings = structs.replace(settings, custom_epoch=_parse_timestamp(args.epoch, option="--epoch"))
        return SortableIdCodec(settings)
    except SortidError as exc:
        raise SystemExit(str(exc)) from exc


def _cmd_encode(args: argparse.Namespace) -> int:
    codec = _load_codec(args)
    timestamp = _parse_timestamp(args.timestamp, option="--timestamp") if args.timestamp else None
    try:
        result = codec.create(args.sequence, timestamp)
    except SortidError as exc:
        raise SystemExit(str(exc)) from exc
    print(json_encode(result).decode())
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    result = _load_codec(args).decode(args.identifier)
    if result is None:
        raise SystemExit(f"Invalid identifier '{args.identifier}'")
    print(json_encode(result).decode())
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    valid = _load_codec(args).is_valid(args.identifier)
    print("valid" if valid else "invalid")
    return 0 if valid else 1


def _cmd_check_digit(args: argparse.Namespace) -> int:
    algorithm = CheckDigitAlgorithm(args.algorithm)
    try:
        if args.verify:
            valid = is_valid_check_digit(args.payload, algorithm, args.alphabet)
            print("valid" if valid else "invalid")
            return 0 if valid else 1
        print(compute_check_digit(args.payload, algorithm, args.alphabet))
    except SortidError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0
