"""CLI tool to check, format and inspect Caddyfiles."""

import argparse
import json
import logging
import sys

from caddyfile_config import load_config
from caddyfile_container import is_container, to_container
from caddyfile_conversion import (
    container_to_json_dict,
    document_stats,
    document_to_json_dict,
    document_to_simple_json_dict,
)
from caddyfile_parser import ParseError, parse_caddyfile
from caddyfile_serializer import serialize_caddyfile
from caddyfile_validator import inspect_document, validate_caddyfile

logger = logging.getLogger("caddyfile_cli")


def build_parser(default_path: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Parse, validate and format Caddyfiles.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    sub = parser.add_subparsers(dest="command", required=True)

    def with_path(p):
        p.add_argument(
            "path",
            nargs="?",
            default=default_path,
            help=f"Path to the Caddyfile (default: {default_path})",
        )
        return p

    with_path(sub.add_parser("validate", help="Structural checks only"))
    fmt = with_path(sub.add_parser("format", help="Parse and re-serialize"))
    fmt.add_argument("--write", action="store_true", help="Overwrite the file instead of printing")
    js = with_path(sub.add_parser("json", help="Emit the document as JSON"))
    js.add_argument("--simple", action="store_true", help="Simplified, human-oriented JSON")
    with_path(sub.add_parser("stats", help="Count site blocks, directives and services"))
    with_path(sub.add_parser("containers", help="Show wildcard containers and their services"))
    return parser


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def run(argv=None) -> int:
    config = load_config()
    args = build_parser(config.caddyfile_path).parse_args(argv)

    level = config.log_level
    if args.verbose == 1:
        level = "INFO"
    elif args.verbose > 1:
        level = "DEBUG"
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        content = _read(args.path)
    except OSError as e:
        print(f"Cannot read {args.path}: {e}", file=sys.stderr)
        return 1

    if args.command == "validate":
        result = validate_caddyfile(content, config)
        for message in result.errors:
            print(f"error: {message}")
        for message in result.warnings:
            print(f"warning: {message}")
        if result.valid:
            try:
                document = parse_caddyfile(content, config)
            except ParseError as e:
                print(f"error: {e}")
                return 1
            for message in inspect_document(document, config).warnings:
                print(f"warning: {message}")
            print(f"ok (confidence {result.confidence}%)")
        return 0 if result.valid else 1

    try:
        document = parse_caddyfile(content, config)
    except ParseError as e:
        print(f"Error parsing {args.path}: {e}", file=sys.stderr)
        return 1

    if args.command == "format":
        formatted = serialize_caddyfile(document, config)
        if args.write:
            with open(args.path, "w", encoding="utf-8") as fw:
                fw.write(formatted)
            logger.info("formatted %s", args.path)
        else:
            sys.stdout.write(formatted)
    elif args.command == "json":
        if args.simple:
            as_dict = document_to_simple_json_dict(document, config)
        else:
            as_dict = document_to_json_dict(document)
        print(json.dumps(as_dict, indent=4))
    elif args.command == "stats":
        print(json.dumps(document_stats(document, config), indent=4))
    elif args.command == "containers":
        containers = [
            container_to_json_dict(to_container(b, config))
            for b in document.site_blocks
            if is_container(b, config)
        ]
        print(json.dumps(containers, indent=4))

    return 0


if __name__ == "__main__":
    raise SystemExit(run())
