#!/usr/bin/env python3
"""Dump binding records as JSON, at any stage of the pipeline.

Stages:
    files        discovered corpus files with their roles
    extracted    raw records straight from the scanner
    reconciled   deduplicated, ranked records
    categories   the categorized record set (default)

Usage:
    python3 scripts/extract_bindings.py --root ~/.config/nvim
    python3 scripts/extract_bindings.py --root . --stage extracted --verbose
    python3 scripts/extract_bindings.py --root . --stage reconciled --output records.json

    # Scan a single file
    python3 scripts/extract_bindings.py --file lua/plugins/editor.lua --role general
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from keysheet.classify import FILE_ROLES
from keysheet.config import ConfigError, load_config
from keysheet.extractor import CorpusFile, scan_file
from keysheet.io_utils import dump_json, save_json
from keysheet.pipeline import build_cheatsheet
from keysheet.sources import SourceFormatError
from keysheet.types import binding_to_dict, category_to_dict

log = logging.getLogger("extract_bindings")

STAGES = ("files", "extracted", "reconciled", "categories")


def _emit(output: Path | None, payload: list[dict[str, Any]]) -> None:
    if output is None:
        dump_json(payload)
    else:
        save_json(payload, output)
        log.info("Wrote %d items to %s", len(payload), output)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Dump keymap binding records as JSON.")
    parser.add_argument(
        "--root", type=Path, default=Path.cwd(),
        help="Configuration root to scan (default: current directory)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to keysheet JSON config")
    parser.add_argument("--stage", choices=STAGES, default="categories", help="Pipeline stage to dump")
    parser.add_argument("--file", type=Path, default=None, help="Scan only this file (stage: extracted)")
    parser.add_argument(
        "--role", choices=FILE_ROLES, default="general",
        help="Rule-set for --file (default: general)",
    )
    parser.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        log.error("%s", exc)
        return 1

    if args.file is not None:
        records = scan_file(
            CorpusFile(path=args.file, label=args.file.as_posix(), role=args.role),
            max_pending_lines=config.max_pending_lines,
        )
        _emit(args.output, [binding_to_dict(r) for r in records])
        return 0 if records else 2

    root: Path = args.root.expanduser().resolve()
    try:
        result = build_cheatsheet(config, root, resolve_remotes=False)
    except (ConfigError, SourceFormatError) as exc:
        log.error("%s", exc)
        return 1
    except OSError as exc:
        log.error("Cannot read input: %s", exc)
        return 1

    if args.stage == "files":
        _emit(args.output, [
            {"path": f.label, "role": f.role, "remote_url": f.remote_url}
            for f in result.files
        ])
        return 0
    if args.stage == "extracted":
        _emit(args.output, [binding_to_dict(r) for r in result.extracted])
    elif args.stage == "reconciled":
        _emit(args.output, [binding_to_dict(r) for r in result.records])
    else:
        _emit(args.output, [category_to_dict(c) for c in result.categories])
    return 0 if result.records else 2


if __name__ == "__main__":
    raise SystemExit(main())
