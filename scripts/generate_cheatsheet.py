#!/usr/bin/env python3
"""Generate a markdown keymap cheatsheet from a Neovim configuration tree.

Scans plugin specs, filetype plugins and keymap files under ``--root``,
reconciles them with the default-binding catalog and an optional live dump,
and writes the categorized cheatsheet.

Usage:
    python3 scripts/generate_cheatsheet.py --root ~/.config/nvim

    # Custom config, write elsewhere, no git lookups
    python3 scripts/generate_cheatsheet.py --root . --config keysheet.json \
      --output docs/KEYMAPS.md --no-git

    # Print to stdout
    python3 scripts/generate_cheatsheet.py --root . --output -
"""
from __future__ import annotations

import argparse
import dataclasses
import datetime as dt
import logging
import sys
from pathlib import Path

from keysheet.config import ConfigError, load_config
from keysheet.pipeline import build_cheatsheet
from keysheet.render import render_markdown
from keysheet.repo_info import resolve_repo_link
from keysheet.sources import SourceFormatError

log = logging.getLogger("generate_cheatsheet")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a markdown keymap cheatsheet from a Neovim config tree."
    )
    parser.add_argument(
        "--root", type=Path, default=Path.cwd(),
        help="Configuration root to scan (default: current directory)",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="Path to keysheet JSON config (default: built-in defaults)",
    )
    parser.add_argument("--catalog", type=Path, default=None, help="Override the catalog file")
    parser.add_argument("--live", type=Path, default=None, help="Override the live bindings file")
    parser.add_argument(
        "--output", default=None,
        help="Output path, '-' for stdout (default: output.file from config, under --root)",
    )
    parser.add_argument("--no-git", action="store_true", help="Skip git remote lookups")
    parser.add_argument(
        "--date", type=dt.date.fromisoformat, default=None,
        help="Date stamp for the header (YYYY-MM-DD, default: today)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    root: Path = args.root.expanduser().resolve()

    try:
        config = load_config(args.config)
        if args.catalog is not None:
            config = dataclasses.replace(config, catalog_file=str(args.catalog), catalog_enabled=True)
        if args.live is not None:
            config = dataclasses.replace(config, live_file=str(args.live))
        result = build_cheatsheet(config, root, resolve_remotes=not args.no_git)
    except (ConfigError, SourceFormatError) as exc:
        log.error("%s", exc)
        return 1
    except OSError as exc:
        log.error("Cannot read input: %s", exc)
        return 1

    if not result.records:
        log.error("No keymaps found under %s", root)
        return 2

    repo = None
    if not args.no_git:
        repo = resolve_repo_link(
            root,
            enabled=config.git.enabled,
            base_url=config.git.base_url,
            branch=config.git.default_branch,
        )
    has_ftplugin = bool(config.ftplugin_dir) and (root / str(config.ftplugin_dir)).is_dir()
    markdown = render_markdown(
        result.categories, config, repo=repo, today=args.date, has_ftplugin=has_ftplugin,
    )

    if args.output == "-":
        sys.stdout.write(markdown)
        return 0
    out_path = Path(args.output) if args.output else root / config.output.file
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(markdown, encoding="utf-8")
    log.info(
        "Wrote %s (%d keymaps, %d sections)",
        out_path, len(result.records), len(result.categories),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
