"""Corpus discovery: which files get scanned, in which order.

Order:
    1. every ``*.lua`` under each plugin directory (recursive, sorted)
    2. every ``*.lua`` under the filetype plugin directory
    3. explicit keymap files, in configured order
    4. ``<vendored root>/<plugin>/lazy.lua`` for each vendored plugin (sorted)

Labels are posix paths relative to the configuration root, which is what
records show as their source. Missing directories are logged and skipped.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from keysheet.classify import DEFAULT_ROLE_RULES, FileRole, classify_file
from keysheet.extractor import CorpusFile
from keysheet.repo_info import plugin_remote_url


log = logging.getLogger(__name__)

VENDORED_SPEC_NAME = "lazy.lua"


def _label(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def _lua_files(directory: Path) -> list[Path]:
    return sorted(p for p in directory.rglob("*.lua") if p.is_file())


def discover_corpus(
    root: Path,
    *,
    plugin_dirs: Sequence[str],
    ftplugin_dir: str | None = "ftplugin",
    keymap_files: Sequence[str] = (),
    vendored_root: Path | None = None,
    role_rules: tuple[tuple[str, FileRole], ...] = DEFAULT_ROLE_RULES,
    resolve_remotes: bool = True,
) -> list[CorpusFile]:
    """Collect the files to scan under ``root``.

    Explicit keymap files are listed even if missing so the read failure is
    reported by the extractor.
    """
    files: list[CorpusFile] = []
    seen: set[Path] = set()

    def add(path: Path, *, vendored: bool = False, remote_url: str | None = None) -> None:
        resolved = path.resolve()
        if resolved in seen:
            return
        seen.add(resolved)
        label = _label(path, root) if not vendored else _label(path, path.parents[1])
        role = classify_file(label, role_rules, vendored=vendored)
        files.append(CorpusFile(path=path, label=label, role=role, remote_url=remote_url))

    dirs = list(plugin_dirs)
    if ftplugin_dir:
        dirs.append(ftplugin_dir)
    for rel in dirs:
        directory = root / rel
        if not directory.is_dir():
            log.warning("Plugin directory not found: %s", directory)
            continue
        for path in _lua_files(directory):
            add(path)

    for rel in keymap_files:
        add(root / rel)

    if vendored_root is not None:
        if vendored_root.is_dir():
            for plugin_dir in sorted(p for p in vendored_root.iterdir() if p.is_dir()):
                spec = plugin_dir / VENDORED_SPEC_NAME
                if not spec.is_file():
                    continue
                remote = plugin_remote_url(plugin_dir) if resolve_remotes else None
                add(spec, vendored=True, remote_url=remote)
        else:
            log.debug("Vendored plugin root not found: %s", vendored_root)

    log.info("Discovered %d files under %s", len(files), root)
    return files
