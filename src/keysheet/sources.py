"""Loaders for the already-resolved binding sources.

- **Catalog**: ``{section: [{"lhs", "mode", "desc"}, ...]}``, an ordered
  mapping of fixed default bindings grouped into display sections.
- **Live**: ``[{"mode", "lhs", "desc"?, "rhs"?, "source"?, "sid"?}, ...]``,
  a dump of the bindings a running editor reports.
- **Manual**: ``{owner: [{"keymap", "mode", "desc", "source"?}, ...]}``
  from the configuration file.

Parsing is strict about structure (a malformed file raises
SourceFormatError) and lenient about content (entries the live source
should not contribute are filtered, not rejected).
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson

from keysheet.io_utils import load_json
from keysheet.normalize import is_plug_binding, normalize_description
from keysheet.types import DEFAULT_SOURCE_LABEL, MANUAL_SOURCE_LABEL


log = logging.getLogger(__name__)

# Live bindings whose source came from the editor's own defaults file.
DEFAULTS_FILE_SOURCE = "External: _defaults.lua"
NO_DESCRIPTION = "No description"
DEFAULT_EXCLUDE_SOURCES: tuple[str, ...] = ("lua/personal/",)


class SourceFormatError(ValueError):
    """Raised when a catalog or live file does not have the expected shape."""


def _read(path: Path) -> Any:
    try:
        return load_json(path)
    except orjson.JSONDecodeError as exc:
        raise SourceFormatError(f"{path}: invalid JSON: {exc}") from exc


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    section: str
    trigger: str
    mode: str
    description: str


def parse_catalog(data: Any, *, origin: str = "catalog") -> dict[str, list[CatalogEntry]]:
    """Validate catalog data, keeping section and entry order.

    An entry's ``mode`` may be a single code or a list of codes; a list
    yields one entry per mode.
    """
    if not isinstance(data, Mapping):
        raise SourceFormatError(f"{origin} must be an object of section -> entries")
    sections: dict[str, list[CatalogEntry]] = {}
    for section, entries in data.items():
        if not isinstance(entries, list):
            raise SourceFormatError(f"{origin}[{section!r}] must be a list")
        out: list[CatalogEntry] = []
        for i, entry in enumerate(entries):
            where = f"{origin}[{section!r}][{i}]"
            if not isinstance(entry, Mapping):
                raise SourceFormatError(f"{where} must be an object")
            lhs = entry.get("lhs")
            if not isinstance(lhs, str) or not lhs:
                raise SourceFormatError(f"{where}.lhs is required and must be a string")
            mode = entry.get("mode", "n")
            modes = [mode] if isinstance(mode, str) else mode
            if not isinstance(modes, list) or not modes or not all(
                isinstance(m, str) and m for m in modes
            ):
                raise SourceFormatError(f"{where}.mode must be a mode string or list of them")
            desc = entry.get("desc")
            if desc is not None and not isinstance(desc, str):
                raise SourceFormatError(f"{where}.desc must be a string")
            for m in modes:
                out.append(CatalogEntry(str(section), lhs, m, desc or NO_DESCRIPTION))
        sections[str(section)] = out
    return sections


def load_catalog(path: Path) -> dict[str, list[CatalogEntry]]:
    return parse_catalog(_read(path), origin=str(path))


# ---------------------------------------------------------------------------
# Live
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LiveBinding:
    """A binding reported by a running editor (trigger not yet normalized)."""

    mode: str
    trigger: str
    description: str
    source: str
    action: str = ""

    @property
    def is_default(self) -> bool:
        return self.source == DEFAULT_SOURCE_LABEL


def _live_source(entry: Mapping[str, Any], fallback: str) -> str:
    if entry.get("sid") == -1:
        return DEFAULT_SOURCE_LABEL
    source = entry.get("source")
    if not isinstance(source, str) or not source:
        return fallback
    if source == DEFAULTS_FILE_SOURCE:
        return DEFAULT_SOURCE_LABEL
    return source


def parse_live(
    data: Any,
    *,
    origin: str = "live",
    exclude_sources: Sequence[str] = DEFAULT_EXCLUDE_SOURCES,
    fallback_source: str = "lua/config/keymaps.lua",
) -> list[LiveBinding]:
    """Validate live data and drop entries that must not contribute.

    Dropped: empty triggers, ``<Plug>`` mappings, and entries whose source
    contains one of ``exclude_sources``. A missing description falls back to
    the raw action, then to "No description".
    """
    if not isinstance(data, list):
        raise SourceFormatError(f"{origin} must be a list of bindings")
    out: list[LiveBinding] = []
    skipped = 0
    for i, entry in enumerate(data):
        if not isinstance(entry, Mapping):
            raise SourceFormatError(f"{origin}[{i}] must be an object")
        mode = entry.get("mode")
        if not isinstance(mode, str) or not mode:
            raise SourceFormatError(f"{origin}[{i}].mode is required and must be a string")
        lhs = entry.get("lhs")
        if not isinstance(lhs, str) or not lhs:
            skipped += 1
            continue
        rhs = entry.get("rhs")
        rhs = rhs if isinstance(rhs, str) else ""
        desc = entry.get("desc")
        if not isinstance(desc, str) or not desc or desc == NO_DESCRIPTION:
            desc = rhs or NO_DESCRIPTION
        desc = normalize_description(desc)
        source = _live_source(entry, fallback_source)
        if any(marker in source for marker in exclude_sources) or is_plug_binding(lhs, desc):
            skipped += 1
            continue
        out.append(LiveBinding(mode=mode, trigger=lhs, description=desc, source=source, action=rhs))
    if skipped:
        log.debug("%s: skipped %d live bindings", origin, skipped)
    return out


def load_live(
    path: Path,
    *,
    exclude_sources: Sequence[str] = DEFAULT_EXCLUDE_SOURCES,
    fallback_source: str = "lua/config/keymaps.lua",
) -> list[LiveBinding]:
    return parse_live(
        _read(path),
        origin=str(path),
        exclude_sources=exclude_sources,
        fallback_source=fallback_source,
    )


# ---------------------------------------------------------------------------
# Manual
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ManualBinding:
    owner: str
    trigger: str
    mode: str
    description: str
    source: str = MANUAL_SOURCE_LABEL
