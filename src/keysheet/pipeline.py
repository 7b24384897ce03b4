"""End-to-end run: discover → extract → reconcile → categorize."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from keysheet.categorize import categorize
from keysheet.config import KeysheetConfig
from keysheet.discovery import discover_corpus
from keysheet.extractor import CorpusFile, apply_owner_overrides, extract_corpus
from keysheet.reconcile import reconcile
from keysheet.sources import CatalogEntry, LiveBinding, load_catalog, load_live
from keysheet.types import BindingRecord, Category


log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheatsheetResult:
    files: tuple[CorpusFile, ...]
    extracted: tuple[BindingRecord, ...]
    records: tuple[BindingRecord, ...]
    categories: tuple[Category, ...]


def _resolve(root: Path, value: str | None) -> Path | None:
    if value is None:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def load_sources(
    config: KeysheetConfig,
    root: Path,
) -> tuple[dict[str, list[CatalogEntry]], list[LiveBinding]]:
    """Load the catalog and live files named in ``config`` (unset → empty).

    A configured path that does not exist raises ``FileNotFoundError``.
    """
    catalog: dict[str, list[CatalogEntry]] = {}
    catalog_path = _resolve(root, config.catalog_file)
    if config.catalog_enabled and catalog_path is not None:
        catalog = load_catalog(catalog_path)
    live: list[LiveBinding] = []
    live_path = _resolve(root, config.live_file)
    if live_path is not None:
        live = load_live(
            live_path,
            exclude_sources=config.exclude_sources,
            fallback_source=config.fallback_source,
        )
    return catalog, live


def build_cheatsheet(
    config: KeysheetConfig,
    root: Path,
    *,
    catalog: dict[str, list[CatalogEntry]] | None = None,
    live: list[LiveBinding] | None = None,
    resolve_remotes: bool = True,
) -> CheatsheetResult:
    """Run the whole pipeline for the configuration tree at ``root``.

    ``catalog`` and ``live`` default to the files named in ``config``.
    """
    if catalog is None or live is None:
        loaded_catalog, loaded_live = load_sources(config, root)
        catalog = loaded_catalog if catalog is None else catalog
        live = loaded_live if live is None else live

    files = discover_corpus(
        root,
        plugin_dirs=config.plugin_dirs,
        ftplugin_dir=config.ftplugin_dir,
        keymap_files=config.config_keymap_files,
        vendored_root=_resolve(root, config.vendored_plugin_root),
        role_rules=config.role_rules,
        resolve_remotes=resolve_remotes,
    )
    extracted = extract_corpus(files, max_pending_lines=config.max_pending_lines)
    extracted = apply_owner_overrides(extracted, config.owner_overrides)

    records = reconcile(
        extracted,
        catalog=catalog,
        live=live,
        manual=config.manual_keymaps,
        section_order=config.section_order,
        leader=config.leader,
        localleader=config.localleader,
    )
    categories = categorize(
        records,
        section_order=config.section_order,
        forced_prefixes=config.forced_prefixes,
    )
    log.info("%d records in %d categories", len(records), len(categories))
    return CheatsheetResult(
        files=tuple(files),
        extracted=tuple(extracted),
        records=tuple(records),
        categories=tuple(categories),
    )
