"""Reconciliation of extracted, catalog, live and manual bindings.

Steps:
    1. Index live bindings by (mode, normalized trigger).
    2. Walk the catalog (sections in configured order). A live binding
       replaces a catalog entry when it is not an unmodified default and its
       description is not a ``:help`` redirect; it inherits the entry's
       section and ordering index.
    3. Append extracted records: triggers and descriptions normalized,
       ``<Plug>`` mappings dropped, one record per mode.
    4. Append manual additions, ranked like any owner-attributed record.
    5. Deduplicate by (mode, trigger) in that order: the incumbent stays
       unless the newcomer ranks strictly higher, or ties while belonging to
       a fixed section the incumbent lacks (or ranks earlier in it).
    6. Order: fixed-section records by ordering index, then the rest by
       (mode, trigger).

Origin ranks (checked top to bottom, first hit wins):

    RANK_FIXED_SECTION    10   record belongs to a catalog section
    RANK_LSP_SOURCE        5   source path mentions "lsp"
    RANK_OWNED             6   owner attributed
    RANK_CONFIG_WITH_LINE  4   source path mentions "config", line known
    RANK_CONFIG_NO_LINE    2   source path mentions "config", no line
    RANK_DEFAULT           1   unmodified editor default
    RANK_OTHER             3   anything else
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from keysheet.normalize import is_plug_binding, normalize_description, normalize_trigger
from keysheet.sources import NO_DESCRIPTION, CatalogEntry, LiveBinding, ManualBinding
from keysheet.types import DEFAULT_SOURCE_LABEL, BindingKey, BindingRecord, SourceLocation


log = logging.getLogger(__name__)

RANK_FIXED_SECTION = 10
RANK_OWNED = 6
RANK_LSP_SOURCE = 5
RANK_CONFIG_WITH_LINE = 4
RANK_OTHER = 3
RANK_CONFIG_NO_LINE = 2
RANK_DEFAULT = 1

HELP_REDIRECT_PREFIX = ":help"


def origin_rank(record: BindingRecord) -> int:
    path = record.source.path
    if record.section is not None:
        return RANK_FIXED_SECTION
    if "lsp" in path:
        return RANK_LSP_SOURCE
    if record.owner is not None:
        return RANK_OWNED
    if "config" in path:
        return RANK_CONFIG_WITH_LINE if record.source.line is not None else RANK_CONFIG_NO_LINE
    if record.source.is_default:
        return RANK_DEFAULT
    return RANK_OTHER


def _ranked(record: BindingRecord) -> BindingRecord:
    return replace(record, origin_rank=origin_rank(record))


# ---------------------------------------------------------------------------
# Catalog + live
# ---------------------------------------------------------------------------


def live_lookup(
    live: Iterable[LiveBinding],
    *,
    leader: str = "\\",
    localleader: str | None = None,
) -> dict[BindingKey, LiveBinding]:
    """Index live bindings; a later binding for the same key replaces an earlier one."""
    lookup: dict[BindingKey, LiveBinding] = {}
    for binding in live:
        trigger = normalize_trigger(binding.trigger, leader=leader, localleader=localleader)
        lookup[(binding.mode, trigger)] = binding
    return lookup


def _ordered_sections(
    catalog: Mapping[str, Sequence[CatalogEntry]],
    section_order: Sequence[str],
) -> list[str]:
    ordered = [name for name in section_order if name in catalog]
    ordered.extend(name for name in catalog if name not in ordered)
    return ordered


def overrides_catalog(binding: LiveBinding) -> bool:
    return not binding.is_default and not binding.description.startswith(HELP_REDIRECT_PREFIX)


def merge_catalog(
    catalog: Mapping[str, Sequence[CatalogEntry]],
    lookup: Mapping[BindingKey, LiveBinding],
    *,
    section_order: Sequence[str] = (),
    leader: str = "\\",
    localleader: str | None = None,
) -> list[BindingRecord]:
    """Catalog records, each possibly replaced by its live override.

    ``sequence_hint`` is a running index over all catalog entries in section
    order, starting at 1.
    """
    records: list[BindingRecord] = []
    overridden = 0
    for section in _ordered_sections(catalog, section_order):
        for entry in catalog[section]:
            sequence = len(records) + 1
            trigger = normalize_trigger(entry.trigger, leader=leader, localleader=localleader)
            live = lookup.get((entry.mode, trigger))
            if live is not None and overrides_catalog(live):
                overridden += 1
                record = BindingRecord(
                    trigger=trigger,
                    modes=frozenset({entry.mode}),
                    description=live.description,
                    source=SourceLocation(live.source),
                    action=live.action,
                    section=section,
                    sequence_hint=sequence,
                )
            else:
                record = BindingRecord(
                    trigger=trigger,
                    modes=frozenset({entry.mode}),
                    description=normalize_description(entry.description),
                    source=SourceLocation(DEFAULT_SOURCE_LABEL),
                    section=section,
                    sequence_hint=sequence,
                )
            records.append(_ranked(record))
    log.debug("Catalog: %d records, %d live overrides", len(records), overridden)
    return records


# ---------------------------------------------------------------------------
# Extracted + manual
# ---------------------------------------------------------------------------


def prepare_extracted(
    records: Iterable[BindingRecord],
    *,
    leader: str = "\\",
    localleader: str | None = None,
) -> list[BindingRecord]:
    out: list[BindingRecord] = []
    for record in records:
        if record.trigger.startswith("<Plug>"):
            continue
        description = normalize_description(record.description or record.action or NO_DESCRIPTION)
        if is_plug_binding(record.trigger, description):
            continue
        trigger = normalize_trigger(record.trigger, leader=leader, localleader=localleader)
        normalized = replace(record, trigger=trigger, description=description)
        out.extend(_ranked(r) for r in normalized.split_modes())
    return out


def prepare_manual(
    manual: Iterable[ManualBinding],
    *,
    leader: str = "\\",
    localleader: str | None = None,
) -> list[BindingRecord]:
    out: list[BindingRecord] = []
    for binding in manual:
        record = BindingRecord(
            trigger=normalize_trigger(binding.trigger, leader=leader, localleader=localleader),
            modes=frozenset({binding.mode}),
            description=normalize_description(binding.description),
            source=SourceLocation(binding.source),
            owner=binding.owner,
            action="manual",
        )
        out.append(_ranked(record))
    return out


# ---------------------------------------------------------------------------
# Deduplication + ordering
# ---------------------------------------------------------------------------


def supersedes(new: BindingRecord, old: BindingRecord) -> bool:
    """True when ``new`` should replace ``old`` for the same key."""
    if new.origin_rank != old.origin_rank:
        return new.origin_rank > old.origin_rank
    if new.section is None:
        return False
    if old.section is None:
        return True
    return (new.sequence_hint or 0) < (old.sequence_hint or 0)


def deduplicate(records: Iterable[BindingRecord]) -> list[BindingRecord]:
    """Keep one record per (mode, trigger); replacements keep the incumbent's slot."""
    winners: dict[BindingKey, BindingRecord] = {}
    for record in records:
        for single in record.split_modes():
            key = (single.mode, single.trigger)
            incumbent = winners.get(key)
            if incumbent is None or supersedes(single, incumbent):
                winners[key] = single
    return list(winners.values())


def _order_key(record: BindingRecord) -> tuple[int, int, str, str]:
    if record.section is not None:
        return (0, record.sequence_hint or 0, "", "")
    return (1, 0, record.mode, record.trigger)


def order_records(records: Iterable[BindingRecord]) -> list[BindingRecord]:
    return sorted(records, key=_order_key)


def reconcile(
    extracted: Iterable[BindingRecord],
    *,
    catalog: Mapping[str, Sequence[CatalogEntry]] | None = None,
    live: Iterable[LiveBinding] = (),
    manual: Iterable[ManualBinding] = (),
    section_order: Sequence[str] = (),
    leader: str = "\\",
    localleader: str | None = None,
) -> list[BindingRecord]:
    """Merge every source into one deduplicated, ordered record list."""
    lookup = live_lookup(live, leader=leader, localleader=localleader)
    merged = merge_catalog(
        catalog or {},
        lookup,
        section_order=section_order,
        leader=leader,
        localleader=localleader,
    )
    merged.extend(prepare_extracted(extracted, leader=leader, localleader=localleader))
    merged.extend(prepare_manual(manual, leader=leader, localleader=localleader))
    result = order_records(deduplicate(merged))
    log.info("Reconciled %d candidate records into %d", len(merged), len(result))
    return result
