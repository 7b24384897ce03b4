"""Line-oriented binding extraction over a corpus of configuration files.

Per file, every line goes through:

1. ``advance_scope``       depth, entity frames, collection lock, setup scope
2. ``match_line``          single-line shapes
3. ``step_continuation``   the multi-line assembler (only if step 2 matched nothing)
4. ``attribute``           owner resolution against the scan state

Disabled status is applied after the whole file is scanned, so an
``enabled = false`` marker that follows a record still disables it.

State never crosses file boundaries. A file that cannot be read is logged
and skipped; it never aborts the corpus scan.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from keysheet.attribution import attribute
from keysheet.classify import FileRole
from keysheet.continuation import (
    DEFAULT_MAX_PENDING_LINES,
    IDLE,
    step_continuation,
)
from keysheet.patterns import match_line, ruleset_for
from keysheet.scope import ScanState, advance_scope
from keysheet.types import BindingRecord, Candidate, OwnerOverride, SourceLocation


log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CorpusFile:
    """One file to scan. ``label`` is the path shown as the record source."""

    path: Path
    label: str
    role: FileRole = "general"
    remote_url: str | None = None


def _materialize(
    candidate: Candidate,
    scan: ScanState,
    label: str,
    remote_url: str | None,
) -> list[tuple[BindingRecord, int | None]]:
    """Attribute a candidate and fan it out to one record per mode.

    Each record is paired with the block serial it was attributed in (None
    for unowned records) so disabled status can be applied later.
    """
    owner = attribute(candidate.attribution, scan, candidate.fixed_owner)
    block = scan.active_block if owner is not None and candidate.attribution != "fixed" else None
    source = SourceLocation(label, candidate.line, remote_url)
    seen: set[str] = set()
    out: list[tuple[BindingRecord, int | None]] = []
    for mode in candidate.modes:
        mode = mode or "n"
        if mode in seen:
            continue
        seen.add(mode)
        record = BindingRecord(
            trigger=candidate.trigger,
            modes=frozenset({mode}),
            description=candidate.description,
            source=source,
            owner=owner,
            action=candidate.action,
        )
        out.append((record, block))
    return out


def scan_lines(
    lines: Iterable[str],
    label: str,
    *,
    role: FileRole = "general",
    remote_url: str | None = None,
    max_pending_lines: int = DEFAULT_MAX_PENDING_LINES,
) -> list[BindingRecord]:
    """Extract binding records from the lines of one file."""
    shapes = ruleset_for(role)
    scan = ScanState()
    cont = IDLE
    tagged: list[tuple[BindingRecord, int | None]] = []

    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        scan = advance_scope(scan, line)
        shape, candidates = match_line(line, line_number, shapes)
        if shape is None:
            cont, candidates = step_continuation(
                cont, line, line_number, scan, max_pending_lines=max_pending_lines,
            )
        elif cont.pending and not cont.body:
            log.debug(
                "%s:%d: %s matched; dropping %s from line %d",
                label, line_number, shape.name, cont.phase, cont.started_at,
            )
            cont = IDLE
        for candidate in candidates:
            tagged.extend(_materialize(candidate, scan, label, remote_url))

    if cont.pending:
        log.debug("%s: end of file with %s pending from line %d", label, cont.phase, cont.started_at)

    disabled = scan.disabled_blocks
    return [
        replace(record, owner_disabled=True) if block is not None and block in disabled else record
        for record, block in tagged
    ]


def scan_file(
    corpus_file: CorpusFile,
    *,
    max_pending_lines: int = DEFAULT_MAX_PENDING_LINES,
) -> list[BindingRecord]:
    try:
        with open(corpus_file.path, encoding="utf-8", errors="replace") as f:
            lines = f.readlines()
    except OSError as exc:
        log.warning("Could not read %s: %s", corpus_file.path, exc)
        return []
    records = scan_lines(
        lines,
        corpus_file.label,
        role=corpus_file.role,
        remote_url=corpus_file.remote_url,
        max_pending_lines=max_pending_lines,
    )
    log.debug("%s: %d records (%s)", corpus_file.label, len(records), corpus_file.role)
    return records


def extract_corpus(
    files: Sequence[CorpusFile],
    *,
    max_pending_lines: int = DEFAULT_MAX_PENDING_LINES,
) -> list[BindingRecord]:
    """Scan ``files`` in order and concatenate their records."""
    records: list[BindingRecord] = []
    for corpus_file in files:
        records.extend(scan_file(corpus_file, max_pending_lines=max_pending_lines))
    log.info("Extracted %d records from %d files", len(records), len(files))
    return records


def apply_owner_overrides(
    records: Sequence[BindingRecord],
    overrides: Sequence[OwnerOverride],
) -> list[BindingRecord]:
    """Apply configured owner fix-ups; the first applicable override wins."""
    out: list[BindingRecord] = []
    for record in records:
        for override in overrides:
            if override.applies_to(record):
                record = replace(record, owner=override.owner)
                break
        out.append(record)
    return out
