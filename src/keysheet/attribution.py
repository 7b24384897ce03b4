"""Context attribution: decide which entity owns a matched candidate.

Owner lookup by attribution kind:

    collection  entity at the current depth, else the collection owner
                recorded when ``keys =`` opened, else the primary entity;
                only while the collection lock is held
    setup       owner of the enclosing ``config = function`` scope
    fixed       the owner the shape declares (``LSP`` for action tables)
    none        never owned (global ``map(...)`` helpers)

Anything else attributes to no owner: an owner is only set when an active
scope confirms it.
"""
from __future__ import annotations

from keysheet.scope import ScanState
from keysheet.types import AttributionKind


def attribute(
    kind: AttributionKind,
    scan: ScanState,
    fixed_owner: str | None = None,
) -> str | None:
    match kind:
        case "collection":
            if not scan.collection_held:
                return None
            return scan.entity_at(scan.depth) or scan.collection_owner or scan.primary
        case "setup":
            return scan.setup_owner if scan.setup_held else None
        case "fixed":
            return fixed_owner
        case _:
            return None
