"""Scope tracking for line-oriented scanning of plugin spec files.

The scanner never parses the configuration language. It counts brace
delimiters per line and keeps just enough state to answer "which plugin
block does this line belong to?":

- nesting depth (open minus close braces seen so far),
- a depth → entity-name stack built from ``"owner/repo"`` literals,
- the primary entity (a name declared at PRIMARY_ENTITY_DEPTH),
- the collection lock held while inside a ``keys = {...}`` field,
- the setup-function scope opened by ``config = function``.

ScanState is immutable: ``advance_scope`` returns a new state per line and
never mutates its input, so every intermediate state can be inspected and
tested in isolation.
"""
from __future__ import annotations

import re
from dataclasses import dataclass


# A plugin spec list is ``return { { "owner/repo", ... }, ... }``: the
# outer list sits at depth 1 and each spec table at depth 2.
PRIMARY_ENTITY_DEPTH = 2

# Entity literal must lead the line: `"owner/repo",` or `{ "owner/repo", ...`.
# Literals deeper in the line (``dependencies = { "a/b" }``) are not entities.
_ENTITY_RE = re.compile(r"""^\s*(?:\{\s*)?(["'])([\w\-.]+/[\w\-.]+)\1""")
_DISABLED_RE = re.compile(r"^\s*enabled\s*=\s*false\b")
_COLLECTION_RE = re.compile(r"\bkeys\s*=")
_SETUP_RE = re.compile(r"\bconfig\s*=\s*function\b")


def entity_name(line: str) -> str | None:
    """Return the entity declared by a leading ``"owner/repo"`` literal.

    The entity name is the part after the slash ("telescope.nvim" for
    ``"nvim-telescope/telescope.nvim"``).
    """
    m = _ENTITY_RE.match(line)
    if m is None:
        return None
    return m.group(2).rsplit("/", 1)[1]


def brace_delta(line: str) -> int:
    return line.count("{") - line.count("}")


@dataclass(frozen=True, slots=True)
class ScanState:
    """Scope state after processing a line.

    ``entities`` holds (depth, name) frames sorted by depth. ``block_serial``
    identifies the current primary-entity block; ``disabled_blocks``
    accumulates the serials of blocks that carried an ``enabled = false``
    marker, so disabled status can be applied to records retroactively.
    """

    depth: int = 0
    entities: tuple[tuple[int, str], ...] = ()
    primary: str | None = None
    primary_depth: int = 0
    block_serial: int = 0
    disabled_blocks: frozenset[int] = frozenset()
    collection_held: bool = False
    collection_depth: int = 0
    collection_owner: str | None = None
    setup_held: bool = False
    setup_depth: int = 0
    setup_owner: str | None = None

    def entity_at(self, depth: int) -> str | None:
        return _frame_at(self.entities, depth)

    def nearest_entity(self, depth: int) -> str | None:
        """Entity at ``depth`` or the closest shallower frame."""
        return _frame_at_or_above(self.entities, depth)

    @property
    def active_block(self) -> int | None:
        return self.block_serial if self.primary is not None else None

    @property
    def disabled(self) -> bool:
        return self.primary is not None and self.block_serial in self.disabled_blocks


def _frame_at(entities: tuple[tuple[int, str], ...], depth: int) -> str | None:
    for frame_depth, name in entities:
        if frame_depth == depth:
            return name
    return None


def _frame_at_or_above(entities: tuple[tuple[int, str], ...], depth: int) -> str | None:
    best: str | None = None
    for frame_depth, name in entities:
        if frame_depth <= depth:
            best = name
    return best


def _set_frame(
    entities: tuple[tuple[int, str], ...], depth: int, name: str,
) -> tuple[tuple[int, str], ...]:
    kept = tuple(f for f in entities if f[0] < depth)
    return (*kept, (depth, name))


def advance_scope(state: ScanState, line: str) -> ScanState:
    """Return the scope state after ``line``.

    Order of operations per line:
    1. Update depth from the line's brace delta.
    2. Record an entity literal (unless the collection lock is held); a
       primary-depth entity opens a new block.
    3. Mark the block disabled on an ``enabled = false`` line in the primary
       entity's own table or one level inside it.
    4. Open the collection lock on ``keys =``; release it below its depth.
    5. Drop frames deeper than the current depth.
    6. Reset primary entity, disabled status and lock when depth falls
       below the primary depth.
    7. Open/close the setup-function scope.
    """
    depth = state.depth + brace_delta(line)
    entities = state.entities
    primary = state.primary
    primary_depth = state.primary_depth
    serial = state.block_serial
    disabled_blocks = state.disabled_blocks
    held = state.collection_held
    held_depth = state.collection_depth
    held_owner = state.collection_owner
    setup_held = state.setup_held
    setup_depth = state.setup_depth
    setup_owner = state.setup_owner

    name = entity_name(line)
    if name is not None and not held:
        entities = _set_frame(entities, depth, name)
        if depth == PRIMARY_ENTITY_DEPTH:
            primary = name
            primary_depth = depth
            serial += 1
            held, held_depth, held_owner = False, 0, None

    if (
        primary is not None
        and primary_depth <= depth <= primary_depth + 1
        and _DISABLED_RE.match(line)
    ):
        disabled_blocks = disabled_blocks | {serial}

    if _COLLECTION_RE.search(line):
        held = True
        held_depth = depth
        held_owner = _frame_at(entities, depth) or _frame_at_or_above(entities, depth - 1)

    if held and depth < held_depth:
        held, held_depth, held_owner = False, 0, None

    entities = tuple(f for f in entities if f[0] <= depth)

    if primary is not None and depth < primary_depth:
        primary, primary_depth = None, 0
        held, held_depth, held_owner = False, 0, None

    if _SETUP_RE.search(line):
        setup_held = True
        setup_depth = depth
        setup_owner = _frame_at_or_above(entities, depth) or primary
    elif setup_held and depth < setup_depth:
        setup_held, setup_depth, setup_owner = False, 0, None

    return ScanState(
        depth=depth,
        entities=entities,
        primary=primary,
        primary_depth=primary_depth,
        block_serial=serial,
        disabled_blocks=disabled_blocks,
        collection_held=held,
        collection_depth=held_depth,
        collection_owner=held_owner,
        setup_held=setup_held,
        setup_depth=setup_depth,
        setup_owner=setup_owner,
    )
