"""Multi-line record assembly.

Some bindings are declared across several lines::

    vim.keymap.set(
      { "n", "v" },
      "<leader>gp",
      copy_permalink,
      { desc = "Copy permalink" }
    )

The assembler is an explicit state machine. Each transition is triggered by
one narrow line shape; lines that do not match the expected next shape leave
the state unchanged. A pending construct is abandoned when it has waited
more than ``max_pending_lines`` lines, when a later line starts a new
construct, or (in the extractor) when a single-line record matches. A
construct opened by ``function()`` at end of line has a body; single-line
records inside the body leave it pending.

Phases:
    IDLE                  nothing pending
    TABLE_OPENED          bare ``{`` inside a keys collection
    CALL_OPENED           bare ``vim.keymap.set(``
    MODE_CAPTURED         mode literal / mode list seen after CALL_OPENED
    KEY_CAPTURED          trigger literal seen after MODE_CAPTURED
    REFERENCE_CAPTURED    bare function reference seen; waits for ``{ desc = ... }``
    AWAITING_DESCRIPTION  trigger known; the next ``desc = "..."`` emits
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from enum import StrEnum

from keysheet.scope import ScanState
from keysheet.types import AttributionKind, Candidate


log = logging.getLogger(__name__)

DEFAULT_MAX_PENDING_LINES = 20


class AssemblyPhase(StrEnum):
    IDLE = "idle"
    TABLE_OPENED = "table_opened"
    CALL_OPENED = "call_opened"
    MODE_CAPTURED = "mode_captured"
    KEY_CAPTURED = "key_captured"
    REFERENCE_CAPTURED = "reference_captured"
    AWAITING_DESCRIPTION = "awaiting_description"


# Entry shapes
_ENTRY_KEY_RE = re.compile(r'^\s*\{ "([^"]+)",\s*$')
_ENTRY_BARE_RE = re.compile(r"^\s*\{\s*$")
_MAP_FUNCTION_RE = re.compile(
    r"""^\s*map\(["']([^"']+)["'],\s*["']([^"']+)["'],\s*function\(\)\s*$""",
)
_SET_FUNCTION_RE = re.compile(
    r"""^\s*vim\.keymap\.set\(["']([^"']+)["'],\s*["']([^"']+)["'],\s*function\(\)\s*$""",
)
_SET_OPEN_RE = re.compile(r"^\s*vim\.keymap\.set\(\s*$")

# Transition shapes
_BARE_STRING_RE = re.compile(r'^\s*"([^"]*)",\s*$')
_BARE_MODE_LIST_RE = re.compile(r"^\s*(\{ [^}]+ \}),\s*$")
_BARE_REFERENCE_RE = re.compile(r"^\s*([\w.]+),\s*$")
_MODE_FIELD_RE = re.compile(r'^\s*mode\s*=\s*(?:"([^"]+)"|(\{[^}]+\}))')
_DESC_FIELD_RE = re.compile(r'desc\s*=\s*"([^"]+)"')
_DESC_TABLE_RE = re.compile(r'\{\s*desc\s*=\s*"([^"]+)"')
_QUOTED_RE = re.compile(r'"([^"]+)"')


@dataclass(frozen=True, slots=True)
class Continuation:
    """Pending multi-line construct. ``line`` is the record's declared line.

    ``body`` marks a construct opened by a trailing ``function()``.
    """

    phase: AssemblyPhase = AssemblyPhase.IDLE
    trigger: str | None = None
    modes: tuple[str, ...] = ()
    action: str = "function"
    line: int = 0
    started_at: int = 0
    attribution: AttributionKind = "collection"
    body: bool = False

    @property
    def pending(self) -> bool:
        return self.phase is not AssemblyPhase.IDLE


IDLE = Continuation()


def mode_list(text: str) -> tuple[str, ...]:
    """Quoted mode codes from a ``{ "n", "v" }`` literal."""
    return tuple(_QUOTED_RE.findall(text))


def _emit(cont: Continuation, description: str) -> tuple[Candidate, ...]:
    if cont.trigger is None:
        return ()
    modes = cont.modes or ("n",)
    return (
        Candidate(
            trigger=cont.trigger,
            modes=modes,
            description=description,
            action=cont.action,
            line=cont.line,
            attribution=cont.attribution,
        ),
    )


def _advance(cont: Continuation, line: str, line_number: int) -> tuple[Continuation, tuple[Candidate, ...]]:
    """Apply the transition expected from ``cont.phase``."""
    match cont.phase:
        case AssemblyPhase.AWAITING_DESCRIPTION:
            m = _DESC_FIELD_RE.search(line)
            if m:
                return IDLE, _emit(cont, m.group(1))
            mode_m = _MODE_FIELD_RE.match(line)
            if mode_m:
                modes = (mode_m.group(1),) if mode_m.group(1) else mode_list(mode_m.group(2))
                if modes:
                    return replace(cont, modes=modes), ()
        case AssemblyPhase.TABLE_OPENED:
            m = _BARE_STRING_RE.match(line)
            if m and m.group(1):
                return replace(
                    cont,
                    phase=AssemblyPhase.AWAITING_DESCRIPTION,
                    trigger=m.group(1),
                    line=line_number,
                ), ()
        case AssemblyPhase.CALL_OPENED:
            m = _BARE_STRING_RE.match(line)
            if m:
                return replace(
                    cont,
                    phase=AssemblyPhase.MODE_CAPTURED,
                    modes=(m.group(1) or "n",),
                ), ()
            list_m = _BARE_MODE_LIST_RE.match(line)
            if list_m:
                modes = mode_list(list_m.group(1))
                if modes:
                    return replace(cont, phase=AssemblyPhase.MODE_CAPTURED, modes=modes), ()
        case AssemblyPhase.MODE_CAPTURED:
            m = _BARE_STRING_RE.match(line)
            if m and m.group(1):
                return replace(cont, phase=AssemblyPhase.KEY_CAPTURED, trigger=m.group(1)), ()
        case AssemblyPhase.KEY_CAPTURED:
            m = _BARE_REFERENCE_RE.match(line)
            if m:
                return replace(cont, phase=AssemblyPhase.REFERENCE_CAPTURED, action=m.group(1)), ()
        case AssemblyPhase.REFERENCE_CAPTURED:
            m = _DESC_TABLE_RE.search(line)
            if m:
                return IDLE, _emit(cont, m.group(1))
        case AssemblyPhase.IDLE:
            pass
    return cont, ()


def _start(line: str, line_number: int, scan: ScanState) -> Continuation | None:
    """Recognize the first line of a multi-line construct."""
    if scan.collection_held:
        m = _ENTRY_KEY_RE.match(line)
        if m:
            return Continuation(
                phase=AssemblyPhase.AWAITING_DESCRIPTION,
                trigger=m.group(1),
                line=line_number,
                started_at=line_number,
                attribution="collection",
            )
        if _ENTRY_BARE_RE.match(line):
            return Continuation(
                phase=AssemblyPhase.TABLE_OPENED,
                line=line_number,
                started_at=line_number,
                attribution="collection",
            )
    m = _MAP_FUNCTION_RE.match(line)
    if m:
        return Continuation(
            phase=AssemblyPhase.AWAITING_DESCRIPTION,
            trigger=m.group(2),
            modes=(m.group(1),),
            line=line_number,
            started_at=line_number,
            attribution="collection",
            body=True,
        )
    m = _SET_FUNCTION_RE.match(line)
    if m:
        return Continuation(
            phase=AssemblyPhase.AWAITING_DESCRIPTION,
            trigger=m.group(2),
            modes=(m.group(1),),
            line=line_number,
            started_at=line_number,
            attribution="setup",
            body=True,
        )
    if _SET_OPEN_RE.match(line):
        return Continuation(
            phase=AssemblyPhase.CALL_OPENED,
            line=line_number,
            started_at=line_number,
            attribution="setup",
        )
    return None


def step_continuation(
    cont: Continuation,
    line: str,
    line_number: int,
    scan: ScanState,
    *,
    max_pending_lines: int = DEFAULT_MAX_PENDING_LINES,
) -> tuple[Continuation, tuple[Candidate, ...]]:
    """Advance the assembler by one line.

    Returns the next continuation state and the candidates completed on this
    line (empty unless a description closed a pending construct).
    """
    emitted: tuple[Candidate, ...] = ()
    if cont.pending:
        if line_number - cont.started_at > max_pending_lines:
            log.debug(
                "Abandoning %s construct started at line %d after %d lines",
                cont.phase, cont.started_at, max_pending_lines,
            )
            cont = IDLE
        else:
            cont, emitted = _advance(cont, line, line_number)

    started = _start(line, line_number, scan)
    if started is not None:
        if cont.pending:
            log.debug(
                "Line %d starts a new construct; dropping %s from line %d",
                line_number, cont.phase, cont.started_at,
            )
        cont = started
    return cont, emitted
