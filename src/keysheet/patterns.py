"""Declarative table of single-line binding shapes.

Each RecordShape pairs a compiled regex with the attribution kind and the
mode handling it needs. Shapes are pure: they read one line and return
Candidates; the scan state only enters later, in the context attributor.

Shapes are grouped into rule-sets keyed by file role (see classify.py).
Within a rule-set the first shape that matches wins, so the table is
ordered most specific first:

**Collection entries** (``keys = { ... }`` items, attribution "collection"):
    1. entry_action_desc         ``{ "lhs", "rhs", ..., desc = "d", ... }``
    2. entry_quoted_action_desc  ``{ "lhs", 'rhs', ..., desc = "d", ... }``
    3. entry_function_desc       ``{ "lhs", function() ... end, ..., desc = "d", ... }``
    4. entry_desc                ``{ "lhs", desc = "d", ... }``

    Entry shapes read a ``mode = "x"`` or ``mode = { "n", "x" }`` field from
    anywhere on the line, before or after the description; a mode list fans
    out to one candidate per mode.

**Explicit calls** (attribution "setup" for vim.keymap.set, "none" for map):
    5. keymap_set_modes          ``vim.keymap.set({ "n", "v" }, "lhs", rhs, ...desc`` (fans out)
    6. keymap_set_action         ``vim.keymap.set("n", "lhs", "rhs", ...desc``
    7. keymap_set_function       inline function rhs
    8. keymap_set_reference      function reference rhs
    9. map_modes_action          ``map({ ... }, "lhs", "rhs", ...desc`` (fans out)
   10. map_action                ``map("n", "lhs", "rhs", ...desc``
   11. map_function              ``map("n", "lhs", function() ...desc``
   12. map_reference             ``map("n", "lhs", fn, { desc = ...``

    An empty call mode (``vim.keymap.set("", ...)``) means normal mode.

**Role-specific tables:**
    lsp_action_table   (lsp role)         ``goto_definition = "gd"``
    completion_table   (completion role)  ``["<C-n>"] = { "select_next_item" }``
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from keysheet.classify import FileRole
from keysheet.normalize import title_words
from keysheet.types import AttributionKind, Candidate


type ModeHandling = Literal["single", "fan_out"]
type Describe = Callable[[re.Match[str]], str]
type Accept = Callable[[re.Match[str], str], bool]


@dataclass(frozen=True, slots=True)
class RecordShape:
    """One recognizable record shape.

    Named groups used by ``pattern``: ``lhs`` (required), ``rhs``, ``desc``,
    ``mode`` (a single mode literal) and ``modes`` (a mode list literal).
    With ``mode_field`` a ``mode = ...`` field anywhere on the line sets the
    modes of a shape whose pattern does not capture them.
    """

    name: str
    pattern: re.Pattern[str]
    attribution: AttributionKind
    modes: ModeHandling = "single"
    default_mode: str = "n"
    default_action: str = ""
    fixed_owner: str | None = None
    describe: Describe | None = None
    accept: Accept | None = None
    mode_field: bool = False

    def build(self, m: re.Match[str], line_number: int) -> tuple[Candidate, ...]:
        groups = m.groupdict()
        lhs = groups["lhs"]
        action = _strip_quotes(groups.get("rhs") or self.default_action)
        if self.describe is not None:
            description = self.describe(m)
        else:
            description = groups.get("desc") or ""

        if self.modes == "fan_out":
            modes = tuple(_QUOTED_RE.findall(groups.get("modes") or ""))
            if not modes:
                return ()
        elif self.mode_field and (field_m := _MODE_FIELD_RE.search(m.string)):
            if field_m.group("one"):
                modes = (field_m.group("one"),)
            else:
                modes = tuple(_QUOTED_RE.findall(field_m.group("many"))) or (self.default_mode,)
        else:
            modes = (groups.get("mode") or self.default_mode,)

        return (
            Candidate(
                trigger=lhs,
                modes=modes,
                description=description,
                action=action,
                line=line_number,
                attribution=self.attribution,
                fixed_owner=self.fixed_owner,
            ),
        )


_QUOTED_RE = re.compile(r'"([^"]+)"')
_MODE_FIELD_RE = re.compile(r'\bmode\s*=\s*(?:"(?P<one>[^"]+)"|(?P<many>\{[^}]*\}))')


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] in "\"'" and value[-1] in "\"'":
        return value[1:-1]
    return value


def _shape(name: str, pattern: str, attribution: AttributionKind, **options: Any) -> RecordShape:
    return RecordShape(name=name, pattern=re.compile(pattern), attribution=attribution, **options)


# ---------------------------------------------------------------------------
# Pattern fragments
# ---------------------------------------------------------------------------

# A collection entry opens with ``{ "lhs",``. ``({ "n", "v" }`` is a call's mode
# list and ``mode = { "n", "x" }`` a field value; neither is an entry.
_ENTRY = r'(?<![(\w=])(?<!= )\{ "(?P<lhs>[^"]+)",\s*'
_LHS = r'"(?P<lhs>[^"]+)"'
_RHS = r'"(?P<rhs>[^"]+)"'
_SQ_RHS = r"'(?P<rhs>[^']+)'"
_DESC = r'desc = "(?P<desc>[^"]+)"'
_FUNC = r"(?P<rhs>function\([^)]*\).*?\bend\b)"
_CALL_MODE = r'"(?P<mode>[^"]*)"'
_MODE_LIST = r"(?P<modes>\{[^}]+\})"
_MAP = r"(?<![\w.])map\("

# ---------------------------------------------------------------------------
# Collection entries
# ---------------------------------------------------------------------------

ENTRY_ACTION_DESC = _shape(
    "entry_action_desc", rf"{_ENTRY}{_RHS},.*?{_DESC}", "collection", mode_field=True,
)
ENTRY_QUOTED_ACTION_DESC = _shape(
    "entry_quoted_action_desc", rf"{_ENTRY}{_SQ_RHS},.*?{_DESC}", "collection", mode_field=True,
)
ENTRY_FUNCTION_DESC = _shape(
    "entry_function_desc", rf"{_ENTRY}{_FUNC}.*?{_DESC}", "collection", mode_field=True,
)
ENTRY_DESC = _shape(
    "entry_desc", rf"{_ENTRY}{_DESC}", "collection", mode_field=True,
)

# ---------------------------------------------------------------------------
# Explicit calls
# ---------------------------------------------------------------------------

KEYMAP_SET_MODES = _shape(
    "keymap_set_modes",
    rf"vim\.keymap\.set\({_MODE_LIST},\s*{_LHS},\s*(?P<rhs>.+?),.*?{_DESC}",
    "setup",
    modes="fan_out",
)
KEYMAP_SET_ACTION = _shape(
    "keymap_set_action", rf"vim\.keymap\.set\({_CALL_MODE},\s*{_LHS},\s*{_RHS}.*?{_DESC}", "setup",
)
KEYMAP_SET_FUNCTION = _shape(
    "keymap_set_function", rf"vim\.keymap\.set\({_CALL_MODE},\s*{_LHS},\s*{_FUNC}.*?{_DESC}", "setup",
)
KEYMAP_SET_REFERENCE = _shape(
    "keymap_set_reference",
    rf"vim\.keymap\.set\({_CALL_MODE},\s*{_LHS},\s*(?P<rhs>[\w.]+),\s*\{{.*{_DESC}",
    "setup",
)
MAP_MODES_ACTION = _shape(
    "map_modes_action",
    rf"""{_MAP}{_MODE_LIST},\s*{_LHS},\s*(?P<rhs>["'][^"']+["']).*{_DESC}""",
    "none",
    modes="fan_out",
)
MAP_ACTION = _shape(
    "map_action",
    rf"""{_MAP}{_CALL_MODE},\s*{_LHS},\s*(?P<rhs>["'][^"']+["']).*{_DESC}""",
    "none",
)
MAP_FUNCTION = _shape(
    "map_function",
    rf"{_MAP}{_CALL_MODE},\s*{_LHS},\s*function\(\).*{_DESC}",
    "none",
    default_action="function",
)
MAP_REFERENCE = _shape(
    "map_reference",
    rf"{_MAP}{_CALL_MODE},\s*{_LHS},\s*(?P<rhs>[\w.]+),\s*\{{\s*{_DESC}",
    "none",
)

# ---------------------------------------------------------------------------
# Role-specific tables
# ---------------------------------------------------------------------------

_LSP_KEY_RE = re.compile(r"^(?:<|\[|g)|^K$")
_DESC_FIELD_RE = re.compile(r"desc\s*=")


def _accept_lsp(m: re.Match[str], line: str) -> bool:
    return bool(_LSP_KEY_RE.search(m.group("lhs"))) and not _DESC_FIELD_RE.search(line)


def _describe_lsp(m: re.Match[str]) -> str:
    return "LSP: " + title_words(m.group("rhs").replace("_", " "))


def _describe_completion(m: re.Match[str]) -> str:
    actions = [a.strip().replace('"', "") for a in m.group("rhs").split(",")]
    return "Completion: " + ", ".join(a for a in actions if a)


LSP_ACTION_TABLE = _shape(
    "lsp_action_table",
    r'(?P<rhs>\w+)\s*=\s*"(?P<lhs>[^"]+)"',
    "fixed",
    fixed_owner="LSP",
    describe=_describe_lsp,
    accept=_accept_lsp,
)
COMPLETION_TABLE = _shape(
    "completion_table",
    r'\["(?P<lhs>[^"]+)"\]\s*=\s*\{(?P<rhs>[^}]+)\}',
    "collection",
    default_mode="i",
    describe=_describe_completion,
)

# ---------------------------------------------------------------------------
# Rule-sets
# ---------------------------------------------------------------------------

ENTRY_SHAPES: tuple[RecordShape, ...] = (
    ENTRY_ACTION_DESC,
    ENTRY_QUOTED_ACTION_DESC,
    ENTRY_FUNCTION_DESC,
    ENTRY_DESC,
)
KEYMAP_SET_SHAPES: tuple[RecordShape, ...] = (
    KEYMAP_SET_MODES,
    KEYMAP_SET_ACTION,
    KEYMAP_SET_FUNCTION,
    KEYMAP_SET_REFERENCE,
)
MAP_SHAPES: tuple[RecordShape, ...] = (
    MAP_MODES_ACTION,
    MAP_ACTION,
    MAP_FUNCTION,
    MAP_REFERENCE,
)

RULESETS: dict[FileRole, tuple[RecordShape, ...]] = {
    "general": (*ENTRY_SHAPES, *KEYMAP_SET_SHAPES, *MAP_SHAPES),
    "lsp": (*ENTRY_SHAPES, *KEYMAP_SET_SHAPES, LSP_ACTION_TABLE, *MAP_SHAPES),
    "completion": (*ENTRY_SHAPES, *KEYMAP_SET_SHAPES, COMPLETION_TABLE, *MAP_SHAPES),
    # Vendored plugin specs only declare keys collections.
    "vendored": (ENTRY_ACTION_DESC, ENTRY_FUNCTION_DESC, ENTRY_DESC),
}


def ruleset_for(role: FileRole) -> tuple[RecordShape, ...]:
    return RULESETS.get(role, RULESETS["general"])


def match_line(
    line: str,
    line_number: int,
    shapes: tuple[RecordShape, ...],
) -> tuple[RecordShape | None, tuple[Candidate, ...]]:
    """Apply ``shapes`` in order; the first match wins.

    Returns the matching shape (None when nothing matched) and its
    candidates. A matching mode-list call with no quoted modes still
    short-circuits and yields no candidates.
    """
    for shape in shapes:
        m = shape.pattern.search(line)
        if m is None:
            continue
        if shape.accept is not None and not shape.accept(m, line):
            continue
        return shape, shape.build(m, line_number)
    return None, ()
