"""Deterministic normalization for triggers and descriptions.

Current trigger transforms:
1. Drop a leading ``<silent>`` modifier.
2. Fold ``<LocalLeader>`` / ``<Leader>`` spellings into ``<leader>``.
3. Replace the literal leader (and local leader) key with ``<leader>``
   outside of ``<...>`` key tokens.

Current description transforms:
1. Collapse whitespace and trim.
2. Turn ", " separators into "/".
3. Turn snake_case words into Title Case words.
4. Capitalize the first letter after each "/" and at the start.
"""
from __future__ import annotations

import re


_SILENT_RE = re.compile(r"^<silent>\s*")
_LOCAL_LEADER_RE = re.compile(r"<[Ll]ocal[Ll]eader>")
_LEADER_RE = re.compile(r"<[Ll]eader>")
_KEY_TOKEN_RE = re.compile(r"<[^<>\s]+>|.", re.DOTALL)

_WS_RE = re.compile(r"\s+")
_SNAKE_PAIR_RE = re.compile(r"([A-Za-z0-9]+)_([A-Za-z0-9]+)")
_SNAKE_JOIN_RE = re.compile(r"([A-Za-z0-9])_([A-Za-z0-9])")
_LOWER_WORD_RE = re.compile(r"([a-z])([A-Za-z0-9]*)")
_SLASH_LOWER_RE = re.compile(r"/([a-z])")

PLUG_MARKER = "<Plug>"


def _fold_literal_key(lhs: str, key: str) -> str:
    """Replace a literal single-character key with ``<leader>``."""
    if len(key) != 1:
        return lhs
    out: list[str] = []
    for m in _KEY_TOKEN_RE.finditer(lhs):
        token = m.group(0)
        out.append("<leader>" if token == key else token)
    return "".join(out)


def normalize_trigger(
    lhs: str,
    *,
    leader: str = "\\",
    localleader: str | None = None,
) -> str:
    """Fold alias spellings of a trigger into one canonical form."""
    lhs = _SILENT_RE.sub("", lhs)
    lhs = _LOCAL_LEADER_RE.sub("<leader>", lhs)
    lhs = _LEADER_RE.sub("<leader>", lhs)
    lhs = _fold_literal_key(lhs, leader)
    if localleader is not None and localleader != leader:
        lhs = _fold_literal_key(lhs, localleader)
    return lhs


def title_words(text: str) -> str:
    """Capitalize every word that starts with a lowercase letter."""
    return _LOWER_WORD_RE.sub(lambda m: m.group(1).upper() + m.group(2), text)


def _title_snake_pair(m: re.Match[str]) -> str:
    first = m.group(1)
    first = first[0].upper() + first[1:]
    return f"{first} {title_words(m.group(2))}"


def normalize_description(desc: str) -> str:
    """Collapse whitespace and unify case and separator conventions."""
    desc = _WS_RE.sub(" ", desc).strip()
    desc = desc.replace(", ", "/")
    desc = _SNAKE_PAIR_RE.sub(_title_snake_pair, desc)
    desc = _SNAKE_JOIN_RE.sub(r"\1 \2", desc)
    desc = _SLASH_LOWER_RE.sub(lambda m: "/" + m.group(1).upper(), desc)
    if desc and desc[0].islower():
        desc = desc[0].upper() + desc[1:]
    return desc


def is_plug_binding(trigger: str, description: str) -> bool:
    """True for ``<Plug>`` indirection mappings, which are never listed."""
    return trigger.startswith(PLUG_MARKER) or PLUG_MARKER in description
