"""Group reconciled records into ordered display categories.

Every record lands in exactly one bucket, tested in this order:

    fixed       records carrying a catalog section
    prefix      forced description prefixes ("Copilot: ...")
    filetype    records declared in ``ftplugin/<ft>.lua``
    owner       ``Plugin: <owner>`` for owner-attributed records
    prefix      un-owned records sharing a ``Word:`` description prefix
    functional  ``LSP`` (language-server keywords) or ``Miscellaneous``

Prefix groups smaller than ``min_group_size`` are dissolved and their
records fall through to the functional buckets.

Output order: fixed sections (configured order, then first appearance),
prefix groups, owner groups, then filetype and functional groups, each of
the last three sorted by name.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from keysheet.types import BindingRecord, Category, CategoryKind


OWNER_CATEGORY_PREFIX = "Plugin: "
LSP_CATEGORY = "LSP"
MISC_CATEGORY = "Miscellaneous"
DEFAULT_FORCED_PREFIXES: tuple[str, ...] = ("Copilot",)
DEFAULT_MIN_GROUP_SIZE = 2

_PREFIX_RE = re.compile(r"^([^:]+):")
_FTPLUGIN_RE = re.compile(r"^ftplugin/(.+)\.lua$")
_LSP_TRIGGER_RE = re.compile(r"^gr[arni]$|^gO$|^<C-S>$")
_LSP_DESC_KEYWORDS = ("lsp", "diagnostic", "signature help")

_KIND_ORDER: dict[CategoryKind, int] = {
    "fixed": 0,
    "prefix": 1,
    "owner": 2,
    "filetype": 3,
    "functional": 3,
}


@dataclass(slots=True)
class _Bucket:
    kind: CategoryKind
    records: list[BindingRecord] = field(default_factory=list)


def description_prefix(description: str) -> str | None:
    m = _PREFIX_RE.match(description)
    return m.group(1) if m else None


def filetype_group(path: str) -> str | None:
    """``ftplugin/python.lua`` → ``Python``."""
    m = _FTPLUGIN_RE.match(path)
    if m is None:
        return None
    ft = m.group(1)
    return ft[:1].upper() + ft[1:]


def is_lsp_record(record: BindingRecord) -> bool:
    desc = record.description.lower()
    return (
        "lsp" in record.source.path
        or any(k in desc for k in _LSP_DESC_KEYWORDS)
        or bool(_LSP_TRIGGER_RE.match(record.trigger))
    )


def owner_strip_prefix(owner: str, records: Sequence[BindingRecord]) -> str | None:
    """Description prefix derived from an owner name, if most records use it.

    ``vim-fugitive`` → ``Fugitive:``, ``nvim-tree.lua`` → ``Nvim tree:``.
    The prefix is returned only when more than half of ``records`` start
    with it.
    """
    name = owner.removesuffix(".lua").removeprefix("vim-").replace("-", " ")
    if not name:
        return None
    prefix = name[:1].upper() + name[1:] + ":"
    count = sum(1 for r in records if r.description.startswith(prefix))
    return prefix if count > len(records) / 2 else None


def _add(buckets: dict[str, _Bucket], name: str, kind: CategoryKind, record: BindingRecord) -> None:
    bucket = buckets.get(name)
    if bucket is None:
        bucket = buckets[name] = _Bucket(kind)
    bucket.records.append(record)


def categorize(
    records: Iterable[BindingRecord],
    *,
    section_order: Sequence[str] = (),
    forced_prefixes: Sequence[str] = DEFAULT_FORCED_PREFIXES,
    min_group_size: int = DEFAULT_MIN_GROUP_SIZE,
) -> list[Category]:
    buckets: dict[str, _Bucket] = {}
    prefix_candidates: dict[str, list[BindingRecord]] = {}
    fixed_seen: list[str] = []

    for record in records:
        if record.section is not None:
            if record.section not in buckets:
                fixed_seen.append(record.section)
            _add(buckets, record.section, "fixed", record)
            continue
        prefix = description_prefix(record.description)
        filetype = filetype_group(record.source.path)
        if prefix is not None and prefix in forced_prefixes:
            prefix_candidates.setdefault(prefix, []).append(record)
        elif filetype is not None:
            _add(buckets, filetype, "filetype", record)
        elif record.owner is not None:
            _add(buckets, OWNER_CATEGORY_PREFIX + record.owner, "owner", record)
        elif prefix is not None:
            prefix_candidates.setdefault(prefix, []).append(record)
        else:
            _add(buckets, _functional_bucket(record), "functional", record)

    leftovers: list[BindingRecord] = []
    for prefix, members in prefix_candidates.items():
        if len(members) >= min_group_size and prefix not in buckets:
            buckets[prefix] = _Bucket("prefix", members)
        else:
            leftovers.extend(members)
    for record in leftovers:
        _add(buckets, _functional_bucket(record), "functional", record)

    fixed_rank = {name: i for i, name in enumerate(section_order)}
    fixed_names = sorted(fixed_seen, key=lambda n: (fixed_rank.get(n, len(fixed_rank)), fixed_seen.index(n)))

    def order(name: str) -> tuple[int, int, str]:
        kind = buckets[name].kind
        if kind == "fixed":
            return (0, fixed_names.index(name), "")
        return (_KIND_ORDER[kind], 0, name)

    categories: list[Category] = []
    for name in sorted(buckets, key=order):
        bucket = buckets[name]
        members = tuple(bucket.records)
        strip: str | None = None
        disabled = False
        if bucket.kind == "prefix":
            strip = name + ":"
        elif bucket.kind == "owner":
            strip = owner_strip_prefix(name.removeprefix(OWNER_CATEGORY_PREFIX), members)
            disabled = any(r.owner_disabled for r in members)
        categories.append(
            Category(name=name, kind=bucket.kind, records=members, strip_prefix=strip, disabled=disabled),
        )
    return categories


def _functional_bucket(record: BindingRecord) -> str:
    return LSP_CATEGORY if is_lsp_record(record) else MISC_CATEGORY
