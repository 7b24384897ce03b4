"""Core types shared by extraction, reconciliation and categorization.

Type hierarchy:
  SourceLocation : where a binding was declared (file + line, remote repo, or a label)
  BindingRecord  : one trigger → action mapping with attribution metadata
  Candidate      : an unattributed record shape emitted by a matcher
  Category       : a named bucket of records handed to the renderer

All dataclasses are frozen with slots=True; invariants are enforced in
__post_init__ so an invalid record can never be constructed.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal


type Mode = str
type BindingKey = tuple[Mode, str]
type AttributionKind = Literal["collection", "setup", "fixed", "none"]
type CategoryKind = Literal["fixed", "prefix", "filetype", "owner", "functional"]

DEFAULT_SOURCE_LABEL = "Built-in Neovim default"
MANUAL_SOURCE_LABEL = "Manual addition"


# ---------------------------------------------------------------------------
# SourceLocation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Declaration site of a binding.

    ``path`` is a file path relative to the scanned root, or a plain label
    ("Built-in Neovim default", "Manual addition") for records that do not
    come from a file. ``remote_url`` is set for vendored plugin files whose
    upstream repository could be resolved.
    """

    path: str
    line: int | None = None
    remote_url: str | None = None

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("SourceLocation.path cannot be empty")
        if self.line is not None and self.line < 1:
            raise ValueError(f"SourceLocation.line must be >= 1, got {self.line}")

    @property
    def is_default(self) -> bool:
        return self.path == DEFAULT_SOURCE_LABEL


# ---------------------------------------------------------------------------
# BindingRecord
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BindingRecord:
    """A key trigger bound to an action, with mode and attribution.

    Invariants (enforced in __post_init__):
        - trigger is non-empty
        - modes is a non-empty frozenset of non-empty mode codes
        - owner is None or a non-empty name
    """

    trigger: str
    modes: frozenset[Mode]
    description: str
    source: SourceLocation
    owner: str | None = None
    owner_disabled: bool = False
    origin_rank: int = 0
    sequence_hint: int | None = None
    action: str = ""
    section: str | None = None

    def __post_init__(self) -> None:
        if not self.trigger:
            raise ValueError("BindingRecord.trigger cannot be empty")
        if not isinstance(self.modes, frozenset):
            object.__setattr__(self, "modes", frozenset(self.modes))
        if not self.modes:
            raise ValueError(f"BindingRecord for {self.trigger!r} has no modes")
        for mode in self.modes:
            if not mode:
                raise ValueError(f"BindingRecord for {self.trigger!r} has an empty mode")
        if self.owner is not None and not self.owner:
            raise ValueError("BindingRecord.owner must be None or non-empty")

    @property
    def mode(self) -> Mode:
        """The single mode of a record that has already been split per mode."""
        if len(self.modes) != 1:
            raise ValueError(
                f"BindingRecord for {self.trigger!r} has {len(self.modes)} modes",
            )
        return next(iter(self.modes))

    @property
    def keys(self) -> tuple[BindingKey, ...]:
        """Deduplication identities, one per mode, in mode order."""
        return tuple((mode, self.trigger) for mode in sorted(self.modes))

    def split_modes(self) -> list[BindingRecord]:
        """One single-mode copy per declared mode (self if already single)."""
        if len(self.modes) == 1:
            return [self]
        return [replace(self, modes=frozenset({mode})) for mode in sorted(self.modes)]


# ---------------------------------------------------------------------------
# Candidate: matcher output before attribution
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Candidate:
    """A record shape recognized on a line, not yet attributed to an owner.

    ``attribution`` tells the context attributor which scope decides the
    owner; ``fixed_owner`` is used when attribution is "fixed".
    """

    trigger: str
    modes: tuple[Mode, ...]
    description: str
    action: str
    line: int
    attribution: AttributionKind
    fixed_owner: str | None = None

    def __post_init__(self) -> None:
        if not self.trigger:
            raise ValueError("Candidate.trigger cannot be empty")
        if self.line < 1:
            raise ValueError(f"Candidate.line must be >= 1, got {self.line}")


# ---------------------------------------------------------------------------
# OwnerOverride: configured owner fix-ups for records the scanner cannot place
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OwnerOverride:
    """Assign ``owner`` to records with ``trigger`` declared in ``path``.

    With ``only_if_unowned`` the override leaves already-attributed records
    alone.
    """

    trigger: str
    path: str
    owner: str
    only_if_unowned: bool = False

    def __post_init__(self) -> None:
        if not self.trigger or not self.path or not self.owner:
            raise ValueError("OwnerOverride needs trigger, path and owner")

    def applies_to(self, record: BindingRecord) -> bool:
        if record.trigger != self.trigger or record.source.path != self.path:
            return False
        return not (self.only_if_unowned and record.owner is not None)


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Category:
    """A named group of records.

    ``kind == "fixed"`` marks a section that comes from the external catalog;
    every other kind is discovered heuristically. ``strip_prefix`` is a
    description prefix ("Git:") the renderer removes inside this section.
    """

    name: str
    kind: CategoryKind
    records: tuple[BindingRecord, ...]
    strip_prefix: str | None = None
    disabled: bool = False

    @property
    def fixed(self) -> bool:
        return self.kind == "fixed"


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def binding_to_dict(record: BindingRecord) -> dict[str, Any]:
    """JSON-compatible view of a record (modes sorted for stable output)."""
    return {
        "trigger": record.trigger,
        "modes": sorted(record.modes),
        "description": record.description,
        "action": record.action,
        "source": {
            "path": record.source.path,
            "line": record.source.line,
            "remote_url": record.source.remote_url,
        },
        "owner": record.owner,
        "owner_disabled": record.owner_disabled,
        "origin_rank": record.origin_rank,
        "sequence_hint": record.sequence_hint,
        "section": record.section,
    }


def category_to_dict(category: Category) -> dict[str, Any]:
    return {
        "name": category.name,
        "kind": category.kind,
        "strip_prefix": category.strip_prefix,
        "disabled": category.disabled,
        "records": [binding_to_dict(r) for r in category.records],
    }
