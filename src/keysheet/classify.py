"""File role classification.

A file's role selects the rule-set the pattern extractor applies to it:

    general     plain plugin spec / keymap files
    lsp         language-server setup files (adds action-name tables)
    completion  completion-engine setup files (adds ``["<key>"] = {...}`` tables)
    vendored    ``lazy.lua`` specs shipped inside vendored plugin checkouts

Rules are ``(glob, role)`` pairs matched against the file's basename; the
first matching rule wins. Vendored status comes from discovery, not from the
filename, and always takes precedence.

No file I/O; pure functions only.
"""
from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import Literal


type FileRole = Literal["general", "lsp", "completion", "vendored"]

FILE_ROLES: tuple[FileRole, ...] = ("general", "lsp", "completion", "vendored")

DEFAULT_ROLE_RULES: tuple[tuple[str, FileRole], ...] = (
    ("*lsp*.lua", "lsp"),
    ("*coding*.lua", "completion"),
    ("*cmp*.lua", "completion"),
    ("*completion*.lua", "completion"),
)


def classify_file(
    path: str,
    rules: tuple[tuple[str, FileRole], ...] = DEFAULT_ROLE_RULES,
    *,
    vendored: bool = False,
) -> FileRole:
    """Return the role of ``path`` (a posix-style label or path)."""
    if vendored:
        return "vendored"
    name = PurePosixPath(path).name.lower()
    for glob, role in rules:
        if fnmatchcase(name, glob.lower()):
            return role
    return "general"
