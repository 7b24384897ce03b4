"""Markdown rendering of categorized bindings.

Rows are consolidated per (trigger, source, owner): the modes of a binding
declared for several modes collapse into one row, and differing per-mode
descriptions are joined with "/" (normal mode first, then visual, then the
rest in order).

Row order within a section:
    1. catalog rows by ordering index
    2. rows with a known line, by (source, line)
    3. the rest by first-mode priority (n i v x s o t c !), then trigger
"""
from __future__ import annotations

import datetime as dt
from collections.abc import Sequence
from dataclasses import dataclass

from keysheet.config import KeysheetConfig
from keysheet.normalize import title_words
from keysheet.repo_info import RepoLink
from keysheet.types import BindingRecord, Category, SourceLocation


MODE_ORDER: dict[str, int] = {m: i for i, m in enumerate(("n", "i", "v", "x", "s", "o", "t", "c", "!"))}

MODE_LEGEND: tuple[tuple[str, str], ...] = (
    ("n", "Normal"),
    ("i", "Insert"),
    ("v", "Visual and Select"),
    ("x", "Visual only"),
    ("s", "Select"),
    ("o", "Operator-pending"),
    ("t", "Terminal"),
    ("c", "Command-line"),
    ("!", "Insert & Command-line"),
)

_LINKABLE_PREFIXES = ("lua/", "ftplugin/")


@dataclass(frozen=True, slots=True)
class Row:
    trigger: str
    modes: tuple[str, ...]
    description: str
    source: SourceLocation
    owner: str | None = None
    sequence_hint: int | None = None
    fixed: bool = False


def _combine_descriptions(records: Sequence[BindingRecord]) -> str:
    normal: str | None = None
    visual: str | None = None
    rest: list[str] = []
    for record in records:
        if record.modes == {"n"}:
            normal = record.description
        elif record.modes == {"v"}:
            visual = record.description
        else:
            rest.append(record.description)
    combined: list[str] = []
    if normal is not None:
        combined.append(normal)
    if visual is not None and visual != normal:
        combined.append(visual)
    for desc in rest:
        if desc not in combined:
            combined.append(desc)
    return "/".join(combined)


def consolidate(records: Sequence[BindingRecord]) -> list[Row]:
    """Merge per-mode records of the same binding into display rows."""
    groups: dict[tuple[str, str, str | None], list[BindingRecord]] = {}
    for record in records:
        groups.setdefault((record.trigger, record.source.path, record.owner), []).append(record)

    rows: list[Row] = []
    for members in groups.values():
        first = members[0]
        modes = sorted({m for r in members for m in r.modes})
        hints = [r.sequence_hint for r in members if r.sequence_hint is not None]
        lines = [r.source.line for r in members if r.source.line is not None]
        source = first.source
        if lines and source.line != min(lines):
            source = SourceLocation(source.path, min(lines), source.remote_url)
        rows.append(
            Row(
                trigger=first.trigger,
                modes=tuple(modes),
                description=first.description if len(members) == 1 else _combine_descriptions(members),
                source=source,
                owner=first.owner,
                sequence_hint=min(hints) if hints else None,
                fixed=any(r.section is not None for r in members),
            ),
        )
    return rows


def _row_key(row: Row) -> tuple[int, int, str, int, str]:
    if row.fixed:
        return (0, row.sequence_hint or 0, "", 0, row.trigger)
    if row.source.line is not None:
        return (1, 0, row.source.path, row.source.line, "")
    return (2, MODE_ORDER.get(row.modes[0], 99), "", 0, row.trigger)


def sort_rows(rows: Sequence[Row]) -> list[Row]:
    return sorted(rows, key=_row_key)


def escape_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def format_trigger(trigger: str) -> str:
    escaped = escape_cell(trigger)
    if "`" in trigger:
        return f"``` {escaped} ```"
    return f"`{escaped}`"


def format_source(source: SourceLocation, repo: RepoLink | None) -> str:
    """Source cell text, linked to the repository where possible."""
    if source.is_default:
        return f"<sub>{source.path}</sub>"
    shown = f"{source.path}:{source.line}" if source.line else source.path
    if source.remote_url is not None:
        # Vendored labels are "<plugin>/<path inside the plugin repo>".
        inner = source.path.split("/", 1)[-1]
        url = RepoLink(source.remote_url, "HEAD").blob_url(inner, source.line)
        return f"[`{shown}`]({url})"
    if repo is not None and (source.path.endswith(".lua") or source.path.startswith(_LINKABLE_PREFIXES)):
        return f"[`{shown}`]({repo.blob_url(source.path, source.line)})"
    return source.path


def section_title(category: Category) -> str:
    if category.fixed:
        return title_words(category.name.replace("_", " "))
    return category.name


def strip_description(description: str, prefix: str | None) -> str:
    if prefix and description.startswith(prefix):
        description = description[len(prefix):].lstrip()
    if description[:1].islower():
        description = description[0].upper() + description[1:]
    return description


def render_section(
    category: Category,
    repo: RepoLink | None,
    *,
    disabled_note: str,
) -> list[str]:
    if not category.records:
        return []
    lines = ["", f"## {section_title(category)}", ""]
    if category.disabled:
        lines.extend([disabled_note, ""])
    lines.append("| Keymap | Mode | Description | Source |")
    lines.append("|--------|------|-------------|--------|")
    for row in sort_rows(consolidate(category.records)):
        modes = " ".join(f"`{m}`" for m in row.modes)
        desc = escape_cell(strip_description(row.description, category.strip_prefix))
        source = escape_cell(format_source(row.source, repo))
        lines.append(f"| {format_trigger(row.trigger)} | {modes} | {desc} | {source} |")
    return lines


def _header(config: KeysheetConfig, today: dt.date | None, has_ftplugin: bool) -> list[str]:
    output = config.output
    lines = [f"# {output.title}", ""]
    if output.include_date:
        lines.extend([f"Up to date as of: {(today or dt.date.today()).isoformat()}", ""])

    info = output.generation_info
    if info.enabled:
        intro = "This cheatsheet is automatically generated"
        if info.script_path:
            intro += f" by [{info.script_path}]({info.script_path})"
        if info.hook_path:
            intro += f" via a [pre-commit hook]({info.hook_path})"
        lines.append(intro + ". It includes all keymaps from:")
        lines.append("")
        lines.append("- Built-in Neovim defaults")
        for path in config.config_keymap_files:
            lines.append(f"- Custom configuration in [`{path}`]({path})")
        for path in config.plugin_dirs:
            lines.append(f"- Plugin-specific keymaps from [`{path}/`]({path}/)")
        if has_ftplugin and config.ftplugin_dir:
            lines.append(f"- Filetype-specific keymaps from [`{config.ftplugin_dir}/`]({config.ftplugin_dir}/)")
        lines.append("")

    note = output.runtime_note
    if note.enabled:
        text = (
            "> This cheatsheet does not include keymaps added automatically by configured "
            "plugins at runtime, such as those from most legacy vim plugins. To see all "
            "keymaps available in your current Neovim session, use the `:map` command"
        )
        if note.keymap_search:
            text += f", or the `{note.keymap_search}` keymap to open a fuzzy search for keymaps"
        lines.extend(["> [!NOTE]", text + ".", ""])
    return lines


def render_markdown(
    categories: Sequence[Category],
    config: KeysheetConfig,
    *,
    repo: RepoLink | None = None,
    today: dt.date | None = None,
    has_ftplugin: bool = False,
) -> str:
    lines = _header(config, today, has_ftplugin)
    lines.extend(["## Mode Legend", "", "| Abbreviation | Mode |", "|--------------|------|"])
    lines.extend(f"| {abbr} | {name} |" for abbr, name in MODE_LEGEND)
    for category in categories:
        lines.extend(render_section(category, repo, disabled_note=config.output.disabled_note))
    return "\n".join(lines) + "\n"
