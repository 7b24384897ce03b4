"""Configuration loading and validation.

The config file is JSON. Every key is optional; missing keys take the
defaults below. Validation errors raise ConfigError with the dotted path of
the offending value, e.g.::

    config.manual_keymaps["telescope.nvim"][1].mode is required and must be a string
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson

from keysheet.classify import DEFAULT_ROLE_RULES, FILE_ROLES, FileRole
from keysheet.continuation import DEFAULT_MAX_PENDING_LINES
from keysheet.io_utils import load_json
from keysheet.sources import DEFAULT_EXCLUDE_SOURCES, ManualBinding
from keysheet.types import MANUAL_SOURCE_LABEL, OwnerOverride


log = logging.getLogger(__name__)

DEFAULT_SECTION_ORDER: tuple[str, ...] = (
    "mode_changes",
    "motions",
    "edit_operations",
    "default_text_objects",
    "search",
    "insert_mode",
    "visual_mode",
    "macros_and_registers",
    "marks",
    "navigation",
    "folds",
)

DEFAULT_DISABLED_NOTE = (
    "_This plugin is disabled by default and needs to be enabled in order to use it._"
)


class ConfigError(ValueError):
    """Raised when a configuration value has the wrong type or shape."""


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GitSettings:
    enabled: bool = True
    default_branch: str = "main"
    base_url: str | None = None


@dataclass(frozen=True, slots=True)
class GenerationInfo:
    enabled: bool = True
    script_path: str | None = None
    hook_path: str | None = None


@dataclass(frozen=True, slots=True)
class RuntimeNote:
    enabled: bool = True
    keymap_search: str | None = None


@dataclass(frozen=True, slots=True)
class OutputSettings:
    file: str = "CHEATSHEET.md"
    title: str = "Neovim Keymap Cheatsheet"
    include_date: bool = True
    generation_info: GenerationInfo = field(default_factory=GenerationInfo)
    runtime_note: RuntimeNote = field(default_factory=RuntimeNote)
    disabled_note: str = DEFAULT_DISABLED_NOTE


@dataclass(frozen=True, slots=True)
class KeysheetConfig:
    plugin_dirs: tuple[str, ...] = ("lua/plugins",)
    config_keymap_files: tuple[str, ...] = ("lua/config/keymaps.lua",)
    ftplugin_dir: str | None = "ftplugin"
    vendored_plugin_root: str | None = None
    manual_keymaps: tuple[ManualBinding, ...] = ()
    catalog_enabled: bool = True
    catalog_file: str | None = None
    section_order: tuple[str, ...] = DEFAULT_SECTION_ORDER
    live_file: str | None = None
    leader: str = " "
    localleader: str | None = None
    exclude_sources: tuple[str, ...] = DEFAULT_EXCLUDE_SOURCES
    role_rules: tuple[tuple[str, FileRole], ...] = DEFAULT_ROLE_RULES
    forced_prefixes: tuple[str, ...] = ("Copilot",)
    owner_overrides: tuple[OwnerOverride, ...] = ()
    max_pending_lines: int = DEFAULT_MAX_PENDING_LINES
    git: GitSettings = field(default_factory=GitSettings)
    output: OutputSettings = field(default_factory=OutputSettings)

    @property
    def fallback_source(self) -> str:
        """Source label for live bindings that report no origin."""
        return self.config_keymap_files[0] if self.config_keymap_files else "lua/config/keymaps.lua"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _type_name(value: Any) -> str:
    return "null" if value is None else type(value).__name__


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where} must be an object")
    return value


def _string_list(value: Any, where: str, *, allow_empty_items: bool = False) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be a list of strings")
    out: list[str] = []
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise ConfigError(f"{where}[{i}] must be a string, got {_type_name(item)}")
        if not item and not allow_empty_items:
            raise ConfigError(f"{where}[{i}] cannot be empty")
        out.append(item)
    return tuple(out)


def _optional_str(data: Mapping[str, Any], key: str, where: str, default: str | None) -> str | None:
    value = data.get(key, default)
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"{where}.{key} must be a string")
    return value


def _bool(data: Mapping[str, Any], key: str, where: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{where}.{key} must be a boolean")
    return value


def _manual_keymaps(value: Any) -> tuple[ManualBinding, ...]:
    where = "config.manual_keymaps"
    data = _mapping(value, where)
    out: list[ManualBinding] = []
    for owner, entries in data.items():
        if not owner:
            raise ConfigError(f"{where} keys must be non-empty plugin names")
        if not isinstance(entries, list):
            raise ConfigError(f'{where}["{owner}"] must be a list of keymap objects')
        for i, entry in enumerate(entries, start=1):
            at = f'{where}["{owner}"][{i}]'
            if not isinstance(entry, Mapping):
                raise ConfigError(f"{at} must be an object")
            for key in ("keymap", "mode", "desc"):
                if not isinstance(entry.get(key), str) or not entry[key]:
                    raise ConfigError(f"{at}.{key} is required and must be a string")
            source = entry.get("source")
            if source is not None and not isinstance(source, str):
                raise ConfigError(f"{at}.source must be a string if provided")
            out.append(
                ManualBinding(
                    owner=owner,
                    trigger=entry["keymap"],
                    mode=entry["mode"],
                    description=entry["desc"],
                    source=source or MANUAL_SOURCE_LABEL,
                ),
            )
    return tuple(out)


def _role_rules(value: Any) -> tuple[tuple[str, FileRole], ...]:
    where = "config.role_rules"
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be a list of {{glob, role}} objects")
    rules: list[tuple[str, FileRole]] = []
    for i, item in enumerate(value):
        rule = _mapping(item, f"{where}[{i}]")
        glob = rule.get("glob")
        role = rule.get("role")
        if not isinstance(glob, str) or not glob:
            raise ConfigError(f"{where}[{i}].glob is required and must be a string")
        if role not in FILE_ROLES or role == "vendored":
            raise ConfigError(f"{where}[{i}].role must be one of general, lsp, completion")
        rules.append((glob, role))
    return tuple(rules)


def _owner_overrides(value: Any) -> tuple[OwnerOverride, ...]:
    where = "config.owner_overrides"
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be a list")
    out: list[OwnerOverride] = []
    for i, item in enumerate(value):
        at = f"{where}[{i}]"
        data = _mapping(item, at)
        for key in ("keymap", "source", "owner"):
            if not isinstance(data.get(key), str) or not data[key]:
                raise ConfigError(f"{at}.{key} is required and must be a string")
        out.append(
            OwnerOverride(
                trigger=data["keymap"],
                path=data["source"],
                owner=data["owner"],
                only_if_unowned=_bool(data, "only_if_unowned", at, False),
            ),
        )
    return tuple(out)


def _git(value: Any) -> GitSettings:
    where = "config.git"
    data = _mapping(value, where)
    return GitSettings(
        enabled=_bool(data, "enabled", where, True),
        default_branch=_optional_str(data, "default_branch", where, "main") or "main",
        base_url=_optional_str(data, "base_url", where, None),
    )


def _output(value: Any) -> OutputSettings:
    where = "config.output"
    data = _mapping(value, where)
    gen = _mapping(data.get("generation_info", {}), f"{where}.generation_info")
    note = _mapping(data.get("runtime_note", {}), f"{where}.runtime_note")
    defaults = OutputSettings()
    return OutputSettings(
        file=_optional_str(data, "file", where, defaults.file) or defaults.file,
        title=_optional_str(data, "title", where, defaults.title) or defaults.title,
        include_date=_bool(data, "include_date", where, True),
        generation_info=GenerationInfo(
            enabled=_bool(gen, "enabled", f"{where}.generation_info", True),
            script_path=_optional_str(gen, "script_path", f"{where}.generation_info", None),
            hook_path=_optional_str(gen, "hook_path", f"{where}.generation_info", None),
        ),
        runtime_note=RuntimeNote(
            enabled=_bool(note, "enabled", f"{where}.runtime_note", True),
            keymap_search=_optional_str(note, "keymap_search", f"{where}.runtime_note", None),
        ),
        disabled_note=_optional_str(data, "disabled_note", where, defaults.disabled_note)
        or defaults.disabled_note,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def config_from_dict(data: Any) -> KeysheetConfig:
    """Validate a decoded config object and apply defaults."""
    if data is None:
        return KeysheetConfig()
    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration must be an object, got {_type_name(data)}")
    where = "config"
    defaults = KeysheetConfig()
    kwargs: dict[str, Any] = {}

    if "plugin_dirs" in data:
        kwargs["plugin_dirs"] = _string_list(data["plugin_dirs"], "config.plugin_dirs")
    if "config_keymap_files" in data:
        kwargs["config_keymap_files"] = _string_list(
            data["config_keymap_files"], "config.config_keymap_files",
        )
    if "ftplugin_dir" in data:
        kwargs["ftplugin_dir"] = _optional_str(data, "ftplugin_dir", where, None) or None
    if "vendored_plugin_root" in data:
        kwargs["vendored_plugin_root"] = _optional_str(data, "vendored_plugin_root", where, None)
    if "manual_keymaps" in data:
        kwargs["manual_keymaps"] = _manual_keymaps(data["manual_keymaps"])

    if "built_in_keymaps" in data:
        bik_where = "config.built_in_keymaps"
        bik = _mapping(data["built_in_keymaps"], bik_where)
        kwargs["catalog_enabled"] = _bool(bik, "enabled", bik_where, True)
        kwargs["catalog_file"] = _optional_str(bik, "catalog_file", bik_where, None)
        if "section_order" in bik:
            kwargs["section_order"] = _string_list(bik["section_order"], f"{bik_where}.section_order")

    if "live_file" in data:
        kwargs["live_file"] = _optional_str(data, "live_file", where, None)
    if "leader" in data:
        leader = _optional_str(data, "leader", where, defaults.leader)
        if not leader:
            raise ConfigError("config.leader cannot be empty")
        kwargs["leader"] = leader
    if "localleader" in data:
        kwargs["localleader"] = _optional_str(data, "localleader", where, None) or None
    if "exclude_sources" in data:
        kwargs["exclude_sources"] = _string_list(data["exclude_sources"], "config.exclude_sources")
    if "role_rules" in data:
        kwargs["role_rules"] = _role_rules(data["role_rules"])
    if "forced_prefixes" in data:
        kwargs["forced_prefixes"] = _string_list(data["forced_prefixes"], "config.forced_prefixes")
    if "owner_overrides" in data:
        kwargs["owner_overrides"] = _owner_overrides(data["owner_overrides"])
    if "max_pending_lines" in data:
        value = data["max_pending_lines"]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError("config.max_pending_lines must be a positive integer")
        kwargs["max_pending_lines"] = value
    if "git" in data:
        kwargs["git"] = _git(data["git"])
    if "output" in data:
        kwargs["output"] = _output(data["output"])

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        log.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
    return KeysheetConfig(**kwargs)


_KNOWN_KEYS = frozenset({
    "plugin_dirs",
    "config_keymap_files",
    "ftplugin_dir",
    "vendored_plugin_root",
    "manual_keymaps",
    "built_in_keymaps",
    "live_file",
    "leader",
    "localleader",
    "exclude_sources",
    "role_rules",
    "forced_prefixes",
    "owner_overrides",
    "max_pending_lines",
    "git",
    "output",
})


def load_config(path: Path | None) -> KeysheetConfig:
    """Load and validate a JSON config file; None gives the defaults."""
    if path is None:
        return KeysheetConfig()
    try:
        data = load_json(path)
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except orjson.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON: {exc}") from exc
    return config_from_dict(data)
