"""End-to-end tests for keysheet.pipeline over a small configuration tree."""
from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from keysheet.config import KeysheetConfig, config_from_dict
from keysheet.pipeline import build_cheatsheet, load_sources
from keysheet.sources import SourceFormatError


EDITOR_SPEC = """\
return {
  {
    "nvim-telescope/telescope.nvim",
    keys = {
      { "<leader>ff", "<cmd>Telescope find_files<cr>", desc = "Find files" },
      { "<leader>fg", "<cmd>Telescope live_grep<cr>", desc = "Live grep" },
    },
  },
  {
    "folke/flash.nvim",
    keys = {
      { "s", function() require("flash").jump() end, mode = { "n", "x" }, desc = "Flash" },
    },
    enabled = false,
  },
}
"""

KEYMAPS = """\
local map = vim.keymap.set
vim.keymap.set("n", "<leader>w", "<cmd>w<cr>", { desc = "Save file" })
vim.keymap.set("n", " q", "<cmd>q<cr>", { desc = "quit" })
vim.keymap.set("n", "<leader>gs", "<cmd>Git<cr>", { desc = "Git: status" })
vim.keymap.set("n", "<leader>gb", "<cmd>Git blame<cr>", { desc = "Git: blame" })
"""

CATALOG = {
    "motions": [
        {"lhs": "w", "mode": "n", "desc": "Next word"},
        {"lhs": "s", "mode": "n", "desc": "Substitute character"},
    ],
}

LIVE = [
    {"mode": "n", "lhs": "w", "desc": "Next word", "sid": -1},
    {"mode": "n", "lhs": "s", "desc": "Flash", "source": "lua/plugins/editor.lua"},
]


@pytest.fixture
def config_root(tmp_path: Path) -> Path:
    (tmp_path / "lua/plugins").mkdir(parents=True)
    (tmp_path / "lua/config").mkdir(parents=True)
    (tmp_path / "lua/plugins/editor.lua").write_text(EDITOR_SPEC, encoding="utf-8")
    (tmp_path / "lua/config/keymaps.lua").write_text(KEYMAPS, encoding="utf-8")
    (tmp_path / "catalog.json").write_bytes(orjson.dumps(CATALOG))
    (tmp_path / "live.json").write_bytes(orjson.dumps(LIVE))
    return tmp_path


def _config(**extra: object) -> KeysheetConfig:
    return config_from_dict({
        "built_in_keymaps": {"catalog_file": "catalog.json", "section_order": ["motions"]},
        "live_file": "live.json",
        "manual_keymaps": {"oil.nvim": [{"keymap": "-", "mode": "n", "desc": "Open parent directory"}]},
        **extra,
    })


def test_load_sources(config_root: Path) -> None:
    catalog, live = load_sources(_config(), config_root)
    assert list(catalog) == ["motions"]
    assert [b.trigger for b in live] == ["w", "s"]


def test_load_sources_missing_files_are_empty(tmp_path: Path) -> None:
    assert load_sources(KeysheetConfig(), tmp_path) == ({}, [])


def test_load_sources_configured_file_must_exist(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_sources(_config(), tmp_path)


def test_malformed_catalog_raises(config_root: Path) -> None:
    (config_root / "catalog.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(SourceFormatError):
        build_cheatsheet(_config(), config_root, resolve_remotes=False)


def test_build_cheatsheet(config_root: Path) -> None:
    result = build_cheatsheet(_config(), config_root, resolve_remotes=False)

    assert [f.label for f in result.files] == ["lua/plugins/editor.lua", "lua/config/keymaps.lua"]

    records = {(r.mode, r.trigger): r for r in result.records}
    assert len(records) == len(result.records)

    # Live override keeps the catalog section.
    s = records[("n", "s")]
    assert (s.section, s.description, s.source.path) == ("motions", "Flash", "lua/plugins/editor.lua")
    assert records[("n", "w")].source.is_default

    # The visual-mode flash binding has no catalog entry and stays owned.
    assert records[("x", "s")].owner == "flash.nvim"
    assert records[("x", "s")].owner_disabled

    assert records[("n", "<leader>q")].description == "Quit"
    assert records[("n", "-")].owner == "oil.nvim"

    names = [c.name for c in result.categories]
    assert names == [
        "motions",
        "Git",
        "Plugin: flash.nvim",
        "Plugin: oil.nvim",
        "Plugin: telescope.nvim",
        "Miscellaneous",
    ]
    flash = next(c for c in result.categories if c.name == "Plugin: flash.nvim")
    assert flash.disabled


def test_catalog_disabled(config_root: Path) -> None:
    config = _config(built_in_keymaps={"enabled": False, "catalog_file": "catalog.json"})
    result = build_cheatsheet(config, config_root, resolve_remotes=False)
    assert all(r.section is None for r in result.records)


def test_owner_overrides_flow_through(config_root: Path) -> None:
    config = _config(owner_overrides=[
        {"keymap": "<leader>w", "source": "lua/config/keymaps.lua", "owner": "core"},
    ])
    result = build_cheatsheet(config, config_root, resolve_remotes=False)
    (save,) = [r for r in result.records if r.trigger == "<leader>w"]
    assert save.owner == "core"
