"""Tests for keysheet.patterns: single-line record shapes and rule-sets."""
from __future__ import annotations

import pytest

from keysheet.patterns import (
    COMPLETION_TABLE,
    ENTRY_ACTION_DESC,
    ENTRY_DESC,
    ENTRY_FUNCTION_DESC,
    ENTRY_QUOTED_ACTION_DESC,
    KEYMAP_SET_ACTION,
    KEYMAP_SET_FUNCTION,
    KEYMAP_SET_MODES,
    KEYMAP_SET_REFERENCE,
    LSP_ACTION_TABLE,
    MAP_ACTION,
    MAP_FUNCTION,
    MAP_MODES_ACTION,
    MAP_REFERENCE,
    RULESETS,
    RecordShape,
    match_line,
    ruleset_for,
)
from keysheet.types import Candidate


GENERAL = ruleset_for("general")


def _one(line: str, shapes: tuple[RecordShape, ...] = GENERAL) -> tuple[str, Candidate]:
    shape, candidates = match_line(line, 7, shapes)
    assert shape is not None, line
    assert len(candidates) == 1
    return shape.name, candidates[0]


# ── collection entries ───────────────────────────────────────────────


class TestEntryShapes:
    def test_action_and_description(self) -> None:
        name, c = _one('{ "<leader>ff", "<cmd>Telescope find_files<cr>", desc = "Find files" },')
        assert name == ENTRY_ACTION_DESC.name
        assert (c.trigger, c.modes, c.action, c.description) == (
            "<leader>ff", ("n",), "<cmd>Telescope find_files<cr>", "Find files",
        )
        assert c.attribution == "collection"
        assert c.line == 7

    def test_single_quoted_action(self) -> None:
        name, c = _one("""{ "<leader>sr", '<cmd>lua require("spectre").open()<cr>', desc = "Replace" },""")
        assert name == ENTRY_QUOTED_ACTION_DESC.name
        assert c.action == '<cmd>lua require("spectre").open()<cr>'

    def test_function_with_mode_list_before_description(self) -> None:
        name, c = _one(
            '{ "s", function() require("flash").jump() end, mode = { "n", "x", "o" }, desc = "Flash" },'
        )
        assert name == ENTRY_FUNCTION_DESC.name
        assert c.trigger == "s"
        assert c.modes == ("n", "x", "o")
        assert c.description == "Flash"
        assert c.action.startswith("function()")

    def test_mode_field_after_description(self) -> None:
        _, c = _one('{ "<leader>y", "<cmd>Yank<cr>", desc = "Yank", mode = "v" },')
        assert c.modes == ("v",)

    def test_inline_keys_field(self) -> None:
        _, c = _one('keys = { { "<leader>x", "<cmd>Run<cr>", desc = "Run" } },')
        assert (c.trigger, c.action) == ("<leader>x", "<cmd>Run<cr>")

    def test_description_only(self) -> None:
        name, c = _one('{ "<leader>gg", desc = "Lazygit" },')
        assert name == ENTRY_DESC.name
        assert c.action == ""

    def test_call_mode_list_is_not_an_entry(self) -> None:
        name, _ = _one("""vim.keymap.set({ "n", "v" }, "<leader>y", '"+y', { desc = "Yank" })""")
        assert name == KEYMAP_SET_MODES.name


# ── explicit calls ───────────────────────────────────────────────────


class TestCallShapes:
    def test_keymap_set_mode_list_fans_out(self) -> None:
        name, c = _one("""vim.keymap.set({ "n", "v" }, "<leader>y", '"+y', { desc = "Yank" })""")
        assert name == KEYMAP_SET_MODES.name
        assert c.modes == ("n", "v")
        assert c.action == '"+y'
        assert c.attribution == "setup"

    def test_keymap_set_action(self) -> None:
        name, c = _one('vim.keymap.set("n", "<leader>w", "<cmd>w<cr>", { desc = "Save" })')
        assert name == KEYMAP_SET_ACTION.name
        assert (c.trigger, c.modes, c.action, c.description) == ("<leader>w", ("n",), "<cmd>w<cr>", "Save")

    def test_keymap_set_empty_mode_is_normal(self) -> None:
        _, c = _one('vim.keymap.set("", "<leader>w", "<cmd>w<cr>", { desc = "Save" })')
        assert c.modes == ("n",)

    def test_keymap_set_inline_function(self) -> None:
        name, c = _one(
            'vim.keymap.set("n", "]h", function() require("gitsigns").next_hunk() end, { desc = "Next hunk" })'
        )
        assert name == KEYMAP_SET_FUNCTION.name
        assert c.description == "Next hunk"

    def test_keymap_set_reference(self) -> None:
        name, c = _one('vim.keymap.set("n", "K", vim.lsp.buf.hover, { buffer = 0, desc = "Hover" })')
        assert name == KEYMAP_SET_REFERENCE.name
        assert c.action == "vim.lsp.buf.hover"

    def test_map_mode_list(self) -> None:
        name, c = _one('map({ "n", "x" }, "<leader>p", "<cmd>PasteKeep<cr>", { desc = "Paste keep" })')
        assert name == MAP_MODES_ACTION.name
        assert c.modes == ("n", "x")
        assert c.action == "<cmd>PasteKeep<cr>"
        assert c.attribution == "none"

    def test_map_action(self) -> None:
        name, c = _one('map("n", "<leader>bd", "<cmd>bdelete<cr>", { desc = "Delete buffer" })')
        assert name == MAP_ACTION.name
        assert c.action == "<cmd>bdelete<cr>"

    def test_map_function(self) -> None:
        name, c = _one('map("n", "<leader>uw", function() toggle("wrap") end, { desc = "Toggle wrap" })')
        assert name == MAP_FUNCTION.name
        assert c.action == "function"

    def test_map_reference(self) -> None:
        name, c = _one('map("n", "<leader>cf", format_buffer, { desc = "Format" })')
        assert name == MAP_REFERENCE.name
        assert c.action == "format_buffer"

    def test_prefixed_map_helper_is_not_map(self) -> None:
        shape, candidates = match_line('keymap("n", "x", "y", { desc = "z" })', 1, GENERAL)
        assert shape is None
        assert candidates == ()

    def test_mode_list_without_modes_yields_nothing(self) -> None:
        shape, candidates = match_line('vim.keymap.set({ }, "x", y, { desc = "d" })', 1, GENERAL)
        assert shape is KEYMAP_SET_MODES
        assert candidates == ()


# ── role-specific tables ─────────────────────────────────────────────


class TestRoleShapes:
    def test_lsp_action_table(self) -> None:
        shape, candidates = match_line('  goto_definition = "gd",', 3, ruleset_for("lsp"))
        assert shape is LSP_ACTION_TABLE
        (c,) = candidates
        assert (c.trigger, c.description, c.attribution, c.fixed_owner) == (
            "gd", "LSP: Goto Definition", "fixed", "LSP",
        )

    @pytest.mark.parametrize(
        "line",
        [
            '  timeout = "500",',
            '  rename = "<leader>rn", desc = "Rename",',
        ],
    )
    def test_lsp_action_table_rejects(self, line: str) -> None:
        shape, _ = match_line(line, 1, ruleset_for("lsp"))
        assert shape is not LSP_ACTION_TABLE

    def test_lsp_table_only_in_lsp_role(self) -> None:
        shape, _ = match_line('  goto_definition = "gd",', 1, GENERAL)
        assert shape is None

    def test_completion_table(self) -> None:
        shape, candidates = match_line(
            '  ["<C-y>"] = { "accept", "fallback" },', 9, ruleset_for("completion"),
        )
        assert shape is COMPLETION_TABLE
        (c,) = candidates
        assert (c.trigger, c.modes, c.description) == ("<C-y>", ("i",), "Completion: accept, fallback")

    def test_vendored_only_reads_entries(self) -> None:
        vendored = RULESETS["vendored"]
        shape, _ = match_line('vim.keymap.set("n", "x", "y", { desc = "z" })', 1, vendored)
        assert shape is None
        name, _ = _one('{ "<leader>ff", "<cmd>Find<cr>", desc = "Find" },', vendored)
        assert name == ENTRY_ACTION_DESC.name


def test_map_shapes_follow_role_tables() -> None:
    lsp = ruleset_for("lsp")
    assert lsp.index(LSP_ACTION_TABLE) < lsp.index(MAP_ACTION)
    assert MAP_REFERENCE in lsp
    assert MAP_MODES_ACTION in ruleset_for("completion")
