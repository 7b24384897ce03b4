"""Tests for keysheet.scope: brace depth, entity frames, locks and setup scope."""
from __future__ import annotations

from keysheet.scope import (
    PRIMARY_ENTITY_DEPTH,
    ScanState,
    advance_scope,
    brace_delta,
    entity_name,
)


def _walk(lines: list[str]) -> list[ScanState]:
    states: list[ScanState] = []
    state = ScanState()
    for line in lines:
        state = advance_scope(state, line)
        states.append(state)
    return states


TELESCOPE_SPEC = [
    "return {",                                                      # 1
    "  {",                                                           # 2
    '    "nvim-telescope/telescope.nvim",',                          # 3
    '    dependencies = { "nvim-lua/plenary.nvim" },',               # 4
    "    keys = {",                                                  # 5
    '      { "<leader>ff", "<cmd>Telescope find_files<cr>", desc = "Find files" },',
    "    },",                                                        # 7
    "  },",                                                          # 8
    "}",                                                             # 9
]


# ── helpers ──────────────────────────────────────────────────────────


class TestEntityName:
    def test_leading_literal(self) -> None:
        assert entity_name('    "nvim-telescope/telescope.nvim",') == "telescope.nvim"

    def test_inline_table_literal(self) -> None:
        assert entity_name('  { "folke/flash.nvim", event = "VeryLazy",') == "flash.nvim"

    def test_single_quotes(self) -> None:
        assert entity_name("  'tpope/vim-fugitive',") == "vim-fugitive"

    def test_nested_literal_is_not_an_entity(self) -> None:
        assert entity_name('    dependencies = { "nvim-lua/plenary.nvim" },') is None

    def test_key_literal_is_not_an_entity(self) -> None:
        assert entity_name('      { "<leader>/", "<cmd>grep<cr>" },') is None


def test_brace_delta() -> None:
    assert brace_delta("keys = {") == 1
    assert brace_delta("},") == -1
    assert brace_delta('{ "x", desc = "y" },') == 0


# ── advance_scope ────────────────────────────────────────────────────


class TestAdvanceScope:
    def test_primary_entity_at_spec_depth(self) -> None:
        states = _walk(TELESCOPE_SPEC)
        assert states[2].depth == PRIMARY_ENTITY_DEPTH
        assert states[2].primary == "telescope.nvim"
        assert states[2].active_block == 1

    def test_dependency_literal_does_not_replace_primary(self) -> None:
        states = _walk(TELESCOPE_SPEC)
        assert states[3].primary == "telescope.nvim"
        assert states[3].entities == ((2, "telescope.nvim"),)

    def test_collection_lock_and_owner(self) -> None:
        states = _walk(TELESCOPE_SPEC)
        keys_state = states[4]
        assert keys_state.collection_held
        assert keys_state.collection_depth == 3
        assert keys_state.collection_owner == "telescope.nvim"
        assert states[5].collection_held

    def test_lock_released_when_collection_closes(self) -> None:
        states = _walk(TELESCOPE_SPEC)
        assert not states[6].collection_held
        assert states[6].primary == "telescope.nvim"

    def test_scope_exit_resets_primary(self) -> None:
        states = _walk(TELESCOPE_SPEC)
        assert states[7].depth == 1
        assert states[7].primary is None
        assert states[7].active_block is None
        assert states[8].depth == 0

    def test_entity_ignored_while_collection_held(self) -> None:
        states = _walk([
            "return {",
            "  {",
            '    "stevearc/oil.nvim",',
            "    keys = {",
            '      "other/plugin.nvim",',
        ])
        assert states[-1].primary == "oil.nvim"
        assert states[-1].entities == ((2, "oil.nvim"),)

    def test_new_spec_opens_new_block(self) -> None:
        states = _walk([
            "return {",
            '  { "a/one.nvim",',
            "  },",
            '  { "b/two.nvim",',
        ])
        assert states[1].primary == "one.nvim"
        assert states[2].primary is None
        assert states[3].primary == "two.nvim"
        assert states[3].block_serial == 2

    def test_disabled_marker_on_spec_table(self) -> None:
        states = _walk([
            "return {",
            "  {",
            '    "folke/flash.nvim",',
            "    enabled = false,",
        ])
        assert states[-1].disabled
        assert states[-1].disabled_blocks == frozenset({1})

    def test_enabled_false_one_level_inside_disables(self) -> None:
        states = _walk([
            "return {",
            "  {",
            '    "folke/flash.nvim",',
            "    opts = {",
            "      enabled = false,",
            "    },",
        ])
        assert states[-1].disabled
        assert states[-1].disabled_blocks == frozenset({1})

    def test_enabled_false_two_levels_inside_is_ignored(self) -> None:
        states = _walk([
            "return {",
            "  {",
            '    "folke/flash.nvim",',
            "    opts = {",
            "      modes = {",
            "        enabled = false,",
            "      },",
            "    },",
        ])
        assert not states[-1].disabled
        assert states[-1].disabled_blocks == frozenset()

    def test_setup_scope(self) -> None:
        states = _walk([
            "return {",
            "  {",
            '    "lewis6991/gitsigns.nvim",',
            "    config = function()",
            '      require("gitsigns").setup({})',
            "    end,",
            "  },",
        ])
        assert states[3].setup_held
        assert states[3].setup_owner == "gitsigns.nvim"
        assert states[5].setup_held
        assert not states[6].setup_held

    def test_input_state_not_mutated(self) -> None:
        before = ScanState()
        after = advance_scope(before, "return {")
        assert before == ScanState()
        assert after.depth == 1
