from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]

PLUGIN_SPEC = """\
return {
  {
    "nvim-telescope/telescope.nvim",
    keys = {
      { "<leader>ff", "<cmd>Telescope find_files<cr>", desc = "Find files" },
    },
  },
}
"""


def _run(script: str, *args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT / "src"), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, f"scripts/{script}", *args],
        cwd=ROOT,
        env=env,
        check=False,
        text=True,
        capture_output=True,
    )


def _make_tree(root: Path) -> Path:
    plugins = root / "lua/plugins"
    plugins.mkdir(parents=True)
    (plugins / "search.lua").write_text(PLUGIN_SPEC, encoding="utf-8")
    return root


def test_generate_cheatsheet_writes_markdown(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "nvim")
    proc = _run(
        "generate_cheatsheet.py",
        "--root", str(root),
        "--no-git",
        "--date", "2024-01-02",
    )
    assert proc.returncode == 0, proc.stderr

    text = (root / "CHEATSHEET.md").read_text(encoding="utf-8")
    assert "Up to date as of: 2024-01-02" in text
    assert "## Plugin: telescope.nvim" in text
    assert "| `<leader>ff` | `n` | Find files | lua/plugins/search.lua |" in text


def test_generate_cheatsheet_to_stdout(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "nvim")
    proc = _run("generate_cheatsheet.py", "--root", str(root), "--no-git", "--output", "-")
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.startswith("# Neovim Keymap Cheatsheet")
    assert not (root / "CHEATSHEET.md").exists()


def test_generate_cheatsheet_no_keymaps(tmp_path: Path) -> None:
    proc = _run("generate_cheatsheet.py", "--root", str(tmp_path), "--no-git", "--output", "-")
    assert proc.returncode == 2
    assert "No keymaps found" in proc.stderr


def test_generate_cheatsheet_bad_config(tmp_path: Path) -> None:
    config = tmp_path / "keysheet.json"
    config.write_text('{"plugin_dirs": "lua/plugins"}', encoding="utf-8")
    proc = _run("generate_cheatsheet.py", "--root", str(tmp_path), "--config", str(config), "--no-git")
    assert proc.returncode == 1
    assert "config.plugin_dirs must be a list of strings" in proc.stderr


def test_generate_cheatsheet_bad_catalog(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "nvim")
    catalog = tmp_path / "catalog.json"
    catalog.write_text("{", encoding="utf-8")
    proc = _run(
        "generate_cheatsheet.py", "--root", str(root), "--catalog", str(catalog), "--no-git",
    )
    assert proc.returncode == 1
    assert "invalid JSON" in proc.stderr


def test_extract_bindings_stages(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "nvim")

    proc = _run("extract_bindings.py", "--root", str(root), "--stage", "extracted")
    assert proc.returncode == 0, proc.stderr
    (record,) = json.loads(proc.stdout)
    assert record["trigger"] == "<leader>ff"
    assert record["owner"] == "telescope.nvim"
    assert record["source"] == {"path": "lua/plugins/search.lua", "line": 5, "remote_url": None}

    proc = _run("extract_bindings.py", "--root", str(root), "--stage", "files")
    # Configured keymap files are listed even when absent.
    assert json.loads(proc.stdout) == [
        {"path": "lua/plugins/search.lua", "role": "general", "remote_url": None},
        {"path": "lua/config/keymaps.lua", "role": "general", "remote_url": None},
    ]

    proc = _run("extract_bindings.py", "--root", str(root))
    (category,) = json.loads(proc.stdout)
    assert category["name"] == "Plugin: telescope.nvim"
    assert category["kind"] == "owner"


def test_extract_bindings_single_file(tmp_path: Path) -> None:
    lua = tmp_path / "lsp.lua"
    lua.write_text('  goto_definition = "gd",\n', encoding="utf-8")
    proc = _run("extract_bindings.py", "--file", str(lua), "--role", "lsp")
    assert proc.returncode == 0, proc.stderr
    (record,) = json.loads(proc.stdout)
    assert (record["trigger"], record["owner"]) == ("gd", "LSP")

    proc = _run("extract_bindings.py", "--file", str(lua))
    assert proc.returncode == 2
    assert json.loads(proc.stdout) == []


def test_extract_bindings_output_file(tmp_path: Path) -> None:
    root = _make_tree(tmp_path / "nvim")
    out = tmp_path / "out/records.json"
    proc = _run("extract_bindings.py", "--root", str(root), "--stage", "reconciled", "--output", str(out))
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout == ""
    (record,) = json.loads(out.read_text(encoding="utf-8"))
    assert (record["trigger"], record["modes"]) == ("<leader>ff", ["n"])
