"""Tests for the env-mask CLI."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import json

import pytest

from env_mask import RenderBatch, RenderInstruction, RenderMode
from env_mask.cli import apply_batch, main

ENV_TEXT = "# db\nDB_HOST=localhost\nAPI_KEY=secret123\n"


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(ENV_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config" / "env-mask.yaml")


# ── apply_batch ──────────────────────────────────────────────────────

def test_apply_batch_substitutes_masked_spans_only():
    lines = ["A=secret", "B=visible"]
    batch = RenderBatch(
        uri="x",
        masked=(RenderInstruction(0, 2, 8, RenderMode.MASKED, "***"),),
        revealed=(RenderInstruction(1, 2, 9, RenderMode.REVEALED),),
    )
    assert apply_batch(lines, batch) == ["A=***", "B=visible"]
    assert lines == ["A=secret", "B=visible"]


# ── show ─────────────────────────────────────────────────────────────

def test_show_masks_values(env_file, config_path, capsys):
    assert main(["--config", config_path, "show", str(env_file)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["# db", "DB_HOST=•••••••••", "API_KEY=•••••••••"]
    assert env_file.read_text(encoding="utf-8") == ENV_TEXT


def test_show_reveal_line(env_file, config_path, capsys):
    assert main(["--config", config_path, "show", str(env_file), "--reveal", "2"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[1] == "DB_HOST=•••••••••"
    assert out[2] == "API_KEY=secret123"


def test_show_reveal_all(env_file, config_path, capsys):
    assert main(["--config", config_path, "show", str(env_file), "--reveal-all"]) == 0
    assert capsys.readouterr().out == ENV_TEXT


def test_show_masks_first_value_after_byte_order_mark(tmp_path, config_path, capsys):
    path = tmp_path / ".env"
    path.write_bytes("\ufeffAPI_KEY=topsecret\nB=2\n".encode("utf-8"))
    assert main(["--config", config_path, "show", str(path)]) == 0
    out = capsys.readouterr().out
    assert "topsecret" not in out
    assert out.splitlines() == ["API_KEY=•••••••••", "B=•"]


def test_show_rejects_ineligible_file(tmp_path, config_path, capsys):
    other = tmp_path / "notes.txt"
    other.write_text("A=1\n", encoding="utf-8")
    assert main(["--config", config_path, "show", str(other)]) == 1
    assert "not an enabled environment file" in capsys.readouterr().err


# ── scan / check ─────────────────────────────────────────────────────

def test_scan_never_prints_values(env_file, config_path, capsys):
    assert main(["--config", config_path, "scan", str(env_file)]) == 0
    out = capsys.readouterr().out
    assert "secret123" not in out
    decls = json.loads(out)
    assert decls[1] == {
        "line": 2, "key": "API_KEY", "key_start": 0, "key_end": 7,
        "value_start": 8, "value_end": 17, "value_length": 9,
    }


def test_check(tmp_path, config_path, capsys):
    assert main(["--config", config_path, "check", "/app/.env"]) == 0
    assert capsys.readouterr().out.strip() == "masked"
    assert main(["--config", config_path, "check", "/app/main.py"]) == 1
    assert capsys.readouterr().out.strip() == "not-enabled"

    main(["--config", config_path, "config", "set", "blacklisted_files", "['*/fixtures/*']"])
    capsys.readouterr()
    assert main(["--config", config_path, "check", "/app/fixtures/.env"]) == 1
    assert capsys.readouterr().out.strip() == "blacklisted"


# ── config ───────────────────────────────────────────────────────────

def test_config_set_show_reset(env_file, config_path, capsys):
    assert main(["--config", config_path, "config", "set", "mask_character", "'#'"]) == 0
    assert json.loads(capsys.readouterr().out)["mask_character"] == "#"

    main(["--config", config_path, "show", str(env_file)])
    assert "DB_HOST=#########" in capsys.readouterr().out

    assert main(["--config", config_path, "config", "reset"]) == 0
    assert json.loads(capsys.readouterr().out)["mask_character"] == "•"


def test_config_set_out_of_range_warns(config_path, capsys):
    assert main(["--config", config_path, "config", "set", "fixed_mask_length", "500"]) == 0
    captured = capsys.readouterr()
    assert json.loads(captured.out)["fixed_mask_length"] == 100
    assert "warning:" in captured.err


def test_config_unknown_key(config_path, capsys):
    assert main(["--config", config_path, "config", "set", "colour", "red"]) == 2
    assert "Unknown setting" in capsys.readouterr().err


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
