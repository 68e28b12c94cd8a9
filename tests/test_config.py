"""Tests for config loading, validation and the key-value stores."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest
import yaml

from env_mask import (
    ConfigStoreError,
    DictConfigStore,
    MaskingConfig,
    MaskingLengthStrategy,
    Settings,
    YamlConfigStore,
    load_config,
    load_from_yaml,
)
from env_mask.config import DEFAULT_ENABLED_FILE_PATTERNS


# ── load_config ──────────────────────────────────────────────────────

def test_defaults():
    cfg = load_config({})
    assert cfg.mask_character == "•"
    assert cfg.masking_length_strategy is MaskingLengthStrategy.PROPORTIONAL_LENGTH
    assert cfg.fixed_mask_length == 20
    assert cfg.auto_hide_delay_ms == 0
    assert cfg.enabled_file_patterns == DEFAULT_ENABLED_FILE_PATTERNS
    assert cfg.blacklisted_files == ()
    assert cfg.warnings == ()
    assert cfg == MaskingConfig()


def test_nested_and_camel_case_keys():
    cfg = load_config({"env_mask": {
        "maskCharacter": "*",
        "maskingLengthStrategy": "FixedLength",
        "fixedMaskLength": 8,
        "autoHideDelayMs": 1500,
        "blacklistedFiles": ["*.example.env"],
    }})
    assert cfg.mask_character == "*"
    assert cfg.masking_length_strategy is MaskingLengthStrategy.FIXED_LENGTH
    assert cfg.fixed_mask_length == 8
    assert cfg.auto_hide_delay_ms == 1500
    assert cfg.blacklisted_files == ("*.example.env",)


def test_out_of_range_numbers_are_clamped():
    cfg = load_config({"fixed_mask_length": 1, "auto_hide_delay_ms": 60_000})
    assert cfg.fixed_mask_length == 5
    assert cfg.auto_hide_delay_ms == 10_000
    assert len(cfg.warnings) == 2

    cfg = load_config({"fixed_mask_length": 1000, "auto_hide_delay_ms": -5})
    assert cfg.fixed_mask_length == 100
    assert cfg.auto_hide_delay_ms == 0


def test_malformed_values_fall_back_to_defaults():
    cfg = load_config({
        "mask_character": "**",
        "masking_length_strategy": "sideways",
        "fixed_mask_length": "long",
        "auto_hide_delay_ms": True,
        "blacklisted_files": "not-a-list",
    })
    assert cfg == MaskingConfig()
    assert len(cfg.warnings) == 5


def test_enabled_patterns_always_include_base():
    cfg = load_config({"enabled_file_patterns": []})
    assert cfg.enabled_file_patterns == (".env",)
    assert cfg.warnings

    cfg = load_config({"enabled_file_patterns": [".env.*"]})
    assert cfg.enabled_file_patterns == (".env.*", ".env")


def test_warnings_are_logged(caplog):
    load_config({"mask_character": ""})
    assert "Invalid mask character" in caplog.text


def test_load_from_yaml(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("env_mask:\n  mask_character: '#'\n  auto_hide_delay_ms: 250\n", encoding="utf-8")
    cfg = load_from_yaml(path)
    assert cfg.mask_character == "#"
    assert cfg.auto_hide_delay_ms == 250


# ── Stores ───────────────────────────────────────────────────────────

def test_dict_store_update_and_remove():
    store = DictConfigStore({"fixed_mask_length": 7})
    store.update("mask_character", "x")
    store.update("fixed_mask_length", None)
    assert store.as_dict() == {"mask_character": "x"}


def test_yaml_store_roundtrip_keeps_other_sections(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("editor:\n  theme: dark\n", encoding="utf-8")
    store = YamlConfigStore(path)
    store.update("auto_hide_delay_ms", 3000)

    doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert doc["editor"] == {"theme": "dark"}
    assert doc["env_mask"] == {"auto_hide_delay_ms": 3000}

    fresh = YamlConfigStore(path)
    fresh.refresh()
    assert fresh.get("auto_hide_delay_ms") == 3000


def test_yaml_store_creates_missing_file(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    store = YamlConfigStore(path)
    store.refresh()
    assert store.as_dict() == {}
    store.update("mask_character", "#")
    assert path.exists()


def test_yaml_store_read_error(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("env_mask: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigStoreError):
        YamlConfigStore(path).refresh()


def test_yaml_store_write_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    store = YamlConfigStore(blocker / "config.yaml")  # parent is a file
    with pytest.raises(ConfigStoreError):
        store.update("mask_character", "#")


# ── Settings ─────────────────────────────────────────────────────────

def test_settings_update_reloads_snapshot():
    settings = Settings(DictConfigStore())
    settings.update_setting("maskingLengthStrategy", MaskingLengthStrategy.FIXED_LENGTH)
    assert settings.config.masking_length_strategy is MaskingLengthStrategy.FIXED_LENGTH
    assert settings.store.get("masking_length_strategy") == "fixed_length"


def test_settings_unknown_key():
    with pytest.raises(KeyError):
        Settings().update_setting("colour", "red")


def test_settings_export_import_reset():
    settings = Settings(DictConfigStore())
    applied = settings.import_settings({
        "mask_character": "#",
        "fixed_mask_length": 9,
        "not_a_setting": 1,
    })
    assert applied == ["mask_character", "fixed_mask_length"]
    exported = settings.export_settings()
    assert exported["mask_character"] == "#"
    assert exported["fixed_mask_length"] == 9

    settings.reset_to_defaults()
    assert settings.config == MaskingConfig()
    assert settings.store.as_dict() == {}


def test_settings_keep_previous_snapshot_when_store_breaks(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("env_mask:\n  mask_character: '#'\n", encoding="utf-8")
    settings = Settings(YamlConfigStore(path))
    assert settings.config.mask_character == "#"

    path.write_text("env_mask: [unclosed\n", encoding="utf-8")
    assert settings.reload().mask_character == "#"


def test_settings_start_from_defaults_when_store_unreadable(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("env_mask: [unclosed\n", encoding="utf-8")
    assert Settings(YamlConfigStore(path)).config == MaskingConfig()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
