"""YAML/dict config loader for env-mask.

Supports loading from a YAML file or a plain dict (for embedding
in a larger config, e.g. an editor's settings file).

Example YAML:

    env_mask:
      mask_character: "•"
      masking_length_strategy: proportional_length   # or fixed_length
      fixed_mask_length: 20                          # 5..100, fixed_length only
      auto_hide_delay_ms: 3000                       # 0..10000, 0 = never
      enabled_file_patterns:
        - .env
        - .env.*
      blacklisted_files:
        - "*.example.env"
        - config/staging/.env

Values are validated on read and never rejected: anything out of range
is clamped, anything malformed falls back to its default, and every
correction is logged and kept in ``MaskingConfig.warnings``.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

logger = logging.getLogger(__name__)

DEFAULT_PATH = os.environ.get(
    "ENV_MASK_CONFIG",
    str(Path.home() / ".env-mask" / "config.yaml"),
)

DEFAULT_MASK_CHARACTER = "•"
DEFAULT_FIXED_MASK_LENGTH = 20
MIN_MASK_LENGTH = 5
MAX_MASK_LENGTH = 100
DEFAULT_AUTO_HIDE_DELAY_MS = 0
MAX_AUTO_HIDE_DELAY_MS = 10_000
MANDATORY_FILE_PATTERN = ".env"
DEFAULT_ENABLED_FILE_PATTERNS = (
    ".env",
    ".env.local",
    ".env.development",
    ".env.production",
    ".env.test",
)


class MaskingLengthStrategy(str, Enum):
    """How many mask characters to draw for a value.

    FIXED_LENGTH always draws ``fixed_mask_length`` characters;
    PROPORTIONAL_LENGTH draws one per character of the value.
    """
    FIXED_LENGTH = "fixed_length"
    PROPORTIONAL_LENGTH = "proportional_length"


_STRATEGY_ALIASES = {
    "fixed_length": MaskingLengthStrategy.FIXED_LENGTH,
    "fixedlength": MaskingLengthStrategy.FIXED_LENGTH,
    "fixed": MaskingLengthStrategy.FIXED_LENGTH,
    "proportional_length": MaskingLengthStrategy.PROPORTIONAL_LENGTH,
    "proportionallength": MaskingLengthStrategy.PROPORTIONAL_LENGTH,
    "proportional": MaskingLengthStrategy.PROPORTIONAL_LENGTH,
}

# snake_case key → accepted aliases
SETTING_KEYS: dict[str, tuple[str, ...]] = {
    "mask_character": ("maskCharacter",),
    "masking_length_strategy": ("maskingLengthStrategy",),
    "fixed_mask_length": ("fixedMaskLength",),
    "auto_hide_delay_ms": ("autoHideDelayMs",),
    "enabled_file_patterns": ("enabledFilePatterns",),
    "blacklisted_files": ("blacklistedFiles",),
}


@dataclass(frozen=True, slots=True)
class MaskingConfig:
    """Validated, read-only configuration snapshot."""
    mask_character: str = DEFAULT_MASK_CHARACTER
    masking_length_strategy: MaskingLengthStrategy = MaskingLengthStrategy.PROPORTIONAL_LENGTH
    fixed_mask_length: int = DEFAULT_FIXED_MASK_LENGTH
    auto_hide_delay_ms: int = DEFAULT_AUTO_HIDE_DELAY_MS
    enabled_file_patterns: tuple[str, ...] = DEFAULT_ENABLED_FILE_PATTERNS
    blacklisted_files: tuple[str, ...] = ()
    warnings: tuple[str, ...] = field(default=(), compare=False)

    def as_dict(self) -> dict[str, Any]:
        return {
            "mask_character": self.mask_character,
            "masking_length_strategy": self.masking_length_strategy.value,
            "fixed_mask_length": self.fixed_mask_length,
            "auto_hide_delay_ms": self.auto_hide_delay_ms,
            "enabled_file_patterns": list(self.enabled_file_patterns),
            "blacklisted_files": list(self.blacklisted_files),
        }


class ConfigStoreError(Exception):
    """The backing store could not be read or written."""


# ----------------------------------------------------------------------
# Loading / validation
# ----------------------------------------------------------------------

def canonical_key(key: str) -> str | None:
    """Map a setting name or alias to its snake_case key."""
    for name, aliases in SETTING_KEYS.items():
        if key == name or key in aliases:
            return name
    return None


def load_config(data: Mapping[str, Any] | None) -> MaskingConfig:
    """Normalize and validate a config dict (from YAML or inline)."""
    data = dict(data or {})
    # Support nested under "env_mask" key or flat
    if isinstance(data.get("env_mask"), Mapping):
        data = dict(data["env_mask"])

    raw: dict[str, Any] = {}
    for key, value in data.items():
        name = canonical_key(key)
        if name is not None and value is not None:
            raw[name] = value

    warnings: list[str] = []

    def warn(message: str) -> None:
        logger.warning(message)
        warnings.append(message)

    return MaskingConfig(
        mask_character=_mask_character(raw.get("mask_character"), warn),
        masking_length_strategy=_strategy(raw.get("masking_length_strategy"), warn),
        fixed_mask_length=_bounded_int(
            raw.get("fixed_mask_length"), "fixed_mask_length",
            DEFAULT_FIXED_MASK_LENGTH, MIN_MASK_LENGTH, MAX_MASK_LENGTH, warn,
        ),
        auto_hide_delay_ms=_bounded_int(
            raw.get("auto_hide_delay_ms"), "auto_hide_delay_ms",
            DEFAULT_AUTO_HIDE_DELAY_MS, 0, MAX_AUTO_HIDE_DELAY_MS, warn,
        ),
        enabled_file_patterns=_enabled_patterns(raw.get("enabled_file_patterns"), warn),
        blacklisted_files=_pattern_list(raw.get("blacklisted_files"), "blacklisted_files", (), warn),
        warnings=tuple(warnings),
    )


def load_from_yaml(path: str | Path) -> MaskingConfig:
    """Load config from a YAML file."""
    import yaml
    with open(path, encoding="utf-8") as f:
        return load_config(yaml.safe_load(f) or {})


def _mask_character(value: Any, warn) -> str:
    if value is None:
        return DEFAULT_MASK_CHARACTER
    if not isinstance(value, str) or len(value) != 1:
        warn(f"Invalid mask character {value!r}, using default {DEFAULT_MASK_CHARACTER!r}")
        return DEFAULT_MASK_CHARACTER
    return value


def _strategy(value: Any, warn) -> MaskingLengthStrategy:
    if value is None:
        return MaskingLengthStrategy.PROPORTIONAL_LENGTH
    if isinstance(value, MaskingLengthStrategy):
        return value
    strategy = _STRATEGY_ALIASES.get(str(value).strip().lower())
    if strategy is None:
        warn(f"Unknown masking length strategy {value!r}, using 'proportional_length'")
        return MaskingLengthStrategy.PROPORTIONAL_LENGTH
    return strategy


def _bounded_int(value: Any, name: str, default: int, lo: int, hi: int, warn) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        warn(f"Invalid {name} {value!r}, using default {default}")
        return default
    if value != value:  # NaN
        warn(f"Invalid {name} {value!r}, using default {default}")
        return default
    clamped = int(min(max(value, lo), hi))
    if clamped != value:
        warn(f"{name} {value!r} adjusted to {clamped} (allowed range {lo}..{hi})")
    return clamped


def _pattern_list(value: Any, name: str, default: tuple[str, ...], warn) -> tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str) or not isinstance(value, Iterable):
        warn(f"Invalid {name} {value!r}, expected a list of patterns")
        return default
    items = list(value)
    patterns = [p.strip() for p in items if isinstance(p, str) and p.strip()]
    if len(patterns) != len(items):
        warn(f"Ignoring non-string or empty entries in {name}")
    return tuple(patterns)


def _enabled_patterns(value: Any, warn) -> tuple[str, ...]:
    patterns = _pattern_list(value, "enabled_file_patterns", DEFAULT_ENABLED_FILE_PATTERNS, warn)
    if MANDATORY_FILE_PATTERN not in patterns:
        warn(f"enabled_file_patterns lacks {MANDATORY_FILE_PATTERN!r}, adding it")
        patterns = patterns + (MANDATORY_FILE_PATTERN,)
    return patterns


# ----------------------------------------------------------------------
# Key-value stores
# ----------------------------------------------------------------------

class ConfigStore(Protocol):
    """Read/update interface onto wherever settings are persisted."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def update(self, key: str, value: Any) -> None:
        """Write a value; ``None`` removes the key (back to default)."""
        ...

    def refresh(self) -> None:
        """Re-read the backing storage."""
        ...

    def as_dict(self) -> dict[str, Any]: ...


class DictConfigStore:
    """In-memory store."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def update(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value

    def refresh(self) -> None:
        pass

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)


class YamlConfigStore:
    """Store backed by a YAML file, nested under an ``env_mask:`` key.

    Nothing is read until ``refresh()``.  Every write re-reads the file
    first, so other top-level keys and outside edits are preserved; the
    file is created on first write.
    """

    __slots__ = ("_path", "_doc")

    def __init__(self, path: str | Path = DEFAULT_PATH) -> None:
        self._path = Path(path).expanduser()
        self._doc: dict[str, Any] = {}

    @property
    def path(self) -> Path:
        return self._path

    def refresh(self) -> None:
        import yaml
        if not self._path.exists():
            self._doc = {}
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigStoreError(f"Failed to read {self._path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigStoreError(f"{self._path} does not contain a mapping")
        self._doc = loaded

    def _section(self) -> dict[str, Any]:
        section = self._doc.get("env_mask")
        return section if isinstance(section, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._section().get(key, default)

    def update(self, key: str, value: Any) -> None:
        import yaml
        self.refresh()
        doc = dict(self._doc)
        section = dict(self._section())
        if value is None:
            section.pop(key, None)
        else:
            section[key] = value
        doc["env_mask"] = section
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                yaml.safe_dump(doc, f, allow_unicode=True, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigStoreError(f"Failed to write {self._path}: {e}") from e
        self._doc = doc

    def as_dict(self) -> dict[str, Any]:
        return dict(self._section())


# ----------------------------------------------------------------------
# Settings — a store plus its current validated snapshot
# ----------------------------------------------------------------------

class Settings:
    """Reads, validates and updates settings through a ConfigStore."""

    def __init__(self, store: ConfigStore | None = None) -> None:
        self.store: ConfigStore = store if store is not None else DictConfigStore()
        self.config = MaskingConfig()
        self.reload()

    def reload(self) -> MaskingConfig:
        """Re-read the store and rebuild the snapshot.

        If the store cannot be read the previous snapshot is kept.
        """
        try:
            self.store.refresh()
        except ConfigStoreError as e:
            logger.error("Keeping previous settings: %s", e)
            return self.config
        self.config = load_config(self.store.as_dict())
        return self.config

    def update_setting(self, key: str, value: Any) -> MaskingConfig:
        """Persist one setting, then reload.

        Raises KeyError for unknown keys and ConfigStoreError if the store
        fails; in both cases ``config`` is left as it was.
        """
        name = canonical_key(key)
        if name is None:
            raise KeyError(key)
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        self.store.update(name, value)
        return self.reload()

    def export_settings(self) -> dict[str, Any]:
        """Current validated settings as plain data (for backup or sharing)."""
        return self.config.as_dict()

    def import_settings(self, settings: Mapping[str, Any]) -> list[str]:
        """Apply known keys from ``settings``; unknown keys are ignored."""
        applied: list[str] = []
        for key, value in settings.items():
            if canonical_key(key) is None:
                logger.debug("Ignoring unknown setting %r", key)
                continue
            self.update_setting(key, value)
            applied.append(canonical_key(key))
        return applied

    def reset_to_defaults(self) -> MaskingConfig:
        for name in SETTING_KEYS:
            self.store.update(name, None)
        return self.reload()
