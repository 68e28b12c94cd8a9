"""env-mask — mask values in .env-style files for on-screen display."""

from .config import (
    ConfigStoreError,
    DictConfigStore,
    MaskingConfig,
    MaskingLengthStrategy,
    Settings,
    YamlConfigStore,
    load_config,
    load_from_yaml,
)
from .controller import MaskingController
from .mask import generate_mask
from .parser import declarations_in_range, parse_document, parse_line, value_at_position
from .patterns import PatternMatcher
from .reveal import RevealStateStore
from .scheduler import AsyncioScheduler, ManualScheduler
from .types import (
    Declaration,
    Notification,
    Position,
    RenderBatch,
    RenderInstruction,
    RenderMode,
    RevealEntry,
    RevealState,
    TextDocument,
)

__all__ = [
    "MaskingController",
    "parse_line", "parse_document", "value_at_position", "declarations_in_range",
    "PatternMatcher",
    "generate_mask",
    "RevealStateStore",
    "AsyncioScheduler", "ManualScheduler",
    "MaskingConfig", "MaskingLengthStrategy", "Settings",
    "DictConfigStore", "YamlConfigStore", "ConfigStoreError",
    "load_config", "load_from_yaml",
    "Declaration", "RevealEntry", "RevealState", "Position", "TextDocument",
    "RenderMode", "RenderInstruction", "RenderBatch", "Notification",
]
__version__ = "0.1.0"
