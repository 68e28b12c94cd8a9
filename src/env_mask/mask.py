"""Mask strings — what gets drawn over a hidden value.

    FIXED_LENGTH         "my-secret-api-key-12345" → "••••••••••••••••••••"  (fixed_mask_length)
    PROPORTIONAL_LENGTH  "my-secret-api-key-12345" → "•••••••••••••••••••••••"  (one per char)
"""

from __future__ import annotations
import logging

from .config import (
    DEFAULT_MASK_CHARACTER,
    MAX_MASK_LENGTH,
    MIN_MASK_LENGTH,
    MaskingConfig,
    MaskingLengthStrategy,
)

logger = logging.getLogger(__name__)


def mask_character_or_default(char: object) -> str:
    """Return ``char`` if it is exactly one character, else the default."""
    if isinstance(char, str) and len(char) == 1:
        return char
    logger.warning("Invalid mask character %r, using default %r", char, DEFAULT_MASK_CHARACTER)
    return DEFAULT_MASK_CHARACTER


def generate_mask(value_length: int, config: MaskingConfig) -> str:
    """Build the mask for a value of ``value_length`` characters."""
    char = mask_character_or_default(config.mask_character)
    if config.masking_length_strategy is MaskingLengthStrategy.FIXED_LENGTH:
        length = min(max(config.fixed_mask_length, MIN_MASK_LENGTH), MAX_MASK_LENGTH)
        return char * length
    return char * max(value_length, 0)
