"""
Binary file detection.

Uses a known-extension table first, then null byte detection and
character analysis on a bounded sample of the content.
"""

from __future__ import annotations

import logging

from .config import BINARY_EXTENSIONS, BINARY_NON_TEXT_RATIO, BINARY_SAMPLE_SIZE
from .context import TransformContext
from .transformer import BINARY_TRANSFORMER_NAME, Transformer
from .utils import file_extension

# Whitespace control characters that are normal in text
_TEXT_CONTROL_BYTES = frozenset({9, 10, 13})  # tab, LF, CR


def is_binary_extension(path: str) -> bool:
    """Check if a path's final extension is a known binary type (case-insensitive)."""
    return file_extension(path) in BINARY_EXTENSIONS


def is_binary_content(content: bytes, sample_size: int = BINARY_SAMPLE_SIZE) -> bool:
    """
    Check if content appears to be binary.

    Inspects at most ``sample_size`` leading bytes. Any null byte means
    binary. Otherwise counts control characters (other than tab, LF, CR)
    and bytes with the high bit set; more than 30% of the sample means binary.
    """
    if not content:
        return False

    sample = content[:sample_size]

    # Null bytes are a strong indicator of binary
    if b"\x00" in sample:
        return True

    non_text = sum(
        1 for b in sample
        if (b < 32 and b not in _TEXT_CONTROL_BYTES) or b > 127
    )

    return non_text / len(sample) > BINARY_NON_TEXT_RATIO


def is_binary(path: str, content: bytes) -> bool:
    """
    Check if a file is binary, by extension and then by content.

    Empty content is never binary.
    """
    if not content:
        return False

    if is_binary_extension(path):
        return True

    return is_binary_content(content)


class BinaryTransformer(Transformer):
    """
    Pass-through transformer that only detects binary files.

    Never modifies content. Its place in a chain is to surface binary files
    in the logs; callers that want to skip rewriting for binary content
    check ``is_binary`` themselves (see ``pipeline.transform_file``).
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return BINARY_TRANSFORMER_NAME

    def transform(self, content: bytes, context: TransformContext) -> bytes:
        if is_binary(context.file_path, content):
            self.logger.debug(
                "Binary file detected: %s (%d bytes)", context.file_path, len(content)
            )
        return content
