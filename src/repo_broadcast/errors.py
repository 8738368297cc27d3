"""
Error types for the transformation pipeline.

Every failure the pipeline surfaces is a TransformError carrying enough context
(file path, repositories, transformer name, category) to diagnose a single
file's failure without aborting the whole broadcast run.
"""

from __future__ import annotations

from enum import Enum


class TransformErrorCategory(str, Enum):
    """Category of a transform failure."""

    BINARY_FILE = "binary_file"
    TEMPLATE_PARSE = "template_parse"
    VARIABLE_SUBSTITUTION = "variable_substitution"
    REPO_NAME_FORMAT = "repo_name_format"
    GENERIC_TRANSFORM = "generic_transform"
    FILE_SYSTEM = "file_system"
    TIMEOUT = "timeout"
    CONTEXT = "context"
    PATTERN_COMPILE = "pattern_compile"


# Categories where retrying the same file with the same inputs cannot succeed
_UNRECOVERABLE = {
    TransformErrorCategory.REPO_NAME_FORMAT,
    TransformErrorCategory.CONTEXT,
    TransformErrorCategory.TIMEOUT,
}


class TransformError(Exception):
    """Error during content transformation."""

    category: TransformErrorCategory = TransformErrorCategory.GENERIC_TRANSFORM

    def __init__(
        self,
        message: str,
        *,
        file_path: str = "",
        transformer: str = "",
        source_repo: str = "",
        target_repo: str = "",
        category: TransformErrorCategory | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.file_path = file_path
        self.transformer = transformer
        self.source_repo = source_repo
        self.target_repo = target_repo
        if category is not None:
            self.category = category

    @property
    def recoverable(self) -> bool:
        """Whether the sync engine may reasonably try this file again."""
        return self.category not in _UNRECOVERABLE

    def __str__(self) -> str:
        parts = [f"transform failed: {self.message}" if self.message else "transform failed"]

        if self.file_path:
            parts.append(f"file: {self.file_path}")
        if self.source_repo and self.target_repo:
            parts.append(f"repos: {self.source_repo} -> {self.target_repo}")
        if self.transformer:
            parts.append(f"transform: {self.transformer}")
        parts.append(f"category: {self.category.value}")

        return " | ".join(parts)


class InvalidRepoFormatError(TransformError):
    """A repository identifier is not of the form ``org/name``."""

    category = TransformErrorCategory.REPO_NAME_FORMAT


class PatternCompileError(TransformError):
    """A regular expression could not be compiled."""

    category = TransformErrorCategory.PATTERN_COMPILE

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"invalid pattern {pattern!r}: {reason}")
        self.pattern = pattern


class TransformCancelledError(TransformError):
    """The transformation was cancelled before it completed."""

    category = TransformErrorCategory.CONTEXT


class FatalPatternError(RuntimeError):
    """A compile-time constant pattern failed to compile.

    This is a programming error, never a runtime condition, and is not a
    TransformError so that no caller treats it as a per-file failure.
    """
