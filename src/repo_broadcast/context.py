"""
Transformation context models.

A TransformContext describes one file headed for one target repository.
It is built per file by the caller and is read-only for every transformer,
so the same context can be shared by concurrent transformations.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import pathspec
from pathspec.patterns import GitWildMatchPattern

from .utils import normalize_path


@dataclass(frozen=True)
class TransformContext:
    """Per-file input to the transformation chain."""

    source_repo: str = ""  # "org/name"
    target_repo: str = ""  # "org/name"
    file_path: str = ""  # Destination-relative path, drives file-type branching
    variables: Mapping[str, str] = field(default_factory=dict)

    # Optional email rewriting (skipped unless source and target differ)
    source_security_email: str = ""
    target_security_email: str = ""
    source_support_email: str = ""
    target_support_email: str = ""

    def __post_init__(self) -> None:
        # Copy then freeze so neither the caller nor a transformer can mutate it
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables or {})))

    @property
    def rewrites_security_email(self) -> bool:
        """Whether the security email is configured for rewriting."""
        return _should_rewrite(self.source_security_email, self.target_security_email)

    @property
    def rewrites_support_email(self) -> bool:
        """Whether the support email is configured for rewriting."""
        return _should_rewrite(self.source_support_email, self.target_support_email)


def _should_rewrite(source: str, target: str) -> bool:
    return bool(source) and bool(target) and source != target


@dataclass(frozen=True)
class DirectoryMapping:
    """A directory broadcast rule: copy ``src`` in the source repo to ``dest``."""

    src: str
    dest: str
    # Gitignore-style globs, relative to src
    exclude: tuple[str, ...] = ()
    _spec: pathspec.PathSpec | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "exclude", tuple(self.exclude))
        if self.exclude:
            spec = pathspec.PathSpec.from_lines(GitWildMatchPattern, list(self.exclude))
            object.__setattr__(self, "_spec", spec)

    def matches_exclude(self, rel_path: str) -> bool:
        """Check if a path relative to ``src`` matches an exclude pattern."""
        if self._spec is None:
            return False
        return self._spec.match_file(normalize_path(rel_path))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"dest": self.dest, "exclude": sorted(self.exclude), "src": self.src}


@dataclass
class DirectoryTransformContext:
    """
    TransformContext enriched with directory-sync bookkeeping.

    Used when a file is broadcast as part of a directory mapping rather than
    as an individually listed file. The wrapped ``context`` is what the
    chain sees; the remaining fields exist for diagnostics and progress.
    """

    context: TransformContext
    is_from_directory: bool = False
    directory_mapping: DirectoryMapping | None = None
    relative_path: str = ""
    file_index: int = 0
    total_files: int = 0
    transform_start_time: float = 0.0  # time.monotonic() at creation

    @classmethod
    def create(
        cls,
        base: TransformContext,
        mapping: DirectoryMapping | None,
        relative_path: str,
        file_index: int,
        total_files: int,
    ) -> DirectoryTransformContext:
        """Create a directory context for one file of a directory mapping."""
        return cls(
            context=base,
            is_from_directory=True,
            directory_mapping=mapping,
            relative_path=relative_path,
            file_index=file_index,
            total_files=total_files,
            transform_start_time=time.monotonic(),
        )

    def transform_duration(self) -> float:
        """Seconds elapsed since the context was created."""
        return time.monotonic() - self.transform_start_time

    def __str__(self) -> str:
        ctx = self.context
        if not self.is_from_directory:
            return f"DirectoryTransformContext{{FilePath: {ctx.file_path}, IsFromDirectory: false}}"

        if self.directory_mapping is None:
            mapping = "<nil>"
        else:
            mapping = f"{self.directory_mapping.src}->{self.directory_mapping.dest}"

        parts = [
            f"SourceRepo: {ctx.source_repo}",
            f"TargetRepo: {ctx.target_repo}",
            f"FilePath: {ctx.file_path}",
            "IsFromDirectory: true",
            f"RelativePath: {self.relative_path}",
            f"Progress: {self.file_index + 1}/{self.total_files}",
            f"DirectoryMapping: {mapping}",
            f"Duration: {self.transform_duration() * 1000:.1f}ms",
        ]
        return "DirectoryTransformContext{" + ", ".join(parts) + "}"
