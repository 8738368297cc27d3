"""
Chain construction and a local runner for files and directories.

``build_chain`` is the one place that decides transformer order for a
target. ``transform_file`` and ``transform_directory`` apply a chain to
local content and report per-file outcomes instead of stopping at the
first failing file.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from .binary import BinaryTransformer, is_binary
from .config import DEFAULT_MAX_WORKERS
from .config_loader import TargetConfig
from .context import DirectoryMapping, DirectoryTransformContext, TransformContext
from .emails import EmailTransformer
from .errors import TransformCancelledError, TransformError, TransformErrorCategory
from .regex_cache import RegexCache
from .repo import RepoTransformer
from .template import TemplateTransformer
from .transformer import Chain
from .utils import normalize_path

logger = logging.getLogger(__name__)


def build_chain(
    target: TargetConfig,
    cache: RegexCache,
    logger: logging.Logger | None = None,
    *,
    detect_binary: bool = False,
) -> Chain:
    """
    Build the transformation chain for a target.

    Order is fixed: binary detection, then email, then template variables,
    then repository names. Email must precede the repository rewriter (see
    ``emails``); template substitution runs before it so that substituted
    values are rewritten like any other text.
    """
    chain = Chain(logger=logger)

    if detect_binary:
        chain.add(BinaryTransformer(logger=logger))
    if target.rewrites_emails:
        chain.add(EmailTransformer(cache, logger=logger))
    if target.variables:
        chain.add(TemplateTransformer(cache, logger=logger))
    if target.repo_name:
        chain.add(RepoTransformer(cache, logger=logger))

    return chain


@dataclass
class FileResult:
    """Outcome of transforming one file."""

    path: str
    content: bytes = b""
    changed: bool = False
    binary: bool = False
    error: TransformError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class TransformReport:
    """Counts and per-file errors for a directory transformation."""

    processed: int = 0
    changed: int = 0
    binary: int = 0
    failed: int = 0
    skipped: int = 0  # Excluded by the directory mapping
    errors: dict[str, TransformError] = field(default_factory=dict)

    def record(self, result: FileResult) -> None:
        """Add one file's outcome to the totals."""
        self.processed += 1
        if result.error is not None:
            self.failed += 1
            self.errors[result.path] = result.error
        elif result.binary:
            self.binary += 1
        elif result.changed:
            self.changed += 1

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "binary": self.binary,
            "changed": self.changed,
            "errors": {path: str(err) for path, err in sorted(self.errors.items())},
            "failed": self.failed,
            "processed": self.processed,
            "skipped": self.skipped,
        }


def transform_file(
    chain: Chain,
    content: bytes,
    context: TransformContext,
    cancel_event: threading.Event | None = None,
    skip_binary: bool = True,
) -> FileResult:
    """
    Transform one file's content.

    With ``skip_binary``, binary content is passed through unchanged without
    running the chain. A transformer failure is returned in
    ``FileResult.error``; cancellation is raised so the caller can stop
    scheduling work.

    Raises:
        TransformCancelledError: If cancel_event was set
    """
    # Checked here as well as in the chain: binary files and empty chains never reach it
    if cancel_event is not None and cancel_event.is_set():
        raise TransformCancelledError(
            "transformation cancelled",
            file_path=context.file_path,
            source_repo=context.source_repo,
            target_repo=context.target_repo,
        )

    if skip_binary and is_binary(context.file_path, content):
        return FileResult(path=context.file_path, content=content, binary=True)

    try:
        output = chain.transform(content, context, cancel_event)
    except TransformCancelledError:
        raise
    except TransformError as e:
        logger.debug("Transform failed for %s: %s", context.file_path, e)
        return FileResult(path=context.file_path, content=content, error=e)

    return FileResult(path=context.file_path, content=output, changed=output != content)


def _walk_files(root: Path) -> Generator[Path, None, None]:
    """Yield files under root in sorted order. Symlinked directories are not followed."""
    dirs_to_process = [root]

    while dirs_to_process:
        current = dirs_to_process.pop()
        try:
            entries = sorted(os.scandir(current), key=lambda e: e.name)
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", current, e)
            continue

        subdirs = []
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
            elif entry.is_file():
                yield Path(entry.path)

        # Reverse so the stack pops them in sorted order
        dirs_to_process.extend(reversed(subdirs))


def transform_directory(
    chain: Chain,
    source_dir: Path,
    output_dir: Path,
    base_context: TransformContext,
    mapping: DirectoryMapping,
    max_workers: int | None = DEFAULT_MAX_WORKERS,
    cancel_event: threading.Event | None = None,
    skip_binary: bool = True,
) -> TransformReport:
    """
    Transform every file of a directory mapping into ``output_dir / mapping.dest``.

    Args:
        chain: Chain to apply to each file
        source_dir: Local directory holding ``mapping.src``'s contents
        output_dir: Root of the target working tree
        base_context: Context shared by all files; file_path is set per file
        mapping: Directory mapping being broadcast
        max_workers: Thread pool size (None = executor default)
        cancel_event: Optional cancellation signal
        skip_binary: Copy binary files unchanged instead of transforming them

    Returns:
        TransformReport. Failed files are recorded and not written.

    Raises:
        TransformCancelledError: If cancel_event was set before all files finished
    """
    dest_root = output_dir / mapping.dest

    files: list[tuple[Path, str]] = []
    skipped = 0
    for file_path in _walk_files(source_dir):
        rel_path = normalize_path(str(file_path.relative_to(source_dir)))
        if mapping.matches_exclude(rel_path):
            skipped += 1
            continue
        files.append((file_path, rel_path))

    total = len(files)
    report = TransformReport(skipped=skipped)

    def process(index: int, file_path: Path, rel_path: str) -> FileResult:
        dest_rel = normalize_path(str(Path(mapping.dest) / rel_path))
        context = TransformContext(
            source_repo=base_context.source_repo,
            target_repo=base_context.target_repo,
            file_path=dest_rel,
            variables=base_context.variables,
            source_security_email=base_context.source_security_email,
            target_security_email=base_context.target_security_email,
            source_support_email=base_context.source_support_email,
            target_support_email=base_context.target_support_email,
        )
        dir_context = DirectoryTransformContext.create(context, mapping, rel_path, index, total)

        try:
            content = file_path.read_bytes()
        except OSError as e:
            return FileResult(
                path=dest_rel,
                error=TransformError(
                    f"cannot read {file_path}: {e}",
                    file_path=dest_rel,
                    source_repo=context.source_repo,
                    target_repo=context.target_repo,
                    category=TransformErrorCategory.FILE_SYSTEM,
                ),
            )

        result = transform_file(chain, content, context, cancel_event, skip_binary)
        if result.error is None:
            out_path = dest_root / rel_path
            try:
                out_path.parent.mkdir(parents=True, exist_ok=True)
                out_path.write_bytes(result.content)
            except OSError as e:
                result.error = TransformError(
                    f"cannot write {out_path}: {e}",
                    file_path=dest_rel,
                    source_repo=context.source_repo,
                    target_repo=context.target_repo,
                    category=TransformErrorCategory.FILE_SYSTEM,
                )

        logger.debug("%s", dir_context)
        return result

    # Use thread pool; each file gets its own context and output buffer
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(process, i, file_path, rel_path)
            for i, (file_path, rel_path) in enumerate(files)
        ]

        cancelled: TransformCancelledError | None = None
        for future in as_completed(futures):
            if future.cancelled():
                continue
            try:
                report.record(future.result())
            except TransformCancelledError as e:
                if cancelled is None:
                    cancelled = e
                    for pending in futures:
                        pending.cancel()

    if cancelled is not None:
        raise cancelled

    logger.info(
        "Transformed %s -> %s: %d files, %d changed, %d binary, %d failed",
        mapping.src,
        mapping.dest,
        report.processed,
        report.changed,
        report.binary,
        report.failed,
    )
    return report
