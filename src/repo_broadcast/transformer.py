"""
Transformer contract and the transformation chain.

A Chain applies an ordered list of transformers to one file's content.
Transformers are appended with ``add`` and run strictly in that order;
the first failure or a cancellation stops the run.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from .context import TransformContext
from .errors import FatalPatternError, TransformCancelledError, TransformError

BINARY_TRANSFORMER_NAME = "binary-detector"
TEMPLATE_TRANSFORMER_NAME = "template-variable-replacer"
REPO_TRANSFORMER_NAME = "repository-name-replacer"
EMAIL_TRANSFORMER_NAME = "email-address-replacer"


class Transformer(ABC):
    """A single-responsibility content rewriter."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable name used in logs and error messages."""
        ...

    @abstractmethod
    def transform(self, content: bytes, context: TransformContext) -> bytes:
        """
        Rewrite content for the target described by context.

        Must not mutate context and must not keep per-call state.

        Raises:
            TransformError: If the content cannot be transformed reliably
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class Chain:
    """
    Ordered, thread-safe sequence of transformers.

    ``add`` and ``transform`` may be called concurrently. ``transform``
    copies the transformer list under the lock and then runs without it,
    so a run sees a fixed ordering even if transformers are appended
    while it is in flight.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._transformers: list[Transformer] = []
        self._lock = threading.Lock()
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def add(self, transformer: Transformer) -> Chain:
        """Append a transformer. Returns the chain for fluent use."""
        with self._lock:
            self._transformers.append(transformer)
            names = [t.name for t in self._transformers]

        _warn_on_email_after_repo(names, self.logger)
        return self

    def transformers(self) -> list[Transformer]:
        """Get a copy of the registered transformers, in order."""
        with self._lock:
            return list(self._transformers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._transformers)

    def transform(
        self,
        content: bytes,
        context: TransformContext,
        cancel_event: threading.Event | None = None,
    ) -> bytes:
        """
        Run every transformer over content, in registration order.

        Args:
            content: Original file content
            context: Per-file transformation context
            cancel_event: Optional cancellation signal, checked before each step

        Returns:
            Content after the last transformer

        Raises:
            TransformCancelledError: If cancel_event was set before a step
            TransformError: If a transformer failed; names that transformer
        """
        snapshot = self.transformers()
        result = content

        for transformer in snapshot:
            if cancel_event is not None and cancel_event.is_set():
                raise TransformCancelledError(
                    "transformation cancelled",
                    file_path=context.file_path,
                    transformer=transformer.name,
                    source_repo=context.source_repo,
                    target_repo=context.target_repo,
                )

            try:
                output = transformer.transform(result, context)
            except FatalPatternError:
                raise
            except Exception as e:
                category = e.category if isinstance(e, TransformError) else None
                reason = e.message if isinstance(e, TransformError) else str(e)
                raise TransformError(
                    f"transformer {transformer.name} failed: {reason}",
                    file_path=context.file_path,
                    transformer=transformer.name,
                    source_repo=context.source_repo,
                    target_repo=context.target_repo,
                    category=category,
                ) from e

            self.logger.debug(
                "Applied %s to %s (changed=%s)",
                transformer.name,
                context.file_path,
                output != result,
            )
            result = output

        return result


def _warn_on_email_after_repo(names: list[str], log: logging.Logger) -> None:
    """Email rewriting must precede repo rewriting; see EmailTransformer."""
    if names and names[-1] == EMAIL_TRANSFORMER_NAME and REPO_TRANSFORMER_NAME in names[:-1]:
        log.warning(
            "%s added after %s: email addresses containing the repository name "
            "will be rewritten by the repo transformer first and no longer match",
            EMAIL_TRANSFORMER_NAME,
            REPO_TRANSFORMER_NAME,
        )
