"""
Thread-safe regular expression cache.

Transformers build their patterns per file from escaped literals, so the same
handful of patterns is compiled again for every file of every target. The
cache amortizes that cost across a broadcast run.

Design:
- Lookups read the dict without taking a lock (single dict reads are atomic),
  so warm-cache reads from many worker threads never serialize.
- Misses take a write lock and re-check before compiling (double-checked
  locking), so threads racing on a cold pattern share one compiled instance.
- Hit/miss/size counters live behind their own lock and never contend with
  pattern lookups.
- The cache is bounded: once ``max_size`` patterns are stored, new patterns
  are compiled on demand but not inserted. Nothing is ever evicted.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import FatalPatternError, PatternCompileError

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1000

# Patterns pre-compiled on first use of a cache.
# Changing this list changes what every new cache starts with.
COMMON_PATTERNS: tuple[str, ...] = (
    # GitHub repository patterns
    r"github\.com/([^/]+/[^/]+)",
    r"^[a-zA-Z0-9][\w.-]*/[a-zA-Z0-9][\w.-]*$",
    # Branch patterns
    r"^[a-zA-Z0-9][\w./\-]*$",
    r"^(chore/sync-files)-(\d{8})-(\d{6})-([a-fA-F0-9]+)$",
    # Template variable patterns
    r"\{\{([A-Z_][A-Z0-9_]*)\}\}",
    r"\$\{([A-Z_][A-Z0-9_]*)\}",
    # GitHub token patterns (for redaction)
    r"ghp_[a-zA-Z0-9]{4,}",
    r"ghs_[a-zA-Z0-9]{4,}",
    r"github_pat_[a-zA-Z0-9_]{4,}",
    r"ghr_[a-zA-Z0-9]{4,}",
    # Authentication patterns
    r"(Bearer|Token)\s+([^\s'\"]+)",
    r"JWT\s+([a-zA-Z0-9_.-]{20,})",
    r"(password|token|secret|key|api_key)=([^\s&]+)",
    r"://([^:]+):([^@]+)@",
    # Security patterns
    r"-----BEGIN[A-Z\s]+PRIVATE KEY-----[\s\S]*?-----END[A-Z\s]+PRIVATE KEY-----",
    r"\b([a-zA-Z0-9+/]{40,}={0,2})\b",
    r"([A-Z_]*(?:TOKEN|SECRET|KEY|PASSWORD|PASS)[A-Z_]*=)([^\s]+)",
    r"\b[a-zA-Z_]*token[a-zA-Z0-9_]*\b",
    # Invalid characters for branch names
    r"[^a-zA-Z0-9/_-]",
)

TEMPLATE_BRACES_PATTERN = COMMON_PATTERNS[4]
TEMPLATE_DOLLAR_PATTERN = COMMON_PATTERNS[5]


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache performance counters."""

    hits: int
    misses: int
    size: int

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {"hits": self.hits, "misses": self.misses, "size": self.size}


class RegexCache:
    """
    Bounded, thread-safe cache from pattern string to compiled pattern.

    Intended to be created once by the application and passed to every
    transformer that needs compiled patterns.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        common_patterns: Iterable[str] = COMMON_PATTERNS,
    ):
        """
        Initialize the cache.

        Args:
            max_size: Maximum number of patterns kept in the cache
            common_patterns: Patterns compiled into the cache on first use
        """
        self.max_size = max_size
        self.common_patterns = tuple(common_patterns)

        self._cache: dict[str, re.Pattern[str]] = {}
        self._lock = threading.Lock()
        self._initialized = False

        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._size = 0

    def _ensure_initialized(self) -> None:
        """Compile the common patterns once, on first use."""
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            self._load_common_patterns()
            self._initialized = True
        with self._stats_lock:
            self._size = len(self._cache)

    def _load_common_patterns(self) -> None:
        """Compile common patterns into the cache. Caller holds the write lock."""
        for pattern in self.common_patterns:
            try:
                self._cache[pattern] = re.compile(pattern)
            except re.error as e:
                logger.warning("Skipping invalid common pattern %r: %s", pattern, e)

    def _record_hit(self) -> None:
        with self._stats_lock:
            self._hits += 1

    def compile_regex(self, pattern: str) -> re.Pattern[str]:
        """
        Return a compiled pattern, using the cache when possible.

        Args:
            pattern: Regular expression pattern string

        Returns:
            Compiled pattern. Repeated calls with a cached pattern return
            the same object.

        Raises:
            PatternCompileError: If the pattern is not a valid expression
        """
        self._ensure_initialized()

        # Fast path: no lock needed for a dict read
        compiled = self._cache.get(pattern)
        if compiled is not None:
            self._record_hit()
            return compiled

        # Slow path: compile under the write lock
        with self._lock:
            # Another thread may have compiled it while we waited
            compiled = self._cache.get(pattern)
            if compiled is not None:
                self._record_hit()
                return compiled

            try:
                compiled = re.compile(pattern)
            except re.error as e:
                with self._stats_lock:
                    self._misses += 1
                raise PatternCompileError(pattern, str(e)) from e

            # Full cache: compiled but not stored
            if len(self._cache) < self.max_size:
                self._cache[pattern] = compiled

            with self._stats_lock:
                self._misses += 1
                self._size = len(self._cache)

        return compiled

    def must_compile_regex(self, pattern: str) -> re.Pattern[str]:
        """
        Compile a pattern that is known to be valid.

        Only for compile-time constant patterns. Never pass user- or
        config-supplied text here.

        Raises:
            FatalPatternError: If the pattern fails to compile
        """
        try:
            return self.compile_regex(pattern)
        except PatternCompileError as e:
            raise FatalPatternError(f"constant pattern failed to compile: {pattern!r}") from e

    def precompile_patterns(
        self, patterns: Iterable[str]
    ) -> tuple[int, list[PatternCompileError]]:
        """
        Warm the cache with known-hot patterns.

        Returns:
            Tuple of (number compiled successfully, errors for the rest)
        """
        compiled = 0
        errors: list[PatternCompileError] = []

        for pattern in patterns:
            try:
                self.compile_regex(pattern)
            except PatternCompileError as e:
                errors.append(e)
            else:
                compiled += 1

        return compiled, errors

    def clear_cache(self) -> None:
        """Drop everything except the common patterns and reset statistics."""
        with self._lock:
            self._cache = {}
            self._load_common_patterns()
            self._initialized = True

            with self._stats_lock:
                self._hits = 0
                self._misses = 0
                self._size = len(self._cache)

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        self._ensure_initialized()
        with self._stats_lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=self._size)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._cache

    def __len__(self) -> int:
        return len(self._cache)
