"""Tests for the thread-safe regex cache."""

import re
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from repo_broadcast.errors import FatalPatternError, PatternCompileError, TransformError
from repo_broadcast.regex_cache import (
    COMMON_PATTERNS,
    TEMPLATE_BRACES_PATTERN,
    TEMPLATE_DOLLAR_PATTERN,
    RegexCache,
)


class TestCompileRegex:
    """Tests for cached compilation."""

    def test_same_pattern_returns_same_instance(self):
        """Test that a second compile returns the cached object."""
        cache = RegexCache()
        first = cache.compile_regex(r"org/old-repo\b")
        # Clear re's internal cache so identity can only come from RegexCache
        re.purge()
        second = cache.compile_regex(r"org/old-repo\b")

        assert first is second
        re.purge()
        assert re.compile(r"org/old-repo\b") is not first

    def test_hits_and_misses(self):
        """Test that the first compile is a miss and the second a hit."""
        cache = RegexCache(common_patterns=())
        cache.compile_regex(r"foo\d+")
        stats = cache.get_stats()
        assert stats.misses == 1
        assert stats.hits == 0

        cache.compile_regex(r"foo\d+")
        stats = cache.get_stats()
        assert stats.misses == 1
        assert stats.hits == 1
        assert stats.size == 1

    def test_invalid_pattern_raises(self):
        """Test that an invalid pattern raises PatternCompileError."""
        cache = RegexCache()
        with pytest.raises(PatternCompileError) as exc_info:
            cache.compile_regex(r"[unclosed")

        assert exc_info.value.pattern == r"[unclosed"
        assert isinstance(exc_info.value, TransformError)
        assert r"[unclosed" not in cache

    def test_compiled_pattern_works(self):
        """Test that the returned object is a usable compiled pattern."""
        cache = RegexCache()
        pattern = cache.compile_regex(r"(\w+)@example\.com")

        assert isinstance(pattern, re.Pattern)
        assert pattern.search("mail me at dev@example.com").group(1) == "dev"


class TestCommonPatterns:
    """Tests for precompiled common patterns."""

    def test_common_patterns_loaded_on_first_use(self):
        """Test that common patterns are present after first use."""
        cache = RegexCache()
        cache.compile_regex("anything")

        for pattern in COMMON_PATTERNS:
            assert pattern in cache

    def test_common_pattern_lookup_is_hit(self):
        """Test that a common pattern is served from the cache."""
        cache = RegexCache()
        cache.compile_regex(TEMPLATE_BRACES_PATTERN)

        stats = cache.get_stats()
        assert stats.hits == 1
        assert stats.misses == 0

    def test_template_patterns(self):
        """Test the template variable constants."""
        cache = RegexCache()
        braces = cache.must_compile_regex(TEMPLATE_BRACES_PATTERN)
        dollar = cache.must_compile_regex(TEMPLATE_DOLLAR_PATTERN)

        assert braces.findall("{{SERVICE_NAME}} {{lower}}") == ["SERVICE_NAME"]
        assert dollar.findall("${_PRIVATE} ${9BAD}") == ["_PRIVATE"]

    def test_invalid_common_pattern_skipped(self):
        """Test that an invalid seed pattern does not break the cache."""
        cache = RegexCache(common_patterns=[r"ok\d", r"(broken"])
        cache.compile_regex("x")

        assert r"ok\d" in cache
        assert r"(broken" not in cache


class TestBoundedCache:
    """Tests for the size bound."""

    def test_full_cache_still_compiles(self):
        """Test that patterns beyond max_size compile but are not stored."""
        cache = RegexCache(max_size=2, common_patterns=())
        cache.compile_regex("a")
        cache.compile_regex("b")
        extra = cache.compile_regex("c")

        assert extra.pattern == "c"
        assert len(cache) == 2
        assert "c" not in cache
        assert cache.get_stats().size == 2

    def test_uncached_pattern_recompiled(self):
        """Test that an unstored pattern counts as a miss each time."""
        cache = RegexCache(max_size=0, common_patterns=())
        cache.compile_regex("z")
        cache.compile_regex("z")

        assert cache.get_stats().misses == 2


class TestMustCompileRegex:
    """Tests for the constant-pattern path."""

    def test_valid_constant(self):
        """Test that a valid constant compiles."""
        cache = RegexCache()
        assert cache.must_compile_regex(r"^module\s+").match("module x")

    def test_invalid_constant_is_fatal(self):
        """Test that an invalid constant raises FatalPatternError."""
        cache = RegexCache()
        with pytest.raises(FatalPatternError):
            cache.must_compile_regex(r"(?P<bad")

    def test_fatal_is_not_transform_error(self):
        """Test that fatal misuse is not reported as a per-file failure."""
        assert not issubclass(FatalPatternError, TransformError)


class TestPrecompileAndClear:
    """Tests for warming and clearing the cache."""

    def test_precompile_reports_errors(self):
        """Test that precompile counts successes and collects failures."""
        cache = RegexCache(common_patterns=())
        compiled, errors = cache.precompile_patterns([r"a+", r"b+", r"(c"])

        assert compiled == 2
        assert len(errors) == 1
        assert errors[0].pattern == r"(c"

    def test_clear_keeps_common_patterns(self):
        """Test that clearing drops user patterns and resets stats."""
        cache = RegexCache(common_patterns=[r"seed"])
        cache.compile_regex(r"user-pattern")
        cache.compile_regex(r"user-pattern")

        cache.clear_cache()

        assert r"user-pattern" not in cache
        assert r"seed" in cache
        stats = cache.get_stats()
        assert stats.hits == 0
        assert stats.misses == 0
        assert stats.size == 1

    def test_stats_to_dict(self):
        """Test stats serialization."""
        cache = RegexCache(common_patterns=())
        cache.compile_regex("q")
        assert cache.get_stats().to_dict() == {"hits": 0, "misses": 1, "size": 1}


class TestConcurrency:
    """Tests for concurrent access."""

    def test_concurrent_cold_compile_shares_instance(self):
        """Test that 100 racing callers all get one compiled instance."""
        cache = RegexCache(common_patterns=())
        barrier = threading.Barrier(100)
        pattern = r"cold-(pattern)-\d+"

        def compile_after_barrier(_):
            barrier.wait()
            return cache.compile_regex(pattern)

        with ThreadPoolExecutor(max_workers=100) as executor:
            results = list(executor.map(compile_after_barrier, range(100)))

        assert len({id(r) for r in results}) == 1
        stats = cache.get_stats()
        assert stats.misses == 1
        assert stats.hits == 99
        assert stats.size == 1

        re.purge()
        assert cache.compile_regex(pattern) is results[0]
        assert re.compile(pattern) is not results[0]

    def test_concurrent_distinct_patterns(self):
        """Test that concurrent callers compiling different patterns all succeed."""
        cache = RegexCache(common_patterns=())

        with ThreadPoolExecutor(max_workers=16) as executor:
            results = list(executor.map(lambda i: cache.compile_regex(f"p{i}"), range(200)))

        assert [r.pattern for r in results] == [f"p{i}" for i in range(200)]
        assert len(cache) == 200
