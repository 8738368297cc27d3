"""
Ordered rewrite rules shared by the repository and email rewriters.

A rule pairs a pattern built from escaped literals with a replacement
template. Rules are applied in list order, each to the output of the
previous one, so more specific forms (full URLs, markdown links) must come
before the generic ones that would otherwise consume them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import PatternCompileError
from .regex_cache import RegexCache


@dataclass(frozen=True)
class RewriteRule:
    """A pattern and the ``re.sub`` template that replaces its matches."""

    name: str
    pattern: str
    # Must already have user-controlled parts passed through escape_replacement
    replacement: str


def apply_rules(
    text: str,
    rules: list[RewriteRule],
    cache: RegexCache,
    logger: logging.Logger,
) -> str:
    """
    Apply rewrite rules in order.

    A rule whose pattern fails to compile is skipped: the patterns are built
    from escaped literals, so this only ever costs one substitution.
    """
    result = text

    for rule in rules:
        try:
            compiled = cache.compile_regex(rule.pattern)
        except PatternCompileError as e:
            logger.debug("Skipping rule %s: %s", rule.name, e)
            continue
        result = compiled.sub(rule.replacement, result)

    return result
