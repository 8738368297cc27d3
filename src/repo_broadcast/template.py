"""
Template variable substitution.

Replaces ``{{NAME}}`` and ``${NAME}`` placeholders with per-target values.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from .context import TransformContext
from .regex_cache import TEMPLATE_BRACES_PATTERN, TEMPLATE_DOLLAR_PATTERN, RegexCache
from .transformer import TEMPLATE_TRANSFORMER_NAME, Transformer
from .utils import to_bytes, to_text


def placeholders_for(name: str) -> tuple[str, str]:
    """Both placeholder spellings of a variable name."""
    return "{{" + name + "}}", "${" + name + "}"


def order_variable_names(variables: Mapping[str, str]) -> list[str]:
    """
    Order variable names longest first.

    A shorter name that prefixes a longer one (SERVICE vs SERVICE_NAME) must
    never be tried before it. Ties are broken by name for determinism.
    """
    return sorted(variables, key=lambda name: (-len(name), name))


class TemplateTransformer(Transformer):
    """
    Substitutes template variables from ``context.variables``.

    All placeholders are replaced in a single pass over the original
    content: a value that itself contains placeholder syntax is inserted
    literally and never expanded again. Placeholders left over afterwards
    are reported as a warning, not an error.
    """

    def __init__(self, cache: RegexCache, logger: logging.Logger | None = None):
        self.cache = cache
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return TEMPLATE_TRANSFORMER_NAME

    def transform(self, content: bytes, context: TransformContext) -> bytes:
        variables = context.variables
        if not variables:
            return content

        names = order_variable_names(variables)

        replacements: dict[str, str] = {}
        alternatives: list[str] = []
        for name in names:
            for placeholder in placeholders_for(name):
                replacements[placeholder] = variables[name]
                alternatives.append(re.escape(placeholder))

        pattern = self.cache.compile_regex("|".join(alternatives))

        counts: dict[str, int] = {}

        def substitute(match: re.Match[str]) -> str:
            placeholder = match.group(0)
            counts[placeholder] = counts.get(placeholder, 0) + 1
            return replacements[placeholder]

        text = to_text(content)
        result = pattern.sub(substitute, text)

        if counts:
            self.logger.debug(
                "Replaced template variables in %s: %s",
                context.file_path,
                ", ".join(f"{p} x{n}" for p, n in sorted(counts.items())),
            )

        remaining = self.find_unreplaced_variables(result)
        if remaining:
            self.logger.warning(
                "Found unreplaced template variables in %s: %s (available: %s)",
                context.file_path,
                ", ".join(remaining),
                ", ".join(names),
            )

        return to_bytes(result)

    def find_unreplaced_variables(self, text: str) -> list[str]:
        """Find remaining ``{{UPPER_SNAKE}}`` / ``${UPPER_SNAKE}`` names, sorted."""
        found: set[str] = set()
        for constant in (TEMPLATE_BRACES_PATTERN, TEMPLATE_DOLLAR_PATTERN):
            found.update(self.cache.must_compile_regex(constant).findall(text))
        return sorted(found)
