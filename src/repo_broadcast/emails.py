"""
Email address rewriting.

Rewrites the configured security and support addresses, with patterns
chosen by file type (markdown links, YAML scalars, JSON strings, HTML
anchors).

Ordering: the email rewriter must run before the repository rewriter in a
chain. An address whose local part contains the source repository name
(``go-broadcast@example.com`` for ``org/go-broadcast``) is otherwise
rewritten by the repository rewriter first, after which it no longer
matches the configured source address and stays unchanged in the target.
``pipeline.build_chain`` enforces this order and ``Chain.add`` warns when
it is violated.
"""

from __future__ import annotations

import logging
import re

from .config import FileKind, email_file_kind
from .context import TransformContext
from .regex_cache import RegexCache
from .rules import RewriteRule, apply_rules
from .transformer import EMAIL_TRANSFORMER_NAME, Transformer
from .utils import escape_replacement, file_extension, to_bytes, to_text


class EmailTransformer(Transformer):
    """Replaces the source security/support addresses with the target's."""

    def __init__(self, cache: RegexCache, logger: logging.Logger | None = None):
        self.cache = cache
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return EMAIL_TRANSFORMER_NAME

    def transform(self, content: bytes, context: TransformContext) -> bytes:
        pairs = []
        if context.rewrites_security_email:
            pairs.append((context.source_security_email, context.target_security_email))
        if context.rewrites_support_email:
            pairs.append((context.source_support_email, context.target_support_email))

        if not pairs:
            return content

        extension = file_extension(context.file_path)
        result = to_text(content)

        for source, target in pairs:
            rules = self.rules_for(extension, source, target)
            rewritten = apply_rules(result, rules, self.cache, self.logger)
            if rewritten != result:
                self.logger.debug("Rewrote %s -> %s in %s", source, target, context.file_path)
            result = rewritten

        return to_bytes(result)

    def rules_for(self, extension: str, source: str, target: str) -> list[RewriteRule]:
        """Build the ordered rewrite rules for one address and file extension."""
        src = re.escape(source)
        dst = escape_replacement(target)

        kind = email_file_kind(extension)
        if kind is FileKind.DOCUMENTATION:
            return _markdown_rules(src, dst)
        if kind is FileKind.YAML:
            return _yaml_rules(src, dst)
        if kind is FileKind.JSON:
            return [RewriteRule("json_string", f'"{src}"', f'"{dst}"')]
        if kind is FileKind.HTML:
            return _html_rules(src, dst)
        return [_bare_rule(src, dst)]


def _bare_rule(src: str, dst: str) -> RewriteRule:
    return RewriteRule("bare_address", rf"\b{src}\b", dst)


def _markdown_rules(src: str, dst: str) -> list[RewriteRule]:
    return [
        RewriteRule(
            "markdown_link",
            rf"\[([^\]]+)\]\(mailto:{src}\)",
            rf"[\g<1>](mailto:{dst})",
        ),
        RewriteRule(
            "markdown_self_link",
            rf"\[{src}\]\(mailto:{src}\)",
            f"[{dst}](mailto:{dst})",
        ),
        RewriteRule("mailto", f"mailto:{src}", f"mailto:{dst}"),
        # Link text and prose
        _bare_rule(src, dst),
    ]


def _yaml_rules(src: str, dst: str) -> list[RewriteRule]:
    return [
        RewriteRule("double_quoted", f'"{src}"', f'"{dst}"'),
        RewriteRule("single_quoted", f"'{src}'", f"'{dst}'"),
        RewriteRule(
            "unquoted_value",
            rf"(:\s*){src}(\s|$)",
            rf"\g<1>{dst}\g<2>",
        ),
    ]


def _html_rules(src: str, dst: str) -> list[RewriteRule]:
    return [
        RewriteRule(
            "anchor_href",
            rf'<a\s+href="mailto:{src}"',
            f'<a href="mailto:{dst}"',
        ),
        RewriteRule("mailto", f"mailto:{src}", f"mailto:{dst}"),
        _bare_rule(src, dst),
    ]
