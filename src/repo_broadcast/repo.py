"""
Repository name rewriting.

Rewrites ``org/repo`` references from the source repository to the target,
with patterns chosen by file type so that Go import paths, documentation
links, and config values each get the forms they actually use.
"""

from __future__ import annotations

import logging
import re

from .config import FileKind, repo_file_kind
from .context import TransformContext
from .errors import InvalidRepoFormatError
from .regex_cache import RegexCache
from .rules import RewriteRule, apply_rules
from .transformer import REPO_TRANSFORMER_NAME, Transformer
from .utils import escape_replacement, file_extension, split_repo, to_bytes, to_text

# A Go module path ends where the next character cannot continue it.
# Keeps "org/oldrepo-extra" from matching "org/oldrepo".
_GO_PATH_END = r"(?![\w.-])"


class RepoTransformer(Transformer):
    """Replaces the source repository name with the target's."""

    def __init__(self, cache: RegexCache, logger: logging.Logger | None = None):
        self.cache = cache
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return REPO_TRANSFORMER_NAME

    def transform(self, content: bytes, context: TransformContext) -> bytes:
        if context.source_repo == context.target_repo:
            return content

        source = split_repo(context.source_repo)
        target = split_repo(context.target_repo)
        if source is None or target is None:
            raise InvalidRepoFormatError(
                f"invalid repository format: source={context.source_repo}, "
                f"target={context.target_repo}",
                file_path=context.file_path,
                source_repo=context.source_repo,
                target_repo=context.target_repo,
            )

        rules = self.rules_for(file_extension(context.file_path), source, target)
        result = apply_rules(to_text(content), rules, self.cache, self.logger)
        return to_bytes(result)

    def rules_for(
        self,
        extension: str,
        source: tuple[str, str],
        target: tuple[str, str],
    ) -> list[RewriteRule]:
        """Build the ordered rewrite rules for a file extension."""
        kind = repo_file_kind(extension)
        if kind is FileKind.GO:
            return _go_rules(source, target)
        if kind is FileKind.DOCUMENTATION:
            return _documentation_rules(source, target)
        if kind is FileKind.CONFIG:
            return _config_rules(source, target)
        return _general_rules(source, target)


def _go_rules(source: tuple[str, str], target: tuple[str, str]) -> list[RewriteRule]:
    src_org, src_repo = (re.escape(p) for p in source)
    dst_org, dst_repo = (escape_replacement(p) for p in target)

    return [
        RewriteRule(
            name="go_module",
            pattern=rf"(?m)^module\s+github\.com/{src_org}/{src_repo}{_GO_PATH_END}",
            replacement=f"module github.com/{dst_org}/{dst_repo}",
        ),
        # Import paths: followed by "/", a closing quote, or end of token
        RewriteRule(
            name="go_import",
            pattern=rf"github\.com/{src_org}/{src_repo}{_GO_PATH_END}",
            replacement=f"github.com/{dst_org}/{dst_repo}",
        ),
    ]


def _documentation_rules(source: tuple[str, str], target: tuple[str, str]) -> list[RewriteRule]:
    src_org, src_repo = (re.escape(p) for p in source)
    dst_org, dst_repo = (escape_replacement(p) for p in target)

    return [
        RewriteRule(
            name="github_url",
            pattern=rf"https://github\.com/{src_org}/{src_repo}",
            replacement=f"https://github.com/{dst_org}/{dst_repo}",
        ),
        RewriteRule(
            name="go_package",
            pattern=rf"github\.com/{src_org}/{src_repo}",
            replacement=f"github.com/{dst_org}/{dst_repo}",
        ),
        RewriteRule(
            name="org_repo",
            pattern=rf"\b{src_org}/{src_repo}\b",
            replacement=f"{dst_org}/{dst_repo}",
        ),
        # Documentation often drops the org prefix (titles, badges)
        RewriteRule(
            name="repo_name",
            pattern=rf"\b{src_repo}\b",
            replacement=dst_repo,
        ),
    ]


def _config_rules(source: tuple[str, str], target: tuple[str, str]) -> list[RewriteRule]:
    src_org, src_repo = (re.escape(p) for p in source)
    dst_org, dst_repo = (escape_replacement(p) for p in target)

    return [
        RewriteRule(
            name="org_repo",
            pattern=f"{src_org}/{src_repo}",
            replacement=f"{dst_org}/{dst_repo}",
        ),
        RewriteRule(
            name="quoted_repo_name",
            pattern=f'"{src_repo}"',
            replacement=f'"{dst_repo}"',
        ),
        RewriteRule(
            name="repo_name",
            pattern=rf"\b{src_repo}\b",
            replacement=dst_repo,
        ),
    ]


def _general_rules(source: tuple[str, str], target: tuple[str, str]) -> list[RewriteRule]:
    src_org, src_repo = (re.escape(p) for p in source)
    dst_org, dst_repo = (escape_replacement(p) for p in target)

    return [
        RewriteRule(
            name="org_repo",
            pattern=f"{src_org}/{src_repo}",
            replacement=f"{dst_org}/{dst_repo}",
        ),
        RewriteRule(
            name="repo_name",
            pattern=rf"\b{src_repo}\b",
            replacement=dst_repo,
        ),
    ]
