"""
Utility functions for repo-broadcast.

Byte/text conversion, replacement escaping and path helpers shared by the
transformers.
"""

from __future__ import annotations

from pathlib import PurePosixPath

# Lossless for arbitrary bytes: undecodable bytes round-trip as lone surrogates
CONTENT_ENCODING = "utf-8"
CONTENT_ERRORS = "surrogateescape"


def to_text(content: bytes) -> str:
    """
    Decode file content for pattern-based rewriting.

    Bytes that are not valid UTF-8 are preserved via surrogate escapes, so
    ``to_bytes(to_text(b)) == b`` holds for any input, binary included.
    """
    return content.decode(CONTENT_ENCODING, CONTENT_ERRORS)


def to_bytes(text: str) -> bytes:
    """Encode rewritten text back to bytes (inverse of to_text)."""
    return text.encode(CONTENT_ENCODING, CONTENT_ERRORS)


def escape_replacement(value: str) -> str:
    """
    Escape a literal string for use as an ``re.sub`` replacement template.

    The substitution engine treats backslashes as group references
    (``\\1``, ``\\g<name>``). Target repository names and email addresses
    are user-controlled, so every backslash is doubled before the value is
    spliced into a template. ``$`` has no meaning in Python templates and
    passes through verbatim.
    """
    return value.replace("\\", "\\\\")


def normalize_path(path: str) -> str:
    """Normalize a path for consistent comparison (use forward slashes)."""
    return path.replace("\\", "/")


def file_extension(path: str) -> str:
    """Return the lowercase final extension of a path, including the dot."""
    return PurePosixPath(normalize_path(path)).suffix.lower()


def split_repo(repo: str) -> tuple[str, str] | None:
    """
    Split an ``org/name`` identifier.

    Returns:
        Tuple of (org, name), or None if the identifier does not consist of
        exactly two non-empty parts.
    """
    parts = repo.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]
