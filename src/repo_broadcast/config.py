"""
Constants and defaults for repo-broadcast.

File-type tables used to branch transformations by extension, the binary
extension table, and default limits.
"""

from __future__ import annotations

from enum import Enum

# Binary detection
BINARY_SAMPLE_SIZE = 8192  # Bytes inspected by content sniffing
BINARY_NON_TEXT_RATIO = 0.30  # More than this share of non-text bytes => binary

# Worker pool default for directory transforms (None = executor default)
DEFAULT_MAX_WORKERS: int | None = None

# Extensions that are always treated as binary, regardless of content
BINARY_EXTENSIONS: frozenset[str] = frozenset({
    # Images
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".bmp",
    ".ico",
    ".tiff",
    ".tif",
    ".webp",
    ".psd",
    # Archives
    ".zip",
    ".tar",
    ".gz",
    ".tgz",
    ".bz2",
    ".xz",
    ".7z",
    ".rar",
    ".zst",
    # Executables and libraries
    ".exe",
    ".dll",
    ".so",
    ".dylib",
    ".a",
    ".o",
    ".obj",
    ".bin",
    ".wasm",
    # Media
    ".mp3",
    ".mp4",
    ".avi",
    ".mov",
    ".mkv",
    ".wav",
    ".flac",
    ".ogg",
    ".webm",
    # Documents
    ".pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    ".odt",
    # Fonts
    ".woff",
    ".woff2",
    ".ttf",
    ".otf",
    ".eot",
    # Bytecode
    ".class",
    ".jar",
    ".war",
    ".ear",
    ".pyc",
    ".pyo",
    # Databases
    ".db",
    ".sqlite",
    ".sqlite3",
})

# File-type groups used by the repo and email rewriters
GO_EXTENSIONS: frozenset[str] = frozenset({".go", ".mod"})
DOC_EXTENSIONS: frozenset[str] = frozenset({".md", ".txt", ".rst"})
CONFIG_EXTENSIONS: frozenset[str] = frozenset({".yaml", ".yml", ".json"})
YAML_EXTENSIONS: frozenset[str] = frozenset({".yaml", ".yml"})
JSON_EXTENSIONS: frozenset[str] = frozenset({".json"})
HTML_EXTENSIONS: frozenset[str] = frozenset({".html", ".htm"})


class FileKind(str, Enum):
    """File kinds used when branching transformations by extension."""

    GO = "go"
    DOCUMENTATION = "documentation"
    CONFIG = "config"
    YAML = "yaml"
    JSON = "json"
    HTML = "html"
    GENERAL = "general"


def repo_file_kind(extension: str) -> FileKind:
    """Classify a file for repository-name rewriting."""
    ext_lower = extension.lower()
    if ext_lower in GO_EXTENSIONS:
        return FileKind.GO
    if ext_lower in DOC_EXTENSIONS:
        return FileKind.DOCUMENTATION
    if ext_lower in CONFIG_EXTENSIONS:
        return FileKind.CONFIG
    return FileKind.GENERAL


def email_file_kind(extension: str) -> FileKind:
    """Classify a file for email rewriting."""
    ext_lower = extension.lower()
    if ext_lower in DOC_EXTENSIONS:
        return FileKind.DOCUMENTATION
    if ext_lower in YAML_EXTENSIONS:
        return FileKind.YAML
    if ext_lower in JSON_EXTENSIONS:
        return FileKind.JSON
    if ext_lower in HTML_EXTENSIONS:
        return FileKind.HTML
    return FileKind.GENERAL
