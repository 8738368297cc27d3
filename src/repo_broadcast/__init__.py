"""
repo-broadcast: rewrite file content from a source repository for target repositories.

Transforms template variables, repository names and contact email addresses
in files broadcast from one repository to many.
"""

__version__ = "0.1.0"

from .context import DirectoryMapping, DirectoryTransformContext, TransformContext
from .errors import (
    FatalPatternError,
    InvalidRepoFormatError,
    PatternCompileError,
    TransformCancelledError,
    TransformError,
    TransformErrorCategory,
)
from .pipeline import FileResult, TransformReport, build_chain, transform_directory, transform_file
from .regex_cache import RegexCache
from .transformer import Chain, Transformer

__all__ = [
    "Chain",
    "DirectoryMapping",
    "DirectoryTransformContext",
    "FatalPatternError",
    "FileResult",
    "InvalidRepoFormatError",
    "PatternCompileError",
    "RegexCache",
    "TransformCancelledError",
    "TransformContext",
    "TransformError",
    "TransformErrorCategory",
    "TransformReport",
    "Transformer",
    "__version__",
    "build_chain",
    "transform_directory",
    "transform_file",
]
