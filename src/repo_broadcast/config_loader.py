"""
Configuration file loader for repo-broadcast.

Supports loading configuration from:
- repo-broadcast.toml / .repo-broadcast.toml / broadcast.toml / .broadcast.toml
- broadcast.yml / .broadcast.yml / broadcast.yaml / .broadcast.yaml

CLI flags override config file values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

from .context import DirectoryMapping, TransformContext
from .regex_cache import DEFAULT_MAX_SIZE
from .utils import split_repo

logger = logging.getLogger(__name__)

# Config file search order (first found wins)
CONFIG_FILE_NAMES = [
    "repo-broadcast.toml",
    ".repo-broadcast.toml",
    "broadcast.toml",
    ".broadcast.toml",
    "broadcast.yml",
    ".broadcast.yml",
    "broadcast.yaml",
    ".broadcast.yaml",
]

# Nested section names accepted in place of a flat file
_SECTION_NAMES = ("repo-broadcast", "broadcast")


@dataclass
class TargetConfig:
    """One target repository and its per-target overrides."""

    repo: str
    repo_name: bool = True  # Rewrite source repo references to this repo
    variables: dict[str, str] = field(default_factory=dict)
    security_email: str = ""
    support_email: str = ""
    directories: list[DirectoryMapping] = field(default_factory=list)

    @property
    def rewrites_emails(self) -> bool:
        """Whether any email override is configured."""
        return bool(self.security_email or self.support_email)

    def to_context(self, file_path: str, project: ProjectConfig) -> TransformContext:
        """
        Build the transformation context for one file headed to this target.

        Email overrides only apply when the project also names the source
        address; the context itself decides whether source and target differ.
        """
        return TransformContext(
            source_repo=project.source_repo or "",
            target_repo=self.repo,
            file_path=file_path,
            variables=self.variables,
            source_security_email=project.security_email or "",
            target_security_email=self.security_email,
            source_support_email=project.support_email or "",
            target_support_email=self.support_email,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization (sorted keys for determinism)."""
        result: dict[str, Any] = {"repo": self.repo, "repo_name": self.repo_name}
        if self.variables:
            result["variables"] = dict(sorted(self.variables.items()))
        if self.security_email:
            result["security_email"] = self.security_email
        if self.support_email:
            result["support_email"] = self.support_email
        if self.directories:
            result["directories"] = [d.to_dict() for d in self.directories]
        return dict(sorted(result.items()))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TargetConfig | None:
        """Create from dictionary. Returns None for an entry without a valid repo."""
        repo = str(data.get("repo") or "").strip()
        if split_repo(repo) is None:
            logger.warning("Ignoring target with invalid repo %r", repo)
            return None

        variables = data.get("variables") or data.get("vars") or {}
        if not isinstance(variables, dict):
            variables = {}

        directories = []
        for entry in data.get("directories") or []:
            mapping = _parse_directory(entry)
            if mapping is not None:
                directories.append(mapping)

        return cls(
            repo=repo,
            repo_name=bool(data.get("repo_name", True)),
            variables={str(k): "" if v is None else str(v) for k, v in variables.items()},
            security_email=str(data.get("security_email") or ""),
            support_email=str(data.get("support_email") or ""),
            directories=directories,
        )


@dataclass
class ProjectConfig:
    """
    Project-level configuration loaded from config files.

    All scalar fields are optional - CLI flags will override any values set here.
    """

    source_repo: str | None = None
    security_email: str | None = None
    support_email: str | None = None

    # Pipeline options
    cache_max_size: int | None = None
    precompile_patterns: bool | None = None
    detect_binary: bool | None = None

    targets: list[TargetConfig] = field(default_factory=list)

    # Source file path (for debugging)
    _config_file: Path | None = field(default=None, repr=False)

    def get_target(self, repo: str) -> TargetConfig | None:
        """Find a configured target by ``org/name``."""
        for target in self.targets:
            if target.repo == repo:
                return target
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization (sorted keys for determinism)."""
        result: dict[str, Any] = {}

        if self.source_repo is not None:
            result["source_repo"] = self.source_repo
        if self.security_email is not None:
            result["security_email"] = self.security_email
        if self.support_email is not None:
            result["support_email"] = self.support_email
        if self.cache_max_size is not None:
            result["cache_max_size"] = self.cache_max_size
        if self.precompile_patterns is not None:
            result["precompile_patterns"] = self.precompile_patterns
        if self.detect_binary is not None:
            result["detect_binary"] = self.detect_binary
        if self.targets:
            result["targets"] = [t.to_dict() for t in self.targets]

        if self._config_file is not None:
            result["_loaded_from"] = str(self._config_file)

        return dict(sorted(result.items()))


def find_config_file(repo_root: Path) -> Path | None:
    """
    Find a configuration file in the repository root.

    Args:
        repo_root: Root directory of the repository

    Returns:
        Path to the config file, or None if not found
    """
    for name in CONFIG_FILE_NAMES:
        config_path = repo_root / name
        if config_path.exists() and config_path.is_file():
            return config_path
    return None


def _unwrap_section(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {}

    # Support both flat and nested [repo-broadcast] section
    for name in _SECTION_NAMES:
        if isinstance(data.get(name), dict):
            return data[name]
    return data


def _parse_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML config file."""
    with open(path, "rb") as f:
        data = tomllib.load(f)
    return _unwrap_section(data)


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML config file."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _unwrap_section(data)


def _parse_directory(entry: Any) -> DirectoryMapping | None:
    """Parse one ``{src, dest, exclude}`` entry. ``dest`` defaults to ``src``."""
    if not isinstance(entry, dict) or not entry.get("src"):
        return None

    exclude = entry.get("exclude") or []
    if isinstance(exclude, str):
        exclude = [e.strip() for e in exclude.split(",")]

    src = str(entry["src"]).strip()
    return DirectoryMapping(
        src=src,
        dest=str(entry.get("dest") or src).strip(),
        exclude=tuple(str(e).strip() for e in exclude if e),
    )


def load_config(repo_root: Path, config_path: Path | None = None) -> ProjectConfig:
    """
    Load configuration from a config file.

    Args:
        repo_root: Root directory of the repository
        config_path: Explicit path to config file (optional)

    Returns:
        ProjectConfig with loaded values (unset values remain None)
    """
    if config_path is None:
        config_path = find_config_file(repo_root)

    if config_path is None:
        return ProjectConfig()

    if not config_path.exists():
        return ProjectConfig()

    # Parse based on extension
    suffix = config_path.suffix.lower()
    try:
        if suffix == ".toml":
            data = _parse_toml(config_path)
        elif suffix in (".yml", ".yaml"):
            data = _parse_yaml(config_path)
        else:
            return ProjectConfig()
    except (OSError, ValueError, yaml.YAMLError) as e:
        # CLI still works without config
        logger.warning("Ignoring unreadable config file %s: %s", config_path, e)
        return ProjectConfig()

    config = ProjectConfig(_config_file=config_path)

    if data.get("source_repo"):
        config.source_repo = str(data["source_repo"]).strip()
    if data.get("security_email"):
        config.security_email = str(data["security_email"]).strip()
    if data.get("support_email"):
        config.support_email = str(data["support_email"]).strip()

    if "cache_max_size" in data:
        try:
            config.cache_max_size = int(data["cache_max_size"])
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring invalid cache_max_size %r in %s",
                data["cache_max_size"],
                config_path,
            )
    if "precompile_patterns" in data:
        config.precompile_patterns = bool(data["precompile_patterns"])
    if "detect_binary" in data:
        config.detect_binary = bool(data["detect_binary"])

    for entry in data.get("targets") or []:
        if not isinstance(entry, dict):
            continue
        target = TargetConfig.from_dict(entry)
        if target is not None:
            config.targets.append(target)

    return config


def merge_cli_with_config(
    config: ProjectConfig,
    *,
    # CLI arguments (None means not specified on CLI)
    source_repo: str | None = None,
    cache_max_size: int | None = None,
    detect_binary: bool | None = None,
    precompile_patterns: bool | None = None,
) -> dict[str, Any]:
    """
    Merge CLI arguments with config file values.

    CLI arguments take precedence over config file values.

    Returns:
        Dictionary with merged configuration values
    """
    result: dict[str, Any] = {}

    # Source repo: no default, the caller must have one from somewhere
    if source_repo is not None:
        result["source_repo"] = source_repo
    else:
        result["source_repo"] = config.source_repo

    # Cache size
    if cache_max_size is not None:
        result["cache_max_size"] = cache_max_size
    elif config.cache_max_size is not None:
        result["cache_max_size"] = config.cache_max_size
    else:
        result["cache_max_size"] = DEFAULT_MAX_SIZE

    # Binary detection
    if detect_binary is not None:
        result["detect_binary"] = detect_binary
    elif config.detect_binary is not None:
        result["detect_binary"] = config.detect_binary
    else:
        result["detect_binary"] = True  # Default

    # Precompile common patterns
    if precompile_patterns is not None:
        result["precompile_patterns"] = precompile_patterns
    elif config.precompile_patterns is not None:
        result["precompile_patterns"] = config.precompile_patterns
    else:
        result["precompile_patterns"] = True  # Default

    return result
