"""
Configuration file parsing and management.

The configuration lives in a YAML file (.reqcheck.yml at the root of the
vcpkg registry by default) describing the hosting providers to talk to and
the libraries to check against them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .common import DEFAULT_PER_PAGE, ReqcheckError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".reqcheck.yml"

# Default constraint built from a pinned version ("%s" is replaced by it)
DEFAULT_CONSTRAINT_FORMAT = ">= %s"

MODE_GREATEST = "greatest"
MODE_FIRST = "first"


class ConfigError(ReqcheckError):
    """Raised when the configuration cannot be loaded or is invalid."""
    pass


def _resolve_token(value: Any, name: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        env_var = value.get("from_environment")
        if not env_var:
            return ""
        token = os.environ.get(env_var)
        if token is None:
            raise ConfigError(f"could not find token for scm {name!r} in ${env_var}")
        return token
    raise ConfigError(f"invalid token for scm {name!r}: expected a string or from_environment mapping")


def _mapping(value: Any, what: str) -> dict[str, Any]:
    # A missing section or a bare key (null in YAML) is an empty mapping
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what}: expected a mapping, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class ScmConfig:
    """
    Connection to a hosting provider.

    Attributes:
        driver: Provider driver ("github" or "gitlab")
        uri: Base URI of the instance, driver default when empty
        token: Access token, already resolved from the environment if needed
    """
    driver: str
    uri: str = ""
    token: str = ""

    @staticmethod
    def from_dict(data: dict[str, Any], name: str = "") -> ScmConfig:
        """Create ScmConfig from dictionary."""
        return ScmConfig(
            driver=str(data.get("driver", "")),
            uri=str(data.get("uri", "")),
            token=_resolve_token(data.get("token"), name),
        )


@dataclass(frozen=True)
class LibraryConfig:
    """
    A library to check for upstream releases.

    Attributes:
        host: Name of the scm entry serving the library
        owner: Repository owner
        repo: Repository name
        tags: Query tags instead of releases
        prerelease: Consider prereleases when no constraint applies
        constraint: Constraint format overriding the default (e.g. "^%s")
        limit: Maximum number of upstream items to consider, 0 for all
        mode: "greatest" picks the greatest matching release, "first" the
            greatest of the first `count` matching releases in provider order
        count: Number of releases considered in "first" mode
        version: Pinned version; read from the port manifest when empty
    """
    host: str
    owner: str
    repo: str
    tags: bool = False
    prerelease: bool = False
    constraint: str = ""
    limit: int = 0
    mode: str = MODE_GREATEST
    count: int = 1
    version: str = ""

    def __post_init__(self):
        """Validate library settings after initialization."""
        if not self.owner or not self.repo:
            raise ValueError("Library requires both owner and repo")

        if self.limit < 0:
            raise ValueError(f"Invalid limit: {self.limit}. Must be 0 (no limit) or positive")

        if self.mode not in {MODE_GREATEST, MODE_FIRST}:
            raise ValueError(
                f"Invalid mode: {self.mode}. Must be '{MODE_GREATEST}' or '{MODE_FIRST}'"
            )

        if self.count < 1:
            raise ValueError(f"Invalid count: {self.count}. Must be at least 1")

    @staticmethod
    def from_dict(data: dict[str, Any]) -> LibraryConfig:
        """Create LibraryConfig from dictionary."""
        return LibraryConfig(
            host=str(data.get("host", "")),
            owner=str(data.get("owner", "")),
            repo=str(data.get("repo", "")),
            tags=bool(data.get("tags", False)),
            prerelease=bool(data.get("prerelease", False)),
            constraint=str(data.get("constraint") or ""),
            limit=int(data.get("limit") or 0),
            mode=str(data.get("mode", MODE_GREATEST)),
            count=int(data.get("count", 1)),
            version=str(data.get("version") or ""),
        )


@dataclass(frozen=True)
class Preferences:
    """
    Global preferences for release checks.

    Attributes:
        constraint_format: Default constraint built from a pinned version
        per_page: Page size requested from providers
        timeout_seconds: Timeout for network operations
        fail_fast: Abort the whole run on the first failing library
    """
    constraint_format: str = DEFAULT_CONSTRAINT_FORMAT
    per_page: int = DEFAULT_PER_PAGE
    timeout_seconds: int = 10
    fail_fast: bool = True

    def __post_init__(self):
        """Validate preferences after initialization."""
        if not self.constraint_format.strip():
            raise ValueError("Invalid constraint_format: must not be empty")

        if self.per_page < 1 or self.per_page > 100:
            raise ValueError(
                f"Invalid per_page: {self.per_page}. "
                "Must be between 1 and 100"
            )

        if self.timeout_seconds < 1 or self.timeout_seconds > 300:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. "
                "Must be between 1 and 300"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            constraint_format=str(data.get("constraint_format") or DEFAULT_CONSTRAINT_FORMAT),
            per_page=int(data.get("per_page", DEFAULT_PER_PAGE)),
            timeout_seconds=int(data.get("timeout_seconds", 10)),
            fail_fast=bool(data.get("fail_fast", True)),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete reqcheck configuration.

    Attributes:
        scms: Hosting provider connections by name
        libraries: Libraries to check by name
        template: Report template overrides (see render.ReportTemplate)
        preferences: Global preferences
        source: Path to the configuration file that was loaded
    """
    scms: dict[str, ScmConfig] = field(default_factory=dict)
    libraries: dict[str, LibraryConfig] = field(default_factory=dict)
    template: dict[str, str] = field(default_factory=dict)
    preferences: Preferences = field(default_factory=Preferences)
    source: str = ""

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        scms = {}
        for name, scm_data in _mapping(data.get("scm"), "scm").items():
            scms[name] = ScmConfig.from_dict(_mapping(scm_data, f"SCM '{name}'"), name)

        libraries = {}
        for name, library_data in _mapping(data.get("repos"), "repos").items():
            library_data = _mapping(library_data, f"Library '{name}'")
            try:
                libraries[name] = LibraryConfig.from_dict(library_data or {})
            except ValueError as e:
                raise ValueError(f"Library '{name}': {e}") from e

        template = data.get("template") or {}
        if not isinstance(template, dict):
            raise ValueError("Invalid template: expected a mapping of section formats")

        preferences = Preferences.from_dict(_mapping(data.get("preferences"), "preferences"))

        return Config(
            scms=scms,
            libraries=libraries,
            template={str(k): str(v) for k, v in template.items()},
            preferences=preferences,
            source=source,
        )

    def get_library(self, name: str) -> LibraryConfig:
        """Get configuration for a library, raising KeyError if not configured."""
        return self.libraries[name]


def _load_yaml(file_path: str | Path) -> dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed configuration dictionary (empty for an empty file)

    Raises:
        ConfigError: If the file cannot be read or is not valid YAML
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"could not read config file {file_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"error when loading config {file_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"error when loading config {file_path}: top level must be a mapping")
    return data


def get_config_path(vcpkg_path: str | Path = ".", custom_path: str | Path | None = None) -> Path:
    """Resolve which configuration file to load."""
    if custom_path:
        return Path(custom_path)
    return Path(vcpkg_path) / CONFIG_FILE_NAME


def load_config(vcpkg_path: str | Path = ".", custom_path: str | Path | None = None) -> Config:
    """
    Load configuration.

    Args:
        vcpkg_path: Registry root holding .reqcheck.yml
        custom_path: Explicit configuration file, overrides vcpkg_path lookup

    Returns:
        Parsed Config

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = get_config_path(vcpkg_path, custom_path)
    logger.debug(f"Loading config from: {path}")

    data = _load_yaml(path)
    try:
        config = Config.from_dict(data, source=str(path))
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Config validation failed for {path}: {e}") from e

    logger.debug(f"Loaded {len(config.libraries)} libraries and {len(config.scms)} scms from {path}")
    return config


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Args:
        config: Config object to validate

    Returns:
        List of validation warning messages (empty if valid)
    """
    from .collectors import DRIVERS

    warnings = []

    for name, scm in config.scms.items():
        if scm.driver not in DRIVERS:
            warnings.append(f"SCM '{name}': unknown driver '{scm.driver}'")

    for name, library in config.libraries.items():
        if library.host not in config.scms:
            warnings.append(f"Library '{name}': host '{library.host}' is not a configured scm")
        if library.mode != MODE_FIRST and library.count != 1:
            warnings.append(f"Library '{name}': count is only used in '{MODE_FIRST}' mode")

    if not config.libraries:
        warnings.append("No libraries configured")

    return warnings
