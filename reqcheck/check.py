"""
Comparison of pinned library versions against upstream releases.

For every configured library the pinned version is turned into a
constraint, the release stream is filtered and reduced to a single
candidate, and the library is bucketed as current or upgradable.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .common import ReqcheckError
from .config import MODE_FIRST, Config, LibraryConfig, Preferences
from .collectors import new_source
from .filters import apply_filters, first_releases, latest_release, select_filters
from .manifest import read_vcpkg_version
from .releases import Release, ReleaseQuery, ReleaseSource, StreamCancelled, list_releases
from .version import format_constraint, is_major_upgrade, parse_constraint

logger = logging.getLogger(__name__)


class NoMatchingReleaseError(ReqcheckError):
    """Raised when no upstream release survives filtering."""
    pass


class LibraryCheckError(ReqcheckError):
    """Raised when checking a library fails; carries the library name."""

    def __init__(self, name: str, cause: Exception):
        super().__init__(f"{name}: {cause}")
        self.name = name
        self.cause = cause


@dataclass(frozen=True)
class LibraryUpdate:
    """
    Outcome of checking one library.

    Attributes:
        name: Library name
        current_version: Pinned version
        upgrade_version: Version of the best matching upstream release
        tag: Upstream tag of that release
    """
    name: str
    current_version: str
    upgrade_version: str
    tag: str = ""

    @property
    def is_current(self) -> bool:
        return self.current_version == self.upgrade_version

    @property
    def breaking_change(self) -> bool:
        """Whether the upgrade is a major version bump."""
        return not self.is_current and is_major_upgrade(self.current_version, self.upgrade_version)

    def version_jump_description(self) -> str:
        """Human-readable version jump description."""
        if self.breaking_change:
            return f"{self.current_version} → {self.upgrade_version} (BREAKING)"
        return f"{self.current_version} → {self.upgrade_version}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "current_version": self.current_version,
            "upgrade_version": self.upgrade_version,
            "tag": self.tag,
            "breaking_change": self.breaking_change,
        }


@dataclass(frozen=True)
class CheckResult:
    """
    Libraries grouped by status, each ordered by name.

    Attributes:
        current: Libraries whose pinned version is the best upstream release
        upgrade: Libraries with a newer matching upstream release
        failures: Libraries that could not be checked (only without fail-fast)
    """
    current: tuple[LibraryUpdate, ...] = ()
    upgrade: tuple[LibraryUpdate, ...] = ()
    failures: tuple[LibraryCheckError, ...] = ()

    @classmethod
    def from_updates(cls, updates: list[LibraryUpdate], failures: list[LibraryCheckError] | None = None) -> CheckResult:
        ordered = sorted(updates, key=lambda u: u.name)
        return cls(
            current=tuple(u for u in ordered if u.is_current),
            upgrade=tuple(u for u in ordered if not u.is_current),
            failures=tuple(sorted(failures or [], key=lambda f: f.name)),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "current": [u.to_dict() for u in self.current],
            "upgrade": [u.to_dict() for u in self.upgrade],
            "failures": [{"name": f.name, "error": str(f.cause)} for f in self.failures],
        }

    def summary(self) -> str:
        """Human-readable summary."""
        parts = [f"{len(self.current)} up to date", f"{len(self.upgrade)} with updates"]
        if self.failures:
            parts.append(f"{len(self.failures)} failed")
        return ", ".join(parts)


def library_constraint(library: LibraryConfig, pinned_version: str, preferences: Preferences) -> str:
    """Constraint expression for a library: its own format, else the configured default."""
    fmt = library.constraint or preferences.constraint_format
    return format_constraint(fmt, pinned_version)


def find_candidate(
    source: ReleaseSource,
    library: LibraryConfig,
    constraint_expr: str,
    preferences: Preferences | None = None,
    cancel: threading.Event | None = None,
) -> Release | None:
    """Run the release pipeline for a library and return the best release.

    In greatest mode the whole stream is reduced to its greatest version. In
    first mode only the first `library.count` matching releases are pulled
    and the greatest of those is returned.

    Raises:
        ConstraintParseError: If constraint_expr is malformed
        ReleaseStreamError: If the provider fails
    """
    preferences = preferences or Preferences()
    constraint = parse_constraint(constraint_expr)

    query = ReleaseQuery(owner=library.owner, repo=library.repo, tags=library.tags, limit=library.limit)
    stream = list_releases(source, query, per_page=preferences.per_page, cancel=cancel)
    matching = apply_filters(stream, select_filters(constraint, library.prerelease))

    if library.mode == MODE_FIRST:
        return latest_release(first_releases(matching, library.count))
    return latest_release(matching)


def check_library(
    name: str,
    library: LibraryConfig,
    source: ReleaseSource,
    pinned_version: str,
    preferences: Preferences | None = None,
    cancel: threading.Event | None = None,
) -> LibraryUpdate:
    """
    Compare a library's pinned version with its best upstream release.

    Args:
        name: Library name
        library: Library configuration
        source: Release source serving the library
        pinned_version: Currently pinned version string
        preferences: Global preferences (constraint format, page size)
        cancel: Optional cancellation event

    Returns:
        LibraryUpdate; is_current tells which bucket it belongs to

    Raises:
        NoMatchingReleaseError: If no release matches
    """
    preferences = preferences or Preferences()
    constraint_expr = library_constraint(library, pinned_version, preferences)
    logger.debug(f"{name}: pinned {pinned_version}, constraint {constraint_expr!r}")

    release = find_candidate(source, library, constraint_expr, preferences, cancel)
    if release is None or release.semver is None:
        raise NoMatchingReleaseError(
            f"no release of {library.owner}/{library.repo} matches {constraint_expr!r}"
        )

    update = LibraryUpdate(
        name=name,
        current_version=pinned_version,
        upgrade_version=str(release.semver),
        tag=release.tag,
    )
    if update.is_current:
        logger.info(f"{name}: {pinned_version} is up to date")
    else:
        logger.info(f"{name}: {update.version_jump_description()} (tag {release.tag})")
    return update


def build_sources(config: Config) -> dict[str, ReleaseSource]:
    """Create a release source for every configured scm."""
    timeout = config.preferences.timeout_seconds
    return {
        name: new_source(scm.driver, scm.uri, scm.token, timeout=timeout)
        for name, scm in config.scms.items()
    }


def pinned_version_for(name: str, library: LibraryConfig, vcpkg_path: str | Path) -> str:
    """Version pinned in configuration, else the one in the port manifest."""
    if library.version:
        return library.version
    return read_vcpkg_version(vcpkg_path, name)


def check_libraries(
    config: Config,
    vcpkg_path: str | Path = ".",
    sources: Mapping[str, ReleaseSource] | None = None,
    cancel: threading.Event | None = None,
) -> CheckResult:
    """
    Check every configured library, one at a time in name order.

    With preferences.fail_fast (the default) the first failing library
    aborts the run. Otherwise failures are logged and collected.

    Args:
        config: Loaded configuration
        vcpkg_path: Registry root holding ports/<name>/vcpkg.json
        sources: Release sources by scm name, built from config when None
        cancel: Optional cancellation event

    Returns:
        CheckResult with current and upgrade buckets ordered by name

    Raises:
        LibraryCheckError: On the first failure when fail-fast is enabled
    """
    if sources is None:
        sources = build_sources(config)

    updates: list[LibraryUpdate] = []
    failures: list[LibraryCheckError] = []

    for name in sorted(config.libraries):
        library = config.libraries[name]
        try:
            source = sources.get(library.host)
            if source is None:
                raise ReqcheckError(f"could not find scm assigned to {library.host!r}")
            pinned = pinned_version_for(name, library, vcpkg_path)
            updates.append(check_library(name, library, source, pinned, config.preferences, cancel))
        except StreamCancelled:
            raise
        except ReqcheckError as e:
            error = LibraryCheckError(name, e)
            if config.preferences.fail_fast:
                raise error from e
            logger.error(str(error))
            failures.append(error)

    return CheckResult.from_updates(updates, failures)
