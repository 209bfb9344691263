"""
Filters and reducers over release streams.

Predicates take a Release and return True to keep it. They are applied in
order and a release failing one is dropped before the next is consulted.
"""

from __future__ import annotations

from functools import reduce
from itertools import islice
from typing import Callable, Iterable, Iterator, Sequence

from .releases import Release
from .version import Constraint

Predicate = Callable[[Release], bool]


def has_semver(release: Release) -> bool:
    return release.semver is not None


def is_stable(release: Release) -> bool:
    """Keep releases with a semantic version and no prerelease label."""
    if release.semver is None:
        return False
    return not release.semver.prerelease


def matches_constraint(constraint: Constraint) -> Predicate:
    """Build a predicate keeping releases whose version satisfies constraint."""

    def predicate(release: Release) -> bool:
        if release.semver is None:
            return False
        return constraint.check(release.semver)

    return predicate


def dedupe_by_version() -> Predicate:
    """Build a predicate passing only the first release of each version string.

    Every call returns a new predicate with its own seen-set, so one query's
    history never leaks into another. Releases without a semantic version
    always pass.
    """
    seen: set[str] = set()

    def predicate(release: Release) -> bool:
        if release.semver is None:
            return True
        version = str(release.semver)
        if version in seen:
            return False
        seen.add(version)
        return True

    return predicate


def greatest_version(acc: Release | None, elem: Release) -> Release:
    """Reducer keeping whichever release has the greater semantic version."""
    if acc is None or acc.semver is None:
        return elem
    if elem.semver is None:
        return acc
    if acc.semver > elem.semver:
        return acc
    return elem


def apply_filters(releases: Iterable[Release], predicates: Sequence[Predicate]) -> Iterator[Release]:
    """Lazily yield the releases passing every predicate."""
    for release in releases:
        if all(predicate(release) for predicate in predicates):
            yield release


def latest_release(releases: Iterable[Release]) -> Release | None:
    """Fold a release stream down to its greatest version, None if empty."""
    return reduce(greatest_version, releases, None)


def first_releases(releases: Iterable[Release], count: int) -> list[Release]:
    """Take the first count releases without pulling further from the stream."""
    return list(islice(releases, count))


def select_filters(constraint: Constraint | None = None, prerelease: bool = False) -> list[Predicate]:
    """Default filter policy.

    An explicit constraint takes precedence; otherwise only stable releases
    are kept unless prereleases were requested.
    """
    if constraint is not None:
        return [matches_constraint(constraint)]
    if not prerelease:
        return [is_stable]
    return []
