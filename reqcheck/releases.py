"""
Release records and the paginated release stream.

A hosting provider returns releases (or tags) one page at a time. The
stream producer here turns those paged calls into a single lazy sequence
that downstream filters consume item by item.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterator, Protocol

from semantic_version import Version

from .common import DEFAULT_PER_PAGE, ReqcheckError
from .version import normalize_version_tag

logger = logging.getLogger(__name__)

STARTING_PAGE = 1


class ReleaseStreamError(ReqcheckError):
    """Terminal error of a release stream; wraps the provider failure."""

    def __init__(self, owner: str, repo: str, cause: Exception):
        super().__init__(f"could not access {owner}/{repo} releases: {cause}")
        self.owner = owner
        self.repo = repo
        self.cause = cause


class StreamCancelled(ReqcheckError):
    """Raised when a release stream is cancelled before it is exhausted."""
    pass


@dataclass(frozen=True)
class Release:
    """
    A release or tag found upstream.

    Attributes:
        tag: Raw tag name as returned by the provider
        semver: Normalized semantic version, None if the tag is unparseable
    """
    tag: str
    semver: Version | None = None

    @classmethod
    def from_tag(cls, tag: str) -> Release:
        """Create a Release, normalizing the tag into a semantic version."""
        return cls(tag=tag, semver=normalize_version_tag(tag))

    @property
    def version(self) -> str:
        """Semantic version string, or empty string if unparseable."""
        return str(self.semver) if self.semver is not None else ""

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary for JSON serialization."""
        return {"tag": self.tag, "semver": str(self.semver) if self.semver is not None else None}


@dataclass
class ListOptions:
    """Pagination cursor handed to a release source."""
    page: int = STARTING_PAGE
    per_page: int = DEFAULT_PER_PAGE


@dataclass(frozen=True)
class ReleaseQuery:
    """
    What to fetch from a release source.

    Attributes:
        owner: Repository owner (GitHub user/org, GitLab group)
        repo: Repository name
        tags: Query tags instead of releases
        limit: Maximum number of items to emit, 0 for no limit
    """
    owner: str
    repo: str
    tags: bool = False
    limit: int = 0


class ReleaseSource(Protocol):
    """Capabilities a hosting provider adapter must offer."""

    def list_releases(self, owner: str, repo: str, options: ListOptions) -> list[Release]:
        ...

    def list_tags(self, owner: str, repo: str, options: ListOptions) -> list[Release]:
        ...


def list_releases(
    source: ReleaseSource,
    query: ReleaseQuery,
    per_page: int = DEFAULT_PER_PAGE,
    cancel: threading.Event | None = None,
) -> Iterator[Release]:
    """Stream releases from a source, one page at a time.

    Pages are only fetched when the consumer pulls past the end of the
    previous page. The stream ends when a page comes back short, or once
    query.limit items were emitted.

    Args:
        source: Provider adapter to query
        query: Owner/repo and tag/limit options
        per_page: Page size requested from the provider
        cancel: Optional event; once set, no further pages are fetched

    Yields:
        Release records in provider order

    Raises:
        ReleaseStreamError: If fetching a page fails
        StreamCancelled: If cancel was set before the stream was exhausted
    """
    fetch = source.list_tags if query.tags else source.list_releases
    options = ListOptions(page=STARTING_PAGE, per_page=per_page)
    emitted = 0

    while True:
        if cancel is not None and cancel.is_set():
            raise StreamCancelled(f"query for {query.owner}/{query.repo} cancelled at page {options.page}")

        try:
            items = fetch(query.owner, query.repo, options)
        except ReqcheckError as e:
            raise ReleaseStreamError(query.owner, query.repo, e) from e

        logger.debug(f"{query.owner}/{query.repo}: page {options.page} returned {len(items)} items")

        for item in items:
            yield item
            emitted += 1
            if query.limit and emitted >= query.limit:
                logger.debug(f"{query.owner}/{query.repo}: reached query limit {query.limit}")
                return

        if len(items) < options.per_page:
            return

        options.page += 1
