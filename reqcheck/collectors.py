"""
Release collection from hosting providers.

Each provider adapter maps its release/tag objects into the common Release
shape, one page per call. Adapters never re-page on their own; the stream
producer in releases.py drives pagination.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from .common import USER_AGENT, ReqcheckError
from .releases import ListOptions, Release, ReleaseSource

logger = logging.getLogger(__name__)

DRIVER_GITHUB = "github"
DRIVER_GITLAB = "gitlab"

DEFAULT_GITHUB_URI = "https://github.com"
DEFAULT_GITLAB_URI = "https://gitlab.com"

DEFAULT_TIMEOUT = 10


class ProviderError(ReqcheckError):
    """Raised when a hosting provider request fails."""

    def __init__(self, message: str, owner: str = "", repo: str = ""):
        super().__init__(message)
        self.owner = owner
        self.repo = repo


class NetworkError(ProviderError):
    """Raised when network requests fail."""
    pass


class UnknownDriverError(ReqcheckError):
    """Raised when a configuration names an unregistered provider driver."""
    pass


def http_get(url: str, timeout: int = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> bytes:
    """Perform HTTP GET request.

    Args:
        url: URL to fetch
        timeout: Timeout in seconds
        headers: Optional HTTP headers

    Returns:
        Response body as bytes

    Raises:
        NetworkError: If request fails
    """
    try:
        default_headers = {"User-Agent": USER_AGENT}
        if headers:
            default_headers.update(headers)

        req = urllib.request.Request(url, headers=default_headers)
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.read()
    except urllib.error.HTTPError as e:
        raise NetworkError(f"Failed to fetch {url}: HTTP {e.code} {e.reason}") from e
    except (urllib.error.URLError, OSError) as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e


def _join(base: str, path: str) -> str:
    return base.rstrip("/") + "/" + path.lstrip("/")


class _HTTPSource:
    """Shared plumbing for JSON-over-HTTP provider adapters."""

    provider = ""

    def __init__(self, api_url: str, headers: dict[str, str], timeout: int = DEFAULT_TIMEOUT):
        self.api_url = api_url
        self.headers = headers
        self.timeout = timeout

    def _get_page(self, path: str, owner: str, repo: str, options: ListOptions, what: str) -> list[dict[str, Any]]:
        query = urllib.parse.urlencode({"page": options.page, "per_page": options.per_page})
        url = f"{_join(self.api_url, path)}?{query}"
        logger.debug(f"{self.provider} {owner}/{repo}: GET {url}")

        try:
            data = json.loads(http_get(url, timeout=self.timeout, headers=self.headers))
        except NetworkError as e:
            raise NetworkError(
                f"error getting {what} from repository {owner}/{repo}: {e}", owner, repo
            ) from e
        except (ValueError, UnicodeDecodeError) as e:
            raise ProviderError(
                f"invalid {what} response for repository {owner}/{repo}: {e}", owner, repo
            ) from e

        if not isinstance(data, list):
            raise ProviderError(
                f"unexpected {what} response for repository {owner}/{repo}: expected a list", owner, repo
            )
        return [item for item in data if isinstance(item, dict)]

    def _to_release(self, owner: str, repo: str, tag: str, commit: str, kind: str) -> Release:
        logger.debug(f"{self.provider} {owner}/{repo}: found {kind} {tag} (commit {commit or '?'})")
        return Release.from_tag(tag)


class GitHubSource(_HTTPSource):
    """Release source backed by the GitHub REST API (github.com or Enterprise)."""

    provider = "GitHub"

    def __init__(self, uri: str = DEFAULT_GITHUB_URI, token: str = "", timeout: int = DEFAULT_TIMEOUT):
        parsed = urllib.parse.urlparse(uri)
        if not parsed.scheme or not parsed.hostname:
            raise ProviderError(f"could not parse GitHub link: {uri!r}")

        if parsed.hostname == "github.com":
            api_url = "https://api.github.com/"
        else:
            api_url = _join(uri, "api/v3/")

        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        super().__init__(api_url, headers, timeout)
        self.uri = uri
        logger.debug(f"connecting to github instance {uri} (api {api_url})")

    def list_releases(self, owner: str, repo: str, options: ListOptions) -> list[Release]:
        items = self._get_page(f"repos/{owner}/{repo}/releases", owner, repo, options, "releases")
        return [
            self._to_release(owner, repo, str(item.get("tag_name", "")), str(item.get("target_commitish", "")), "release")
            for item in items
        ]

    def list_tags(self, owner: str, repo: str, options: ListOptions) -> list[Release]:
        items = self._get_page(f"repos/{owner}/{repo}/tags", owner, repo, options, "tags")
        return [
            self._to_release(owner, repo, str(item.get("name", "")), str((item.get("commit") or {}).get("sha", "")), "tag")
            for item in items
        ]


class GitLabSource(_HTTPSource):
    """Release source backed by the GitLab v4 API."""

    provider = "GitLab"

    def __init__(self, uri: str = DEFAULT_GITLAB_URI, token: str = "", timeout: int = DEFAULT_TIMEOUT):
        parsed = urllib.parse.urlparse(uri)
        if not parsed.scheme or not parsed.hostname:
            raise ProviderError(f"could not parse gitlab link: {uri!r}")

        api_url = _join(uri, "api/v4/")
        headers = {"PRIVATE-TOKEN": token} if token else {}

        super().__init__(api_url, headers, timeout)
        self.uri = uri
        logger.debug(f"connecting to gitlab instance {uri} (api {api_url})")

    @staticmethod
    def project_id(owner: str, repo: str) -> str:
        """URL-encoded project path as expected by the GitLab API."""
        return urllib.parse.quote(f"{owner}/{repo}", safe="")

    def list_releases(self, owner: str, repo: str, options: ListOptions) -> list[Release]:
        path = f"projects/{self.project_id(owner, repo)}/releases"
        items = self._get_page(path, owner, repo, options, "releases")
        return [
            self._to_release(owner, repo, str(item.get("tag_name", "")), str((item.get("commit") or {}).get("id", "")), "release")
            for item in items
        ]

    def list_tags(self, owner: str, repo: str, options: ListOptions) -> list[Release]:
        path = f"projects/{self.project_id(owner, repo)}/repository/tags"
        items = self._get_page(path, owner, repo, options, "tags")
        return [
            self._to_release(owner, repo, str(item.get("name", "")), str((item.get("commit") or {}).get("id", "")), "tag")
            for item in items
        ]


DRIVERS: dict[str, type[_HTTPSource]] = {
    DRIVER_GITHUB: GitHubSource,
    DRIVER_GITLAB: GitLabSource,
}

DEFAULT_URIS = {
    DRIVER_GITHUB: DEFAULT_GITHUB_URI,
    DRIVER_GITLAB: DEFAULT_GITLAB_URI,
}


def new_source(driver: str, uri: str, token: str = "", timeout: int = DEFAULT_TIMEOUT) -> ReleaseSource:
    """Create a release source for a named driver.

    Args:
        driver: Driver name ("github" or "gitlab")
        uri: Base URI of the hosting instance, driver default when empty
        token: Access token (may be empty for public repositories)
        timeout: Request timeout in seconds

    Raises:
        UnknownDriverError: If the driver is not registered
        ProviderError: If the URI cannot be parsed
    """
    cls = DRIVERS.get(driver)
    if cls is None:
        raise UnknownDriverError(f"unknown scm driver {driver!r} (expected one of: {', '.join(sorted(DRIVERS))})")
    return cls(uri or DEFAULT_URIS[driver], token, timeout)
