"""
Test doubles shared across reqcheck tests.
"""

from reqcheck.collectors import NetworkError
from reqcheck.releases import Release


class FakeSource:
    """In-memory release source serving fixed pages."""

    def __init__(self, releases=None, tags=None, fail_on_page=None):
        self.releases = list(releases or [])
        self.tags = list(tags or [])
        self.fail_on_page = fail_on_page
        self.calls = []

    def _page(self, items, kind, owner, repo, options):
        self.calls.append((kind, owner, repo, options.page, options.per_page))
        if self.fail_on_page is not None and options.page == self.fail_on_page:
            raise NetworkError("HTTP 502 Bad Gateway", owner, repo)
        start = (options.page - 1) * options.per_page
        return items[start:start + options.per_page]

    def list_releases(self, owner, repo, options):
        return self._page(self.releases, "releases", owner, repo, options)

    def list_tags(self, owner, repo, options):
        return self._page(self.tags, "tags", owner, repo, options)

    @property
    def pages_fetched(self):
        return [call[3] for call in self.calls]


def make_releases(*tags):
    return [Release.from_tag(tag) for tag in tags]
