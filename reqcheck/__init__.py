"""
reqcheck - upstream release queries and pinned version checks.

Core Modules:
- Versions: Tag normalization, constraint parsing and comparison
- Releases: Paginated release streams from GitHub and GitLab
- Filters: Predicates and reducers over release streams
- Checks: vcpkg port versions compared against upstream releases
- Output: Textual report, table and JSON rendering
"""

__version__ = "1.0.0"

# Versions
from .version import (
    Constraint,
    ConstraintParseError,
    VersionParseError,
    compare_versions,
    format_constraint,
    is_major_upgrade,
    normalize_version_tag,
    parse_constraint,
)

# Releases
from .common import ReqcheckError
from .releases import (
    ListOptions,
    Release,
    ReleaseQuery,
    ReleaseSource,
    ReleaseStreamError,
    StreamCancelled,
    list_releases,
)
from .collectors import GitHubSource, GitLabSource, NetworkError, ProviderError, UnknownDriverError, new_source

# Filters
from .filters import (
    apply_filters,
    dedupe_by_version,
    first_releases,
    greatest_version,
    has_semver,
    is_stable,
    latest_release,
    matches_constraint,
    select_filters,
)

# Checks
from .config import Config, ConfigError, LibraryConfig, Preferences, ScmConfig, load_config, validate_config
from .manifest import ManifestError, read_vcpkg_version
from .check import (
    CheckResult,
    LibraryCheckError,
    LibraryUpdate,
    NoMatchingReleaseError,
    check_libraries,
    check_library,
)

# Output
from .render import ReportTemplate, render_json, render_report, render_table

__all__ = [
    "__version__",
    # Versions
    "Constraint",
    "ConstraintParseError",
    "VersionParseError",
    "compare_versions",
    "format_constraint",
    "is_major_upgrade",
    "normalize_version_tag",
    "parse_constraint",
    # Releases
    "ReqcheckError",
    "ListOptions",
    "Release",
    "ReleaseQuery",
    "ReleaseSource",
    "ReleaseStreamError",
    "StreamCancelled",
    "list_releases",
    "GitHubSource",
    "GitLabSource",
    "NetworkError",
    "ProviderError",
    "UnknownDriverError",
    "new_source",
    # Filters
    "apply_filters",
    "dedupe_by_version",
    "first_releases",
    "greatest_version",
    "has_semver",
    "is_stable",
    "latest_release",
    "matches_constraint",
    "select_filters",
    # Checks
    "Config",
    "ConfigError",
    "LibraryConfig",
    "Preferences",
    "ScmConfig",
    "load_config",
    "validate_config",
    "ManifestError",
    "read_vcpkg_version",
    "CheckResult",
    "LibraryCheckError",
    "LibraryUpdate",
    "NoMatchingReleaseError",
    "check_libraries",
    "check_library",
    # Output
    "ReportTemplate",
    "render_json",
    "render_report",
    "render_table",
]
