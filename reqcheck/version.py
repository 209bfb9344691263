"""
Version tag normalization and constraint matching.

Upstream tags come in every shape imaginable ("v1.2", "release-2021.03.1",
"curl-8_4_0", "nightly"). This module turns them into comparable semantic
versions and parses constraint expressions used to select releases.
"""

from __future__ import annotations

import logging
import re

from semantic_version import NpmSpec, Version

from .common import ReqcheckError

logger = logging.getLogger(__name__)


class VersionParseError(ReqcheckError):
    """Raised when a reassembled version string is not a valid semantic version."""
    pass


class ConstraintParseError(ReqcheckError):
    """Raised when a constraint expression cannot be parsed."""
    pass


# Optional non-numeric prefix, major, optional minor/patch separated by . _ or -,
# then an optional prerelease label and an optional numeric pre-version.
VERSION_PATTERN = re.compile(
    r"^[a-zA-Z_.\-]*"
    r"(?P<major>\d+)[._\-]?"
    r"(?P<minor>\d*)[._\-]*"
    r"(?P<patch>\d*)[._\-]*"
    r"(?P<prerelease>[a-zA-Z_.\-]*)"
    r"(?P<preversion>\d*)$"
)

# Operators accepted in constraint expressions and their npm-range spelling
_OPERATOR_ALIASES = {
    "=>": ">=",
    "=<": "<=",
    "~>": "~",
    "==": "=",
}
_OPERATOR_RE = re.compile(r"(>=|<=|=>|=<|~>|==|!=|>|<|=|~|\^)\s*v?(?=[\dxX*])")


def parse_strict(tag: str) -> Version | None:
    """Parse a tag that is already a semantic version, allowing a leading 'v'."""
    text = tag.strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    try:
        return Version(text)
    except ValueError:
        return None


def _reassemble(match: re.Match) -> str:
    major = int(match.group("major"))
    minor = int(match.group("minor") or 0)
    patch = int(match.group("patch") or 0)

    version = f"{major}.{minor}.{patch}"

    prerelease = match.group("prerelease")
    if prerelease:
        if prerelease == ".":
            prerelease = "build"
        preversion = match.group("preversion")
        if preversion:
            prerelease = f"{prerelease}.{int(preversion)}"
        version = f"{version}-{prerelease}"

    return version


def _coerce(tag: str) -> Version | None:
    match = VERSION_PATTERN.match(tag.strip())
    if match is None:
        return None

    candidate = _reassemble(match)
    try:
        return Version(candidate)
    except ValueError as e:
        fields = " ".join(f"{k}={v!r}" for k, v in match.groupdict().items())
        raise VersionParseError(
            f"could not parse version {candidate!r} from tag {tag!r} ({fields})"
        ) from e


def normalize_version_tag(tag: str) -> Version | None:
    """Normalize a raw tag into a semantic version.

    Args:
        tag: Raw tag as returned by a hosting provider (e.g., "v1.2", "release-2021.03.1")

    Returns:
        The semantic version (e.g., 1.2.0, 2021.3.1) or None if the tag cannot
        be interpreted as a version
    """
    version = parse_strict(tag)
    if version is not None:
        return version

    try:
        return _coerce(tag)
    except VersionParseError as e:
        logger.warning(str(e))
        return None


class Constraint:
    """A version constraint built from an expression string.

    Expressions use comparison operators (=, !=, >, <, >=, <=), caret and
    tilde ranges, x-ranges and hyphen ranges. Clauses separated by commas or
    whitespace must all hold; alternatives are separated by '||'.
    """

    def __init__(self, expression: str):
        self.expression = expression
        self._groups = [_parse_group(part, expression) for part in expression.split("||")]

    def check(self, version: Version) -> bool:
        """Return True if version satisfies the constraint."""
        for spec, excluded in self._groups:
            if not spec.match(version):
                continue
            if any(ex.match(version) for ex in excluded):
                continue
            return True
        return False

    def __contains__(self, version: Version) -> bool:
        return self.check(version)

    def __repr__(self) -> str:
        return f"Constraint({self.expression!r})"

    def __str__(self) -> str:
        return self.expression


def _parse_group(part: str, expression: str) -> tuple[NpmSpec, tuple[NpmSpec, ...]]:
    text = part.strip()
    if not text:
        raise ConstraintParseError(f"empty clause in constraint {expression!r}")

    # Hyphen ranges must survive the comma/whitespace split below
    text = re.sub(r"\s+-\s+", "\x00", text)
    text = _OPERATOR_RE.sub(lambda m: _OPERATOR_ALIASES.get(m.group(1), m.group(1)), text)

    positive: list[str] = []
    excluded: list[NpmSpec] = []
    for clause in re.split(r"[\s,]+", text):
        if not clause:
            continue
        clause = clause.replace("\x00", " - ")
        try:
            if clause.startswith("!="):
                excluded.append(NpmSpec("=" + clause[2:]))
            else:
                positive.append(clause)
        except ValueError as e:
            raise ConstraintParseError(f"invalid clause {clause!r} in constraint {expression!r}") from e

    try:
        spec = NpmSpec(" ".join(positive) if positive else "*")
    except ValueError as e:
        raise ConstraintParseError(f"could not parse constraint {expression!r}: {e}") from e

    return spec, tuple(excluded)


def parse_constraint(expression: str) -> Constraint:
    """Parse a constraint expression.

    Raises:
        ConstraintParseError: If the expression is empty or malformed
    """
    if not expression or not expression.strip():
        raise ConstraintParseError("constraint expression is empty")
    return Constraint(expression)


def format_constraint(fmt: str, version: str) -> str:
    """Substitute a pinned version into a constraint format such as '>= %s' or '^%s'."""
    if "%s" not in fmt:
        return fmt
    return fmt.replace("%s", version)


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Args:
        v1: First version
        v2: Second version

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    ver1 = normalize_version_tag(v1)
    ver2 = normalize_version_tag(v2)

    if ver1 is not None and ver2 is not None:
        if ver1 < ver2:
            return -1
        elif ver1 > ver2:
            return 1
        return 0

    # Fallback to string comparison
    if v1 < v2:
        return -1
    elif v1 > v2:
        return 1
    return 0


def is_major_upgrade(v1: str, v2: str) -> bool:
    """
    Check if upgrade from v1 to v2 is a major version bump.

    Args:
        v1: Current version
        v2: Target version

    Returns:
        True if v2 is a major version ahead of v1, False if either cannot be parsed
    """
    ver1 = normalize_version_tag(v1)
    ver2 = normalize_version_tag(v2)
    if ver1 is None or ver2 is None:
        return False
    return ver2.major > ver1.major
