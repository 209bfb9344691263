"""
Output rendering and formatting of check results.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, fields
from string import Formatter
from typing import Mapping

from wcwidth import wcswidth

from .check import CheckResult, LibraryUpdate
from .common import env_flag
from .releases import Release

# Environment options
USE_EMOJI = env_flag("REQCHECK_EMOJI")
USE_COLOR = env_flag("REQCHECK_COLOR")

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"

# CSI sequences (colors) do not take up room on screen
CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")

# Fields a line format may reference (see LibraryUpdate.to_dict)
LINE_FIELDS = ("name", "current_version", "upgrade_version", "tag", "breaking_change")


def _check_line_format(key: str, fmt: str) -> None:
    """Reject a line format that would fail when a report is rendered."""
    try:
        parsed = list(Formatter().parse(fmt))
    except ValueError as e:
        raise ValueError(f"Invalid format for {key}: {e}") from e

    for _, field_name, _, _ in parsed:
        if field_name is None:
            continue
        root = re.split(r"[.\[]", field_name, maxsplit=1)[0]
        if root not in LINE_FIELDS:
            raise ValueError(
                f"Unknown field {{{field_name}}} in {key} (expected one of: {', '.join(LINE_FIELDS)})"
            )

    # Conversions and format specs are only checked by formatting
    try:
        fmt.format(**LibraryUpdate("example", "1.0.0", "1.1.0", tag="v1.1.0").to_dict())
    except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid format for {key}: {e}") from e


@dataclass(frozen=True)
class ReportTemplate:
    """
    Formats for the textual report.

    Line formats receive the fields of LibraryUpdate (name, current_version,
    upgrade_version, tag, breaking_change). The empty formats are printed instead of lines
    when a section has no libraries.
    """
    current_header: str = "The following libraries are up to date:"
    current_line: str = "  {name}: {current_version}"
    current_empty: str = "  No libraries are up to date"
    upgrade_header: str = "The following libraries have updates:"
    upgrade_line: str = "  {name}: {current_version} -> {upgrade_version}"
    upgrade_empty: str = "  All libraries are up to date"

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> ReportTemplate:
        """Create a template overriding the defaults with the given formats.

        Raises:
            ValueError: On unknown keys, or line formats referencing unknown fields
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown template keys: {', '.join(sorted(unknown))}")
        for key, fmt in data.items():
            if key.endswith("_line"):
                _check_line_format(key, fmt)
        return cls(**data)


def _section(header: str, line: str, empty: str, updates: tuple[LibraryUpdate, ...]) -> list[str]:
    lines = [header]
    if updates:
        lines.extend(line.format(**update.to_dict()) for update in updates)
    else:
        lines.append(empty)
    return lines


def render_report(result: CheckResult, template: ReportTemplate | None = None) -> str:
    """Render the two-section textual report.

    Args:
        result: Grouped check results
        template: Section formats, defaults when None

    Returns:
        Report text ending with a newline
    """
    t = template or ReportTemplate()
    lines = _section(t.current_header, t.current_line, t.current_empty, result.current)
    lines += _section(t.upgrade_header, t.upgrade_line, t.upgrade_empty, result.upgrade)
    return "\n".join(lines) + "\n"


def status_icon(update: LibraryUpdate) -> str:
    """Get status icon for a library."""
    if not USE_EMOJI:
        if update.is_current:
            return "✓"
        return "!" if update.breaking_change else "↑"

    if update.is_current:
        return "✅"
    return "⚠️" if update.breaking_change else "⬆"


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def display_width(text: str) -> int:
    """Width of text on a terminal, ignoring color codes."""
    width = wcswidth(CSI_RE.sub("", text))
    return width if width >= 0 else len(text)


def _pad(text: str, width: int) -> str:
    return text + " " * max(width - display_width(text), 0)


def render_table(result: CheckResult) -> str:
    """Render all libraries as an aligned table, upgrades first."""
    rows: list[tuple[str, ...]] = [("state", "library", "current", "upgrade")]

    for update in result.upgrade:
        color = RED if update.breaking_change else YELLOW
        rows.append((
            status_icon(update),
            update.name,
            colorize(update.current_version, color),
            colorize(update.upgrade_version, BOLD_GREEN),
        ))
    for update in result.current:
        rows.append((
            status_icon(update),
            update.name,
            colorize(update.current_version, GREEN),
            colorize(update.upgrade_version, GREEN),
        ))

    widths = [max(display_width(row[i]) for row in rows) for i in range(len(rows[0]))]
    lines = ["  ".join(_pad(cell, widths[i]) for i, cell in enumerate(row)).rstrip() for row in rows]
    lines.append("")
    lines.append(f"Libraries: {result.summary()}")
    return "\n".join(lines) + "\n"


def render_json(result: CheckResult) -> str:
    """Render results as a JSON document."""
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n"


def format_release(release: Release) -> str:
    """One line describing a release found by a query."""
    if release.semver is not None:
        return f"tag {release.tag} -> semver {release.semver}"
    return f"tag {release.tag} -> semver ???"

