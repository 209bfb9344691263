"""
reqcheck - query upstream releases and check pinned library versions.

Usage:
    reqcheck github OWNER REPO [--tags] [--prerelease] [--constraint EXPR]
    reqcheck gitlab OWNER REPO [--uri URI] [--limit-to N]
    reqcheck vcpkg [PATH] [--format text|table|json] [--output-file FILE]
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading

from . import __version__
from .check import check_libraries
from .collectors import DEFAULT_URIS, DRIVER_GITHUB, DRIVER_GITLAB, new_source
from .common import ReqcheckError
from .config import load_config, validate_config
from .filters import apply_filters, select_filters
from .logging_config import setup_logging
from .releases import ReleaseQuery, list_releases
from .render import ReportTemplate, format_release, render_json, render_report, render_table
from .version import parse_constraint

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = {
    DRIVER_GITHUB: "GITHUB_TOKEN",
    DRIVER_GITLAB: "GITLAB_TOKEN",
}


class CliError(ReqcheckError):
    """Raised for invalid command line usage."""
    pass


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 (no limit) or positive, got {number}")
    return number


def _install_cancel_handler(cancel: threading.Event):
    """Make SIGTERM stop the run before the next page is fetched.

    Returns the previous handler, or None when not in the main thread.
    """
    def handler(signum, frame):
        logger.warning("termination requested, stopping after the current page")
        cancel.set()

    try:
        return signal.signal(signal.SIGTERM, handler)
    except ValueError:
        return None


def cmd_query(args: argparse.Namespace, cancel: threading.Event | None = None) -> int:
    """Print the releases of one repository passing the default filter policy."""
    driver = args.command
    if not args.token:
        raise CliError(f"no token provided (use --token or ${TOKEN_ENV_VARS[driver]})")

    source = new_source(driver, args.uri, args.token)
    constraint = parse_constraint(args.constraint) if args.constraint else None

    query = ReleaseQuery(owner=args.owner, repo=args.repo, tags=args.tags, limit=args.limit_to)
    releases = apply_filters(
        list_releases(source, query, cancel=cancel),
        select_filters(constraint, args.prerelease),
    )

    for release in releases:
        print(format_release(release))
    return 0


def cmd_vcpkg(args: argparse.Namespace, cancel: threading.Event | None = None) -> int:
    """Check every library of a vcpkg registry against its upstream."""
    vcpkg_path = os.path.abspath(args.path)
    logger.debug(f"vcpkg path: {vcpkg_path}")

    config = load_config(vcpkg_path, args.config)
    for warning in validate_config(config):
        logger.warning(warning)

    try:
        template = ReportTemplate.from_dict(config.template)
    except ValueError as e:
        raise CliError(f"could not parse template: {e}") from e

    result = check_libraries(config, vcpkg_path, cancel=cancel)

    if args.format == "json":
        output = render_json(result)
    elif args.format == "table":
        output = render_table(result)
    else:
        output = render_report(result, template)

    if args.output_file:
        try:
            with open(args.output_file, "w", encoding="utf-8") as f:
                f.write(output)
        except OSError as e:
            raise CliError(f"could not open file for writing {args.output_file}: {e}") from e
    else:
        sys.stdout.write(output)

    return 1 if result.failures else 0


def _add_query_parser(subparsers, driver: str, name: str) -> None:
    parser = subparsers.add_parser(
        driver,
        help=f"query {name} for releases",
        description=f"List releases of OWNER/REPO on a {name} instance.",
    )
    parser.add_argument("owner", help="Repository owner")
    parser.add_argument("repo", help="Repository name")
    parser.add_argument(
        "--uri",
        default=DEFAULT_URIS[driver],
        help=f"uri for {name} instance (default: {DEFAULT_URIS[driver]})",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get(TOKEN_ENV_VARS[driver], ""),
        help=f"access token for {name} api (default: ${TOKEN_ENV_VARS[driver]})",
    )
    parser.add_argument("--tags", action="store_true", help="use tags rather than releases")
    parser.add_argument("--prerelease", action="store_true", help="include pre-releases")
    parser.add_argument("--constraint", default="", help="semantic version constraint")
    parser.add_argument(
        "--limit-to",
        type=_non_negative_int,
        default=0,
        help="limit the amount of results from the api (default: 0, no limit)",
    )
    parser.set_defaults(func=cmd_query)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reqcheck",
        description="Query upstream releases and check pinned library versions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default="warning",
        help="logging level (debug, info, warning, error, critical; default: warning)",
    )
    parser.add_argument("--log-file", help="also write logs to this file")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output (same as --log-level debug)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    _add_query_parser(subparsers, DRIVER_GITHUB, "GitHub")
    _add_query_parser(subparsers, DRIVER_GITLAB, "GitLab")

    vcpkg = subparsers.add_parser(
        "vcpkg",
        help="check vcpkg ports for upstream updates",
        description="Compare port versions of a vcpkg registry against upstream releases.",
    )
    vcpkg.add_argument("path", nargs="?", default=".", help="vcpkg registry root (default: .)")
    vcpkg.add_argument("--config", help="configuration file (default: PATH/.reqcheck.yml)")
    vcpkg.add_argument("--output-file", help="output results to file")
    vcpkg.add_argument(
        "--format",
        choices=("text", "table", "json"),
        default="text",
        help="report format (default: text)",
    )
    vcpkg.set_defaults(func=cmd_vcpkg)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(level=args.log_level, log_file=args.log_file, verbose=args.verbose)
    except ValueError as e:
        parser.error(str(e))

    cancel = threading.Event()
    previous = _install_cancel_handler(cancel)

    try:
        return args.func(args, cancel)
    except ReqcheckError as e:
        print(f"reqcheck: {e}", file=sys.stderr)
        return 1
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)


def run() -> None:
    """Console script wrapper."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
