"""
Tests for the command line interface (reqcheck/cli.py).
"""

import json
from unittest.mock import patch

import pytest

from reqcheck import __version__
from reqcheck.cli import build_parser, main, run
from tests.helpers import FakeSource, make_releases

CONFIG_YAML = """
scm:
  github:
    driver: github
    token: t
repos:
  fmt:
    host: github
    owner: fmtlib
    repo: fmt
    version: "10.0.0"
  spdlog:
    host: github
    owner: gabime
    repo: spdlog
    version: "10.1.1"
"""


@pytest.fixture
def registry(tmp_path):
    (tmp_path / ".reqcheck.yml").write_text(CONFIG_YAML, encoding="utf-8")
    return tmp_path


@pytest.fixture
def upstream():
    source = FakeSource(releases=make_releases("10.1.1", "10.0.0", "11.0.0-rc.1"))
    with patch("reqcheck.check.new_source", return_value=source):
        yield source


class TestParser:
    """Tests for argument parsing."""

    def test_query_defaults(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        args = build_parser().parse_args(["github", "octo", "lib"])
        assert args.uri == "https://github.com"
        assert args.token == "env-token"
        assert args.limit_to == 0
        assert not args.tags

    def test_gitlab_uri(self):
        args = build_parser().parse_args(["gitlab", "o", "r", "--uri", "https://gitlab.example.com"])
        assert args.uri == "https://gitlab.example.com"

    def test_vcpkg_defaults(self):
        args = build_parser().parse_args(["vcpkg"])
        assert args.path == "."
        assert args.format == "text"

    @pytest.mark.parametrize("value", ["-1", "many"])
    def test_limit_to_rejects_invalid(self, value, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["github", "o", "r", "--limit-to", value])
        assert exc_info.value.code == 2
        assert "--limit-to" in capsys.readouterr().err

    def test_limit_to_zero(self):
        args = build_parser().parse_args(["github", "o", "r", "--limit-to", "0"])
        assert args.limit_to == 0

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-level", "loud", "vcpkg"])
        assert exc_info.value.code == 2


class TestQueryCommand:
    """Tests for the github/gitlab commands."""

    def test_prints_stable_releases(self, capsys):
        source = FakeSource(releases=make_releases("v1.1.0", "v1.1.0-rc.1", "nightly", "v1.0.0"))
        with patch("reqcheck.cli.new_source", return_value=source) as mock_new_source:
            assert main(["github", "octo", "lib", "--token", "t"]) == 0

        mock_new_source.assert_called_once_with("github", "https://github.com", "t")
        assert capsys.readouterr().out.splitlines() == [
            "tag v1.1.0 -> semver 1.1.0",
            "tag v1.0.0 -> semver 1.0.0",
        ]

    def test_prerelease_flag(self, capsys):
        source = FakeSource(releases=make_releases("v1.1.0-rc.1", "nightly"))
        with patch("reqcheck.cli.new_source", return_value=source):
            main(["gitlab", "o", "r", "--token", "t", "--prerelease"])

        assert capsys.readouterr().out.splitlines() == [
            "tag v1.1.0-rc.1 -> semver 1.1.0-rc.1",
            "tag nightly -> semver ???",
        ]

    def test_constraint_tags_and_limit(self, capsys):
        source = FakeSource(tags=make_releases("v2.0.0", "v1.5.0", "v1.4.0", "v1.3.0"))
        with patch("reqcheck.cli.new_source", return_value=source):
            main(["github", "o", "r", "--token", "t", "--tags", "--constraint", "^1.0.0", "--limit-to", "3"])

        assert capsys.readouterr().out.splitlines() == [
            "tag v1.5.0 -> semver 1.5.0",
            "tag v1.4.0 -> semver 1.4.0",
        ]

    def test_missing_token(self, monkeypatch, capsys):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        assert main(["github", "o", "r"]) == 1
        assert "no token provided" in capsys.readouterr().err

    def test_invalid_constraint(self, capsys):
        with patch("reqcheck.cli.new_source", return_value=FakeSource()):
            assert main(["github", "o", "r", "--token", "t", "--constraint", ">= banana"]) == 1
        assert "reqcheck:" in capsys.readouterr().err

    def test_stream_error(self, capsys):
        source = FakeSource(fail_on_page=1)
        with patch("reqcheck.cli.new_source", return_value=source):
            assert main(["github", "o", "r", "--token", "t"]) == 1
        assert "could not access o/r releases" in capsys.readouterr().err


class TestVcpkgCommand:
    """Tests for the vcpkg command."""

    def test_text_report(self, registry, upstream, capsys):
        assert main(["vcpkg", str(registry)]) == 0
        assert capsys.readouterr().out == (
            "The following libraries are up to date:\n"
            "  spdlog: 10.1.1\n"
            "The following libraries have updates:\n"
            "  fmt: 10.0.0 -> 10.1.1\n"
        )

    def test_json_to_file(self, registry, upstream, tmp_path, capsys):
        output = tmp_path / "report.json"
        assert main(["vcpkg", str(registry), "--format", "json", "--output-file", str(output)]) == 0

        assert capsys.readouterr().out == ""
        data = json.loads(output.read_text(encoding="utf-8"))
        assert [u["name"] for u in data["upgrade"]] == ["fmt"]

    def test_table(self, registry, upstream, capsys):
        assert main(["vcpkg", str(registry), "--format", "table"]) == 0
        assert "Libraries: 1 up to date, 1 with updates" in capsys.readouterr().out

    def test_custom_config_and_template(self, tmp_path, upstream, capsys):
        config = tmp_path / "custom.yml"
        config.write_text(CONFIG_YAML + "template:\n  upgrade_line: '  * {name}'\n", encoding="utf-8")

        assert main(["vcpkg", str(tmp_path), "--config", str(config)]) == 0
        assert "  * fmt\n" in capsys.readouterr().out

    def test_invalid_template(self, tmp_path, upstream, capsys):
        (tmp_path / ".reqcheck.yml").write_text(CONFIG_YAML + "template:\n  nope: x\n", encoding="utf-8")
        assert main(["vcpkg", str(tmp_path)]) == 1
        assert "could not parse template" in capsys.readouterr().err

    @pytest.mark.parametrize("line", ["  {Name}", "  {name:d}", "  {name"])
    def test_bad_line_format(self, tmp_path, upstream, capsys, line):
        """A line format that cannot be rendered is reported, not raised."""
        text = CONFIG_YAML + f"template:\n  current_line: '{line}'\n"
        (tmp_path / ".reqcheck.yml").write_text(text, encoding="utf-8")

        assert main(["vcpkg", str(tmp_path)]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "could not parse template" in captured.err
        assert "current_line" in captured.err

    def test_non_mapping_scm_entry(self, tmp_path, capsys):
        (tmp_path / ".reqcheck.yml").write_text("scm:\n  gh: just-a-string\n", encoding="utf-8")
        assert main(["vcpkg", str(tmp_path)]) == 1
        assert "SCM 'gh': expected a mapping" in capsys.readouterr().err

    def test_missing_config(self, tmp_path, capsys):
        assert main(["vcpkg", str(tmp_path)]) == 1
        assert "could not read config file" in capsys.readouterr().err

    def test_fail_fast_error(self, tmp_path, capsys):
        (tmp_path / ".reqcheck.yml").write_text(CONFIG_YAML, encoding="utf-8")
        with patch("reqcheck.check.new_source", return_value=FakeSource(releases=make_releases("9.0.0"))):
            assert main(["vcpkg", str(tmp_path)]) == 1
        assert "reqcheck: fmt: no release of fmtlib/fmt" in capsys.readouterr().err

    def test_collected_failures_exit_nonzero(self, tmp_path, capsys):
        text = CONFIG_YAML + "preferences:\n  fail_fast: false\n"
        (tmp_path / ".reqcheck.yml").write_text(text, encoding="utf-8")
        with patch("reqcheck.check.new_source", return_value=FakeSource(releases=make_releases("10.0.5"))):
            assert main(["vcpkg", str(tmp_path)]) == 1
        assert "  fmt: 10.0.0 -> 10.0.5\n" in capsys.readouterr().out


class TestRun:
    """Tests for the console script wrapper."""

    def test_exit_code(self):
        with patch("reqcheck.cli.main", return_value=3):
            with pytest.raises(SystemExit) as exc_info:
                run()
        assert exc_info.value.code == 3

    def test_keyboard_interrupt(self, capsys):
        with patch("reqcheck.cli.main", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                run()
        assert exc_info.value.code == 130
        assert "Interrupted" in capsys.readouterr().err
