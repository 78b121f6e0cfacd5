"""
Unit tests for the command-line interface.
"""

import sys

import pytest

from serversnap.cli.main import EXIT_RUN_FAILED, EXIT_USAGE, build_parser, main_cli


@pytest.mark.unit
class TestArgumentParsing:
    """Test cases for the argument parser."""

    def test_defaults(self):
        """Test that unset options stay None so the config decides."""
        args = build_parser().parse_args([])

        assert args.duration is None
        assert args.interval is None
        assert args.output_dir is None
        assert args.log_level == "INFO"
        assert not args.list_sections

    def test_short_options(self):
        """Test the short option spellings."""
        args = build_parser().parse_args(["-d", "30", "-p", "10", "-n", "2", "-o", "/tmp/x", "-s", "system"])

        assert args.duration == 30
        assert args.perf_interval == 10
        assert args.net_interval == 2
        assert str(args.output_dir) == "/tmp/x"
        assert args.sections == "system"

    def test_log_level_case_insensitive(self):
        """Test that --log-level accepts lower case."""
        assert build_parser().parse_args(["--log-level", "debug"]).log_level == "DEBUG"


@pytest.mark.unit
class TestMainCli:
    """Test cases for main_cli exit behaviour."""

    def test_help_exits_zero(self, capsys):
        """Test --help."""
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["--help"])

        assert exc_info.value.code == 0
        assert "--duration" in capsys.readouterr().out

    def test_bad_argument_is_usage_error(self):
        """Test that a non-numeric duration exits with the usage code."""
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["--duration", "soon"])

        assert exc_info.value.code == EXIT_USAGE

    def test_list_sections(self, capsys):
        """Test that --list-sections prints every section and runs nothing."""
        main_cli(["--list-sections"])

        out = capsys.readouterr().out
        assert "postgresql" in out
        assert "Tomcat" in out

    def test_missing_config_is_usage_error(self, temp_dir):
        """Test that an unreadable configuration exits with the usage code."""
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["-c", str(temp_dir / "absent.toml")])

        assert exc_info.value.code == EXIT_USAGE

    def test_unknown_section_is_usage_error(self, config_files):
        """Test that an unknown section name exits with the usage code."""
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["-c", str(config_files["config"]), "-s", "system,mainframe"])

        assert exc_info.value.code == EXIT_USAGE

    def test_interval_longer_than_duration(self, config_files):
        """Test that --interval above --duration exits with the usage code."""
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["-c", str(config_files["config"]), "-d", "10", "-i", "60"])

        assert exc_info.value.code == EXIT_USAGE

    def test_uncreatable_output_directory(self, config_files, temp_dir):
        """Test that a report directory under a regular file fails the run."""
        blocker = temp_dir / "blocker"
        blocker.write_text("")

        with pytest.raises(SystemExit) as exc_info:
            main_cli(["-c", str(config_files["config"]), "-d", "0", "-o", str(blocker / "out")])

        assert exc_info.value.code == EXIT_RUN_FAILED

    def test_short_run(self, config_files, temp_dir, monkeypatch, capsys):
        """Test a complete run driven through sys.argv."""
        output_dir = temp_dir / "out"
        monkeypatch.setattr(sys, "argv", [
            "serversnap", "-c", str(config_files["config"]), "-d", "0",
            "-s", "system", "--formats", "summary", "-o", str(output_dir),
        ])

        main_cli()

        out = capsys.readouterr().out
        assert "Diagnostic snapshot complete." in out
        assert str(output_dir) in out
        assert "Server Diagnostic Summary" in out
        assert (output_dir / "summary.txt").exists()
        assert not (output_dir / "report.html").exists()
