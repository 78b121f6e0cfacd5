"""
Unit tests for the command descriptor, probe and probe result models.
"""

import pytest

from serversnap.models import CommandSpec, Probe, ProbeResult, ProbeStatus
from serversnap.validation import ProbeFailure, ProbeSkipped, ProbeTimeout, ValidationError


@pytest.mark.unit
class TestCommandSpec:
    """Test cases for CommandSpec."""

    def test_argv_resolution(self):
        """Test placeholder substitution in argv commands."""
        spec = CommandSpec.from_argv("jstat", "-gc", "{pid}").with_params(pid=4242)

        assert spec.to_exec_args() == ("jstat", "-gc", "4242")
        assert spec.display() == "jstat -gc 4242"

    def test_shell_values_are_quoted(self):
        """Test that values substituted into a shell script are quoted."""
        spec = CommandSpec.from_shell("ls -la {tomcat_home}/conf", tomcat_home="/opt/my tomcat")

        assert spec.to_exec_args() == ("/bin/sh", "-c", "ls -la '/opt/my tomcat'/conf")

    def test_argv_values_are_not_quoted(self):
        """Test that argv values are passed verbatim."""
        spec = CommandSpec.from_argv("ls", "{path}", path="/opt/my tomcat")

        assert spec.to_exec_args() == ("ls", "/opt/my tomcat")

    def test_shell_syntax_is_not_a_placeholder(self):
        """Test that awk programs and ${VAR} expansions are left alone."""
        spec = CommandSpec.from_shell("echo ${HOME} | awk '{print $1}'")

        assert spec.placeholders() == ()
        assert spec.validate() is spec

    def test_unresolved_placeholder_rejected(self):
        """Test that a command with a missing parameter fails validation."""
        spec = CommandSpec.from_argv("jmap", "-heap", "{pid}")

        with pytest.raises(ValidationError) as exc_info:
            spec.validate()

        assert "pid" in str(exc_info.value)

    def test_empty_command_rejected(self):
        """Test that empty commands fail validation."""
        with pytest.raises(ValidationError):
            CommandSpec.from_shell("   ").validate()
        with pytest.raises(ValidationError):
            CommandSpec().validate()

    def test_with_params_overrides(self):
        """Test that later parameters override earlier ones."""
        spec = CommandSpec.from_argv("echo", "{who}", who="a").with_params(who="b")

        assert spec.to_exec_args() == ("echo", "b")


@pytest.mark.unit
class TestProbe:
    """Test cases for Probe."""

    def test_sink_defaults_to_name(self):
        """Test that the output sink defaults to the probe name."""
        probe = Probe(name="uptime", command=CommandSpec.from_shell("uptime"))

        assert probe.output_sink == "uptime"

    def test_precondition(self):
        """Test the precondition gate."""
        assert Probe(name="a", command=CommandSpec.from_shell("true")).should_run()
        assert not Probe(name="b", command=CommandSpec.from_shell("true"), precondition=lambda: False).should_run()

    def test_lazy_command(self):
        """Test that a command factory is only invoked on resolution."""
        calls = []

        def factory():
            calls.append(1)
            return CommandSpec.from_argv("echo", "{x}", x="1")

        probe = Probe(name="lazy", command=factory)
        assert calls == []

        assert probe.resolve_command().argv == ("echo", "1")
        assert calls == [1]

    def test_lazy_command_wrong_type(self):
        """Test that a factory returning something else is rejected."""
        probe = Probe(name="bad", command=lambda: "echo hi")

        with pytest.raises(ValidationError):
            probe.resolve_command()


@pytest.mark.unit
class TestProbeResult:
    """Test cases for ProbeResult."""

    def test_status_labels(self):
        """Test the status words used by the reports."""
        assert ProbeStatus.SUCCESS.label == "SUCCESS"
        assert ProbeStatus.FAILURE.label == "FAILURE"
        assert ProbeStatus.TIMED_OUT.label == "TIMED OUT"
        assert ProbeStatus.SKIPPED.label == "SKIPPED"

    def test_first_line_skips_blank_lines(self, test_utils):
        """Test that the first non-blank line is reported."""
        result = test_utils.make_result("x", output=b"\n\n  ok  \nsecond\n")

        assert result.first_line == "ok"
        assert result.succeeded

    def test_text_tolerates_invalid_utf8(self, test_utils):
        """Test that undecodable output does not raise."""
        result = test_utils.make_result("x", output=b"\xff\xfeabc")

        assert "abc" in result.text

    def test_skipped_factory(self):
        """Test the skipped constructor."""
        probe = Probe(name="p", command=CommandSpec.from_shell("true"), section="logs")

        result = ProbeResult.skipped(probe, "path '/var/log/messages' exists", 100.0)

        assert result.status is ProbeStatus.SKIPPED
        assert result.section == "logs"
        assert result.detail == "path '/var/log/messages' exists"
        assert result.output == b""
        assert result.duration_seconds == 0.0

    def test_as_error(self, test_utils):
        """Test the exception class matching each status."""
        assert test_utils.make_result("ok").as_error() is None
        failure = test_utils.make_result("f", status=ProbeStatus.FAILURE, detail="exit code 2").as_error()
        assert isinstance(failure, ProbeFailure)
        assert failure.probe_name == "f"
        assert "exit code 2" in str(failure)
        assert isinstance(test_utils.make_result("t", status=ProbeStatus.TIMED_OUT).as_error(), ProbeTimeout)
        assert isinstance(test_utils.make_result("s", status=ProbeStatus.SKIPPED).as_error(), ProbeSkipped)
