"""
Probe data models.

This module defines the typed command descriptor, the probe definition and the
immutable result a probe execution produces.
"""

import re
import shlex
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

from ..validation.exceptions import ProbeError, ProbeFailure, ProbeSkipped, ProbeTimeout, ValidationError

# Placeholders look like {pid} or {tomcat_home}. Shell expansions such as
# ${HOME} and awk programs such as '{print $2}' are left alone.
PLACEHOLDER_PATTERN = re.compile(r"(?<!\$)\{([a-z_][a-z0-9_]*)\}")

DEFAULT_SHELL = "/bin/sh"


@dataclass(frozen=True)
class CommandSpec:
    """
    A parameterized command descriptor.

    Exactly one of ``argv`` (executed directly) or ``script`` (executed with
    ``/bin/sh -c``) is set. Placeholders in either are filled from ``params``
    by :meth:`resolve`; values substituted into a shell script are quoted.
    """

    argv: Tuple[str, ...] = ()
    script: Optional[str] = None
    params: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_argv(cls, *argv: str, **params: object) -> "CommandSpec":
        return cls(argv=tuple(argv), params=_freeze_params(params))

    @classmethod
    def from_shell(cls, script: str, **params: object) -> "CommandSpec":
        return cls(script=script, params=_freeze_params(params))

    @property
    def is_shell(self) -> bool:
        return self.script is not None

    def with_params(self, **params: object) -> "CommandSpec":
        """Return a copy with additional (or overriding) parameters."""
        merged = dict(self.params)
        merged.update(_freeze_params(params))
        return replace(self, params=tuple(sorted(merged.items())))

    def placeholders(self) -> Tuple[str, ...]:
        """Names of the placeholders still present in the command."""
        texts = (self.script,) if self.is_shell else self.argv
        found = []
        for text in texts:
            for name in PLACEHOLDER_PATTERN.findall(text or ""):
                if name not in found:
                    found.append(name)
        return tuple(found)

    def resolve(self) -> "CommandSpec":
        """Substitute known parameters; unknown placeholders are kept."""
        values: Dict[str, str] = dict(self.params)
        if not values:
            return self

        def substitute(text: str, quote: bool) -> str:
            def _replace(match: "re.Match[str]") -> str:
                name = match.group(1)
                if name not in values:
                    return match.group(0)
                return shlex.quote(values[name]) if quote else values[name]

            return PLACEHOLDER_PATTERN.sub(_replace, text)

        if self.is_shell:
            return CommandSpec(script=substitute(self.script, quote=True))
        return CommandSpec(argv=tuple(substitute(arg, quote=False) for arg in self.argv))

    def validate(self) -> "CommandSpec":
        """
        Check the descriptor before execution.

        Raises:
            ValidationError: If the command is empty, ambiguous or still
                contains unresolved placeholders.
        """
        if self.is_shell and self.argv:
            raise ValidationError("command must define either argv or a shell script, not both")
        if self.is_shell:
            if not self.script.strip():
                raise ValidationError("shell command must be a non-empty string", value=self.script)
        elif not self.argv or not self.argv[0]:
            raise ValidationError("command argv must not be empty", value=self.argv)

        missing = [name for name in self.placeholders() if name not in dict(self.params)]
        if missing:
            raise ValidationError(
                f"command has unresolved placeholders: {', '.join(missing)}",
                field_name="command",
                value=self.display(),
            )
        return self

    def to_exec_args(self) -> Tuple[str, ...]:
        """The argument vector handed to the operating system."""
        resolved = self.resolve()
        if resolved.is_shell:
            return (DEFAULT_SHELL, "-c", resolved.script)
        return resolved.argv

    def display(self) -> str:
        """A human-readable rendering of the command."""
        resolved = self.resolve()
        if resolved.is_shell:
            return resolved.script
        return shlex.join(resolved.argv)


def _freeze_params(params: Dict[str, object]) -> Tuple[Tuple[str, str], ...]:
    return tuple(sorted((key, str(value)) for key, value in params.items()))


CommandSource = Union[CommandSpec, Callable[[], CommandSpec]]


@dataclass(frozen=True)
class Probe:
    """
    A single named diagnostic command.

    ``command`` may be a ready descriptor or a zero-argument callable that
    builds one; the callable is only invoked when the probe actually runs.
    ``precondition`` gates execution: when it returns False the probe is
    recorded as skipped and nothing is spawned.
    """

    name: str
    command: CommandSource
    section: str = ""
    output_sink: str = ""
    timeout: Optional[float] = None
    precondition: Optional[Callable[[], bool]] = field(default=None, compare=False)
    precondition_label: str = ""
    # Show the first line of output as a key counter in the summary.
    highlight: bool = False
    description: str = ""

    def __post_init__(self):
        if not self.output_sink:
            object.__setattr__(self, "output_sink", self.name)

    def should_run(self) -> bool:
        if self.precondition is None:
            return True
        return bool(self.precondition())

    def resolve_command(self) -> CommandSpec:
        """Build (if lazy), resolve and validate the command descriptor."""
        spec = self.command if isinstance(self.command, CommandSpec) else self.command()
        if not isinstance(spec, CommandSpec):
            raise ValidationError(
                f"probe '{self.name}' command factory returned {type(spec).__name__}, expected CommandSpec",
                field_name="command",
                value=spec,
            )
        spec = spec.validate()
        return spec.resolve()


class ProbeStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").upper()


@dataclass(frozen=True)
class ProbeResult:
    """The immutable outcome of one probe invocation."""

    probe_name: str
    section: str
    started_at: float
    finished_at: float
    status: ProbeStatus
    output: bytes = b""
    exit_code: Optional[int] = None
    # Short explanation: skip reason, timeout, cancellation, spawn error.
    detail: str = ""
    sink_path: Optional[str] = None

    @classmethod
    def skipped(cls, probe: Probe, reason: str, at: float) -> "ProbeResult":
        return cls(
            probe_name=probe.name,
            section=probe.section,
            started_at=at,
            finished_at=at,
            status=ProbeStatus.SKIPPED,
            detail=reason,
        )

    @property
    def text(self) -> str:
        return self.output.decode("utf-8", errors="replace")

    @property
    def first_line(self) -> str:
        for line in self.text.splitlines():
            if line.strip():
                return line.strip()
        return ""

    @property
    def duration_seconds(self) -> float:
        return max(0.0, self.finished_at - self.started_at)

    @property
    def succeeded(self) -> bool:
        return self.status is ProbeStatus.SUCCESS

    def as_error(self) -> Optional[ProbeError]:
        """The matching ProbeError for anything but success, for logging; never raised."""
        error_class = _STATUS_ERRORS.get(self.status)
        if error_class is None:
            return None
        return error_class(self.probe_name, f"{self.probe_name}: {self.detail or self.status.label}")


_STATUS_ERRORS = {
    ProbeStatus.FAILURE: ProbeFailure,
    ProbeStatus.TIMED_OUT: ProbeTimeout,
    ProbeStatus.SKIPPED: ProbeSkipped,
}
