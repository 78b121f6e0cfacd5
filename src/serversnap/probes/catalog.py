"""
Builds the probe registry from the probe catalog file.

The catalog (``probes.toml``) is plain data: a name, a section, a command and
optional gates. This module turns each entry into one or more :class:`Probe`
objects against the services detected at the start of a run.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..config import load_probes_config, validate_probe_definitions
from ..models.probe import CommandSpec, Probe
from ..models.report import ServiceStatus
from .registry import SECTION_ORDER, SectionRegistry

logger = logging.getLogger(__name__)

PID_PLACEHOLDER = "{pid}"


def _command_for(entry: Dict[str, Any], variables: Mapping[str, str]) -> CommandSpec:
    if "argv" in entry:
        return CommandSpec.from_argv(*[str(arg) for arg in entry["argv"]], **variables)
    return CommandSpec.from_shell(entry["command"], **variables)


def _resolve_text(text: str, variables: Mapping[str, str]) -> str:
    # Paths are checked directly, never passed through a shell.
    return CommandSpec.from_argv(text, **variables).resolve().argv[0]


def _precondition_for(
    entry: Dict[str, Any],
    services: Mapping[str, ServiceStatus],
    variables: Mapping[str, str],
) -> Tuple[Optional[Callable[[], bool]], str]:
    checks: List[Callable[[], bool]] = []
    labels: List[str] = []

    service_name = entry.get("requires_service")
    if service_name:
        def service_running(name=service_name) -> bool:
            status = services.get(name)
            return bool(status and status.running)
        checks.append(service_running)
        labels.append(f"service '{service_name}' running")

    required_path = entry.get("requires_path")
    if required_path:
        resolved = _resolve_text(required_path, variables)

        def path_exists(path=resolved) -> bool:
            return Path(path).exists()
        checks.append(path_exists)
        labels.append(f"path '{resolved}' exists")

    if not checks:
        return None, ""

    def precondition() -> bool:
        return all(check() for check in checks)

    return precondition, " and ".join(labels)


def _never() -> bool:
    return False


def expand_entry(
    entry: Dict[str, Any],
    services: Mapping[str, ServiceStatus],
    variables: Mapping[str, str],
) -> List[Probe]:
    """
    Turn one catalog entry into probes.

    Entries with ``for_each_pid`` expand into one probe per PID of the named
    service. With no PIDs a single probe is produced whose precondition is
    false, so the attempt is still recorded as skipped.
    """
    command = _command_for(entry, variables)
    precondition, label = _precondition_for(entry, services, variables)
    common = dict(
        section=entry["section"],
        timeout=float(entry["timeout"]) if "timeout" in entry else None,
        highlight=bool(entry.get("highlight", False)),
        description=entry.get("description", ""),
    )

    pid_service = entry.get("for_each_pid")
    if not pid_service:
        return [Probe(
            name=entry["name"],
            command=command,
            output_sink=entry.get("sink", ""),
            precondition=precondition,
            precondition_label=label,
            **common,
        )]

    status = services.get(pid_service)
    pids = status.pids if status else ()
    if not pids:
        name = entry["name"].replace(f"_{PID_PLACEHOLDER}", "").replace(PID_PLACEHOLDER, "")
        return [Probe(
            name=name,
            command=command,
            precondition=_never,
            precondition_label=f"no {pid_service} processes found",
            **common,
        )]

    return [
        Probe(
            name=entry["name"].replace(PID_PLACEHOLDER, str(pid)),
            command=command.with_params(pid=pid),
            precondition=precondition,
            precondition_label=label,
            **common,
        )
        for pid in pids
    ]


def build_registry(
    definitions: List[Dict[str, Any]],
    services: Optional[Mapping[str, ServiceStatus]] = None,
    variables: Optional[Mapping[str, str]] = None,
) -> SectionRegistry:
    """
    Build a registry from catalog entries.

    Entries are registered in canonical section order; within a section the
    file order is kept. Sections outside the canonical list follow, in order
    of first appearance.

    Args:
        definitions: Validated catalog entries
        services: Detected service states, by service name
        variables: Template variables such as ``tomcat_home``

    Returns:
        The populated SectionRegistry
    """
    services = services or {}
    variables = dict(variables or {})

    def order(entry: Dict[str, Any]) -> int:
        section = entry["section"]
        return SECTION_ORDER.index(section) if section in SECTION_ORDER else len(SECTION_ORDER)

    registry = SectionRegistry()
    for entry in sorted(definitions, key=order):
        for probe in expand_entry(entry, services, variables):
            registry.register(probe.section, probe)

    logger.info(f"Built probe registry with {len(registry)} probes in {len(registry.sections())} sections")
    return registry


def load_catalog(probes_path: Path) -> List[Dict[str, Any]]:
    """Load and validate the probe catalog file."""
    return validate_probe_definitions(load_probes_config(Path(probes_path)))
