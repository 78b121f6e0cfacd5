"""
Service detection.

A detector answers one question, "is this service running and with which
PIDs", before any probe runs. Probe preconditions and per-PID expansion are
driven by the answers.
"""

import logging
import os
import re
from typing import Dict, Iterable, List, Mapping

import psutil

from ..models.config import ServiceConfig, ServiceDetector
from ..models.report import ServiceStatus
from .commands import run_command

logger = logging.getLogger(__name__)


class ProcessDetector:
    """Detects a service by matching a regex against process command lines."""

    def __init__(self, name: str, pattern: str):
        self.name = name
        self.pattern = pattern
        self._regex = re.compile(pattern)

    def __call__(self) -> ServiceStatus:
        own_pid = os.getpid()
        pids: List[int] = []
        for proc in psutil.process_iter(["pid", "cmdline"]):
            # process_iter reports inaccessible attributes as None
            cmdline = proc.info.get("cmdline") or []
            if proc.pid == own_pid or not cmdline:
                continue
            if self._regex.search(" ".join(cmdline)):
                pids.append(proc.pid)

        pids.sort()
        logger.info(f"Service '{self.name}': {len(pids)} processes match '{self.pattern}'")
        return ServiceStatus(
            name=self.name,
            running=bool(pids),
            pids=tuple(pids),
            detail=f"process pattern '{self.pattern}'",
        )


class SystemdDetector:
    """
    Detects a service through systemd.

    ``units`` may contain glob patterns such as ``postgresql-*``; the service
    is running when any matching service unit is active.
    """

    def __init__(self, name: str, units: Iterable[str], timeout: float = 10.0):
        self.name = name
        self.units = list(units)
        self.timeout = timeout

    def __call__(self) -> ServiceStatus:
        detail = f"systemd units {', '.join(self.units)}"
        returncode, stdout, stderr = run_command(
            ["systemctl", "list-units", "--type=service", "--state=active",
             "--plain", "--no-legend", "--no-pager", *self.units],
            timeout=self.timeout,
        )
        if returncode != 0:
            logger.info(f"Service '{self.name}': systemctl unavailable or failed ({stderr.strip()})")
            return ServiceStatus(name=self.name, running=False, detail=detail)

        active_units = [line.split()[0] for line in stdout.splitlines() if line.strip()]
        pids = []
        for unit in active_units:
            pid = self._main_pid(unit)
            if pid:
                pids.append(pid)

        logger.info(f"Service '{self.name}': active units {active_units or 'none'}")
        return ServiceStatus(
            name=self.name,
            running=bool(active_units),
            pids=tuple(sorted(pids)),
            detail=detail,
        )

    def _main_pid(self, unit: str) -> int:
        returncode, stdout, _ = run_command(
            ["systemctl", "show", "--property=MainPID", "--value", unit],
            timeout=self.timeout,
        )
        if returncode != 0:
            return 0
        try:
            return int(stdout.strip() or 0)
        except ValueError:
            return 0


def create_detector(service: ServiceConfig) -> ServiceDetector:
    """
    Factory function to create the detector a service configuration asks for.

    Raises:
        ValueError: If the detector type is unknown
    """
    if service.detector == "process":
        return ProcessDetector(service.name, service.pattern)
    if service.detector == "systemd":
        return SystemdDetector(service.name, service.units)
    raise ValueError(f"Unsupported service detector: {service.detector}")


def build_service_detectors(services: Iterable[ServiceConfig]) -> Dict[str, ServiceDetector]:
    return {service.name: create_detector(service) for service in services}


def detect_services(detectors: Mapping[str, ServiceDetector]) -> Dict[str, ServiceStatus]:
    """
    Run every detector once.

    A detector that raises is reported as not running, with the error as
    detail, so one broken detector never aborts the run.
    """
    statuses: Dict[str, ServiceStatus] = {}
    for name, detector in detectors.items():
        try:
            status = detector()
        except Exception as e:
            logger.warning(f"Service detector '{name}' failed: {e}")
            status = ServiceStatus(name=name, running=False, detail=f"detector error: {e}")
        statuses[name] = status
    return statuses
