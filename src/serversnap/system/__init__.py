"""
System-level utilities: command execution, service detection and host facts.
"""

from .commands import CommandRunner, run_command, write_sink
from .host import collect_host_facts, real_device_disks, top_processes
from .services import (
    ProcessDetector,
    SystemdDetector,
    build_service_detectors,
    create_detector,
    detect_services,
)

__all__ = [
    "CommandRunner",
    "run_command",
    "write_sink",
    "collect_host_facts",
    "real_device_disks",
    "top_processes",
    "ProcessDetector",
    "SystemdDetector",
    "build_service_detectors",
    "create_detector",
    "detect_services",
]
