"""
Host facts for the summary digest.

Everything here is read through psutil and the platform module, so the digest
never depends on parsing the text output of the probes.
"""

import logging
import platform
import socket
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import psutil

from ..models.config import ReportConfig
from ..models.report import DiskUsage, HostFacts, ListeningPort, ProcessInfo

logger = logging.getLogger(__name__)

# Seconds between the two CPU-percent readings used to rank processes.
CPU_SAMPLE_WINDOW = 0.5


def top_processes(
    processes: Iterable[ProcessInfo], key: Callable[[ProcessInfo], float], limit: int
) -> Tuple[ProcessInfo, ...]:
    """
    The ``limit`` processes with the highest ``key``.

    The sort is stable: processes with equal values keep their input order.
    """
    return tuple(sorted(processes, key=key, reverse=True)[:limit])


def real_device_disks(
    partitions: Iterable, pseudo_filesystems: Sequence[str]
) -> List:
    """Partitions backed by a real device, pseudo filesystems excluded."""
    excluded = set(pseudo_filesystems)
    selected = []
    seen_mountpoints = set()
    for part in partitions:
        if not part.device.startswith("/dev/"):
            continue
        if part.fstype in excluded or part.mountpoint in seen_mountpoints:
            continue
        seen_mountpoints.add(part.mountpoint)
        selected.append(part)
    return selected


def _snapshot_processes() -> List[ProcessInfo]:
    procs = list(psutil.process_iter(["pid", "username", "name", "cmdline", "memory_percent"]))
    for proc in procs:
        try:
            proc.cpu_percent(None)
        except psutil.Error:
            continue
    time.sleep(CPU_SAMPLE_WINDOW)

    snapshot = []
    for proc in procs:
        try:
            cpu = proc.cpu_percent(None)
        except psutil.Error:
            continue
        info = proc.info
        command = " ".join(info.get("cmdline") or []) or info.get("name") or ""
        snapshot.append(ProcessInfo(
            pid=proc.pid,
            user=info.get("username") or "?",
            cpu_percent=cpu,
            memory_percent=round(info.get("memory_percent") or 0.0, 2),
            command=command,
        ))
    return snapshot


def _listening_ports(limit: int) -> Tuple[ListeningPort, ...]:
    ports = []
    for conn in psutil.net_connections(kind="inet"):
        is_tcp = conn.type == socket.SOCK_STREAM
        if is_tcp and conn.status != psutil.CONN_LISTEN:
            continue
        if not is_tcp and conn.raddr:
            continue
        if not conn.laddr:
            continue
        ports.append(ListeningPort(
            protocol="tcp" if is_tcp else "udp",
            address=conn.laddr.ip,
            port=conn.laddr.port,
            pid=conn.pid,
        ))
    ports.sort(key=lambda p: (p.protocol, p.port, p.address))
    return tuple(ports[:limit])


def _os_name() -> str:
    try:
        release = platform.freedesktop_os_release()
        return release.get("PRETTY_NAME") or release.get("NAME", "")
    except OSError:
        return f"{platform.system()} {platform.release()}"


def _cpu_model() -> str:
    cpuinfo = Path("/proc/cpuinfo")
    try:
        for line in cpuinfo.read_text().splitlines():
            if line.lower().startswith("model name"):
                return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return platform.processor() or platform.machine()


def collect_host_facts(report_config: Optional[ReportConfig] = None) -> HostFacts:
    """
    Gather the point-in-time host digest.

    Each part is collected independently; a part that fails (for example
    connection listing without privileges) is recorded in ``errors`` and the
    remaining fields are still filled.

    Args:
        report_config: Provides top-N, the port limit and the pseudo
            filesystem list; defaults are used when omitted

    Returns:
        HostFacts instance
    """
    report_config = report_config or ReportConfig()
    errors: List[str] = []
    uname = platform.uname()

    facts = dict(
        hostname=socket.gethostname(),
        os_name=_os_name(),
        kernel=uname.release,
        architecture=uname.machine,
        cpu_model=_cpu_model(),
        cpu_cores=psutil.cpu_count(logical=True) or 0,
    )

    try:
        facts["boot_time"] = psutil.boot_time()
        memory = psutil.virtual_memory()
        facts["memory_total_bytes"] = memory.total
        facts["memory_used_percent"] = memory.percent
        facts["load_average"] = tuple(round(value, 2) for value in psutil.getloadavg())
    except (OSError, psutil.Error) as e:
        errors.append(f"system counters: {e}")

    try:
        processes = _snapshot_processes()
        facts["cpu_percent"] = psutil.cpu_percent(None)
        facts["top_cpu"] = top_processes(processes, lambda p: p.cpu_percent, report_config.top_n)
        facts["top_memory"] = top_processes(processes, lambda p: p.memory_percent, report_config.top_n)
    except (OSError, psutil.Error) as e:
        errors.append(f"processes: {e}")

    disks = []
    try:
        partitions = real_device_disks(psutil.disk_partitions(all=False), report_config.pseudo_filesystems)
        for part in partitions:
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError as e:
                errors.append(f"disk {part.mountpoint}: {e}")
                continue
            disks.append(DiskUsage(
                device=part.device,
                mountpoint=part.mountpoint,
                fstype=part.fstype,
                total_bytes=usage.total,
                used_bytes=usage.used,
                percent=usage.percent,
            ))
    except (OSError, psutil.Error) as e:
        errors.append(f"disks: {e}")
    facts["disks"] = tuple(disks)

    try:
        facts["listening_ports"] = _listening_ports(report_config.ports_limit)
    except (OSError, psutil.Error) as e:
        # psutil.AccessDenied on systems that restrict /proc/net access
        errors.append(f"listening ports: {e}")

    for error in errors:
        logger.warning(f"Host facts incomplete: {error}")

    return HostFacts(errors=tuple(errors), **facts)
