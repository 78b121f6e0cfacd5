"""
Configuration validation utilities.

This module turns the raw dictionaries read from TOML into validated
configuration dataclasses, and merges command-line overrides into the
immutable per-run configuration.
"""

import logging
import time
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from ..models.config import (
    AppConfig,
    CollectorConfig,
    DEFAULT_PSEUDO_FILESYSTEMS,
    ReportConfig,
    RunConfig,
    RunSettings,
    ServiceConfig,
)
from ..validation import (
    ValidationError,
    validate_enum_choice,
    validate_name_list,
    validate_positive_float,
    validate_positive_integer,
    validate_probe_name,
    validate_regex_pattern,
    validate_sampling_window,
)

logger = logging.getLogger(__name__)

REPORT_DIR_PREFIX = "server_report_"
SECTION_KEYS = ("system", "performance", "services", "tomcat", "postgresql", "logs", "network", "packages")
COLLECTOR_METRICS = ("load", "memory", "network")
SERVICE_DETECTORS = ("process", "systemd")
REPORT_FORMATS = ("summary", "html")
TIMESERIES_FORMATS = ("csv", "parquet")
PLOTLYJS_MODES = ("inline", "cdn")
PROBE_KEYS = {
    "name", "section", "command", "argv", "description", "timeout", "sink",
    "requires_service", "requires_path", "for_each_pid", "highlight",
}


def validate_run_settings(run_data: Dict[str, Any]) -> RunSettings:
    """
    Validate and create RunSettings from the `[run]` table.

    Args:
        run_data: Raw run configuration from TOML

    Returns:
        Validated RunSettings instance

    Raises:
        ValidationError: If validation fails
    """
    duration = validate_positive_float(
        run_data.get("duration", 3600),
        min_value=0.0,
        max_value=7 * 24 * 3600.0,  # one week
        field_name="run.duration",
    )
    probe_timeout = validate_positive_float(
        run_data.get("probe_timeout", 60),
        min_value=0.1,
        max_value=24 * 3600.0,
        field_name="run.probe_timeout",
    )

    output_root = run_data.get("output_root", "/tmp")
    if not isinstance(output_root, str) or not output_root.strip():
        raise ValidationError("run.output_root must be a non-empty string", field_name="run.output_root",
                              value=output_root)

    sections = run_data.get("sections")
    if sections is not None:
        sections = validate_name_list(sections, valid_choices=SECTION_KEYS, field_name="run.sections")

    return RunSettings(
        duration=duration,
        output_root=Path(output_root).expanduser(),
        probe_timeout=probe_timeout,
        sections=sections,
    )


def validate_collectors_config(collectors_data: Dict[str, Any]) -> List[CollectorConfig]:
    """
    Validate every `[collectors.<name>]` table.

    Args:
        collectors_data: Mapping of collector name to its raw table

    Returns:
        List of CollectorConfig, in file order

    Raises:
        ValidationError: If any collector is invalid
    """
    if not isinstance(collectors_data, dict):
        raise ValidationError("collectors must be a table", field_name="collectors")

    collectors = []
    for name, data in collectors_data.items():
        prefix = f"collectors.{name}"
        validate_probe_name(name, field_name=prefix)
        if not isinstance(data, dict):
            raise ValidationError(f"{prefix} must be a table", field_name=prefix)

        interval = validate_positive_float(
            data.get("interval", 60),
            min_value=0.01,
            field_name=f"{prefix}.interval",
        )

        metrics = data.get("metrics", [])
        if metrics:
            metrics = validate_name_list(metrics, valid_choices=COLLECTOR_METRICS, field_name=f"{prefix}.metrics")

        commands = data.get("commands", {})
        if not isinstance(commands, dict):
            raise ValidationError(f"{prefix}.commands must be a table", field_name=f"{prefix}.commands")
        for metric_name, command in commands.items():
            if not isinstance(command, str) or not command.strip():
                raise ValidationError(
                    f"{prefix}.commands.{metric_name} must be a non-empty string",
                    field_name=f"{prefix}.commands.{metric_name}",
                    value=command,
                )

        if not metrics and not commands:
            raise ValidationError(f"{prefix} must define at least one metric or command", field_name=prefix)

        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ValidationError(f"{prefix}.enabled must be a boolean", field_name=f"{prefix}.enabled")

        collectors.append(CollectorConfig(
            name=name,
            interval=interval,
            metrics=list(metrics),
            commands=dict(commands),
            enabled=enabled,
        ))

    return collectors


def validate_services_config(services_data: Dict[str, Any]) -> List[ServiceConfig]:
    """
    Validate every `[services.<name>]` table.

    The optional ``variables`` sub-table holds probe template variables (for
    example ``tomcat_home``); every value is kept as a string.

    Raises:
        ValidationError: If any service is invalid
    """
    if not isinstance(services_data, dict):
        raise ValidationError("services must be a table", field_name="services")

    services = []
    for name, data in services_data.items():
        prefix = f"services.{name}"
        validate_probe_name(name, field_name=prefix)
        if not isinstance(data, dict):
            raise ValidationError(f"{prefix} must be a table", field_name=prefix)

        detector = validate_enum_choice(
            data.get("detector", "process"),
            SERVICE_DETECTORS,
            field_name=f"{prefix}.detector",
        )

        pattern = data.get("pattern", "")
        units = data.get("units", [])
        if detector == "process":
            pattern = validate_regex_pattern(pattern or name, field_name=f"{prefix}.pattern")
        else:
            units = validate_name_list(units or [name], field_name=f"{prefix}.units")

        unknown = sorted(set(data) - {"detector", "pattern", "units", "variables"})
        if unknown:
            raise ValidationError(f"{prefix} has unknown keys: {', '.join(unknown)}", field_name=prefix)

        raw_variables = data.get("variables", {})
        if not isinstance(raw_variables, dict):
            raise ValidationError(f"{prefix}.variables must be a table", field_name=f"{prefix}.variables")
        variables = {}
        for key, value in raw_variables.items():
            if not isinstance(value, (str, int, float)) or isinstance(value, bool):
                raise ValidationError(
                    f"{prefix}.variables.{key} must be a string or number",
                    field_name=f"{prefix}.variables.{key}",
                    value=value,
                )
            variables[key] = str(value)

        services.append(ServiceConfig(
            name=name,
            detector=detector,
            pattern=pattern,
            units=list(units),
            variables=variables,
        ))

    return services


def validate_report_config(report_data: Dict[str, Any]) -> ReportConfig:
    """
    Validate the `[report]` table.

    Raises:
        ValidationError: If validation fails
    """
    formats = validate_name_list(
        report_data.get("formats", list(REPORT_FORMATS)),
        valid_choices=REPORT_FORMATS,
        field_name="report.formats",
    )
    top_n = validate_positive_integer(report_data.get("top_n", 5), min_value=1, max_value=100,
                                      field_name="report.top_n")
    ports_limit = validate_positive_integer(report_data.get("ports_limit", 10), min_value=1, max_value=1000,
                                            field_name="report.ports_limit")
    timeseries_format = validate_enum_choice(
        report_data.get("timeseries_format", "csv"),
        TIMESERIES_FORMATS,
        field_name="report.timeseries_format",
        case_sensitive=False,
    )
    plotlyjs = validate_enum_choice(
        report_data.get("plotlyjs", "inline"),
        PLOTLYJS_MODES,
        field_name="report.plotlyjs",
        case_sensitive=False,
    )

    pseudo_filesystems = report_data.get("pseudo_filesystems", DEFAULT_PSEUDO_FILESYSTEMS)
    if not isinstance(pseudo_filesystems, list) or not all(isinstance(fs, str) for fs in pseudo_filesystems):
        raise ValidationError("report.pseudo_filesystems must be a list of strings",
                              field_name="report.pseudo_filesystems")

    return ReportConfig(
        formats=formats,
        top_n=top_n,
        ports_limit=ports_limit,
        timeseries_format=timeseries_format,
        plotlyjs=plotlyjs,
        pseudo_filesystems=list(pseudo_filesystems),
    )


def validate_probe_definitions(probes_data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Check the structure of the probe catalog entries.

    Every entry needs a unique ``name``, a ``section`` from the known section
    keys and exactly one of ``command`` (shell string) or ``argv`` (list).

    Returns:
        The same entries, in file order

    Raises:
        ValidationError: If an entry is malformed
    """
    if not isinstance(probes_data, list):
        raise ValidationError("probes must be an array of tables", field_name="probes")

    names: List[str] = []
    for i, entry in enumerate(probes_data):
        prefix = f"probes[{i}]"
        if not isinstance(entry, dict):
            raise ValidationError(f"{prefix} must be a table", field_name=prefix)

        unknown = sorted(set(entry) - PROBE_KEYS)
        if unknown:
            raise ValidationError(f"{prefix} has unknown keys: {', '.join(unknown)}", field_name=prefix)

        name = entry.get("name", "")
        if entry.get("for_each_pid"):
            if not isinstance(name, str) or "{pid}" not in name:
                raise ValidationError(f"{prefix}.name must contain '{{pid}}' when for_each_pid is set",
                                      field_name=f"{prefix}.name", value=name)
            # {pid} is filled in at expansion time
            validate_probe_name(name.replace("{pid}", "0"), field_name=f"{prefix}.name")
            if name in names:
                raise ValidationError(f"{prefix}.name must be unique, '{name}' already exists",
                                      field_name=f"{prefix}.name", value=name)
        else:
            validate_probe_name(name, existing_names=names, field_name=f"{prefix}.name")
        names.append(name)
        validate_enum_choice(entry.get("section", ""), SECTION_KEYS, field_name=f"{prefix}.section")

        has_command = "command" in entry
        has_argv = "argv" in entry
        if has_command == has_argv:
            raise ValidationError(f"{prefix} ({name}) must define exactly one of 'command' or 'argv'",
                                  field_name=prefix)
        if has_argv and (not isinstance(entry["argv"], list) or not entry["argv"]):
            raise ValidationError(f"{prefix}.argv must be a non-empty list", field_name=f"{prefix}.argv")

        if "timeout" in entry:
            validate_positive_float(entry["timeout"], min_value=0.1, field_name=f"{prefix}.timeout")
        if "sink" in entry:
            validate_probe_name(entry["sink"], field_name=f"{prefix}.sink")

    logger.debug(f"Validated {len(probes_data)} probe definitions")
    return probes_data


def build_run_config(
    app_config: AppConfig,
    overrides: Optional[Mapping[str, Any]] = None,
    service_detectors: Optional[Mapping[str, Any]] = None,
) -> RunConfig:
    """
    Merge command-line overrides into an immutable RunConfig.

    Recognized override keys (``None`` values are ignored): ``duration``,
    ``interval``, ``perf_interval``, ``net_interval``, ``output_dir``,
    ``sections``, ``formats`` and ``timeout``. ``output_dir`` names the exact
    report directory; without it the report goes to
    ``<run.output_root>/server_report_<YYYYmmdd_HHMMSS>``.

    Args:
        app_config: The loaded application configuration
        overrides: Command-line values
        service_detectors: Service name -> detector callable

    Returns:
        A frozen RunConfig

    Raises:
        ValidationError: If an override is invalid
    """
    overrides = {key: value for key, value in (overrides or {}).items() if value is not None}

    duration = app_config.run.duration
    if "duration" in overrides:
        duration = validate_positive_float(overrides["duration"], min_value=0.0, field_name="duration")

    sample_interval = None
    if "interval" in overrides:
        sample_interval = validate_positive_float(overrides["interval"], min_value=0.01, field_name="interval")
        if duration > 0:
            validate_sampling_window(duration, sample_interval, field_name="interval")

    collector_intervals = {
        "performance": overrides.get("perf_interval"),
        "network": overrides.get("net_interval"),
    }
    collectors = []
    for collector in app_config.collectors:
        if not collector.enabled:
            continue
        interval = collector.interval
        override = collector_intervals.get(collector.name)
        if override is not None:
            interval = validate_positive_float(override, min_value=0.01, field_name=f"{collector.name} interval")
        collectors.append(CollectorConfig(
            name=collector.name,
            interval=interval,
            metrics=list(collector.metrics),
            commands=dict(collector.commands),
            enabled=True,
        ))

    sections = app_config.run.sections
    if "sections" in overrides:
        sections = validate_name_list(overrides["sections"], valid_choices=SECTION_KEYS, field_name="sections")

    formats = app_config.report.formats
    if "formats" in overrides:
        formats = validate_name_list(overrides["formats"], valid_choices=REPORT_FORMATS, field_name="formats")

    probe_timeout = app_config.run.probe_timeout
    if "timeout" in overrides:
        probe_timeout = validate_positive_float(overrides["timeout"], min_value=0.1, field_name="timeout")

    if "output_dir" in overrides:
        output_directory = Path(overrides["output_dir"]).expanduser()
    else:
        output_directory = app_config.run.output_root / f"{REPORT_DIR_PREFIX}{time.strftime('%Y%m%d_%H%M%S')}"

    variables: Dict[str, str] = {}
    for service in app_config.services:
        variables.update(service.variables)

    return RunConfig(
        duration=duration,
        output_directory=output_directory,
        sample_interval=sample_interval,
        service_detectors=MappingProxyType(dict(service_detectors or {})),
        probe_timeout=probe_timeout,
        collectors=tuple(collectors),
        sections=tuple(sections) if sections is not None else None,
        formats=tuple(formats),
        report=app_config.report,
        variables=MappingProxyType(variables),
        probes_path=app_config.probes_path,
    )
