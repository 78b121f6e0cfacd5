"""
Configuration management for the serversnap package.

This module provides a clean interface for loading, validating, and accessing
configuration data from TOML files with singleton pattern management.
"""

# Main configuration interface
from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import (
    load_main_config,
    load_probes_config,
    load_toml_file,
    resolve_probes_path,
)
from .validators import (
    REPORT_FORMATS,
    SECTION_KEYS,
    build_run_config,
    validate_collectors_config,
    validate_probe_definitions,
    validate_report_config,
    validate_run_settings,
    validate_services_config,
)

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    "build_run_config",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "load_probes_config",
    "resolve_probes_path",
    "validate_run_settings",
    "validate_collectors_config",
    "validate_services_config",
    "validate_report_config",
    "validate_probe_definitions",
    "SECTION_KEYS",
    "REPORT_FORMATS",
]
