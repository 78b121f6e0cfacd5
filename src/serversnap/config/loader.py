"""
Reading the TOML files behind a serversnap configuration.

``config.toml`` holds the run settings and points at the probe catalog
through ``[paths].probes_config``; the catalog itself is an array of
``[[probes]]`` tables. Nothing here validates values, see ``validators``.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List

from ..validation import ErrorSeverity, handle_config_error

logger = logging.getLogger(__name__)


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Read one TOML file.

    Raises:
        FileNotFoundError: If the file does not exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
        OSError: If the file cannot be read
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"{description} not found: {file_path}")

    logger.debug(f"Reading {description}: {file_path}")
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        handle_config_error(
            error=e,
            context=f"reading {description} {file_path}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger,
        )
        raise


def load_main_config(config_path: Path) -> Dict[str, Any]:
    logger.info(f"Loading configuration from: {config_path}")
    return load_toml_file(config_path, "main configuration file")


def resolve_probes_path(main_config_data: Dict[str, Any], config_dir: Path) -> Path:
    """
    Locate the probe catalog named by ``[paths].probes_config``.

    A relative path is taken relative to the directory of ``config.toml``;
    ``~`` is expanded.

    Raises:
        KeyError: If ``probes_config`` is not set
        FileNotFoundError: If the catalog file does not exist
    """
    probes_file = main_config_data.get("paths", {}).get("probes_config")
    if not probes_file:
        raise KeyError("Missing 'probes_config' path in [paths] section of config.toml")

    probes_path = Path(config_dir) / Path(probes_file).expanduser()
    if not probes_path.is_file():
        raise FileNotFoundError(f"probe catalog file not found: {probes_path}")
    return probes_path


def load_probes_config(probes_path: Path) -> List[Dict[str, Any]]:
    """
    Read the raw ``[[probes]]`` entries of a catalog, in file order.

    A catalog without entries is allowed; the run then only samples.
    """
    probes = load_toml_file(probes_path, "probe catalog").get("probes", [])
    if not probes:
        logger.warning(f"Probe catalog {probes_path} defines no probes")
    else:
        logger.info(f"Loaded {len(probes)} probe definitions from {probes_path}")
    return probes
