"""
Pytest configuration and shared fixtures for the serversnap test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the serversnap project.
"""

import shutil
import sys
import tempfile
import time
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "e2e: mark test as an end-to-end test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_data(temp_dir) -> Dict[str, Any]:
    """Sample main configuration data for testing."""
    return {
        "paths": {"probes_config": "probes.toml"},
        "run": {
            "duration": 120,
            "output_root": str(temp_dir / "reports"),
            "probe_timeout": 30,
        },
        "collectors": {
            "performance": {"interval": 60, "metrics": ["load", "memory"]},
            "network": {"interval": 5, "metrics": ["network"]},
        },
        "services": {
            "tomcat": {
                "detector": "process",
                "pattern": "tomcat",
                "variables": {"tomcat_home": "/opt/tomcat"},
            },
            "postgresql": {
                "detector": "systemd",
                "units": ["postgresql"],
                "variables": {"postgres_user": "postgres"},
            },
        },
        "report": {
            "formats": ["summary", "html"],
            "top_n": 5,
            "ports_limit": 10,
        },
    }


@pytest.fixture
def sample_probes_data() -> List[Dict[str, Any]]:
    """Sample probe catalog entries for testing."""
    return [
        {"name": "uptime", "section": "system", "command": "uptime"},
        {"name": "kernel", "section": "system", "argv": ["uname", "-r"], "description": "Kernel release"},
        {
            "name": "tomcat_heap_{pid}",
            "section": "tomcat",
            "argv": ["jmap", "-heap", "{pid}"],
            "for_each_pid": "tomcat",
        },
        {
            "name": "postgresql_total_connections_count",
            "section": "postgresql",
            "argv": ["sudo", "-u", "{postgres_user}", "psql", "-t", "-A", "-c", "select count(*) from pg_stat_activity"],
            "requires_service": "postgresql",
            "highlight": True,
            "description": "Total connections",
        },
        {"name": "routes", "section": "network", "command": "ip route"},
    ]


@pytest.fixture
def config_files(temp_dir, sample_config_data, sample_probes_data):
    """Create temporary configuration files for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump(sample_config_data, f)

    probes_file = temp_dir / "probes.toml"
    with open(probes_file, "w") as f:
        toml.dump({"probes": sample_probes_data}, f)

    return {
        "config": config_file,
        "probes": probes_file,
        "dir": temp_dir,
    }


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    def make_result(probe_name: str, section: str = "system", status=None, output: bytes = b"", detail: str = ""):
        """Create a ProbeResult without running anything."""
        from serversnap.models import ProbeResult, ProbeStatus

        now = time.time()
        return ProbeResult(
            probe_name=probe_name,
            section=section,
            started_at=now,
            finished_at=now + 0.1,
            status=status or ProbeStatus.SUCCESS,
            output=output,
            detail=detail,
        )

    @staticmethod
    def make_run_config(output_dir: Path, **kwargs):
        """Create a RunConfig with test-friendly defaults."""
        from serversnap.models import RunConfig

        kwargs.setdefault("duration", 0)
        kwargs.setdefault("probe_timeout", 10.0)
        if "service_detectors" in kwargs:
            kwargs["service_detectors"] = MappingProxyType(dict(kwargs["service_detectors"]))
        return RunConfig(output_directory=Path(output_dir), **kwargs)


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    yield  # Run the test

    from serversnap.config import clear_config_cache, set_config_path

    clear_config_cache()
    # Always reset to the packaged config path
    set_config_path(Path(__file__).parent.parent / "src" / "serversnap" / "conf" / "config.toml")
