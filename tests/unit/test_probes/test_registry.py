"""
Unit tests for the section registry and the catalog expansion into probes.
"""

import pytest

from serversnap.models import CommandSpec, Probe, ServiceStatus
from serversnap.probes import SectionRegistry, build_registry, expand_entry, section_title
from serversnap.validation import ValidationError


def _probe(name, **kwargs):
    return Probe(name=name, command=CommandSpec.from_shell("true"), **kwargs)


@pytest.mark.unit
class TestSectionRegistry:
    """Test cases for SectionRegistry."""

    def test_registration_order(self):
        """Test that iteration follows registration order across sections."""
        registry = SectionRegistry()
        registry.register("system", _probe("uptime"))
        registry.register("network", _probe("routes"))
        registry.register("system", _probe("kernel"))

        assert [probe.name for _, probe in registry] == ["uptime", "routes", "kernel"]
        assert registry.sections() == ["system", "network"]
        assert [p.name for p in registry.probes("system")] == ["uptime", "kernel"]
        assert len(registry) == 3
        assert "routes" in registry

    def test_section_is_assigned(self):
        """Test that the registered probe carries its section."""
        registry = SectionRegistry()

        probe = registry.register("logs", _probe("dmesg"))

        assert probe.section == "logs"

    def test_duplicate_name_rejected(self):
        """Test that probe names are unique across sections."""
        registry = SectionRegistry()
        registry.register("system", _probe("uptime"))

        with pytest.raises(ValidationError):
            registry.register("performance", _probe("uptime"))

    def test_duplicate_sink_rejected(self):
        """Test that two probes cannot write the same output file."""
        registry = SectionRegistry()
        registry.register("system", _probe("a", output_sink="shared"))

        with pytest.raises(ValidationError) as exc_info:
            registry.register("system", _probe("b", output_sink="shared"))

        assert "shared" in str(exc_info.value)

    def test_empty_section_rejected(self):
        """Test that a section name is required."""
        with pytest.raises(ValidationError):
            SectionRegistry().register("", _probe("x"))

    def test_filter_keeps_order(self):
        """Test filtering to a subset of sections."""
        registry = SectionRegistry()
        registry.register("system", _probe("uptime"))
        registry.register("network", _probe("routes"))
        registry.register("logs", _probe("dmesg"))
        registry.register("system", _probe("kernel"))

        filtered = registry.filter(["system", "logs"])

        assert [probe.name for _, probe in filtered] == ["uptime", "dmesg", "kernel"]
        assert len(registry) == 4

    def test_section_titles(self):
        """Test the display titles."""
        assert section_title("postgresql") == "PostgreSQL"
        assert section_title("custom") == "custom"


@pytest.mark.unit
class TestCatalogExpansion:
    """Test cases for turning catalog entries into probes."""

    def test_build_registry_canonical_order(self, sample_probes_data):
        """Test that sections follow the canonical order, file order within."""
        registry = build_registry(sample_probes_data)

        assert registry.sections() == ["system", "tomcat", "postgresql", "network"]
        assert [p.name for p in registry.probes("system")] == ["uptime", "kernel"]

    def test_description_and_highlight(self, sample_probes_data):
        """Test that catalog metadata reaches the probes."""
        registry = build_registry(sample_probes_data)
        probes = {probe.name: probe for _, probe in registry}

        assert probes["kernel"].description
        assert probes["postgresql_total_connections_count"].highlight
        assert not probes["uptime"].highlight

    def test_requires_service_precondition(self):
        """Test the service gate follows the detected state."""
        entry = {"name": "pg_version", "section": "postgresql", "command": "psql -V", "requires_service": "postgresql"}

        down = expand_entry(entry, {"postgresql": ServiceStatus("postgresql", False)}, {})[0]
        up = expand_entry(entry, {"postgresql": ServiceStatus("postgresql", True, (10,))}, {})[0]

        assert not down.should_run()
        assert down.precondition_label == "service 'postgresql' running"
        assert up.should_run()

    def test_requires_path_precondition(self, temp_dir):
        """Test the path gate with template variables."""
        entry = {"name": "server_xml", "section": "tomcat", "command": "cat {tomcat_home}/server.xml",
                 "requires_path": "{tomcat_home}/server.xml"}

        probe = expand_entry(entry, {}, {"tomcat_home": str(temp_dir)})[0]
        assert not probe.should_run()

        (temp_dir / "server.xml").write_text("<Server/>")
        assert probe.should_run()

    def test_per_pid_expansion(self, sample_probes_data):
        """Test one probe per PID with the PID substituted."""
        entry = next(e for e in sample_probes_data if e.get("for_each_pid"))
        services = {"tomcat": ServiceStatus("tomcat", True, (101, 202))}

        probes = expand_entry(entry, services, {})

        assert [p.name for p in probes] == ["tomcat_heap_101", "tomcat_heap_202"]
        assert "101" in probes[0].resolve_command().display()
        assert "202" in probes[1].resolve_command().display()

    def test_per_pid_without_pids(self, sample_probes_data):
        """Test that a service without processes yields one skipped probe."""
        entry = next(e for e in sample_probes_data if e.get("for_each_pid"))

        probes = expand_entry(entry, {"tomcat": ServiceStatus("tomcat", False)}, {})

        assert len(probes) == 1
        assert probes[0].name == "tomcat_heap"
        assert not probes[0].should_run()
        assert probes[0].precondition_label == "no tomcat processes found"

    def test_variables_substituted(self):
        """Test that service variables reach the command."""
        entry = {"name": "pg_settings", "section": "postgresql", "argv": ["psql", "-U", "{postgres_user}"]}

        probe = expand_entry(entry, {}, {"postgres_user": "admin"})[0]

        assert probe.resolve_command().to_exec_args() == ("psql", "-U", "admin")
