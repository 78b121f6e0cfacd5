"""
Unit tests for the summary and HTML renderers.
"""

import pytest

from serversnap.models import (
    DiskUsage,
    HostFacts,
    ProbeStatus,
    ProcessInfo,
    Sample,
    ServiceStatus,
)
from serversnap.reporting import (
    NO_DATA_LABEL,
    NO_SAMPLES_MESSAGE,
    HtmlRenderer,
    ProbeOutcome,
    SummaryRenderer,
    build_figures,
    create_renderer,
    figures_to_html,
    key_counters,
    section_views,
)
from serversnap.storage import ReportAggregator


def _facts():
    return HostFacts(
        hostname="db01",
        os_name="Rocky Linux 9",
        kernel="5.14.0",
        architecture="x86_64",
        cpu_model="Xeon",
        cpu_cores=8,
        memory_total_bytes=16 * 1024 ** 3,
        memory_used_percent=42.0,
        load_average=(0.5, 0.4, 0.3),
        top_cpu=(ProcessInfo(10, "postgres", 12.5, 3.0, "postgres: writer"),),
        top_memory=(ProcessInfo(20, "tomcat", 1.0, 30.0, "java -Xmx4g"),),
        disks=(DiskUsage("/dev/sda1", "/", "xfs", 100 * 1024 ** 3, 50 * 1024 ** 3, 50.0),),
    )


def _build_model(test_utils, temp_dir, samples=(), cancelled=False):
    aggregator = ReportAggregator()
    aggregator.declare("system", "uptime", description="System uptime")
    aggregator.declare("system", "never_ran")
    aggregator.declare("postgresql", "postgresql_total_connections_count",
                       description="Total connections", highlight=True)
    aggregator.declare("logs", "dmesg")
    aggregator.record(test_utils.make_result("uptime", "system", output=b"up 3 days\n"))
    aggregator.record(test_utils.make_result("postgresql_total_connections_count", "postgresql", output=b"17\n"))
    aggregator.record(test_utils.make_result(
        "dmesg", "logs", status=ProbeStatus.FAILURE, output=b"<script>alert(1)</script>\n", detail="exit code 1"
    ))
    aggregator.set_services({
        "postgresql": ServiceStatus("postgresql", True, (987,)),
        "tomcat": ServiceStatus("tomcat", False),
    })
    aggregator.set_facts(_facts())
    for sample in samples:
        aggregator.record_sample(sample)
    return aggregator.snapshot(duration=60, cancelled=cancelled, output_directory=temp_dir)


@pytest.mark.unit
class TestSectionViews:
    """Test cases for the shared report view."""

    def test_declared_probe_without_result(self, test_utils, temp_dir):
        """Test that a declared probe with no result shows NO DATA."""
        model = _build_model(test_utils, temp_dir)

        views = {view.key: view for view in section_views(model)}
        outcomes = {o.probe_name: o for o in views["system"].outcomes}

        assert outcomes["never_ran"].label == NO_DATA_LABEL
        assert outcomes["never_ran"].summary_line == "no result recorded"
        assert outcomes["uptime"].label == "SUCCESS"
        assert outcomes["uptime"].summary_line == "up 3 days"

    def test_failure_summary_line(self, test_utils, temp_dir):
        """Test that a failed probe shows its detail with the first line."""
        model = _build_model(test_utils, temp_dir)

        views = {view.key: view for view in section_views(model)}
        outcome = views["logs"].outcomes[0]

        assert outcome.label == "FAILURE"
        assert outcome.summary_line.startswith("exit code 1")

    def test_start_error_shown_once(self, test_utils):
        """Test that an OS error repeated as the output line is printed once."""
        error = "[Errno 2] No such file or directory: 'fdisk'"
        result = test_utils.make_result(
            "disk_partitions", status=ProbeStatus.FAILURE, output=f"{error}\n".encode(), detail=error
        )

        assert ProbeOutcome("disk_partitions", result).summary_line == error

    def test_key_counters(self, test_utils, temp_dir):
        """Test highlighted probes listed under their service."""
        model = _build_model(test_utils, temp_dir)

        assert key_counters(model, model.services["postgresql"]) == [("Total connections", "17")]
        assert key_counters(model, model.services["tomcat"]) == []


@pytest.mark.unit
class TestSummaryRenderer:
    """Test cases for summary.txt."""

    def test_digest_and_probes(self, test_utils, temp_dir):
        """Test the main blocks of the summary."""
        text = SummaryRenderer().render_text(_build_model(test_utils, temp_dir))

        assert "Server Diagnostic Summary" in text
        assert "Hostname: db01" in text
        assert "CPU: Xeon (8 cores)" in text
        assert "postgresql: RUNNING (PIDs: 987)" in text
        assert "    Total connections: 17" in text
        assert "tomcat: NOT RUNNING (PIDs: -)" in text
        assert "postgres: writer" in text
        assert "/dev/sda1" in text
        assert "[SUCCESS  ] uptime: up 3 days" in text
        assert f"[{NO_DATA_LABEL:<9}] never_ran" in text
        assert f"Report directory: {temp_dir}" in text

    def test_no_samples_placeholder(self, test_utils, temp_dir):
        """Test the placeholder when nothing was sampled."""
        text = SummaryRenderer().render_text(_build_model(test_utils, temp_dir))

        assert NO_SAMPLES_MESSAGE in text

    def test_statistics_table(self, test_utils, temp_dir):
        """Test the per-metric statistics when samples exist."""
        samples = [Sample(1.0, "load.1m", 1.0), Sample(2.0, "load.1m", 3.0)]

        text = SummaryRenderer().render_text(_build_model(test_utils, temp_dir, samples))

        assert NO_SAMPLES_MESSAGE not in text
        line = next(l for l in text.splitlines() if l.startswith("load.1m"))
        assert line.split() == ["load.1m", "2", "2.00", "3.00"]

    def test_cancelled_note(self, test_utils, temp_dir):
        """Test that a partial report says so."""
        text = SummaryRenderer().render_text(_build_model(test_utils, temp_dir, cancelled=True))

        assert "cancelled" in text

    def test_render_writes_file(self, test_utils, temp_dir):
        """Test the written file name."""
        path = SummaryRenderer().render(_build_model(test_utils, temp_dir), temp_dir)

        assert path == temp_dir / "summary.txt"
        assert "uptime" in path.read_text()


@pytest.mark.unit
class TestHtmlRenderer:
    """Test cases for report.html."""

    def test_output_is_escaped(self, test_utils, temp_dir):
        """Test that probe output cannot inject markup."""
        html = HtmlRenderer().render_text(_build_model(test_utils, temp_dir))

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html

    def test_sections_and_placeholders(self, test_utils, temp_dir):
        """Test sections, status labels and the missing-result placeholder."""
        html = HtmlRenderer().render_text(_build_model(test_utils, temp_dir))

        assert "<title>Server Report - db01</title>" in html
        assert "System Information" in html
        assert "PostgreSQL" in html
        assert "No result recorded for this probe" in html
        assert "status-no-data" in html
        assert "System uptime" in html
        assert "Total connections: 17" in html

    def test_no_samples_placeholder(self, test_utils, temp_dir):
        """Test the chart placeholder when nothing was sampled."""
        html = HtmlRenderer().render_text(_build_model(test_utils, temp_dir))

        assert NO_SAMPLES_MESSAGE in html
        assert "plotly" not in html.lower()

    def test_charts_embedded(self, test_utils, temp_dir):
        """Test that sampled metrics become Plotly charts."""
        samples = [Sample(1.0, "load.1m", 1.0), Sample(2.0, "load.1m", 3.0), Sample(2.0, "memory.used_percent", 40.0)]

        html = HtmlRenderer().render_text(_build_model(test_utils, temp_dir, samples))

        assert NO_SAMPLES_MESSAGE not in html
        assert "<h3>load</h3>" in html
        assert "<h3>memory</h3>" in html
        assert "plotly" in html.lower()

    def test_render_writes_file(self, test_utils, temp_dir):
        """Test the written file name."""
        path = HtmlRenderer().render(_build_model(test_utils, temp_dir), temp_dir)

        assert path == temp_dir / "report.html"
        assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


@pytest.mark.unit
class TestCharts:
    """Test cases for the Plotly charts."""

    def test_figures_grouped_by_family(self, test_utils, temp_dir):
        """Test one figure per family and one trace per metric."""
        samples = [
            Sample(1.0, "net.eth0.rx_bytes_per_s", 0.0),
            Sample(1.0, "net.eth0.tx_bytes_per_s", 0.0),
            Sample(6.0, "net.eth0.rx_bytes_per_s", 10.0),
            Sample(1.0, "load.1m", 0.1),
        ]

        figures = build_figures(_build_model(test_utils, temp_dir, samples))

        assert list(figures) == ["net.eth0", "load"]
        assert [trace.name for trace in figures["net.eth0"].data] == [
            "net.eth0.rx_bytes_per_s", "net.eth0.tx_bytes_per_s"
        ]
        assert list(figures["net.eth0"].data[0].y) == [0.0, 10.0]

    def test_plotlyjs_included_once(self, test_utils, temp_dir):
        """Test that only the first fragment carries the plotly.js bundle."""
        samples = [Sample(1.0, "load.1m", 0.1), Sample(1.0, "memory.used_percent", 40.0)]
        figures = build_figures(_build_model(test_utils, temp_dir, samples))

        fragments = figures_to_html(figures, "inline")

        assert len(fragments) == 2
        assert len(fragments[0]["html"]) > 10 * len(fragments[1]["html"])

    def test_no_figures_without_samples(self, test_utils, temp_dir):
        """Test that an empty model yields no charts."""
        assert build_figures(_build_model(test_utils, temp_dir)) == {}


@pytest.mark.unit
class TestRendererFactory:
    """Test cases for create_renderer."""

    def test_known_formats(self):
        """Test both formats."""
        assert isinstance(create_renderer("summary"), SummaryRenderer)
        assert isinstance(create_renderer("html"), HtmlRenderer)

    def test_unsupported_format(self):
        """Test that an unknown format raises ValueError."""
        with pytest.raises(ValueError) as excinfo:
            create_renderer("pdf")

        assert "Unsupported report format" in str(excinfo.value)
