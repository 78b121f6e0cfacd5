"""
Run orchestration.

The Orchestrator drives one diagnostic run end to end: it creates the report
directory, detects services, registers and executes the probes while the
sampled collectors run concurrently, then freezes the aggregate and renders
every requested report format.
"""

import asyncio
import dataclasses
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..collectors import SampledCollector, create_collector
from ..models.config import RunConfig
from ..models.probe import Probe, ProbeResult, ProbeStatus
from ..models.report import ReportModel, ServiceStatus
from ..models.runtime import RunOutcome, RunPaths
from ..probes import SectionRegistry, build_registry, load_catalog
from ..reporting import create_renderer
from ..storage import ReportAggregator, write_timeseries
from ..system import CommandRunner, collect_host_facts, detect_services, write_sink
from ..validation import (
    CollectorStartError,
    DirectoryCreationError,
    ErrorSeverity,
    ProbeFailure,
    ProbeTimeout,
    RenderError,
    ValidationError,
    handle_error,
)
from .log_manager import LogManager

logger = logging.getLogger(__name__)

CANCELLED_REASON = "run cancelled"


class Orchestrator:
    """
    Coordinates probes, collectors, aggregation and rendering for one run.

    Probes execute one at a time in registration order; each configured
    collector runs as its own task on the same event loop. A shutdown request
    stops both: remaining probes are recorded as skipped, the running one is
    terminated, collectors stop before their next tick, and a partial report
    is still rendered.
    """

    def __init__(
        self,
        run_config: RunConfig,
        registry: Optional[SectionRegistry] = None,
        definitions: Optional[List[Dict[str, Any]]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            run_config: Immutable settings for this run
            registry: A ready probe registry; when given, ``definitions`` and
                the configured catalog are ignored
            definitions: Validated catalog entries; loaded from
                ``run_config.probes_path`` when neither this nor ``registry``
                is given
        """
        self.run_config = run_config
        self.registry = registry
        self.definitions = definitions
        self.paths = RunPaths.for_directory(run_config.output_directory)
        self.log_manager = LogManager()
        self.aggregator: Optional[ReportAggregator] = None
        self.cancel_event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = False

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def request_shutdown(self) -> None:
        """
        Ask the run to stop as soon as possible.

        Safe to call from a signal handler or another thread.
        """
        logger.info("Shutdown requested for the current run.")
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.cancel_event.set)
        else:
            self.cancel_event.set()

    def run_sync(self) -> RunOutcome:
        """
        Run in a fresh event loop.

        Raises:
            RuntimeError: If called from inside a running event loop
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError("Cannot run synchronously from within an event loop; await run() instead")

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(self.run())
        finally:
            loop.close()
            asyncio.set_event_loop(None)

    async def run(self) -> RunOutcome:
        """
        Execute the whole run.

        Returns:
            The outcome with the rendered report paths and the frozen model

        Raises:
            RuntimeError: If this orchestrator has already been run
            DirectoryCreationError: If the report directory cannot be created
            CollectorStartError: If collectors were configured and none started
            RenderError: If every requested report format failed to render
        """
        if self._started:
            raise RuntimeError("Orchestrator has already been run")
        self._started = True
        self._loop = asyncio.get_running_loop()

        started_at = time.time()
        self._create_output_directory()
        try:
            self.log_manager.open_run_log(self.paths.run_log_file)
        except OSError as e:
            handle_error(e, "opening the run log", severity=ErrorSeverity.WARNING, reraise=False, logger=logger)

        try:
            return await self._run(started_at)
        finally:
            self.log_manager.close_run_log()
            self._loop = None

    def _create_output_directory(self) -> None:
        output_dir = self.paths.output_dir
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(output_dir, str(e)) from e
        if not output_dir.is_dir():
            raise DirectoryCreationError(output_dir, "not a directory")
        logger.info(f"Report directory: {output_dir}")

    async def _run(self, started_at: float) -> RunOutcome:
        loop = asyncio.get_running_loop()
        config = self.run_config
        aggregator = ReportAggregator(started_at=started_at)
        self.aggregator = aggregator
        runner = CommandRunner(cancel_event=self.cancel_event)

        logger.info(
            f"Starting run: duration {config.duration:g}s, probe timeout {config.probe_timeout:g}s, "
            f"formats {', '.join(config.formats)}"
        )

        services = await loop.run_in_executor(None, detect_services, config.service_detectors)
        for status in services.values():
            pids = ", ".join(str(pid) for pid in status.pids) or "-"
            logger.info(f"Service {status.name}: {status.label} (PIDs: {pids})")
        aggregator.set_services(services)

        registry = self._build_registry(services)
        for section, probe in registry:
            aggregator.declare(section, probe.name, probe.description, probe.highlight)

        collectors = self._start_collectors(runner)
        collector_tasks = [
            asyncio.create_task(self._drive_collector(collector, aggregator), name=f"collector-{collector.name}")
            for collector in collectors
        ]

        try:
            await self._run_probes(registry, runner, aggregator)
            if collector_tasks:
                logger.info("All probes finished; waiting for collectors to complete")
                await asyncio.gather(*collector_tasks)
        except asyncio.CancelledError:
            self.cancel_event.set()
            for task in collector_tasks:
                task.cancel()
            await asyncio.gather(*collector_tasks, return_exceptions=True)
            raise

        facts = await loop.run_in_executor(None, collect_host_facts, config.report)
        aggregator.set_facts(facts)

        finished_at = time.time()
        model = aggregator.snapshot(
            finished_at=finished_at,
            duration=finished_at - started_at,
            cancelled=self.cancelled,
            output_directory=self.paths.output_dir,
        )

        self._write_timeseries(model)
        outcome = self._render(model)
        if outcome.cancelled:
            logger.warning(f"Run cancelled; partial report written to {self.paths.output_dir}")
        else:
            logger.info(f"Run complete; report written to {self.paths.output_dir}")
        return outcome

    def _build_registry(self, services: Dict[str, ServiceStatus]) -> SectionRegistry:
        config = self.run_config
        registry = self.registry
        if registry is None:
            definitions = self.definitions
            if definitions is None:
                if config.probes_path is None:
                    raise ValidationError("No probe catalog configured", field_name="probes_path")
                definitions = load_catalog(config.probes_path)
            registry = build_registry(definitions, services, config.variables)

        if config.sections is not None:
            unknown = [key for key in config.sections if key not in registry.sections()]
            if unknown:
                logger.warning(f"Requested sections with no probes: {', '.join(unknown)}")
            registry = registry.filter(config.sections)
        logger.info(f"{len(registry)} probes registered in sections: {', '.join(registry.sections()) or 'none'}")
        return registry

    def _start_collectors(self, runner: CommandRunner) -> List[SampledCollector]:
        """
        Create and prepare every configured collector.

        Raises:
            CollectorStartError: If collectors were configured and none started
        """
        config = self.run_config
        started: List[SampledCollector] = []
        for collector_config in config.collectors:
            try:
                collector = create_collector(collector_config, config, runner)
                collector.prepare()
            except (CollectorStartError, ValueError) as e:
                handle_error(
                    e, f"starting collector '{collector_config.name}'",
                    severity=ErrorSeverity.WARNING, reraise=False, logger=logger,
                )
                continue
            if collector.tick_count == 0 and config.duration > 0:
                logger.warning(
                    f"Collector '{collector.name}' interval {collector.interval:g}s exceeds the "
                    f"duration {config.duration:g}s; it will produce no samples"
                )
            started.append(collector)

        if config.collectors and not started:
            raise CollectorStartError("None of the configured collectors could be started")
        return started

    async def _drive_collector(self, collector: SampledCollector, aggregator: ReportAggregator) -> None:
        async for batch in collector.run(self.cancel_event):
            try:
                aggregator.record_batch(batch)
            except ValueError as e:
                # wall clock stepped backwards; the batch would break series order
                logger.warning(f"Collector '{collector.name}': dropped tick {batch.tick}: {e}")

    async def _run_probes(
        self, registry: SectionRegistry, runner: CommandRunner, aggregator: ReportAggregator
    ) -> None:
        total = len(registry)
        for index, (section, probe) in enumerate(registry, start=1):
            if self.cancelled:
                aggregator.record(self._skip(probe, CANCELLED_REASON, time.time()))
                continue
            logger.info(f"[{index}/{total}] {section}: {probe.name}")
            result = await self._execute_probe(probe, runner)
            aggregator.record(result)
            error = result.as_error()
            if isinstance(error, (ProbeFailure, ProbeTimeout)):
                # recorded in the report; the run goes on
                handle_error(error, f"section '{section}'", severity=ErrorSeverity.WARNING,
                             reraise=False, logger=logger)

        skipped = [name for _, name in aggregator.missing_results()]
        if skipped:
            logger.warning(f"Probes without a result: {', '.join(skipped)}")

    async def _execute_probe(self, probe: Probe, runner: CommandRunner) -> ProbeResult:
        now = time.time()
        try:
            should_run = probe.should_run()
        except Exception as e:
            logger.warning(f"[{probe.name}] precondition check failed: {e}")
            return ProbeResult(
                probe_name=probe.name, section=probe.section, started_at=now, finished_at=time.time(),
                status=ProbeStatus.FAILURE, detail=f"precondition error: {e}",
            )
        if not should_run:
            reason = probe.precondition_label or "precondition not met"
            logger.info(f"[{probe.name}] skipped: {reason}")
            return self._skip(probe, reason, now)

        try:
            command = probe.resolve_command()
        except ValidationError as e:
            logger.error(f"[{probe.name}] invalid command: {e}")
            return ProbeResult(
                probe_name=probe.name, section=probe.section, started_at=now, finished_at=time.time(),
                status=ProbeStatus.FAILURE, detail=str(e),
            )

        timeout = probe.timeout or self.run_config.probe_timeout
        return await runner.execute(
            command,
            timeout=timeout,
            sink=self.paths.probe_sink(probe.output_sink),
            probe_name=probe.name,
            section=probe.section,
        )

    def _skip(self, probe: Probe, reason: str, at: float) -> ProbeResult:
        """A skipped result whose output file carries the reason."""
        result = ProbeResult.skipped(probe, reason, at)
        sink = self.paths.probe_sink(probe.output_sink)
        sink_path = write_sink(sink, f"SKIPPED: {reason}\n".encode(), probe.name)
        return dataclasses.replace(result, sink_path=sink_path)

    def _write_timeseries(self, model: ReportModel) -> Dict[str, Path]:
        if not model.has_samples:
            logger.info("No sampled data collected; no time series written")
            return {}
        try:
            return write_timeseries(
                model, self.paths.timeseries_dir, format_type=self.run_config.report.timeseries_format
            )
        except Exception as e:
            handle_error(e, "writing time series", severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
            return {}

    def _render(self, model: ReportModel) -> RunOutcome:
        """
        Render every requested format; one failing format does not stop the others.

        Raises:
            RenderError: If every format failed
        """
        outcome = RunOutcome(output_directory=self.paths.output_dir, model=model, cancelled=model.cancelled)
        for format_name in self.run_config.formats:
            try:
                renderer = create_renderer(format_name, self.run_config.report)
                outcome.report_paths[format_name] = renderer.render(model, self.paths.output_dir)
            except Exception as e:
                handle_error(
                    e, f"rendering the {format_name} report",
                    severity=ErrorSeverity.ERROR, reraise=False, logger=logger,
                )
                outcome.render_errors[format_name] = str(e)

        if self.run_config.formats and not outcome.report_paths:
            failed = "; ".join(f"{name}: {error}" for name, error in outcome.render_errors.items())
            raise RenderError("all", f"every report format failed ({failed})")
        return outcome
