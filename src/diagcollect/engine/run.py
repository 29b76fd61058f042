"""Collection run orchestrator.

A run moves through a fixed, linear sequence of states::

    INITIALIZING -> RUNNING -> ARCHIVAL_OPTIONAL -> COMPLETED

Only INITIALIZING may abort the process: without privilege or a writable
output root nothing downstream is possible. From RUNNING on, every step goes
through the StepRunner or the ChannelFallbackResolver, so a failing step is
logged and recorded and the next step starts regardless.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import click

from diagcollect.audit.activity_log import ActivityLog
from diagcollect.audit.helpers import generate_run_id
from diagcollect.audit.markers import ARCHIVE_OPERATION, REPORT_OPERATION
from diagcollect.audit.summary import SummaryWriter
from diagcollect.collect.fallback import ChannelFallbackResolver
from diagcollect.collect.report_filter import extract_report_file, locate_report
from diagcollect.collect.step_runner import ActionResult, StepRunner
from diagcollect.engine.config import CollectionConfig, CollectionResult, RunState
from diagcollect.engine.paths import create_log_root, resolve_base_dir
from diagcollect.engine.plans import SYSTEM_DRIVE_PLACEHOLDER, Family, StepSpec, get_family
from diagcollect.errors import InsufficientPrivilegeError, OutputRootError, StepError
from diagcollect.models.outcomes import FailureReason, StepKind, StepOutcome
from diagcollect.tools import Toolset, default_toolset

__all__ = ["ACTIVITY_LOG_NAME", "CollectionRun", "run_collection"]

ACTIVITY_LOG_NAME = "CollectionLog.txt"

Clock = Callable[[], datetime]
Echo = Callable[[str], Any]


def _system_drive() -> str:
    return os.environ.get("SystemDrive", "C:")


class CollectionRun:
    """One execution of a family's collection plan.

    Construct with :meth:`start`, then call :meth:`execute` once.

    Attributes
    ----------
    config : CollectionConfig
        Run configuration.
    family : Family
        Family whose plan is executed.
    toolset : Toolset
        External collaborators.
    log_root : Path
        Unique output directory of this run.
    started_at : datetime
        Run start time; also keys the directory name.
    log : ActivityLog
        Activity log inside ``log_root``.
    outcomes : list[StepOutcome]
        Concluded steps in invocation order.
    state : RunState
        Current lifecycle state.
    """

    def __init__(
        self,
        config: CollectionConfig,
        family: Family,
        toolset: Toolset,
        log_root: Path,
        started_at: datetime,
        log: ActivityLog,
    ) -> None:
        self.config = config
        self.family = family
        self.toolset = toolset
        self.log_root = log_root
        self.started_at = started_at
        self.log = log
        self.run_id = generate_run_id()
        self.outcomes: list[StepOutcome] = []
        self.state = RunState.INITIALIZING
        self.archive_path: Path | None = None
        self._runner = StepRunner(log)
        self._resolver = ChannelFallbackResolver(
            log,
            probe=toolset.event_logs.channel_exists,
            export=toolset.event_logs.export,
        )
        self._summary = SummaryWriter(
            run_id=self.run_id,
            family=family.key,
            log_root=log_root,
            parameters=config.to_dict(),
            started_at=started_at,
        )

    @classmethod
    def start(
        cls,
        config: CollectionConfig,
        toolset: Toolset | None = None,
        clock: Clock | None = None,
        echo: Echo | None = click.echo,
    ) -> "CollectionRun":
        """Initialize a run: privilege check, output root, activity log.

        Parameters
        ----------
        config : CollectionConfig
            Run configuration.
        toolset : Toolset | None, optional
            Collaborators; the platform toolset if None.
        clock : Clock | None, optional
            Source of the start time, ``datetime.now`` if None.
        echo : Echo | None, optional
            Console sink for mirrored log lines.

        Returns
        -------
        CollectionRun
            Run ready to execute.

        Raises
        ------
        InsufficientPrivilegeError
            If privilege is required and missing. Raised before any I/O.
        OutputRootError
            If the output root cannot be created or the log opened.
        """
        family = get_family(config.family)
        toolset = toolset or default_toolset()

        if config.check_privilege and not toolset.privilege.is_elevated():
            raise InsufficientPrivilegeError(
                "Administrative privilege is required to collect "
                f"{family.title} diagnostics. Re-run from an elevated prompt."
            )

        started_at = (clock or datetime.now)()
        base_dir = resolve_base_dir(config.output_path, config.use_temp)
        log_root = create_log_root(base_dir, family.dir_prefix, started_at)

        try:
            log = ActivityLog(log_root / ACTIVITY_LOG_NAME, echo=echo)
        except OSError as e:
            raise OutputRootError(f"Cannot open activity log in {log_root}: {e}") from e

        run = cls(config, family, toolset, log_root, started_at, log)
        log.info(f"{family.title} diagnostic collection started; run_id='{run.run_id}'")
        log.info(f"Output directory: '{log_root}'")
        return run

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def execute(self) -> CollectionResult:
        """Run every step, the optional phases, and complete the run.

        Returns
        -------
        CollectionResult
            Final result; COMPLETED even if every step failed.
        """
        start = time.perf_counter()
        summary_path: Path | None = None

        try:
            self.state = RunState.RUNNING
            for spec in self.family.steps:
                self._record(self.run_step(spec))

            if self.config.mdm:
                self._record(self.run_report_extraction())

            self.state = RunState.ARCHIVAL_OPTIONAL
            if self.config.archive:
                outcome = self.run_archive()
                self._record(outcome)
                if outcome.succeeded:
                    self.archive_path = outcome.output_path

            self.state = RunState.COMPLETED
            succeeded = sum(1 for o in self.outcomes if o.succeeded)
            self.log.info(
                f"Collection complete: {succeeded}/{len(self.outcomes)} steps succeeded. "
                f"Output directory: '{self.log_root}'"
            )

            try:
                summary_path = self._summary.finish(
                    state=str(self.state),
                    duration_seconds=time.perf_counter() - start,
                    archive_path=self.archive_path,
                )
            except OSError as e:
                self.log.error(f"Could not write run summary: {e}")
        finally:
            self.log.close()

        return CollectionResult(
            log_root=self.log_root,
            state=self.state,
            log_path=self.log.log_path,
            outcomes=list(self.outcomes),
            archive_path=self.archive_path,
            summary_path=summary_path,
        )

    def _record(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)
        self._summary.add_outcome(outcome)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def run_step(self, spec: StepSpec) -> StepOutcome:
        """Run one declared step behind its error boundary."""
        output_path = self.log_root / spec.output_name

        if spec.kind is StepKind.CHANNEL_EXPORT:
            return self._resolver.resolve_and_export(spec.name, spec.channels, output_path)

        if spec.kind is StepKind.FILE_QUERY:
            action = self._query_action(spec, output_path)
        else:
            action = self._registry_action(spec, output_path)

        return self._runner.run(spec.name, spec.kind, action, output_path=output_path)

    def _query_action(self, spec: StepSpec, output_path: Path) -> Callable[[], ActionResult]:
        argv = [
            _system_drive() if part == SYSTEM_DRIVE_PLACEHOLDER else part for part in spec.command
        ]

        def action() -> ActionResult:
            result = self.toolset.commands.run(argv)
            output_path.write_text(result.stdout, encoding="utf-8")
            return ActionResult(
                output_path=output_path,
                exit_code=result.exit_code,
                source=" ".join(argv),
            )

        return action

    def _registry_action(self, spec: StepSpec, output_path: Path) -> Callable[[], ActionResult]:
        key = spec.registry_key or ""

        def action() -> ActionResult:
            exit_code = self.toolset.registry.export(key, output_path)
            return ActionResult(output_path=output_path, exit_code=exit_code, source=key)

        return action

    def run_report_extraction(self) -> StepOutcome:
        """Generate the nested MDM report and extract the family's nodes."""
        report = self.family.report
        if report is None:
            raise ValueError(f"Family '{self.family.key}' has no report extraction")

        report_dir = self.log_root / report.subdirectory
        output_path = self.log_root / report.output_name

        def action() -> ActionResult:
            report_dir.mkdir(exist_ok=True)
            exit_code = self.toolset.reports.generate(report_dir)
            if exit_code != 0:
                self.log.warn(f"MDM report generator exited with {exit_code}")

            source = locate_report(report_dir, report.report_filename)
            if source is None:
                raise StepError(
                    f"{report.report_filename} not found under {report_dir}",
                    reason=FailureReason.SOURCE_DOCUMENT_NOT_FOUND,
                    exit_code=exit_code,
                    file=report_dir / report.report_filename,
                )

            result = extract_report_file(
                source,
                output_path,
                report.node_tag,
                report.selector_field,
                report.selector,
                root_tag=report.root_tag,
            )
            if result.reason is not None:
                raise StepError(
                    result.error or f"{result.reason} in {source.name}",
                    reason=result.reason,
                    file=source if result.reason is FailureReason.PARSE_EXCEPTION else output_path,
                )

            return ActionResult(output_path=output_path, source=str(source), count=result.count)

        return self._runner.run(
            REPORT_OPERATION,
            StepKind.REPORT_EXTRACTION,
            action,
            output_path=output_path,
        )

    def run_archive(self) -> StepOutcome:
        """Zip the output root, log included, to a sibling archive."""
        dest = self.log_root.with_name(f"{self.log_root.name}.zip")

        def action() -> ActionResult:
            self.log.flush()
            if not self.toolset.archiver.archive(self.log_root, dest):
                raise StepError(
                    f"Archiver reported failure for {dest}",
                    reason=FailureReason.ARCHIVE_FAILED,
                    file=dest,
                )
            return ActionResult(output_path=dest)

        return self._runner.run(ARCHIVE_OPERATION, StepKind.ARCHIVE, action, output_path=dest)


def run_collection(
    config: CollectionConfig,
    toolset: Toolset | None = None,
    clock: Clock | None = None,
    echo: Echo | None = click.echo,
) -> CollectionResult:
    """Run a complete collection.

    Parameters
    ----------
    config : CollectionConfig
        Run configuration.
    toolset : Toolset | None, optional
        Collaborators; the platform toolset if None.
    clock : Clock | None, optional
        Source of the start time.
    echo : Echo | None, optional
        Console sink for mirrored log lines.

    Returns
    -------
    CollectionResult
        Result of the completed run.

    Raises
    ------
    PreconditionFailure
        If the run cannot start.

    Examples
    --------
        >>> from diagcollect.engine import CollectionConfig, run_collection
        >>> result = run_collection(CollectionConfig(family="bitlocker", archive=True))
        >>> print(result.log_root, len(result.failed))
    """
    return CollectionRun.start(config, toolset=toolset, clock=clock, echo=echo).execute()
