"""Run summary writer.

Builds ``run.json`` from the finalised step outcomes and writes it
atomically so triage tooling never reads a half-written summary.
"""

import json
import os
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from diagcollect.audit.helpers import (
    get_dependency_versions,
    get_package_version,
    get_platform_info,
    get_python_version,
)
from diagcollect.audit.models import EnvironmentInfo, RunSummary, StepRecord, SummaryCounts
from diagcollect.collect.validator import validate_artifact
from diagcollect.models.outcomes import StepOutcome, StepStatus
from diagcollect.utils import calculate_file_sha256, get_iso_timestamp

__all__ = ["SUMMARY_FILENAME", "SUMMARY_VERSION", "SummaryWriter"]

SUMMARY_FILENAME = "run.json"
SUMMARY_VERSION = "1.0.0"


def _record(outcome: StepOutcome) -> StepRecord:
    record = StepRecord(outcome=outcome.to_dict())
    if outcome.status is StepStatus.SUCCESS and outcome.output_path is not None:
        check = validate_artifact(outcome.output_path, 1)
        if check.exists:
            # A locked or vanished artifact leaves the digest unset.
            try:
                record.sha256 = calculate_file_sha256(outcome.output_path)
            except OSError:
                return record
            record.bytes = check.size_bytes
    return record


class SummaryWriter:
    """Builds and atomically writes a run summary.

    Attributes
    ----------
    summary : RunSummary
        Summary being built.
    summary_path : Path
        Final location of ``run.json``.
    """

    def __init__(
        self,
        run_id: str,
        family: str,
        log_root: Path,
        parameters: dict[str, Any],
        started_at: datetime | None = None,
    ) -> None:
        """Initialize summary writer.

        Parameters
        ----------
        run_id : str
            Unique run identifier.
        family : str
            Artifact family collected.
        log_root : Path
            Run output directory; the summary is written inside it.
        parameters : dict[str, Any]
            Configuration snapshot.
        started_at : datetime | None, optional
            Run start time, now if None.
        """
        self.summary_path = log_root / SUMMARY_FILENAME
        self.summary = RunSummary(
            summary_version=SUMMARY_VERSION,
            run_id=run_id,
            family=family,
            log_root=str(log_root),
            started_at=get_iso_timestamp(started_at),
            state="initializing",
            environment=EnvironmentInfo(
                python_version=get_python_version(),
                platform=get_platform_info(),
                package_version=get_package_version(),
                dependencies=get_dependency_versions(["click"]),
            ),
            parameters=parameters,
        )

    def add_outcome(self, outcome: StepOutcome) -> None:
        """Record a concluded step and update the counts."""
        self.summary.steps.append(_record(outcome))
        if outcome.status is StepStatus.SUCCESS:
            self.summary.counts.success += 1
        else:
            self.summary.counts.failed += 1

    def finish(
        self,
        state: str,
        duration_seconds: float | None = None,
        archive_path: Path | None = None,
    ) -> Path:
        """Finalize the summary and write it atomically.

        Parameters
        ----------
        state : str
            Final orchestrator state.
        duration_seconds : float | None, optional
            Total run duration.
        archive_path : Path | None, optional
            Archive produced by the run.

        Returns
        -------
        Path
            Path of the written summary.
        """
        self.summary.state = state
        self.summary.finished_at = get_iso_timestamp()
        self.summary.duration_seconds = duration_seconds
        self.summary.archive_path = str(archive_path) if archive_path is not None else None

        self._write_atomic(self.summary_path)
        return self.summary_path

    def _write_atomic(self, path: Path) -> None:
        """Write summary: temp file, fsync, rename."""
        temp_path = path.with_suffix(".tmp")

        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(path)

    def to_dict(self) -> dict[str, Any]:
        """Convert summary to dictionary."""
        return asdict(self.summary)
