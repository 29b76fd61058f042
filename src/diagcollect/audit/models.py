"""Data models for the run summary written at the end of a collection."""

from dataclasses import dataclass, field
from typing import Any

__all__ = ["EnvironmentInfo", "StepRecord", "SummaryCounts", "RunSummary"]


@dataclass
class EnvironmentInfo:
    """Execution environment information.

    Attributes
    ----------
    python_version : str
        Python version (e.g., "3.12.3").
    platform : str
        OS and architecture.
    package_version : str
        diagcollect package version.
    dependencies : dict[str, str]
        Key dependency versions.
    """

    python_version: str
    platform: str
    package_version: str
    dependencies: dict[str, str] = field(default_factory=dict)


@dataclass
class StepRecord:
    """One step outcome as recorded in the summary.

    ``outcome`` is ``StepOutcome.to_dict()``; ``sha256`` and ``bytes`` are
    filled in only for successful artifacts still present at summary time.
    """

    outcome: dict[str, Any]
    sha256: str | None = None
    bytes: int | None = None


@dataclass
class SummaryCounts:
    """Per-status step counts."""

    success: int = 0
    failed: int = 0


@dataclass
class RunSummary:
    """Complete run summary.

    Attributes
    ----------
    summary_version : str
        Schema version (semver).
    run_id : str
        Unique run identifier.
    family : str
        Artifact family collected.
    log_root : str
        Output directory of the run.
    started_at : str
        ISO8601 UTC start time.
    state : str
        Orchestrator state when the summary was written.
    environment : EnvironmentInfo
        Execution environment.
    parameters : dict[str, Any]
        Configuration snapshot.
    steps : list[StepRecord]
        Step outcomes in invocation order.
    counts : SummaryCounts
        Step counts by status.
    finished_at : str | None
        ISO8601 UTC end time.
    duration_seconds : float | None
        Total run duration.
    archive_path : str | None
        Archive written beside the log root, if any.
    """

    summary_version: str
    run_id: str
    family: str
    log_root: str
    started_at: str
    state: str
    environment: EnvironmentInfo
    parameters: dict[str, Any]
    steps: list[StepRecord] = field(default_factory=list)
    counts: SummaryCounts = field(default_factory=SummaryCounts)
    finished_at: str | None = None
    duration_seconds: float | None = None
    archive_path: str | None = None
