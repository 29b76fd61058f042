"""Collection configuration and result dataclasses."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from diagcollect.engine.plans import get_family
from diagcollect.models.outcomes import StepOutcome, StepStatus

__all__ = ["CollectionConfig", "CollectionResult", "RunState"]


class RunState(StrEnum):
    """Orchestrator lifecycle, strictly linear."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    ARCHIVAL_OPTIONAL = "archival_optional"
    COMPLETED = "completed"


@dataclass
class CollectionConfig:
    """Configuration for one collection run.

    Attributes
    ----------
    family : str
        Artifact family key ("bitlocker", "tpm").
    output_path : Path | None
        Base directory for the run. If None, see ``use_temp``.
    use_temp : bool
        Use the platform temp directory when no output path is given;
        otherwise the user's documents directory is used.
    archive : bool
        Zip the completed output root beside itself.
    mdm : bool
        Generate the MDM diagnostic report and extract the family's nodes.
    check_privilege : bool
        Require administrative privilege before any I/O.
    """

    family: str = "bitlocker"
    output_path: Path | None = None
    use_temp: bool = False
    archive: bool = False
    mdm: bool = False
    check_privilege: bool = True

    def __post_init__(self) -> None:
        """Normalise paths and validate."""
        family = get_family(self.family)

        if self.mdm and not family.supports_mdm:
            raise ValueError(f"MDM report extraction is not available for family '{self.family}'")

        if self.output_path is not None:
            self.output_path = Path(self.output_path)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "family": self.family,
            "output_path": str(self.output_path) if self.output_path is not None else None,
            "use_temp": self.use_temp,
            "archive": self.archive,
            "mdm": self.mdm,
            "check_privilege": self.check_privilege,
        }


@dataclass
class CollectionResult:
    """Results from a completed collection run.

    A run reaches COMPLETED regardless of how many steps failed; inspect
    ``outcomes`` to judge how complete the collection is.

    Attributes
    ----------
    log_root : Path
        Output directory of the run.
    state : RunState
        Final orchestrator state.
    outcomes : list[StepOutcome]
        Every concluded step in invocation order, including MDM
        extraction and archive when requested.
    log_path : Path
        Activity log location.
    archive_path : Path | None
        Archive location when archiving succeeded.
    summary_path : Path | None
        Location of run.json when it was written.
    """

    log_root: Path
    state: RunState
    log_path: Path
    outcomes: list[StepOutcome] = field(default_factory=list)
    archive_path: Path | None = None
    summary_path: Path | None = None

    @property
    def succeeded(self) -> list[StepOutcome]:
        """Outcomes with status SUCCESS."""
        return [o for o in self.outcomes if o.status is StepStatus.SUCCESS]

    @property
    def failed(self) -> list[StepOutcome]:
        """Outcomes with status FAILED."""
        return [o for o in self.outcomes if o.status is StepStatus.FAILED]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "log_root": str(self.log_root),
            "state": str(self.state),
            "log_path": str(self.log_path),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "archive_path": str(self.archive_path) if self.archive_path else None,
            "summary_path": str(self.summary_path) if self.summary_path else None,
        }
