"""Step outcome types.

A ``StepOutcome`` is built exactly once, when its step concludes, and is
frozen afterwards. Artifact state is never cached on it beyond the values
observed by the validator at that moment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, NamedTuple

__all__ = [
    "StepKind",
    "StepStatus",
    "FailureReason",
    "ArtifactCheck",
    "ChannelAttempt",
    "StepOutcome",
]


class StepKind(StrEnum):
    """Kind of collection operation a step performs."""

    FILE_QUERY = "file_query"
    CHANNEL_EXPORT = "channel_export"
    REGISTRY_EXPORT = "registry_export"
    REPORT_EXTRACTION = "report_extraction"
    ARCHIVE = "archive"


class StepStatus(StrEnum):
    """Final status of a step or of a single channel attempt.

    Attributes
    ----------
    SUCCESS : str
        Artifact produced and validated.
    FAILED : str
        Step concluded without a valid artifact.
    SKIPPED : str
        Source was unreachable and not attempted; never a failure on its own.
    """

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class FailureReason(StrEnum):
    """Reason strings written verbatim into ``reason='...'`` markers."""

    SOURCE_NOT_FOUND = "source not found"
    EXPORT_FAILED = "export failed"
    EMPTY_OR_MISSING = "empty or missing file"
    EXCEPTION = "exception"
    NO_CHANNEL_SUCCEEDED = "no channel succeeded"
    SOURCE_DOCUMENT_NOT_FOUND = "source document not found"
    PARSE_EXCEPTION = "parse exception"
    NO_MATCHING_NODES = "no matching nodes"
    ARCHIVE_FAILED = "archive failed"


class ArtifactCheck(NamedTuple):
    """Validator verdict for one artifact path.

    Attributes
    ----------
    exists : bool
        Whether a regular file exists at the path.
    size_ok : bool
        Whether it exists and meets the minimum size.
    size_bytes : int
        Observed size, 0 when missing.
    """

    exists: bool
    size_ok: bool
    size_bytes: int = 0

    @property
    def valid(self) -> bool:
        """Whether the artifact counts as a successful result."""
        return self.exists and self.size_ok


@dataclass(frozen=True)
class ChannelAttempt:
    """One candidate tried by the channel fallback resolver."""

    channel: str
    status: StepStatus
    reason: FailureReason | None = None
    exit_code: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class StepOutcome:
    """Final, immutable result of one collection step.

    Attributes
    ----------
    name : str
        Human label, used as the marker operation.
    kind : StepKind
        Kind of operation.
    status : StepStatus
        SUCCESS or FAILED.
    output_path : Path | None
        Expected artifact location.
    reason : FailureReason | None
        Structured cause, present iff status is not SUCCESS.
    error : str | None
        Underlying error text.
    source : str | None
        Channel, key or command that produced the artifact.
    exit_code : int | None
        Exit code reported by the external tool.
    exists : bool
        Artifact existence as observed at conclusion.
    size_ok : bool
        Artifact size check as observed at conclusion.
    attempted : tuple[str, ...]
        Channel candidates that were tried, in order.
    attempts : tuple[ChannelAttempt, ...]
        Per-candidate detail for fallback steps.
    count : int | None
        Number of extracted nodes for report extraction steps.
    """

    name: str
    kind: StepKind
    status: StepStatus
    output_path: Path | None = None
    reason: FailureReason | None = None
    error: str | None = None
    source: str | None = None
    exit_code: int | None = None
    exists: bool = False
    size_ok: bool = False
    attempted: tuple[str, ...] = ()
    attempts: tuple[ChannelAttempt, ...] = field(default=(), compare=False)
    count: int | None = None

    def __post_init__(self) -> None:
        """Enforce that a reason accompanies every non-success status."""
        if self.status is StepStatus.SUCCESS and self.reason is not None:
            raise ValueError(f"Successful step '{self.name}' cannot carry a reason")
        if self.status is not StepStatus.SUCCESS and self.reason is None:
            raise ValueError(f"Step '{self.name}' with status {self.status} needs a reason")

    @property
    def succeeded(self) -> bool:
        """Whether the step produced a valid artifact."""
        return self.status is StepStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        return {
            "name": self.name,
            "kind": str(self.kind),
            "status": str(self.status),
            "output_path": str(self.output_path) if self.output_path is not None else None,
            "reason": str(self.reason) if self.reason is not None else None,
            "error": self.error,
            "source": self.source,
            "exit_code": self.exit_code,
            "exists": self.exists,
            "size_ok": self.size_ok,
            "attempted": list(self.attempted),
            "count": self.count,
        }
