"""Exception taxonomy for diagcollect.

Two families exist and they never mix:

- ``PreconditionFailure`` aborts a run before any step executes and is
  reported once through the process exit code.
- ``StepError`` is raised inside a single step action and is always
  recovered by the step boundary that invoked it.
"""

from __future__ import annotations

from pathlib import Path

from diagcollect.models.outcomes import FailureReason

__all__ = [
    "DiagCollectError",
    "PreconditionFailure",
    "InsufficientPrivilegeError",
    "OutputRootError",
    "StepError",
    "SourceNotFoundError",
    "ExportFailedError",
]


class DiagCollectError(Exception):
    """Base class for all diagcollect errors."""


class PreconditionFailure(DiagCollectError):
    """Raised when a run cannot start at all.

    Attributes
    ----------
    exit_code : int
        Process exit code the CLI reports for this failure.
    """

    exit_code = 1


class InsufficientPrivilegeError(PreconditionFailure):
    """Raised when the process lacks the privilege to collect artifacts."""

    exit_code = 2


class OutputRootError(PreconditionFailure):
    """Raised when the output root cannot be created or written."""


class StepError(DiagCollectError):
    """Structured failure raised by a step action.

    Parameters
    ----------
    message : str
        Error message.
    reason : FailureReason
        Reason recorded in the step outcome.
    exit_code : int | None, optional
        Exit code of the external tool, if one ran.
    file : Path | None, optional
        Artifact path the step was producing.
    """

    default_reason = FailureReason.EXPORT_FAILED

    def __init__(
        self,
        message: str,
        reason: FailureReason | None = None,
        exit_code: int | None = None,
        file: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason or self.default_reason
        self.exit_code = exit_code
        self.file = file


class SourceNotFoundError(StepError):
    """Raised when the data source or the tool that reads it does not exist."""

    default_reason = FailureReason.SOURCE_NOT_FOUND


class ExportFailedError(StepError):
    """Raised when an external export tool reports failure."""

    default_reason = FailureReason.EXPORT_FAILED
