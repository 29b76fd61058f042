"""Shared data types for diagcollect."""

from diagcollect.models.outcomes import (
    ArtifactCheck,
    ChannelAttempt,
    FailureReason,
    StepKind,
    StepOutcome,
    StepStatus,
)

__all__ = [
    "ArtifactCheck",
    "ChannelAttempt",
    "FailureReason",
    "StepKind",
    "StepOutcome",
    "StepStatus",
]
