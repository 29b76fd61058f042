"""Artifact validation.

An artifact counts as collected when a regular file exists at the expected
path and is at least as large as the threshold for its step kind. Exported
binary logs and archives must reach ``MIN_EXPORT_BYTES``; text and XML
artifacts only need to be non-empty.
"""

from pathlib import Path

from diagcollect.models.outcomes import ArtifactCheck, StepKind

__all__ = ["MIN_EXPORT_BYTES", "MIN_TEXT_BYTES", "min_size_for", "validate_artifact"]

MIN_EXPORT_BYTES = 1024
MIN_TEXT_BYTES = 1

_THRESHOLDS: dict[StepKind, int] = {
    StepKind.FILE_QUERY: MIN_TEXT_BYTES,
    StepKind.CHANNEL_EXPORT: MIN_EXPORT_BYTES,
    StepKind.REGISTRY_EXPORT: MIN_TEXT_BYTES,
    StepKind.REPORT_EXTRACTION: MIN_TEXT_BYTES,
    StepKind.ARCHIVE: MIN_EXPORT_BYTES,
}


def min_size_for(kind: StepKind) -> int:
    """Return the minimum artifact size in bytes for a step kind."""
    return _THRESHOLDS[kind]


def validate_artifact(path: Path | None, min_size_bytes: int) -> ArtifactCheck:
    """Check existence and size of a produced artifact.

    Parameters
    ----------
    path : Path | None
        Artifact path; None is treated as missing.
    min_size_bytes : int
        Inclusive minimum size.

    Returns
    -------
    ArtifactCheck
        Verdict. A missing or unreadable file is a normal negative
        result, never an exception.
    """
    if path is None:
        return ArtifactCheck(exists=False, size_ok=False)

    try:
        if not path.is_file():
            return ArtifactCheck(exists=False, size_ok=False)
        size = path.stat().st_size
    except OSError:
        return ArtifactCheck(exists=False, size_ok=False)

    return ArtifactCheck(exists=True, size_ok=size >= min_size_bytes, size_bytes=size)
