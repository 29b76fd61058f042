"""Public API for diagcollect.

This module provides the high-level entry points:
- Running a collection for an artifact family
- Reading the STEP markers of a finished run back for triage
"""

from __future__ import annotations

from pathlib import Path

from diagcollect.audit.markers import MarkerRecord, parse_marker
from diagcollect.engine.config import CollectionConfig, CollectionResult
from diagcollect.engine.run import run_collection
from diagcollect.tools import Toolset

__all__ = ["collect", "read_markers"]


def collect(
    family: str = "bitlocker",
    *,
    output_path: str | Path | None = None,
    use_temp: bool = False,
    archive: bool = False,
    mdm: bool = False,
    toolset: Toolset | None = None,
) -> CollectionResult:
    """Collect the diagnostic artifacts of one family.

    Parameters
    ----------
    family : str, optional
        Artifact family key, by default "bitlocker".
    output_path : str | Path | None, optional
        Base directory for the run's output root.
    use_temp : bool, optional
        Use the temp directory when no output path is given.
    archive : bool, optional
        Zip the output root when done.
    mdm : bool, optional
        Also extract the family's nodes from the MDM diagnostic report.
    toolset : Toolset | None, optional
        Collaborators; the platform toolset if None.

    Returns
    -------
    CollectionResult
        Result of the completed run.

    Raises
    ------
    PreconditionFailure
        If privilege is missing or the output root cannot be created.
    ValueError
        If the family is unknown or does not support ``mdm``.

    Examples
    --------
        >>> from diagcollect import collect
        >>> result = collect("bitlocker", use_temp=True, archive=True)
        >>> for outcome in result.failed:
        ...     print(outcome.name, outcome.reason)
    """
    config = CollectionConfig(
        family=family,
        output_path=Path(output_path) if output_path is not None else None,
        use_temp=use_temp,
        archive=archive,
        mdm=mdm,
    )
    return run_collection(config, toolset=toolset)


def read_markers(log_path: str | Path) -> list[MarkerRecord]:
    """Parse every STEP marker in an activity log, in file order.

    Parameters
    ----------
    log_path : str | Path
        Activity log of a run.

    Returns
    -------
    list[MarkerRecord]
        One record per STEP line.

    Raises
    ------
    FileNotFoundError
        If the log does not exist.
    """
    path = Path(log_path)
    if not path.exists():
        raise FileNotFoundError(f"Activity log not found: {log_path}")

    markers: list[MarkerRecord] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            record = parse_marker(line)
            if record is not None:
                markers.append(record)
    return markers
