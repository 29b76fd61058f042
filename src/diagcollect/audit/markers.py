"""STEP marker grammar.

Every concluded step leaves exactly one line in the activity log in one of
the fixed forms below. Triage tooling greps for these lines, so the wording,
field order and quoting must stay stable::

    STEP: <operation> export succeeded; channel='<id>'; output='<path>'
    STEP: <operation> export failed; reason='<reason>'; exit=<code>; exists=<bool>; sizeOK=<bool>; file='<path>'
    STEP: <operation> export failed; reason='exception'; file='<path>'; error='<message>'
    STEP: ZIP archive succeeded; output='<path>'
    STEP: ZIP archive failed; reason='<reason>'; file='<path>'
    STEP: MDM XML parsing succeeded; output='<path>'; count=<n>
    STEP: MDM XML parsing failed; reason='<reason>'; file='<path>'
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

from diagcollect.models.outcomes import FailureReason, StepKind, StepOutcome, StepStatus

__all__ = [
    "MARKER_PREFIX",
    "ARCHIVE_OPERATION",
    "REPORT_OPERATION",
    "MarkerRecord",
    "export_succeeded",
    "export_failed",
    "export_exception",
    "archive_succeeded",
    "archive_failed",
    "report_succeeded",
    "report_failed",
    "format_outcome",
    "parse_marker",
]

MARKER_PREFIX = "STEP: "
ARCHIVE_OPERATION = "ZIP archive"
REPORT_OPERATION = "MDM XML parsing"

_MARKER_RE = re.compile(
    r"STEP: (?P<operation>.+?)(?: export)? (?P<verdict>succeeded|failed)(?:; (?P<fields>.*))?$"
)
_FIELD_RE = re.compile(r"(?P<key>\w+)=(?:'(?P<quoted>.*?)'(?=; |$)|(?P<bare>[^;]*))")


class MarkerRecord(NamedTuple):
    """A STEP line parsed back into its parts."""

    operation: str
    verdict: str
    fields: dict[str, str]


def _path(value: Path | str | None) -> str:
    return "" if value is None else str(value)


def _flag(value: bool) -> str:
    return "True" if value else "False"


def _oneline(message: str) -> str:
    return " ".join(message.split())


def export_succeeded(operation: str, channel: str | None, output: Path | str | None) -> str:
    """Format the success marker for an export-style step."""
    return (
        f"{MARKER_PREFIX}{operation} export succeeded; "
        f"channel='{channel or ''}'; output='{_path(output)}'"
    )


def export_failed(
    operation: str,
    reason: FailureReason | str,
    exit_code: int | None,
    exists: bool,
    size_ok: bool,
    file: Path | str | None,
    attempted: Iterable[str] | None = None,
) -> str:
    """Format the structured failure marker for an export-style step.

    Parameters
    ----------
    operation : str
        Step label.
    reason : FailureReason | str
        Failure reason.
    exit_code : int | None
        Tool exit code, rendered ``n/a`` when no tool ran.
    exists : bool
        Artifact existence.
    size_ok : bool
        Artifact size check.
    file : Path | str | None
        Expected artifact path.
    attempted : Iterable[str] | None, optional
        Channel candidates tried, appended for fallback failures.

    Returns
    -------
    str
        Marker line without a trailing newline.
    """
    code = "n/a" if exit_code is None else str(exit_code)
    line = (
        f"{MARKER_PREFIX}{operation} export failed; reason='{reason}'; exit={code}; "
        f"exists={_flag(exists)}; sizeOK={_flag(size_ok)}; file='{_path(file)}'"
    )
    if attempted is not None:
        line += f"; attempted='{', '.join(attempted)}'"
    return line


def export_exception(operation: str, file: Path | str | None, error: str) -> str:
    """Format the failure marker for a step whose action raised."""
    return (
        f"{MARKER_PREFIX}{operation} export failed; reason='{FailureReason.EXCEPTION}'; "
        f"file='{_path(file)}'; error='{_oneline(error)}'"
    )


def archive_succeeded(output: Path | str) -> str:
    """Format the archive success marker."""
    return f"{MARKER_PREFIX}{ARCHIVE_OPERATION} succeeded; output='{_path(output)}'"


def archive_failed(reason: FailureReason | str, file: Path | str | None) -> str:
    """Format the archive failure marker."""
    return f"{MARKER_PREFIX}{ARCHIVE_OPERATION} failed; reason='{reason}'; file='{_path(file)}'"


def report_succeeded(output: Path | str, count: int) -> str:
    """Format the report extraction success marker."""
    return f"{MARKER_PREFIX}{REPORT_OPERATION} succeeded; output='{_path(output)}'; count={count}"


def report_failed(reason: FailureReason | str, file: Path | str | None) -> str:
    """Format the report extraction failure marker."""
    return f"{MARKER_PREFIX}{REPORT_OPERATION} failed; reason='{reason}'; file='{_path(file)}'"


def format_outcome(outcome: StepOutcome) -> str:
    """Render the single STEP line for a concluded step.

    Parameters
    ----------
    outcome : StepOutcome
        Finalised outcome.

    Returns
    -------
    str
        Marker line in the form matching the outcome's kind and status.
    """
    ok = outcome.status is StepStatus.SUCCESS

    if outcome.kind is StepKind.ARCHIVE:
        if ok:
            return archive_succeeded(_path(outcome.output_path))
        return archive_failed(outcome.reason or "", outcome.output_path)

    if outcome.kind is StepKind.REPORT_EXTRACTION:
        if ok:
            return report_succeeded(_path(outcome.output_path), outcome.count or 0)
        return report_failed(outcome.reason or "", outcome.output_path)

    if ok:
        return export_succeeded(outcome.name, outcome.source, outcome.output_path)

    if outcome.reason is FailureReason.EXCEPTION:
        return export_exception(outcome.name, outcome.output_path, outcome.error or "")

    attempted = outcome.attempted if outcome.reason is FailureReason.NO_CHANNEL_SUCCEEDED else None
    return export_failed(
        outcome.name,
        outcome.reason or "",
        outcome.exit_code,
        outcome.exists,
        outcome.size_ok,
        outcome.output_path,
        attempted=attempted,
    )


def parse_marker(line: str) -> MarkerRecord | None:
    """Parse a log line containing a STEP marker.

    Parameters
    ----------
    line : str
        Raw log line, with or without the timestamp and level prefix.

    Returns
    -------
    MarkerRecord | None
        Parsed marker, or None if the line carries no STEP marker.
    """
    start = line.find(MARKER_PREFIX)
    if start < 0:
        return None

    match = _MARKER_RE.match(line[start:].rstrip("\r\n"))
    if match is None:
        return None

    fields: dict[str, str] = {}
    for field_match in _FIELD_RE.finditer(match.group("fields") or ""):
        quoted = field_match.group("quoted")
        value = quoted if quoted is not None else field_match.group("bare")
        fields[field_match.group("key")] = value.strip() if quoted is None else value

    return MarkerRecord(match.group("operation"), match.group("verdict"), fields)
