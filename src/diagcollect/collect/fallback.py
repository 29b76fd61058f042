"""Ordered fallback over equivalent data sources.

Some logs exist under different channel names depending on the OS build.
The resolver walks the candidate list in order and stops at the first
candidate that yields a valid artifact; later candidates are never touched.
Unreachable candidates are skipped with a warning and do not count as
failures.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

from diagcollect.audit.activity_log import ActivityLog
from diagcollect.collect.validator import MIN_EXPORT_BYTES, validate_artifact
from diagcollect.models.outcomes import (
    ChannelAttempt,
    FailureReason,
    StepKind,
    StepOutcome,
    StepStatus,
)

__all__ = ["ChannelFallbackResolver", "ChannelProbe", "ChannelExport"]

ChannelProbe = Callable[[str], bool]
ChannelExport = Callable[[str, Path], int]


class ChannelFallbackResolver:
    """Export the first reachable, valid channel from a candidate list.

    Parameters
    ----------
    log : ActivityLog
        Log receiving skip warnings and the single STEP line.
    probe : ChannelProbe
        Lightweight reachability check for one channel.
    export : ChannelExport
        Exports one channel to a path, returning the tool's exit code.
    min_size_bytes : int, optional
        Validation threshold for exported artifacts.
    """

    def __init__(
        self,
        log: ActivityLog,
        probe: ChannelProbe,
        export: ChannelExport,
        min_size_bytes: int = MIN_EXPORT_BYTES,
    ) -> None:
        self.log = log
        self.probe = probe
        self.export = export
        self.min_size_bytes = min_size_bytes

    def resolve_and_export(
        self,
        name: str,
        candidates: Sequence[str],
        output_path: Path,
    ) -> StepOutcome:
        """Try each candidate in order until one produces a valid artifact.

        Parameters
        ----------
        name : str
            Step label used in the STEP marker.
        candidates : Sequence[str]
            Channel identifiers in priority order.
        output_path : Path
            Destination for the exported log.

        Returns
        -------
        StepOutcome
            SUCCESS naming the winning channel, or FAILED with reason
            ``no channel succeeded`` and every attempted candidate.
        """
        attempts: list[ChannelAttempt] = []

        for channel in candidates:
            attempt = self._attempt(name, channel, output_path)
            attempts.append(attempt)
            if attempt.status is StepStatus.SUCCESS:
                check = validate_artifact(output_path, self.min_size_bytes)
                outcome = StepOutcome(
                    name=name,
                    kind=StepKind.CHANNEL_EXPORT,
                    status=StepStatus.SUCCESS,
                    output_path=output_path,
                    source=channel,
                    exit_code=attempt.exit_code,
                    exists=check.exists,
                    size_ok=check.size_ok,
                    attempted=tuple(a.channel for a in attempts),
                    attempts=tuple(attempts),
                )
                self.log.step(outcome)
                return outcome

        check = validate_artifact(output_path, self.min_size_bytes)
        last_code = next(
            (a.exit_code for a in reversed(attempts) if a.exit_code is not None),
            None,
        )
        errors = [f"{a.channel}: {a.error or a.reason}" for a in attempts if a.reason]
        outcome = StepOutcome(
            name=name,
            kind=StepKind.CHANNEL_EXPORT,
            status=StepStatus.FAILED,
            output_path=output_path,
            reason=FailureReason.NO_CHANNEL_SUCCEEDED,
            error="; ".join(errors) or None,
            exit_code=last_code,
            exists=check.exists,
            size_ok=check.size_ok,
            attempted=tuple(a.channel for a in attempts),
            attempts=tuple(attempts),
        )
        self.log.step(outcome)
        return outcome

    def _attempt(self, name: str, channel: str, output_path: Path) -> ChannelAttempt:
        """Probe and export a single candidate without raising."""
        try:
            reachable = self.probe(channel)
        except Exception as e:
            self.log.warn(f"{name}: probe of channel '{channel}' raised {type(e).__name__}: {e}")
            return ChannelAttempt(
                channel=channel,
                status=StepStatus.FAILED,
                reason=FailureReason.EXCEPTION,
                error=f"{type(e).__name__}: {e}",
            )

        if not reachable:
            self.log.warn(f"{name}: channel '{channel}' not found, skipping")
            return ChannelAttempt(
                channel=channel,
                status=StepStatus.SKIPPED,
                reason=FailureReason.SOURCE_NOT_FOUND,
            )

        try:
            exit_code = self.export(channel, output_path)
        except Exception as e:
            self.log.warn(f"{name}: export of channel '{channel}' raised {type(e).__name__}: {e}")
            return ChannelAttempt(
                channel=channel,
                status=StepStatus.FAILED,
                reason=FailureReason.EXCEPTION,
                error=f"{type(e).__name__}: {e}",
            )

        if exit_code != 0:
            self.log.warn(f"{name}: export of channel '{channel}' exited with {exit_code}")
            return ChannelAttempt(
                channel=channel,
                status=StepStatus.FAILED,
                reason=FailureReason.EXPORT_FAILED,
                exit_code=exit_code,
            )

        check = validate_artifact(output_path, self.min_size_bytes)
        if not check.valid:
            self.log.warn(
                f"{name}: channel '{channel}' produced an empty or missing file "
                f"({check.size_bytes} bytes)"
            )
            self._discard(name, output_path)
            return ChannelAttempt(
                channel=channel,
                status=StepStatus.FAILED,
                reason=FailureReason.EMPTY_OR_MISSING,
                exit_code=exit_code,
            )

        return ChannelAttempt(channel=channel, status=StepStatus.SUCCESS, exit_code=exit_code)

    def _discard(self, name: str, output_path: Path) -> None:
        """Remove an undersized export so it is not reported as an artifact."""
        try:
            output_path.unlink(missing_ok=True)
        except OSError as e:
            self.log.warn(f"{name}: could not remove partial export '{output_path}': {e}")
