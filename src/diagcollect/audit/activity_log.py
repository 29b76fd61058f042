"""Append-only activity log with console mirroring.

The activity log is the primary forensic artifact of a run: when every
other step fails, this file still explains why. Each call writes exactly one
UTF-8 line and flushes it before returning, and the same line is mirrored to
the console in call order.
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import click

from diagcollect.audit.markers import format_outcome
from diagcollect.models.outcomes import StepOutcome, StepStatus
from diagcollect.utils import format_log_timestamp

__all__ = ["ActivityLog", "LEVELS"]

LEVELS = ("INFO", "WARN", "ERROR")


class ActivityLog:
    """Timestamped, line-oriented log with a persistent file handle.

    Attributes
    ----------
    log_path : Path
        Path to the log file.
    lines_written : int
        Number of lines appended through this instance.
    """

    def __init__(
        self,
        log_path: Path,
        echo: Callable[[str], Any] | None = click.echo,
    ) -> None:
        """Open the log file for appending.

        Parameters
        ----------
        log_path : Path
            Path to the log file. Its directory must already exist.
        echo : Callable[[str], Any] | None, optional
            Console sink each line is mirrored to, None to disable.
        """
        self.log_path = log_path
        self.lines_written = 0
        self._echo = echo
        self._file = self.log_path.open("a", encoding="utf-8")

    def __enter__(self) -> "ActivityLog":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager and close file."""
        self.close()

    @property
    def closed(self) -> bool:
        """Whether the underlying file handle is closed."""
        return self._file.closed

    def close(self) -> None:
        """Flush and close the log file handle."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def flush(self) -> None:
        """Flush buffered data to disk."""
        if not self._file.closed:
            self._file.flush()

    def append(self, level: str, message: str, timestamp: datetime | None = None) -> str:
        """Write one line to the log and mirror it to the console.

        Parameters
        ----------
        level : str
            One of ``LEVELS``.
        message : str
            Line content. Embedded newlines are flattened to spaces.
        timestamp : datetime | None, optional
            Moment to stamp the line with, local now if None.

        Returns
        -------
        str
            The formatted line, without its newline.

        Raises
        ------
        ValueError
            If the level is unknown.
        """
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level}")

        text = " ".join(message.splitlines())
        line = f"[{format_log_timestamp(timestamp)}] [{level}] {text}"

        self._file.write(line + "\n")
        self._file.flush()
        self.lines_written += 1

        if self._echo is not None:
            self._echo(line)

        return line

    def info(self, message: str) -> str:
        """Append an INFO line."""
        return self.append("INFO", message)

    def warn(self, message: str) -> str:
        """Append a WARN line."""
        return self.append("WARN", message)

    def error(self, message: str) -> str:
        """Append an ERROR line."""
        return self.append("ERROR", message)

    def step(self, outcome: StepOutcome) -> str:
        """Append the STEP marker line for a concluded step.

        Successful steps log at INFO, failed ones at ERROR.
        """
        level = "INFO" if outcome.status is StepStatus.SUCCESS else "ERROR"
        return self.append(level, format_outcome(outcome))
