"""Narrow interfaces to the external tools a collection run depends on.

The orchestrator never calls a platform utility directly; it goes through
these protocols so tests can substitute in-process fakes and so each tool's
quirks stay inside its adapter.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple, Protocol, runtime_checkable

__all__ = [
    "CommandResult",
    "PrivilegeChecker",
    "CommandRunner",
    "EventLogExporter",
    "RegistryExporter",
    "ReportGenerator",
    "Archiver",
    "Toolset",
]


class CommandResult(NamedTuple):
    """Completed external command.

    Attributes
    ----------
    exit_code : int
        Process exit code.
    stdout : str
        Captured standard output.
    stderr : str
        Captured standard error.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class PrivilegeChecker(Protocol):
    """Reports whether the process may read protected diagnostic sources."""

    def is_elevated(self) -> bool:
        """Return True when running with administrative privilege."""
        ...


@runtime_checkable
class CommandRunner(Protocol):
    """Runs a command to completion and captures its output."""

    def run(self, argv: Sequence[str]) -> CommandResult:
        """Run ``argv``.

        Raises
        ------
        SourceNotFoundError
            If the executable does not exist.
        """
        ...


@runtime_checkable
class EventLogExporter(Protocol):
    """Platform event-log export utility."""

    def channel_exists(self, channel: str) -> bool:
        """Return True if the channel is registered on this machine."""
        ...

    def export(self, channel: str, output_path: Path) -> int:
        """Export a channel to ``output_path`` and return the exit code."""
        ...


@runtime_checkable
class RegistryExporter(Protocol):
    """Registry export utility."""

    def export(self, key: str, output_path: Path) -> int:
        """Export ``key`` to ``output_path`` and return the exit code."""
        ...


@runtime_checkable
class ReportGenerator(Protocol):
    """Nested diagnostic report generator."""

    def generate(self, output_dir: Path) -> int:
        """Write report files into ``output_dir`` and return the exit code."""
        ...


@runtime_checkable
class Archiver(Protocol):
    """Archive compression utility."""

    def archive(self, source_dir: Path, dest_path: Path) -> bool:
        """Package ``source_dir`` into ``dest_path``, replacing it if present."""
        ...


@dataclass
class Toolset:
    """One implementation of every collaborator a run needs."""

    privilege: PrivilegeChecker
    commands: CommandRunner
    event_logs: EventLogExporter
    registry: RegistryExporter
    reports: ReportGenerator
    archiver: Archiver
