"""Pytest configuration and fixtures for test suite."""

import os
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

# Add src directory to path for imports
SRC_PATH = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_PATH))

from diagcollect.errors import SourceNotFoundError  # noqa: E402
from diagcollect.tools import CommandResult, Toolset, ZipArchiver  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"
MDM_REPORT_FIXTURE = FIXTURES_DIR / "reports" / "MDMDiagReport.xml"


class FakePrivilege:
    """Privilege checker with a fixed answer."""

    def __init__(self, elevated: bool = True) -> None:
        self.elevated = elevated
        self.calls = 0

    def is_elevated(self) -> bool:
        self.calls += 1
        return self.elevated


class FakeCommands:
    """Command runner keyed by executable name.

    Executables in ``missing`` raise SourceNotFoundError; executables in
    ``failing`` raise RuntimeError; everything else returns ``results`` or a
    default successful result.
    """

    def __init__(
        self,
        results: dict[str, CommandResult] | None = None,
        missing: Sequence[str] = (),
        failing: Sequence[str] = (),
    ) -> None:
        self.results = results or {}
        self.missing = set(missing)
        self.failing = set(failing)
        self.calls: list[list[str]] = []

    def run(self, argv: Sequence[str]) -> CommandResult:
        self.calls.append(list(argv))
        exe = argv[0]
        if exe in self.missing:
            raise SourceNotFoundError(f"Executable not found: {exe}")
        if exe in self.failing:
            raise RuntimeError(f"{exe} crashed")
        return self.results.get(exe, CommandResult(0, f"{' '.join(argv)} output\n", ""))


class FakeEventLogs:
    """Event-log exporter over an in-memory set of channels.

    ``channels`` maps a channel to the bytes it exports; channels absent from
    the mapping do not exist. ``exit_codes`` overrides the export exit code.
    """

    def __init__(
        self,
        channels: dict[str, bytes] | None = None,
        exit_codes: dict[str, int] | None = None,
        raising: Sequence[str] = (),
    ) -> None:
        self.channels = channels if channels is not None else {}
        self.exit_codes = exit_codes or {}
        self.raising = set(raising)
        self.probed: list[str] = []
        self.exported: list[str] = []

    def channel_exists(self, channel: str) -> bool:
        self.probed.append(channel)
        return channel in self.channels

    def export(self, channel: str, output_path: Path) -> int:
        self.exported.append(channel)
        if channel in self.raising:
            raise OSError(f"access denied to {channel}")
        code = self.exit_codes.get(channel, 0)
        if code == 0:
            output_path.write_bytes(self.channels[channel])
        return code


class AnyChannel(dict):
    """Channel mapping where every channel exists with the same payload."""

    def __init__(self, payload: bytes) -> None:
        super().__init__()
        self.payload = payload

    def __contains__(self, key: object) -> bool:
        return True

    def __missing__(self, key: str) -> bytes:
        return self.payload


class FakeRegistry:
    """Registry exporter; keys in ``missing`` return exit code 1."""

    def __init__(self, missing: Sequence[str] = ()) -> None:
        self.missing = set(missing)
        self.exported: list[str] = []

    def export(self, key: str, output_path: Path) -> int:
        self.exported.append(key)
        if key in self.missing:
            return 1
        output_path.write_text(
            f"Windows Registry Editor Version 5.00\n\n[{key}]\n\"Value\"=dword:00000001\n",
            encoding="utf-8",
        )
        return 0


class FakeReports:
    """Report generator copying a fixture document into the output directory."""

    def __init__(
        self,
        document: str | None = None,
        exit_code: int = 0,
        filename: str = "MDMDiagReport.xml",
    ) -> None:
        self.document = document
        self.exit_code = exit_code
        self.filename = filename
        self.calls: list[Path] = []

    def generate(self, output_dir: Path) -> int:
        self.calls.append(output_dir)
        if self.document is not None:
            (output_dir / self.filename).write_text(self.document, encoding="utf-8")
        return self.exit_code


@pytest.fixture
def evtx_payload() -> bytes:
    """Incompressible bytes comfortably above the export threshold."""
    return os.urandom(4096)


@pytest.fixture
def mdm_document() -> str:
    """Fixture MDM diagnostic report."""
    return MDM_REPORT_FIXTURE.read_text(encoding="utf-8")


@pytest.fixture
def make_toolset(evtx_payload: bytes, mdm_document: str) -> Callable[..., Toolset]:
    """Factory for toolsets where every collaborator succeeds by default."""

    def _factory(
        *,
        privilege: FakePrivilege | None = None,
        commands: FakeCommands | None = None,
        event_logs: FakeEventLogs | None = None,
        registry: FakeRegistry | None = None,
        reports: FakeReports | None = None,
        archiver: object | None = None,
    ) -> Toolset:
        return Toolset(
            privilege=privilege or FakePrivilege(),
            commands=commands or FakeCommands(),
            event_logs=event_logs or FakeEventLogs(channels=AnyChannel(evtx_payload)),
            registry=registry or FakeRegistry(),
            reports=reports or FakeReports(document=mdm_document),
            archiver=archiver or ZipArchiver(),
        )

    return _factory
