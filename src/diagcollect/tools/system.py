"""System implementations of the collaborator protocols.

Event logs, registry keys and the MDM report are read through the stock
Windows utilities (``wevtutil``, ``reg``, ``MdmDiagnosticsTool``). Archives
are written with :mod:`zipfile`.
"""

import ctypes
import os
import subprocess
import zipfile
from collections.abc import Sequence
from pathlib import Path

from diagcollect.errors import SourceNotFoundError
from diagcollect.tools.base import CommandResult, Toolset

__all__ = [
    "SystemPrivilegeChecker",
    "SubprocessRunner",
    "WevtutilExporter",
    "RegExporter",
    "MdmDiagnosticsGenerator",
    "ZipArchiver",
    "default_toolset",
]

_PARTIAL_SUFFIX = ".partial"

# Console tools write in the OEM code page on Windows.
_OUTPUT_ENCODING = "oem" if os.name == "nt" else None


class SystemPrivilegeChecker:
    """Administrator check on Windows, effective-root check elsewhere."""

    def is_elevated(self) -> bool:
        """Return True when running with administrative privilege."""
        if os.name == "nt":
            try:
                return bool(ctypes.windll.shell32.IsUserAnAdmin())
            except (AttributeError, OSError):
                return False
        return os.geteuid() == 0


class SubprocessRunner:
    """Runs commands with :func:`subprocess.run`, capturing text output.

    Undecodable bytes in the output are replaced, never raised.
    """

    def run(self, argv: Sequence[str]) -> CommandResult:
        """Run ``argv`` to completion.

        Raises
        ------
        SourceNotFoundError
            If the executable is not installed.
        """
        try:
            completed = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                encoding=_OUTPUT_ENCODING,
                errors="replace",
                check=False,
            )
        except FileNotFoundError as e:
            raise SourceNotFoundError(f"Executable not found: {argv[0]}") from e

        return CommandResult(completed.returncode, completed.stdout, completed.stderr)


class WevtutilExporter:
    """Event-log export through ``wevtutil``."""

    def __init__(self, runner: SubprocessRunner | None = None) -> None:
        self.runner = runner or SubprocessRunner()

    def channel_exists(self, channel: str) -> bool:
        """Return True if ``wevtutil gl`` can read the channel configuration."""
        return self.runner.run(["wevtutil", "gl", channel]).exit_code == 0

    def export(self, channel: str, output_path: Path) -> int:
        """Export the channel to an .evtx file, overwriting it."""
        argv = ["wevtutil", "epl", channel, str(output_path), "/ow:true"]
        return self.runner.run(argv).exit_code


class RegExporter:
    """Registry export through ``reg export``."""

    def __init__(self, runner: SubprocessRunner | None = None) -> None:
        self.runner = runner or SubprocessRunner()

    def export(self, key: str, output_path: Path) -> int:
        """Export ``key`` to a .reg file, overwriting it."""
        return self.runner.run(["reg", "export", key, str(output_path), "/y"]).exit_code


class MdmDiagnosticsGenerator:
    """MDM diagnostic report generation through ``MdmDiagnosticsTool``."""

    def __init__(self, runner: SubprocessRunner | None = None) -> None:
        self.runner = runner or SubprocessRunner()

    def generate(self, output_dir: Path) -> int:
        """Write the MDM report set into ``output_dir``."""
        output_dir.mkdir(parents=True, exist_ok=True)
        return self.runner.run(["MdmDiagnosticsTool.exe", "-out", str(output_dir)]).exit_code


class ZipArchiver:
    """Deflate-compressed zip of a whole directory tree.

    The archive is first written next to its destination under a
    ``.partial`` name and moved into place only once complete, so an
    interrupted run never leaves a truncated archive under the final name.
    """

    def archive(self, source_dir: Path, dest_path: Path) -> bool:
        """Zip ``source_dir`` (including the directory itself) into ``dest_path``.

        Parameters
        ----------
        source_dir : Path
            Directory to package.
        dest_path : Path
            Final archive path; replaced if it already exists.

        Returns
        -------
        bool
            True once the archive is in place.
        """
        temp_path = dest_path.with_name(dest_path.name + _PARTIAL_SUFFIX)
        base = source_dir.parent

        try:
            with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                zf.write(source_dir, source_dir.relative_to(base).as_posix())
                for path in sorted(source_dir.rglob("*")):
                    zf.write(path, path.relative_to(base).as_posix())
            temp_path.replace(dest_path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        return True


def default_toolset() -> Toolset:
    """Build the toolset backed by the platform utilities."""
    runner = SubprocessRunner()
    return Toolset(
        privilege=SystemPrivilegeChecker(),
        commands=runner,
        event_logs=WevtutilExporter(runner),
        registry=RegExporter(runner),
        reports=MdmDiagnosticsGenerator(runner),
        archiver=ZipArchiver(),
    )
