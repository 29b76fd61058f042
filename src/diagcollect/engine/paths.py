"""Output root resolution and creation.

The output root is ``<Prefix>Logs-DD-MM-YYYY-HH-MM`` under a base directory.
Operator tooling greps for that exact shape, so a second run inside the same
minute keeps the stamp and gains a ``-2``, ``-3`` ... suffix instead of
reusing the first run's directory.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path

from diagcollect.errors import OutputRootError
from diagcollect.utils import format_dir_stamp

__all__ = [
    "MAX_NAME_ATTEMPTS",
    "default_documents_dir",
    "resolve_base_dir",
    "log_root_name",
    "create_log_root",
]

MAX_NAME_ATTEMPTS = 100


def default_documents_dir() -> Path:
    """Return the current user's documents directory.

    Falls back to the home directory when no Documents folder exists.
    """
    profile = os.environ.get("USERPROFILE")
    home = Path(profile) if os.name == "nt" and profile else Path.home()
    documents = home / "Documents"
    return documents if documents.is_dir() else home


def resolve_base_dir(output_path: Path | str | None, use_temp: bool) -> Path:
    """Pick the base directory for a run.

    Parameters
    ----------
    output_path : Path | str | None
        Explicit base directory; wins when given.
    use_temp : bool
        Use the platform temp directory when no explicit path is given.

    Returns
    -------
    Path
        Base directory (not necessarily existing yet).
    """
    if output_path:
        return Path(output_path).expanduser()
    if use_temp:
        return Path(tempfile.gettempdir())
    return default_documents_dir()


def log_root_name(prefix: str, moment: datetime, attempt: int = 1) -> str:
    """Build the output root directory name.

    Parameters
    ----------
    prefix : str
        Artifact family prefix (e.g., "BitLocker").
    moment : datetime
        Run start time.
    attempt : int, optional
        1 for the plain name, n > 1 appends ``-n``.

    Returns
    -------
    str
        Directory name such as "BitLockerLogs-16-10-2026-14-05".
    """
    name = f"{prefix}Logs-{format_dir_stamp(moment)}"
    return name if attempt == 1 else f"{name}-{attempt}"


def create_log_root(base_dir: Path, prefix: str, moment: datetime) -> Path:
    """Create a fresh, never-reused output root under ``base_dir``.

    Parameters
    ----------
    base_dir : Path
        Base directory, created if missing.
    prefix : str
        Artifact family prefix.
    moment : datetime
        Run start time.

    Returns
    -------
    Path
        The newly created directory.

    Raises
    ------
    OutputRootError
        If the directory cannot be created.
    """
    try:
        base_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputRootError(f"Cannot create base directory {base_dir}: {e}") from e

    for attempt in range(1, MAX_NAME_ATTEMPTS + 1):
        candidate = base_dir / log_root_name(prefix, moment, attempt)
        try:
            candidate.mkdir()
        except FileExistsError:
            continue
        except OSError as e:
            raise OutputRootError(f"Cannot create output directory {candidate}: {e}") from e
        return candidate

    raise OutputRootError(
        f"No free output directory name under {base_dir} after {MAX_NAME_ATTEMPTS} attempts"
    )
